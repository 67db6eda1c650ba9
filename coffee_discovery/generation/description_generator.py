"""
Marketing copy generation for catalog editing.

Both helpers make a single model call and fall back to fixed or rule-built
text on any failure, so catalog editing keeps working without the model.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from openai import OpenAI

from coffee_discovery.core.config import CoffeeConfig, get_config
from coffee_discovery.core.errors import ConfigurationError, GenerationDegraded
from coffee_discovery.data.models import SearchPreference
from coffee_discovery.utils.logger import get_logger

logger = get_logger("generation.description_generator")

FALLBACK_DESCRIPTION = "A delightful coffee with a unique character and flavor profile."
FALLBACK_SEARCH_QUERY = "specialty coffee beans"

DESCRIPTION_SYSTEM_PROMPT = """You are a coffee expert who writes engaging, concise coffee descriptions.
Write a compelling 2-3 sentence description for a coffee product with the provided details.
Focus on flavor profile, origin characteristics, and brewing recommendations."""

SEARCH_QUERY_SYSTEM_PROMPT = """You are a search query optimization assistant.
Generate a concise search query for finding coffee products based on the provided preferences.
The query should be optimized for web search engines to find relevant coffee products."""


@dataclass
class CoffeeDetails:
    """Attributes a description is written from."""
    name: str
    origin: Optional[str] = None
    roast_level: Optional[str] = None
    flavor_notes: List[str] = field(default_factory=list)


class DescriptionGenerator:

    def __init__(self, client: Optional[OpenAI] = None, config: Optional[CoffeeConfig] = None):
        self.config = config or get_config()
        self._client = client

    def generate(self, details: CoffeeDetails) -> str:
        """Write a 2-3 sentence product description, or FALLBACK_DESCRIPTION."""
        user_message = (
            "Generate a description for this coffee:\n"
            f"Name: {details.name}\n"
            f"Origin: {details.origin or 'Unknown'}\n"
            f"Roast Level: {details.roast_level or 'Medium'}\n"
            f"Flavor Notes: {', '.join(details.flavor_notes) or 'Not specified'}"
        )
        try:
            return self._complete(
                DESCRIPTION_SYSTEM_PROMPT,
                user_message,
                model=self.config.description_model,
                temperature=self.config.description_temperature,
                max_tokens=self.config.description_max_tokens,
            )
        except GenerationDegraded as e:
            logger.warning(f"Description generation degraded for {details.name!r}: {e}")
            return FALLBACK_DESCRIPTION

    def generate_search_query(self, preference: SearchPreference) -> str:
        """Turn a preference record into a short web search query."""
        user_message = (
            "Create a search query for coffee with these preferences:\n"
            f"Roast Level: {preference.roast_level or 'any'}\n"
            f"Acidity: {preference.acidity or 'any'}\n"
            f"Origin: {preference.origin or 'any'}\n"
            f"Flavor Notes: {', '.join(preference.flavor_notes) or 'any'}\n"
            f"Other: {preference.other_preferences or 'none'}"
        )
        try:
            return self._complete(
                SEARCH_QUERY_SYSTEM_PROMPT,
                user_message,
                model=self.config.search_query_model,
                temperature=self.config.search_query_temperature,
                max_tokens=self.config.search_query_max_tokens,
            )
        except GenerationDegraded as e:
            logger.warning(f"Search query generation degraded: {e}")
            return fallback_search_query(preference)

    def _complete(self, system_prompt: str, user_message: str, model: str,
                  temperature: float, max_tokens: int) -> str:
        try:
            response = self._get_client().chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
            content = response.choices[0].message.content
        except Exception as e:
            raise GenerationDegraded(f"model call failed: {e}") from e

        text = (content or "").strip()
        if not text:
            raise GenerationDegraded("model returned no text")
        return text

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.config.openai_api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            self._client = OpenAI(
                api_key=self.config.openai_api_key,
                timeout=self.config.request_timeout,
            )
        return self._client


def fallback_search_query(preference: SearchPreference) -> str:
    """Rule-built query used when the model is unavailable."""
    parts = []
    if preference.origin:
        parts.append(preference.origin)
    if preference.roast_level:
        parts.append(f"{preference.roast_level} roast")
    if preference.acidity:
        parts.append(f"{preference.acidity} acidity")
    if not parts:
        return FALLBACK_SEARCH_QUERY
    return f"{' '.join(parts)} coffee beans"
