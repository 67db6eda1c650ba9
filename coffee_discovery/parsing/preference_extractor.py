"""
Preference extractor for free-text coffee searches.

Uses an LLM in JSON mode to turn a query such as "low acidity medium roast
from Colombia" into a SearchPreference. Extraction fails open: any problem
with the model call or its output yields an empty preference, so search keeps
working (unfiltered) when the model is unavailable.
"""
import json
from typing import Optional

from openai import OpenAI
from pydantic import ValidationError

from coffee_discovery.core.config import CoffeeConfig, get_config
from coffee_discovery.core.errors import ConfigurationError, ExtractionDegraded
from coffee_discovery.data.models import SearchPreference
from coffee_discovery.utils.logger import get_logger

logger = get_logger("parsing.preference_extractor")


SYSTEM_PROMPT = """You are a coffee expert assistant. Extract structured information about coffee preferences from user queries.
Return ONLY a JSON object with the following fields (leave empty if not mentioned):
- roastLevel: (light, medium, dark, or empty)
- acidity: (low, medium, high, or empty)
- origin: (country/region name or empty)
- flavorNotes: (array of flavor notes or empty array)
- otherPreferences: (any other relevant preferences or empty)"""


class PreferenceExtractor:
    """Wraps the chat completion that parses a search query."""

    def __init__(self, client: Optional[OpenAI] = None, config: Optional[CoffeeConfig] = None):
        self.config = config or get_config()
        self._client = client

    def extract(self, free_text: str) -> SearchPreference:
        """
        Parse free text into a SearchPreference.

        Never raises. Returns SearchPreference.empty() when the model call
        fails or its content is not a JSON object of the expected shape.
        """
        try:
            preference = self._extract(free_text)
        except ExtractionDegraded as e:
            logger.warning(f"Preference extraction degraded, using empty filter: {e}")
            return SearchPreference.empty()

        logger.info(f"Extracted preferences: {preference.to_snapshot()}")
        return preference

    def _extract(self, free_text: str) -> SearchPreference:
        try:
            response = self._get_client().chat.completions.create(
                model=self.config.preference_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": free_text},
                ],
                temperature=self.config.preference_temperature,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
        except Exception as e:
            raise ExtractionDegraded(f"model call failed: {e}") from e

        if not content:
            raise ExtractionDegraded("model returned no content")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ExtractionDegraded(f"model output is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ExtractionDegraded(f"expected a JSON object, got {type(payload).__name__}")

        try:
            return SearchPreference.model_validate(payload)
        except ValidationError as e:
            raise ExtractionDegraded(f"unexpected preference shape: {e}") from e

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.config.openai_api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            self._client = OpenAI(
                api_key=self.config.openai_api_key,
                timeout=self.config.request_timeout,
            )
        return self._client
