"""
Configuration management for Coffee Discovery.

Loads settings from a YAML config file; credentials always come from the
environment (optionally via a .env file).
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of coffee_discovery package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"


@dataclass
class CoffeeConfig:
    """Configuration for the Coffee Discovery backend."""

    # Hosted backends (environment only)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    openai_api_key: Optional[str] = None

    # Model configuration
    preference_model: str = "gpt-4"
    preference_temperature: float = 0.3
    description_model: str = "gpt-4"
    description_temperature: float = 0.7
    description_max_tokens: int = 150
    search_query_model: str = "gpt-4"
    search_query_temperature: float = 0.3
    search_query_max_tokens: int = 30

    # Seconds before an external call counts as failed
    request_timeout: float = 30.0

    # Threads for best-effort writes (query log)
    log_workers: int = 2

    # Table names
    products_table: str = "products"
    queries_table: str = "user_queries"
    merchants_table: str = "merchants"
    admins_table: str = "admins"

    def missing_credentials(self) -> List[str]:
        """Names of required environment variables that are not set."""
        missing = []
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_key:
            missing.append("SUPABASE_KEY")
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        return missing

    @classmethod
    def from_env(cls, **overrides) -> "CoffeeConfig":
        """Build a config with defaults plus environment credentials."""
        values = dict(
            supabase_url=os.environ.get("SUPABASE_URL"),
            supabase_key=os.environ.get("SUPABASE_KEY") or os.environ.get("SUPABASE_ANON_KEY"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
        )
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "CoffeeConfig":
        """Load configuration from YAML file."""
        path = config_path or DEFAULT_CONFIG_PATH
        if not path.exists():
            return cls.from_env()

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        models_config = data.get('models', {})
        preference = models_config.get('preference_extractor', {})
        description = models_config.get('description_generator', {})
        search_query = models_config.get('search_query', {})
        http_config = data.get('http', {})
        tables = data.get('tables', {})

        return cls.from_env(
            preference_model=preference.get('model', 'gpt-4'),
            preference_temperature=preference.get('temperature', 0.3),
            description_model=description.get('model', 'gpt-4'),
            description_temperature=description.get('temperature', 0.7),
            description_max_tokens=description.get('max_tokens', 150),
            search_query_model=search_query.get('model', 'gpt-4'),
            search_query_temperature=search_query.get('temperature', 0.3),
            search_query_max_tokens=search_query.get('max_tokens', 30),
            request_timeout=http_config.get('timeout', 30.0),
            log_workers=data.get('query_log', {}).get('workers', 2),
            products_table=tables.get('products', 'products'),
            queries_table=tables.get('queries', 'user_queries'),
            merchants_table=tables.get('merchants', 'merchants'),
            admins_table=tables.get('admins', 'admins'),
        )


# Global config instance
_config: Optional[CoffeeConfig] = None


def get_config() -> CoffeeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = CoffeeConfig.from_yaml()
    return _config


def set_config(config: CoffeeConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
