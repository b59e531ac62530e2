"""Configuration loader for the Bibliotech ingestion pipeline."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from bibliotech.errors import ConfigurationError

# Ingestion batches stay within this range to respect upstream rate limits.
MIN_BATCH_SIZE = 5
MAX_BATCH_SIZE = 50


class AppInfo(BaseModel):
    """Application metadata."""

    name: str = "Bibliotech"
    version: str = "1.0.0"
    language: str = "en"


class HttpConfig(BaseModel):
    """Settings shared by every outbound HTTP client."""

    user_agent: str = (
        "BibliotechCatalogBot/1.0 (https://bibliotech.inquiry.institute; catalog ingestion)"
    )
    timeout: float = 30.0


class StoreConfig(BaseModel):
    """Record store connection settings."""

    backend: str = "rest"  # "rest" or "sqlite"
    url: str | None = None
    service_key: str | None = None
    books_table: str = "books"
    curators_table: str = "faculty"
    sqlite_path: str = "./db/bibliotech.db"
    timeout: float = 30.0


class GutenbergConfig(BaseModel):
    """Project Gutenberg catalog dump settings."""

    catalog_url: str = "https://www.gutenberg.org/cache/epub/feeds/pg_catalog.csv"
    cover_url_template: str = (
        "https://www.gutenberg.org/cache/epub/{id}/pg{id}.cover.medium.jpg"
    )
    batch_size: int = Field(default=50, ge=MIN_BATCH_SIZE, le=MAX_BATCH_SIZE)
    item_delay: float = Field(default=0.0, ge=0)
    batch_delay: float = Field(default=1.0, ge=0)
    cover_update_delay: float = Field(default=0.05, ge=0)


class WikibooksConfig(BaseModel):
    """Wikibooks MediaWiki API settings."""

    api_url: str = "https://en.wikibooks.org/w/api.php"
    page_size: int = Field(default=50, gt=0, le=500)
    progress_every: int = Field(default=100, gt=0)
    request_delay: float = Field(default=0.2, ge=0)
    batch_size: int = Field(default=10, ge=MIN_BATCH_SIZE, le=MAX_BATCH_SIZE)
    item_delay: float = Field(default=0.3, ge=0)
    batch_delay: float = Field(default=1.0, ge=0)
    description_length: int = Field(default=500, gt=0)


class ClassifierConfig(BaseModel):
    """Remote text-generation classifier settings."""

    api_url: str = "https://api.openrouter.ai/api/v1/chat/completions"
    model: str = "gpt-oss-120b:free"
    api_key: str | None = None
    temperature: float = 0.3
    max_tokens: int = 10
    timeout: float = 60.0
    batch_size: int = Field(default=5, gt=0)
    item_delay: float = Field(default=0.5, ge=0)
    batch_delay: float = Field(default=2.0, ge=0)
    max_reported_changes: int = Field(default=20, ge=0)


class MatcherConfig(BaseModel):
    """Curator matching weights.

    The weights and cutoff are tuned constants rather than derived values,
    so they stay adjustable from the YAML file.
    """

    department_weight: int = 10
    keyword_weight: int = 5
    name_token_weight: int = 2
    title_department_weight: int = 3
    threshold: int = Field(default=5, gt=0)
    min_name_token_length: int = 4
    curator_limit: int = Field(default=100, gt=0)


class AppConfig(BaseModel):
    """Root application configuration."""

    app: AppInfo = Field(default_factory=AppInfo)
    http: HttpConfig = Field(default_factory=HttpConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    gutenberg: GutenbergConfig = Field(default_factory=GutenbergConfig)
    wikibooks: WikibooksConfig = Field(default_factory=WikibooksConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)

    def require_store_credentials(self) -> None:
        """Ensure the remote store can be reached.

        Raises:
            ConfigurationError: If the REST backend is selected and its URL
                or service key is missing.
        """
        if self.store.backend != "rest":
            return
        missing = []
        if not self.store.url:
            missing.append("SUPABASE_URL")
        if not self.store.service_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if missing:
            raise ConfigurationError(
                f"{' and '.join(missing)} must be set in the environment or .env file"
            )


# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SUPABASE_URL": ("store", "url"),
    "SUPABASE_SERVICE_ROLE_KEY": ("store", "service_key"),
    "GPT_OSS_API_URL": ("classifier", "api_url"),
    "GPT_OSS_MODEL": ("classifier", "model"),
    "GPT_OSS_API_KEY": ("classifier", "api_key"),
}


def load_config(config_path: str | Path = "config.yaml") -> AppConfig:
    """Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Fully populated AppConfig instance.

    Raises:
        ConfigurationError: If a value in the YAML file is out of range.
    """
    load_dotenv()

    yaml_data: dict = {}
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            yaml_data = yaml.safe_load(f) or {}

    try:
        config = AppConfig(**yaml_data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {config_file}:\n{exc}") from exc

    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            setattr(getattr(config, section), field, value)

    return config
