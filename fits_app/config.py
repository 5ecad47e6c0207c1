"""Configuration helpers for the Fits ingestion service."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"
DEFAULT_EXTRACTION_SERVICE_URL = "https://api.firecrawl.dev/v1/scrape"


@dataclass
class IngestionConfig:
    """Configuration values for the ingestion pipelines.

    Secrets (OAuth client, extraction service key) are optional so the
    service boots locally; the collaborators that need them degrade or
    refuse individually.
    """

    database_path: str = "data/fits.db"
    blob_dir: str = "data/blobs"
    blob_base_url: Optional[str] = None
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_token_uri: str = DEFAULT_TOKEN_URI
    google_redirect_uri: Optional[str] = None
    gmail_api_base: str = DEFAULT_GMAIL_API_BASE
    extraction_service_url: str = DEFAULT_EXTRACTION_SERVICE_URL
    extraction_service_api_key: Optional[str] = None
    identity_url: Optional[str] = None
    identity_api_key: Optional[str] = None
    http_timeout_seconds: float = 10.0
    default_max_results: int = 50
    max_brands: int = 8
    max_messages_per_brand: int = 10
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "IngestionConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that secrets can be
        injected by the runtime environment.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("FITS_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        def get_number(key: str, default: float) -> float:
            raw = get_value(key)
            if raw in (None, ""):
                return default
            try:
                return float(raw)
            except ValueError:
                raise ValueError(f"Config value {key} must be numeric, got {raw!r}") from None

        return cls(
            database_path=str(get_value("database_path") or "data/fits.db"),
            blob_dir=str(get_value("blob_dir") or "data/blobs"),
            blob_base_url=get_value("blob_base_url"),
            google_client_id=get_value("google_client_id"),
            google_client_secret=get_value("google_client_secret"),
            google_token_uri=str(get_value("google_token_uri") or DEFAULT_TOKEN_URI),
            google_redirect_uri=get_value("google_redirect_uri"),
            gmail_api_base=str(get_value("gmail_api_base") or DEFAULT_GMAIL_API_BASE),
            extraction_service_url=str(
                get_value("extraction_service_url") or DEFAULT_EXTRACTION_SERVICE_URL
            ),
            extraction_service_api_key=get_value("extraction_service_api_key"),
            identity_url=get_value("identity_url"),
            identity_api_key=get_value("identity_api_key"),
            http_timeout_seconds=get_number("http_timeout_seconds", 10.0),
            default_max_results=int(get_number("default_max_results", 50)),
            max_brands=int(get_number("max_brands", 8)),
            max_messages_per_brand=int(get_number("max_messages_per_brand", 10)),
            environment=env_name,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
