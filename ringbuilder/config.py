from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "env_prefix": "",
        "case_sensitive": False,
    }

    # Stuller supplier API
    stuller_api_base: str = "https://api.stuller.com"
    stuller_auth_mode: Literal["basic", "bearer", "oauth1"] = "basic"
    stuller_username: str = ""
    stuller_password: str = ""
    stuller_bearer_token: str = ""
    stuller_consumer_key: str = ""
    stuller_consumer_secret: str = ""
    stuller_token: str = ""
    stuller_token_secret: str = ""
    stuller_timeout_seconds: float = 30.0

    # Catalog cache
    catalog_ttl_seconds: float = 3600.0
    catalog_batch_size: int = Field(default=10, ge=1)
    catalog_request_delay_seconds: float = 0.2
    catalog_placeholder_entries: bool = False
    catalog_refresh_on_startup: bool = True

    # Image analysis
    anthropic_api_key: str = ""
    analysis_model: str = "claude-sonnet-4-20250514"
    analysis_timeout_seconds: float = 45.0

    # App
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = ""


settings = Settings()
