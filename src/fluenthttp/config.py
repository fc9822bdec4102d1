"""Configuration using pydantic-settings."""

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """HTTP client configuration."""

    connect_timeout: float = 5.0
    user_agent: str = "fluenthttp/0.1"
    max_workers: int | None = None

    model_config = {"env_prefix": "FLUENTHTTP_"}


settings = ClientSettings()
