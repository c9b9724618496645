#deploy_engine\config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class DeploySettings(BaseSettings):
    """Deploy engine configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Provisioning backend
    backend_url: str = "http://localhost:9100"
    request_timeout_seconds: int = 30

    # Force update stability wait (15s x 80 = 20 minutes)
    stability_poll_interval_seconds: float = 15.0
    stability_max_attempts: int = 80

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    log_level: str = "INFO"


settings = DeploySettings()
