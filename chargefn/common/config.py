"""Environment-driven settings for the charge functions service.

Settings are built once when the app is created and handed to the clients
and handlers that need them (see `.env.example` for the variables).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class FunctionsSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "charge-functions"
    log_level: str = "INFO"
    stripe_token: str
    stripe_api_version: str | None = None
    currency: str = "USD"
    firebase_database_url: str
    firebase_auth_token: str | None = None
    function_name: str = "charge-functions"
    gcp_project_id: str
    logging_api_url: str = "https://logging.googleapis.com/v2"
    logging_access_token: str | None = None
    metadata_url: str = "http://metadata.google.internal/computeMetadata/v1"
    http_timeout_seconds: float = 10.0
    otel_exporter_otlp_endpoint: str | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
