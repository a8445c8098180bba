from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database Settings
    database_url: Optional[str] = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    # App Settings
    app_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:3000"
    environment: str = "development"

    # Auth (admin gate)
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"

    # Email Settings
    email_provider: str = "resend"  # resend or ses
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    resend_webhook_secret: Optional[str] = None
    aws_region: str = "us-east-1"
    ses_configuration_set: Optional[str] = None

    # Campaign sending
    email_batch_size: int = 100
    email_batch_delay_ms: int = 1000

    # URL shortener
    url_shortener_api_key: Optional[str] = None
    url_shortener_api_url: str = "https://chom.pm/api/shorten"
    url_shortener_timeout_seconds: float = 10.0
    link_metadata_timeout_seconds: float = 10.0

    # Rate limits
    rate_limit_subscribe_per_hour: int = 5
    rate_limit_send_test_per_hour: int = 10

    class Config:
        env_file = ".env"
        extra = "ignore"  # This line allows extra env vars without errors

settings = Settings()
