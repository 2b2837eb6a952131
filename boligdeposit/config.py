from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from typing import Optional

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "BoligDeposit Privacy Service"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./boligdeposit.db"

    # Security settings
    secret_key: str = "change-me"
    # Fernet key for the secure item store; derived from secret_key when unset
    storage_encryption_key: Optional[str] = None

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Upstream REST API (auth, escrow, contracts)
    api_base_url: str = "http://localhost:3005/api"
    api_timeout_seconds: float = 10.0
    # Refresh the contract list from the upstream API before an erasure
    contract_sync_enabled: bool = False

    # GDPR settings
    consent_expiry_days: int = 365
    data_retention_days: int = 2555  # 7 years for financial records
    anonymization_after_days: int = 90
    cookie_expiry_days: int = 30
    request_deadline_days: int = 30
    cookie_consent_temp_minutes: int = 5
    privacy_policy_version: str = "1.0"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Background jobs
    scheduler_enabled: bool = True
    maintenance_interval_hours: int = 24

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
