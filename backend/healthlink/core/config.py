from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "HealthLink Storage"
    VERSION: str = "1.0.0"

    # "memory" keeps everything in-process; "sql" persists through SQLAlchemy
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite:///./healthlink.db"

    # Default page sizes for list operations
    VITALS_DEFAULT_LIMIT: int = 50
    AUDIT_LOG_DEFAULT_LIMIT: int = 100

    # Reject creates/updates that duplicate share codes, registration numbers or phones
    ENFORCE_UNIQUE_FIELDS: bool = True
    # Reject consent sessions whose expiry is already in the past
    CONSENT_REQUIRE_FUTURE_EXPIRY: bool = False
    # Write an audit entry for every consent lifecycle transition
    AUDIT_CONSENT_EVENTS: bool = True

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Create the demo patient, doctor and share code on bootstrap
    SEED_DEMO_DATA: bool = False


settings = Settings()
