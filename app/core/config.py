from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_env: str = "dev"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./marketplace.db"
    auto_create_tables: bool = True

    jwt_secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    cors_origins: list[str] = ["http://localhost:3000"]

    min_proposal_length: int = 10
    # customers' phone numbers are only shown to workers whose bid was accepted
    expose_customer_phone_before_acceptance: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
