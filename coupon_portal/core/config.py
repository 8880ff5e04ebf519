from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str
    AUTO_CREATE_TABLES: bool = True

    JWT_SECRET: str
    JWT_ACCESS_MINUTES: int = 30
    JWT_REFRESH_DAYS: int = 14
    JWT_ALG: str = "HS256"
    BCRYPT_ROUNDS: int = 12

    ALLOW_ADMIN_SIGNUP: bool = False

    # Claim gate
    CLAIM_COOLDOWN_MINUTES: int = 60
    CLIENT_STATE_MAX_AGE_SECONDS: int = 86400
    SESSION_COOKIE_NAME: str = "coupon_session_id"
    LAST_CLAIM_COOKIE_NAME: str = "last_claim_time"

    # Admin issue defaults
    COUPON_DEFAULT_EXPIRY_DAYS: int = 7
    COUPON_CODE_LENGTH: int = 8

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL: str = "INFO"


settings = Settings()
