from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DEBUG: bool = False
    APP_NAME: str = "shulpay"
    APP_VERSION: str = "0.1.0"
    APP_DATABASE_DSN: str = "sqlite:////tmp/shulpay.db"
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "*"

    # Development server
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Cardknox gateway
    CARDKNOX_GATEWAY_URL: str = "https://x1.cardknox.com/gateway"
    CARDKNOX_RECURRING_URL: str = "https://api.cardknox.com/v2"
    CARDKNOX_API_VERSION: str = "5.0.0"
    CARDKNOX_RECURRING_API_VERSION: str = "2.1"
    CARDKNOX_WEBHOOK_SECRET: str = ""  # Empty disables postback signature checks
    GATEWAY_TIMEOUT_SECONDS: float = 30.0
    DEFAULT_SOFTWARE_NAME: str = "ShulGenius"
    DEFAULT_SOFTWARE_VERSION: str = "2.0.0"

    # Rate limiting (tokenization config endpoint)
    CONFIG_RATE_LIMIT_MAX: int = 20
    CONFIG_RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Access tokens issued by the hosted auth backend
    AUTH_JWT_SECRET: str = ""
    AUTH_JWT_AUDIENCE: str = "authenticated"

    # Transactional email
    RESEND_API_URL: str = "https://api.resend.com/emails"
    RESEND_API_KEY: str = ""
    EMAIL_FROM_ADDRESS: str = "billing@shulgenius.com"

    # Recurring billing cron (UTC)
    RECURRING_BILLING_HOUR: int = 6

    @property
    def version(self) -> str:
        return self.APP_VERSION

    @property
    def webhook_signing_enabled(self) -> bool:
        return bool(self.CARDKNOX_WEBHOOK_SECRET)


settings = Settings()
