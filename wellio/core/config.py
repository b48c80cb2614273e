from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://wellio:wellio@db:5432/wellio"
    APP_ENV: str = "development"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://coach.wellio.app,https://api.wellio.app"
    CORS_ORIGINS: str = "*"

    # "text" or "json"; production always logs JSON lines.
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    # AI summaries fall back to the rule-based text when no key is set.
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 20.0

    # Web push (VAPID). Reminders are skipped when the keys are missing.
    VAPID_PUBLIC_KEY: str | None = None
    VAPID_PRIVATE_KEY: str | None = None
    VAPID_CLAIM_EMAIL: str = "mailto:support@wellio.app"

    REMINDER_SCHEDULER_ENABLED: bool = True
    REMINDER_INTERVAL_SECONDS: int = 3600
    REMINDER_INITIAL_DELAY_SECONDS: int = 5

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


settings = Settings()
