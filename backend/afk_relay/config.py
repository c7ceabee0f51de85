from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./afk_relay.db"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Apply alembic migrations when the app starts (disabled by the test suite)
    RUN_MIGRATIONS_ON_STARTUP: bool = True

    # Web Push (VAPID) — generate with: npx web-push generate-vapid-keys
    # All three must be set before the first notification can be dispatched.
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = ""  # e.g. "mailto:admin@example.com"

    # How long a pending decision stays answerable
    DECISION_TTL_SECONDS: int = 300  # 5 minutes

    model_config = {"env_file": ".env"}


settings = Settings()
