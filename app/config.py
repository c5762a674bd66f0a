from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database (cache, usage counters, subscriptions, api usage log)
    database_url: str = "sqlite:///./app.db"

    # "development" shows internal error detail to clients, "production" hides it
    environment: str = "development"
    log_level: str = "INFO"

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:5173"

    # Identity tokens (issued by the identity provider, verified here)
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"

    # Comma-separated emails allowed to read API usage stats
    admin_emails: str = ""

    # Gemini (Google AI Studio keys). Backup key is optional.
    gemini_api_key: str = ""
    gemini_backup_api_key: str = ""
    gemini_model_economy: str = "gemini-2.5-flash"
    gemini_model_premium: str = "gemini-2.5-pro"
    model_timeout_seconds: float = 90.0

    # Daily limits per plan (UTC day)
    free_deck_limit: int = 1
    free_hand_limit: int = 3
    free_card_limit: int = 5
    premium_deck_limit: int = 3
    premium_hand_limit: int = 5
    premium_card_limit: int = 10

    # Bump when the prompt/response contract changes; older cache rows read as misses
    analysis_prompt_version: str = "v1"

    # Deck entries sent along with a hand analysis
    hand_deck_context_limit: int = 60

    # Redis (optional read-through layer over the analysis cache; empty = DB only)
    redis_url: str = ""  # e.g. redis://localhost:6379/0
    analysis_cache_ttl_seconds: int = 86400
    redis_connect_timeout_seconds: float = 2.0

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def admin_email_set(self) -> set[str]:
        return {e.strip().lower() for e in self.admin_emails.split(",") if e.strip()}


@lru_cache
def get_settings() -> Settings:
    return Settings()
