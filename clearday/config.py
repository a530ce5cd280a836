from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    """Application settings"""
    # API Keys
    claude_api_key: str | None = None

    # AI calls
    ai_model: str = "claude-sonnet-4-5"
    ai_timeout_s: float = 30.0
    ai_max_retries: int = 2
    ai_retry_delay_s: float = 1.0
    ai_status_interval_s: float = 0.0  # 0 disables background status checks

    log_level: str = "INFO"

    class Config:
        env_file = '.env'


@lru_cache
def get_settings() -> Settings:
    return Settings()
