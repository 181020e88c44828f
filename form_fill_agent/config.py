from __future__ import annotations

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    llm_provider: str = "openai"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    max_new_tokens: int = 1024
    headless: bool = False
    navigation_timeout_ms: int = 30000
    settle_delay_ms: int = 1500
    field_delay_ms: int = 500
    keep_browser_open: bool = True
    log_level: str = "INFO"

def get_settings() -> Settings:
    return Settings()


settings = get_settings()
