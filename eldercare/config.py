"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """ElderCare configuration. All values come from environment variables."""

    # Hosted model credentials (only the active provider's key is needed)
    gemini_api_key: str = Field(default="")
    anthropic_api_key: str = Field(default="")

    # Models
    default_chat_model: str = Field(default="flash")
    default_extraction_model: str = Field(default="flash")
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=1024)

    # Telegram
    telegram_bot_token: str = Field(default="")

    # Family
    parent_name: str = Field(default="Dad")
    child_name: str = Field(default="")

    # Dashboard
    dashboard_window: int = Field(default=5)

    # Safety gate (local emergency keyword scan)
    safety_gate_enabled: bool = Field(default=True)

    # Structured check-in extraction
    checkin_extraction_enabled: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
