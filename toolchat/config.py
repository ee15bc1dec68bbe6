"""
Settings for programs built on toolchat, loaded from the environment (and `.env`).
The library itself never reads settings implicitly; pass them in.
"""

from functools import lru_cache
import logging
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["ToolChatSettings", "get_settings", "configure_logging"]

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class ToolChatSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOOLCHAT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("TOOLCHAT_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    """API key for the completion service. Falls back to `OPENAI_API_KEY`."""

    openai_base_url: str | None = None
    """Override the API endpoint, e.g. for an OpenAI-compatible server."""

    chat_model_id: str = "gpt-4o-mini"

    request_timeout: float = 60.0
    """Seconds, for completion requests and remote plugin calls."""

    max_retries: int = 2
    """Retries done by the openai client itself. toolchat never retries."""

    shopping_plugin_url: str = "https://www.klarna.com/.well-known/ai-plugin.json"

    log_level: str = "INFO"


@lru_cache
def get_settings() -> ToolChatSettings:
    return ToolChatSettings()


def configure_logging(level: str | int = "INFO") -> None:
    """
    Console logging for scripts. Libraries should leave this to the application.
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # Keep HTTP request logs out of the way unless debugging.
    if logging.getLogger().getEffectiveLevel() > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
