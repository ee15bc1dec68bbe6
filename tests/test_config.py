import logging
import pytest
from toolchat.config import ToolChatSettings, configure_logging, get_settings


def make_settings(**kwargs) -> ToolChatSettings:
    return ToolChatSettings(_env_file=None, **kwargs)  # type: ignore


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("TOOLCHAT_OPENAI_API_KEY", raising=False)
    settings = make_settings()
    assert settings.openai_api_key is None
    assert settings.openai_base_url is None
    assert settings.chat_model_id == "gpt-4o-mini"
    assert settings.max_retries == 2
    assert settings.shopping_plugin_url.endswith("/.well-known/ai-plugin.json")


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TOOLCHAT_CHAT_MODEL_ID", "gpt-test")
    monkeypatch.setenv("TOOLCHAT_REQUEST_TIMEOUT", "5.5")
    monkeypatch.setenv("TOOLCHAT_LOG_LEVEL", "debug")
    settings = make_settings()
    assert settings.chat_model_id == "gpt-test"
    assert settings.request_timeout == 5.5
    assert settings.log_level == "debug"


def test_api_key_sources(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("TOOLCHAT_OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-shared")
    settings = make_settings()
    assert settings.openai_api_key is not None
    assert settings.openai_api_key.get_secret_value() == "sk-shared"
    assert "sk-shared" not in repr(settings)

    monkeypatch.setenv("TOOLCHAT_OPENAI_API_KEY", "sk-own")
    assert make_settings().openai_api_key.get_secret_value() == "sk-own"  # type: ignore

    settings = make_settings(openai_api_key="sk-arg")
    assert settings.openai_api_key.get_secret_value() == "sk-arg"  # type: ignore


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


@pytest.mark.parametrize(
    "root_level, expected", [(logging.INFO, logging.WARNING), (logging.DEBUG, 0)]
)
def test_configure_logging_quiets_httpx(
    monkeypatch: pytest.MonkeyPatch, root_level: int, expected: int
):
    root = logging.getLogger()
    httpx_logger = logging.getLogger("httpx")
    monkeypatch.setattr(root, "level", root_level)
    monkeypatch.setattr(httpx_logger, "level", logging.NOTSET)
    # With a root handler in place basicConfig leaves the root logger alone.
    monkeypatch.setattr(root, "handlers", [logging.NullHandler()])

    configure_logging(root_level)
    assert httpx_logger.level == expected
