from pathlib import Path

from trading_insights.core.config import DatabaseSettings, LLMSettings, Settings

_ENV_VARS = (
    "TRADING_DB_URL",
    "SQLALCHEMY_ECHO",
    "TRADING_SEED_ON_STARTUP",
    "TRADING_SEED_ORDERS",
    "NEO4J_ENABLED",
    "NEO4J_URI",
    "NEO4J_TIMEOUT",
    "NEO4J_QUERY_TIMEOUT",
    "OPENROUTER_API_KEY",
    "OPENAI_API_KEY",
    "LLM_MODEL",
    "LOG_LEVEL",
    "LOG_DIR",
)


def _clear(monkeypatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_settings_defaults(monkeypatch) -> None:
    _clear(monkeypatch)

    settings = Settings.from_env()

    assert settings.database.url == "sqlite:///./data/trading.db"
    assert settings.database.echo is False
    assert settings.database.seed_on_startup is True
    assert settings.database.seed_order_count == 1000
    assert settings.graph.enabled is False
    assert settings.graph.uri == "bolt://localhost:7687"
    assert settings.graph.connection_timeout == 5.0
    assert settings.graph.query_timeout == 5.0
    assert settings.llm.configured is False
    assert settings.logging.log_dir is None


def test_settings_from_environment(monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("TRADING_DB_URL", "sqlite:///:memory:")
    monkeypatch.setenv("TRADING_SEED_ON_STARTUP", "false")
    monkeypatch.setenv("NEO4J_ENABLED", "1")
    monkeypatch.setenv("NEO4J_TIMEOUT", "2.5")
    monkeypatch.setenv("NEO4J_QUERY_TIMEOUT", "0.75")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("LOG_DIR", "/tmp/trading-logs")

    settings = Settings.from_env()

    assert settings.database.url == "sqlite:///:memory:"
    assert settings.database.seed_on_startup is False
    assert settings.graph.enabled is True
    assert settings.graph.connection_timeout == 2.5
    assert settings.graph.query_timeout == 0.75
    assert settings.llm.api_key == "sk-test"
    assert settings.llm.configured is True
    assert settings.logging.log_dir == Path("/tmp/trading-logs")


def test_openrouter_key_wins(monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
    monkeypatch.setenv("OPENAI_API_KEY", "oa-key")

    assert Settings.from_env().llm.api_key == "or-key"


def test_placeholder_key_is_not_configured() -> None:
    assert LLMSettings(api_key="your_openai_api_key_here").configured is False


def test_masked_url_hides_password() -> None:
    settings = DatabaseSettings(url="postgresql://trader:secret@db:5432/trading")

    assert settings.masked_url == "postgresql://trader:***@db:5432/trading"
    assert DatabaseSettings().masked_url == "sqlite:///./data/trading.db"
