"""Configuration system for the trading insights service."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_FALSE_VALUES = {"0", "false", "False", "no", "off", ""}
_PLACEHOLDER_API_KEY = "your_openai_api_key_here"


def _get_env(name: str, default: str) -> str:
    return os.getenv(name, default)


def _get_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip() not in _FALSE_VALUES


@dataclass(slots=True)
class DatabaseSettings:
    """Connection details for the local trading database."""

    url: str = "sqlite:///./data/trading.db"
    echo: bool = False
    seed_on_startup: bool = True
    seed_order_count: int = 1000

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def masked_url(self) -> str:
        """Return the URL with any password replaced by ``***``."""

        scheme, sep, rest = self.url.partition("://")
        if not sep or "@" not in rest:
            return self.url
        credentials, host = rest.rsplit("@", 1)
        user = credentials.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"


@dataclass(slots=True)
class GraphSettings:
    """Neo4j connection settings for the graph-backed relevance scorer."""

    enabled: bool = False
    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: str = "password"
    connection_timeout: float = 5.0
    # Server-side limit for each read or write transaction.
    query_timeout: float = 5.0


@dataclass(slots=True)
class LLMSettings:
    """Settings for the OpenAI-compatible text generation endpoint."""

    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "google/gemini-2.0-flash-001"
    insights_model: str = "gpt-4-turbo"
    max_tokens: int = 2000
    timeout: float = 60.0
    referer: str = "http://localhost:3000"
    title: str = "Financial Trading Insights"

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != _PLACEHOLDER_API_KEY


@dataclass(slots=True)
class LoggingSettings:
    """Runtime logging options."""

    level: str = "INFO"
    log_dir: Optional[Path] = None


@dataclass(slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    graph: GraphSettings
    llm: LLMSettings
    logging: LoggingSettings

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        db_defaults = DatabaseSettings()
        graph_defaults = GraphSettings()
        llm_defaults = LLMSettings()

        database = DatabaseSettings(
            url=_get_env("TRADING_DB_URL", db_defaults.url),
            echo=_get_flag("SQLALCHEMY_ECHO", False),
            seed_on_startup=_get_flag("TRADING_SEED_ON_STARTUP", True),
            seed_order_count=int(_get_env("TRADING_SEED_ORDERS", "1000")),
        )
        graph = GraphSettings(
            enabled=_get_flag("NEO4J_ENABLED", False),
            uri=_get_env("NEO4J_URI", graph_defaults.uri),
            user=_get_env("NEO4J_USER", graph_defaults.user),
            password=_get_env("NEO4J_PASSWORD", graph_defaults.password),
            connection_timeout=float(_get_env("NEO4J_TIMEOUT", "5.0")),
            query_timeout=float(_get_env("NEO4J_QUERY_TIMEOUT", "5.0")),
        )
        llm = LLMSettings(
            api_key=os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY") or "",
            base_url=_get_env("LLM_BASE_URL", llm_defaults.base_url),
            model=_get_env("LLM_MODEL", llm_defaults.model),
            insights_model=_get_env("LLM_INSIGHTS_MODEL", llm_defaults.insights_model),
            max_tokens=int(_get_env("LLM_MAX_TOKENS", "2000")),
            timeout=float(_get_env("LLM_TIMEOUT", "60")),
        )
        log_dir = _get_env("LOG_DIR", "")
        logging_settings = LoggingSettings(
            level=_get_env("LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
        )
        return cls(database=database, graph=graph, llm=llm, logging=logging_settings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .logger import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "database": {
                "url": settings.database.masked_url,
                "echo": settings.database.echo,
                "seed_on_startup": settings.database.seed_on_startup,
            },
            "graph": {
                "enabled": settings.graph.enabled,
                "uri": settings.graph.uri,
                "user": settings.graph.user,
            },
            "llm": {
                "configured": settings.llm.configured,
                "base_url": settings.llm.base_url,
                "model": settings.llm.model,
            },
        },
    )
    return settings
