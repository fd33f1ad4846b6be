import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    """Startup configuration for the proxy and the chat client.

    Built once and handed to the components that need it, nothing reads
    the environment after startup.
    """

    gemini_api_key: str
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    database_url: str = "sqlite:///support_chat.db"
    graphite_host: str = "localhost"
    graphite_port: int = 8125
    metrics_prefix: str = "production.supportchat"
    proxy_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, require_api_key: bool = True) -> "Settings":
        load_dotenv()

        api_key: Optional[str] = os.getenv("GEMINI_API_KEY")
        if require_api_key and not api_key:
            raise ConfigError("GEMINI_API_KEY is not set in the environment or .env")

        return cls(
            gemini_api_key=api_key or "",
            gemini_model=os.getenv("GEMINI_MODEL", cls.gemini_model),
            gemini_base_url=os.getenv("GEMINI_BASE_URL", cls.gemini_base_url),
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            graphite_host=os.getenv("GRAPHITE_HOST", cls.graphite_host),
            graphite_port=int(os.getenv("GRAPHITE_HOST_PORT", str(cls.graphite_port))),
            metrics_prefix=os.getenv("METRICS_PREFIX", cls.metrics_prefix),
            proxy_url=os.getenv("PROXY_URL", cls.proxy_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )
