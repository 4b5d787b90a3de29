import os
from functools import lru_cache

from periods import DEFAULT_TIMEZONE


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        log_level: str,
        host: str,
        port: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.log_level = log_level
        self.host = host
        self.port = port


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    database_url = os.getenv("FINANCE_DATABASE_URL", "").strip()
    if not database_url:
        raise RuntimeError(
            'Invalid/Missing environment variable: "FINANCE_DATABASE_URL"'
        )
    timezone = os.getenv("FINANCE_TIMEZONE", DEFAULT_TIMEZONE)
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    host = os.getenv("FINANCE_HOST", "127.0.0.1")
    port = int(os.getenv("FINANCE_PORT", "8000"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        log_level=log_level,
        host=host,
        port=port,
    )
