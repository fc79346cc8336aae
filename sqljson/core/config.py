"""
Runtime settings, read from the environment (and ``.env``) via pydantic-settings.
"""

from typing import Literal

from pydantic import HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "sqljson"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    SENTRY_DSN: HttpUrl | None = None

    # Placeholder syntax used when the dialect has no preference of its own:
    # numbered -> $1, $2 ...; qmark -> ?; format -> %s
    SQL_PLACEHOLDER_STYLE: Literal["numbered", "qmark", "format"] = "numbered"
    # Rows per cursor.fetchmany() call; 0 = use cursor.arraysize
    SQL_FETCH_SIZE: int = 0

    JSON_CONTENT_TYPE: str = "application/json;charset=UTF-8"
    # Emit object keys sorted instead of in column order
    JSON_SORT_KEYS: bool = False

    TEMPLATE_AUTOESCAPE: bool = True
    # Rows buffered between the fetch loop and the render thread
    TEMPLATE_CHANNEL_SIZE: int = 1
    TEMPLATE_CACHE_SIZE: int = 512

    REQUEST_JSON_MAX_BYTES: int = 128 * 1024
    # Chunks buffered between the query thread and the HTTP response
    HTTP_STREAM_QUEUE_SIZE: int = 64

    EXTERNAL_DB_CONNECT_TIMEOUT: int = 10
    EXTERNAL_DB_POOL_SIZE: int = 5
    EXTERNAL_DB_POOL_MAX_AGE_SEC: int = 600


settings = Settings()  # type: ignore
