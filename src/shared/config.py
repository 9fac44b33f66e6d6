import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from src.specs.common.errors import ConfigurationError

DEFAULT_ALLOW_HEADERS = "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token"

# Temp-based default keeps local writes out of the Functions host file watcher
_DEFAULT_STORE_DIR = Path(tempfile.gettempdir()) / "blog-posts-runtime"


class Settings(BaseModel):
    record_store_backend: Literal["auto", "cosmos", "file", "memory"] = "auto"
    cosmos_connection_string: Optional[str] = None
    cosmos_database_name: Optional[str] = None
    cosmos_posts_container: str = "posts"
    record_store_dir: Path = Field(default=_DEFAULT_STORE_DIR)
    cors_allow_origin: str = "*"
    cors_allow_headers: str = DEFAULT_ALLOW_HEADERS
    log_level: str = "INFO"
    azure_sdk_log_level: Optional[str] = None

    @property
    def cosmos_configured(self) -> bool:
        return bool(self.cosmos_connection_string and self.cosmos_database_name)

    @classmethod
    def from_env(cls) -> "Settings":
        env = {
            "record_store_backend": (os.getenv("RECORD_STORE_BACKEND") or "auto").lower(),
            "cosmos_connection_string": os.getenv("COSMOS_DB_CONNECTION_STRING"),
            "cosmos_database_name": os.getenv("COSMOS_DB_NAME"),
            "cosmos_posts_container": os.getenv("COSMOS_DB_CONTAINER_POSTS"),
            "record_store_dir": os.getenv("RECORD_STORE_DIR"),
            "cors_allow_origin": os.getenv("CORS_ALLOW_ORIGIN"),
            "cors_allow_headers": os.getenv("CORS_ALLOW_HEADERS"),
            "log_level": (os.getenv("BLOG_LOG_LEVEL") or "").upper() or None,
            "azure_sdk_log_level": (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper() or None,
        }
        # Unset variables fall back to the model defaults
        try:
            return cls(**{k: v for k, v in env.items() if v})
        except ValidationError as exc:
            fields = [str(err["loc"][0]) for err in exc.errors() if err["loc"]]
            raise ConfigurationError(
                f"Invalid configuration: {', '.join(fields) or exc}",
                details={"fields": fields},
            ) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings, read once from the environment

    Raises:
        ConfigurationError: If an environment variable holds an invalid value
    """
    return Settings.from_env()


def get_settings_or_defaults() -> Settings:
    """Settings for import-time wiring; invalid environments fall back to defaults.

    ``get_settings`` keeps raising, so the post service still reports the
    ConfigurationError on every request.
    """
    try:
        return get_settings()
    except ConfigurationError:
        return Settings()
