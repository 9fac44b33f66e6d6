import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from src.shared.config import Settings


_LOGGER = logging.getLogger("blogposts")

# Request id bound for the duration of one HTTP invocation
_REQUEST_ID: ContextVar[Optional[str]] = ContextVar("blogposts_request_id", default=None)


def configure_logging(settings: Settings) -> None:
    if settings.azure_sdk_log_level:
        level = getattr(logging, settings.azure_sdk_log_level, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.cosmos").setLevel(level)
    _LOGGER.setLevel(getattr(logging, settings.log_level, logging.INFO))


@contextmanager
def request_context(request_id: str) -> Iterator[None]:
    """Tag every log event emitted inside the block with ``request_id``."""
    token = _REQUEST_ID.set(request_id)
    try:
        yield
    finally:
        _REQUEST_ID.reset(token)


def log(level: int, request_id: Optional[str], message: str, **dimensions: Any) -> None:
    request_id = request_id or _REQUEST_ID.get()
    dims: Dict[str, Any] = {"requestId": request_id} if request_id else {}
    dims.update(dimensions)
    _LOGGER.log(level, message, extra={"custom_dimensions": dims})


def info(request_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, request_id, message, **dimensions)


def warning(request_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, request_id, message, **dimensions)


def error(request_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.ERROR, request_id, message, **dimensions)
