"""
Key-value record store contract and backend selection.

Records are plain dicts keyed by ``postId``. Backends:

- ``cosmos``: Azure Cosmos DB container (see ``cosmos_client``)
- ``file``: JSON file on local disk (see ``file_store``)
- ``memory``: process-local dict, for tests and throwaway runs
"""
import copy
import threading
from typing import Any, Dict, List, Optional, Protocol

from src.shared.config import Settings
from src.shared.logging_utils import info as log_info
from src.specs.common.errors import ConfigurationError, RecordNotFoundError

PRIMARY_KEY = "postId"


class RecordStore(Protocol):
    """
    Protocol defining the persistence capability consumed by the post service.
    """

    def put(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert a record by primary key, overwriting any existing one."""
        ...

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the record for ``key`` or None."""
        ...

    def scan(self) -> List[Dict[str, Any]]:
        """Return every record, in no particular order."""
        ...

    def update(self, key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Set ``fields`` on an existing record and return the result.

        Raises:
            RecordNotFoundError: If no record exists for ``key``
        """
        ...

    def delete(self, key: str) -> Optional[Dict[str, Any]]:
        """Remove a record, returning its prior attributes or None if absent."""
        ...


class InMemoryRecordStore:
    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def put(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._items[record[PRIMARY_KEY]] = copy.deepcopy(record)
            return copy.deepcopy(record)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._items.get(key)
            return copy.deepcopy(item) if item is not None else None

    def scan(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(item) for item in self._items.values()]

    def update(self, key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            if key not in self._items:
                raise RecordNotFoundError(key)
            self._items[key].update(copy.deepcopy(fields))
            return copy.deepcopy(self._items[key])

    def delete(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._items.pop(key, None)


def build_record_store(settings: Settings) -> RecordStore:
    """
    Create the record store selected by ``RECORD_STORE_BACKEND``.

    ``auto`` picks Cosmos when its connection settings are present and falls
    back to the file store otherwise.
    """
    backend = settings.record_store_backend
    if backend == "auto":
        backend = "cosmos" if settings.cosmos_configured else "file"

    if backend == "cosmos":
        if not settings.cosmos_configured:
            raise ConfigurationError("Missing Cosmos DB connection string or database name")
        from src.shared.cosmos_client import CosmosDBClient

        store: RecordStore = CosmosDBClient(
            settings.cosmos_connection_string,
            settings.cosmos_database_name,
            settings.cosmos_posts_container,
        )
    elif backend == "file":
        from src.shared.file_store import FileRecordStore

        store = FileRecordStore(settings.record_store_dir)
    else:
        store = InMemoryRecordStore()

    log_info(None, "record_store:init", backend=backend)
    return store
