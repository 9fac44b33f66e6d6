import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.shared.logging_utils import warning as log_warning
from src.specs.common.errors import RecordNotFoundError

PRIMARY_KEY = "postId"


class FileRecordStore:
    """Record store persisted as a single ``{postId: record}`` JSON file.

    Single-process only: the lock serialises threads of one worker, so run the
    Functions host with ``FUNCTIONS_WORKER_PROCESS_COUNT=1`` when using it.
    Concurrent processes would each rewrite the whole file and drop one
    another's keys.
    """

    def __init__(self, state_dir: Path, filename: str = "posts.json") -> None:
        self._state_dir = Path(state_dir)
        self._state_file = self._state_dir / filename
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Dict[str, Any]]:
        if not self._state_file.exists():
            return {}
        text = self._state_file.read_text()
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            log_warning(None, "file_store:corrupt", path=str(self._state_file), error=str(exc))
            raise

    def _write_all(self, data: Dict[str, Dict[str, Any]]) -> None:
        self._state_dir.mkdir(parents=True, exist_ok=True)
        tmp = self._state_dir / f"{self._state_file.name}.{os.getpid()}.tmp"
        tmp.write_text(json.dumps(data))
        tmp.replace(self._state_file)

    def put(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            data = self._read_all()
            data[record[PRIMARY_KEY]] = record
            self._write_all(data)
        return dict(record)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._read_all().get(key)

    def scan(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._read_all().values())

    def update(self, key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            data = self._read_all()
            entry = data.get(key)
            if entry is None:
                raise RecordNotFoundError(key)
            entry.update(fields)
            data[key] = entry
            self._write_all(data)
        return entry

    def delete(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            data = self._read_all()
            prior = data.pop(key, None)
            if prior is not None:
                self._write_all(data)
        return prior
