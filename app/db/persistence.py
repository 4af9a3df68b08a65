import json
import logging
from typing import Any, Optional
from app.core.exceptions import PersistenceReadError, PersistenceWriteError
from app.db.storage import KeyValueStorage

logger = logging.getLogger(__name__)

class PersistenceAdapter:
    """JSON get/set of a value under a string key.

    `read`/`write` raise the persistence errors; `load`/`save` are the
    fail-soft variants the rest of the application relies on.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def read(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.storage.get(key)
        except Exception as e:
            raise PersistenceReadError(key, str(e)) from e

        if raw is None:
            return default

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise PersistenceReadError(key, str(e)) from e

    def load(self, key: str, default: Any = None) -> Any:
        try:
            return self.read(key, default)
        except PersistenceReadError as e:
            logger.warning(f"{e.message}; falling back to default")
            return default

    def write(self, key: str, value: Any) -> None:
        try:
            serialized = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceWriteError(key, str(e)) from e

        try:
            self.storage.set(key, serialized)
        except Exception as e:
            raise PersistenceWriteError(key, str(e)) from e

    def save(self, key: str, value: Any) -> Optional[str]:
        """Write `value`; return the error message on failure, None on success."""
        try:
            self.write(key, value)
        except PersistenceWriteError as e:
            logger.error(e.message)
            return e.message
        return None
