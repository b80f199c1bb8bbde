"""Brain: in-memory key-value store with optional persistence."""

from typing import Any

from ..logging_config import get_logger
from .storage import IBrainStorage

logger = get_logger(__name__)


class Brain:
    """Key-value data shared by everything attached to a robot."""

    def __init__(self):
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> "Brain":
        self._data[key] = value
        return self

    def remove(self, key: str) -> "Brain":
        self._data.pop(key, None)
        return self

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()

    @property
    def data(self) -> dict[str, Any]:
        """Shallow snapshot of all data."""
        return dict(self._data)

    async def load(self, storage: IBrainStorage) -> None:
        """Merge persisted data over the in-memory data."""
        loaded = await storage.load_data()
        self._data.update(loaded)
        logger.info("Brain loaded %s keys", len(loaded))

    async def save(self, storage: IBrainStorage) -> None:
        """Persist the in-memory data."""
        await storage.save_data(self._data)
        logger.debug("Brain saved %s keys", len(self._data))
