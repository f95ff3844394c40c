"""Key-value persistence interface used by the progression engine"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class ProgressStore(ABC):
    """
    Minimal async key-value store

    Values are JSON-compatible dicts/lists. Implementations raise
    StorageError subclasses on I/O failure; a missing key is not a failure.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when the key is absent"""

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value (last write wins)"""

    async def close(self) -> None:
        """Release backend resources"""
