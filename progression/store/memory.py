"""
In-process progress store

Values are JSON round-tripped on every put/get so callers never share
mutable objects with the store.
"""

import json
import logging
from typing import Any, Optional

from progression.store.base import ProgressStore

logger = logging.getLogger(__name__)


class InMemoryProgressStore(ProgressStore):
    """Dict-backed store for tests and single-process hosts"""

    def __init__(self):
        self._records: dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._records.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def put(self, key: str, value: Any) -> None:
        self._records[key] = json.dumps(value)
        logger.debug(f"Saved {key} to memory store")

    def keys(self) -> list[str]:
        """Stored keys, mainly for inspection in tests"""
        return sorted(self._records)
