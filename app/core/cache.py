import json
import time
from collections import OrderedDict
from typing import Any, Optional

ITEMS_PREFIX = "items"
POD_ITEMS_PREFIX = "pod-items"

class ResponseCache:
    """Caché en memoria de respuestas con TTL e invalidación explícita por prefijo."""

    def __init__(self, ttl_seconds: int = 60, max_entries: int = 100):
        self._cache: "OrderedDict[str, tuple]" = OrderedDict()  # key -> (value, expiry)
        self._ttl = ttl_seconds
        self._max_entries = max_entries

    @staticmethod
    def make_key(prefix: str, params: dict) -> str:
        return f"{prefix}:{json.dumps(params, sort_keys=True, default=str)}"

    def get(self, key: str) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            return None

        value, expiry = entry
        if time.monotonic() >= expiry:
            del self._cache[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self._ttl
        self._cache[key] = (value, time.monotonic() + ttl)
        self._cache.move_to_end(key)

        # Descartar la entrada más antigua
        while len(self._cache) > self._max_entries:
            self._cache.popitem(last=False)

    def invalidate(self, prefix: Optional[str] = None) -> int:
        """Invalidar entradas. Sin prefijo se vacía toda la caché."""
        if prefix is None:
            count = len(self._cache)
            self._cache.clear()
            return count

        keys_to_remove = [k for k in self._cache if k.startswith(f"{prefix}:")]
        for key in keys_to_remove:
            del self._cache[key]
        return len(keys_to_remove)

    def invalidate_items(self) -> int:
        """Hook de invalidación tras escrituras de items o sincronización"""
        return self.invalidate(ITEMS_PREFIX) + self.invalidate(POD_ITEMS_PREFIX)

    def __len__(self) -> int:
        return len(self._cache)
