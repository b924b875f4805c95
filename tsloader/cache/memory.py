import threading
from typing import Dict, Optional, Tuple

from ..source import Source
from .base import CodeCache


class InMemoryCache(CodeCache):
    """
    Keeps compiled code in a dictionary keyed by source uri. An entry only counts
    as a hit while the source content still has the fingerprint it was compiled from.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[str, str]] = {}

    def get(self, source: Source) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(source.uri)
        if entry is None:
            return None
        fingerprint, code = entry
        if fingerprint != source.fingerprint:
            return None
        return code

    def put(self, source: Source, code: str) -> None:
        with self._lock:
            self._entries[source.uri] = (source.fingerprint, code)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
