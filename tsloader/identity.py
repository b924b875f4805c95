import threading
from typing import Dict, Optional

from .source import Source


class SourceIdentityCache:
    """
    Remembers which Source a logical name resolved to, for the lifetime of one loader.
    Every read and insert happens under a single lock; resolving a name is cheap
    compared to compiling it, so there is no per-key locking.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sources: Dict[str, Source] = {}

    def get(self, name: str) -> Optional[Source]:
        with self._lock:
            return self._sources.get(name)

    def put_if_absent(self, name: str, source: Source) -> Source:
        """
        Stores `source` under `name` unless another thread got there first.
        Returns whichever object ends up cached, so all callers share one instance.
        """
        with self._lock:
            return self._sources.setdefault(name, source)

    def clear(self):
        with self._lock:
            self._sources.clear()

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._sources

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)
