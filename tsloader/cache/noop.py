from typing import Optional

from ..source import Source
from .base import CodeCache


class NoopCache(CodeCache):
    """Never remembers anything; every request compiles."""

    def get(self, source: Source) -> Optional[str]:
        return None

    def put(self, source: Source, code: str) -> None:
        pass
