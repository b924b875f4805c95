from abc import ABC, abstractmethod
from typing import Optional

from ..source import Source


class CodeCache(ABC):
    """
    Stores compiled code per Source. Each implementation decides when an entry is
    stale; the loader only consults it before compiling and fills it afterwards.
    Implementations must tolerate concurrent `put` calls for the same source.
    """

    @abstractmethod
    def get(self, source: Source) -> Optional[str]:
        """Returns previously compiled code for `source`, or None on a miss."""

    @abstractmethod
    def put(self, source: Source, code: str) -> None:
        """Remembers `code` as the compiled form of `source`."""
