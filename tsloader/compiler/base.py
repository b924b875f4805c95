from abc import ABC, abstractmethod
from typing import Optional, Protocol

from ..source import Source


class SourceProvider(Protocol):
    """Anything that can turn a (possibly relative) name into a Source, usually the loader itself."""

    def resolve(self, name: str, base_name: Optional[str] = None) -> Source: ...


class Compiler(ABC):
    """
    Turns the TypeScript source behind `name` into JavaScript.
    Implementations fetch the source, and anything it imports, through `source_provider`
    so that the whole compilation shares one resolution pipeline and identity cache.
    """

    @abstractmethod
    def compile(self, name: str, source_provider: SourceProvider) -> str:
        """Returns the compiled code or raises CompileError."""
