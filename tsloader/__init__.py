"""
Loads TypeScript sources as compiled JavaScript, resolving, compiling and caching
them behind a plain resource-loader interface.
"""

from .cache import CodeCache, DiskCache, InMemoryCache, NoopCache
from .compiler import CommandCompiler, Compiler, TypeStripCompiler
from .config import LoaderConfig
from .exceptions import CacheStoreError, CompileError, ErrorCode, LoaderError, ResolutionNotFound
from .loader import TypeScriptLoader
from .lookup import ChainedLookup, PackageLookup, ResourceLookup, SearchPathLookup
from .resolver import SourceResolver
from .source import Source

__version__ = "1.0.0"

__all__ = [
    "CodeCache",
    "DiskCache",
    "InMemoryCache",
    "NoopCache",
    "CommandCompiler",
    "Compiler",
    "TypeStripCompiler",
    "LoaderConfig",
    "CacheStoreError",
    "CompileError",
    "ErrorCode",
    "LoaderError",
    "ResolutionNotFound",
    "TypeScriptLoader",
    "ChainedLookup",
    "PackageLookup",
    "ResourceLookup",
    "SearchPathLookup",
    "SourceResolver",
    "Source",
]
