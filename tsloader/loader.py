import io
import logging
from typing import BinaryIO, Optional

from .cache import CodeCache, NoopCache
from .compiler import Compiler
from .config import LoaderConfig
from .exceptions import CacheStoreError, CompileError, LoaderError
from .identity import SourceIdentityCache
from .lookup import ResourceLookup, SearchPathLookup
from .resolver import SourceResolver
from .source import Source

logger = logging.getLogger(__name__)


class TypeScriptLoader:
    """
    A resource loader that hands out compiled JavaScript for TypeScript sources.

    Callers ask for resources by name through `open`. Names ending in '.ts' or in the
    compiled alias '.ts.js' are compiled (or served from the code cache); everything
    else is passed through to the parent lookup, with a last attempt to compile the
    '.ts' sibling of a '.js' name nobody else could find.

    The loader is also the SourceProvider handed to the compiler, so every file a
    compilation touches goes through the same resolver and identity cache.
    """

    def __init__(
        self,
        compiler: Compiler,
        code_cache: Optional[CodeCache] = None,
        parent: Optional[ResourceLookup] = None,
        config: Optional[LoaderConfig] = None,
    ):
        self.compiler = compiler
        self.code_cache = code_cache if code_cache is not None else NoopCache()
        self.parent = parent if parent is not None else SearchPathLookup()
        self.config = config or LoaderConfig()
        self.identity_cache = SourceIdentityCache()
        self.resolver = SourceResolver(self.parent, self.identity_cache, encoding=self.config.encoding)

    def open(self, resource_name: str) -> Optional[BinaryIO]:
        """
        Returns a byte stream for `resource_name`, or None. Missing resources and
        failures while resolving or compiling look the same to the caller; the
        reason is logged.
        """
        try:
            return self._open(resource_name)
        except CompileError as e:
            logger.warning("Could not compile '%s':\n%s", resource_name, e.diagnostics)
        except (LoaderError, OSError) as e:
            logger.debug("Could not load '%s': %s", resource_name, e)
        return None

    def _open(self, name: str) -> Optional[BinaryIO]:
        # load and compile TypeScript sources
        lower_name = name.lower()
        source_ext = self.config.source_extension
        compiled_ext = self.config.compiled_extension

        if lower_name.endswith(source_ext):
            return self._load(name)
        if lower_name.endswith(self.config.alias_extension):
            return self._load(name[: -len(compiled_ext)])

        # try to load other files directly
        stream = self.parent.open_resource(name)
        if stream is None and lower_name.endswith(compiled_ext):
            # try to load the TypeScript file instead
            return self._load(name[: -len(compiled_ext)] + source_ext)
        return stream

    def _load(self, name: str) -> BinaryIO:
        code = self.compile(name)
        return io.BytesIO(code.encode(self.config.encoding))

    def compile(self, name: str) -> str:
        """
        Compiles the source behind `name`, consulting the code cache first.
        Unlike `open` this raises ResolutionNotFound or CompileError on failure.
        """
        source = self.resolve(name)

        code = self._cached(source)
        if code is None:
            code = self.compiler.compile(name, self)
            self._store(source, code)
        return code

    def resolve(self, name: str, base_name: Optional[str] = None) -> Source:
        return self.resolver.resolve(name, base_name)

    def _cached(self, source: Source) -> Optional[str]:
        try:
            return self.code_cache.get(source)
        except CacheStoreError as e:
            logger.warning("Ignoring unreadable cache entry for %s: %s", source.uri, e)
            return None

    def _store(self, source: Source, code: str):
        try:
            self.code_cache.put(source, code)
        except CacheStoreError as e:
            logger.warning("Could not cache compiled code for %s: %s", source.uri, e)
