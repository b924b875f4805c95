import logging
from typing import Optional
from urllib.parse import urlsplit

import requests

from .config import DEFAULT_ENCODING, RELATIVE_PREFIXES, SUPPORTED_URL_SCHEMES, URL_NAME_PATTERN
from .exceptions import ErrorCode, ResolutionNotFound
from .identity import SourceIdentityCache
from .lookup import ResourceLookup
from .source import Source

logger = logging.getLogger(__name__)


class MalformedURL(ValueError):
    """A name looked like a URL but is not one. Never leaves this module."""


class SourceResolver:
    """
    Maps a logical name (and optionally the name of the file referring to it) to a Source.

    Strategies are tried in order: relative rewrite against the base, the identity
    cache, URL parsing, the module path lookup and finally the file system. Only the
    file system step is allowed to fail loudly; a URL that does not parse just means
    the name was a path after all.
    """

    def __init__(
        self,
        lookup: ResourceLookup,
        identity_cache: Optional[SourceIdentityCache] = None,
        encoding: str = DEFAULT_ENCODING,
    ):
        self.lookup = lookup
        self.identity_cache = identity_cache if identity_cache is not None else SourceIdentityCache()
        self.encoding = encoding

    def resolve(self, name: str, base_name: Optional[str] = None) -> Source:
        """
        Returns the Source for `name` or raises ResolutionNotFound.
        Failures are never cached, so a file that appears later can still be found.
        """
        if base_name is not None and name.startswith(RELATIVE_PREFIXES):
            base = self.resolve(base_name)
            name = base.resolve(name)

        cached = self.identity_cache.get(name)
        if cached is not None:
            return cached

        source = self._locate(name)
        logger.debug("Resolved '%s' to %s", name, source.uri)
        return self.identity_cache.put_if_absent(name, source)

    def _locate(self, name: str) -> Source:
        url = None
        if URL_NAME_PATTERN.match(name):
            try:
                url = _parse_url(name)
            except MalformedURL as e:
                # Might be a Windows path instead
                logger.debug("'%s' is not a URL (%s), trying paths", name, e)

        if url is None:
            url = self.lookup.get_resource(name)

        if url is not None:
            try:
                return Source.from_url(url, self.encoding)
            except FileNotFoundError as e:
                raise ResolutionNotFound(name) from e
            except (OSError, ValueError, requests.RequestException) as e:
                raise ResolutionNotFound(name, code=ErrorCode.SOURCE_READ_FAILED, details=str(e)) from e

        # Last resort. A missing file here is the definitive answer.
        try:
            return Source.from_file(name, self.encoding)
        except FileNotFoundError as e:
            raise ResolutionNotFound(name) from e
        except (OSError, ValueError) as e:
            raise ResolutionNotFound(name, code=ErrorCode.SOURCE_READ_FAILED, details=str(e)) from e


def _parse_url(name: str) -> str:
    """Accepts absolute URLs with a scheme we can read, rejects everything else."""
    try:
        parts = urlsplit(name)
    except ValueError as e:
        raise MalformedURL(str(e)) from e

    if len(parts.scheme) < 2:
        raise MalformedURL(f"'{parts.scheme}:' looks like a drive letter")
    if parts.scheme not in SUPPORTED_URL_SCHEMES:
        raise MalformedURL(f"unknown protocol: {parts.scheme}")
    if parts.scheme != "file" and not parts.netloc:
        raise MalformedURL(f"missing host in '{name}'")
    return name
