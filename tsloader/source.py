"""
Defines the `Source` value: one resolved input artifact, identified by a URI.
"""

import hashlib
from pathlib import Path
from typing import Union
from urllib.parse import urljoin, urlsplit
from urllib.request import url2pathname

import requests
from pydantic import BaseModel

from .config import DEFAULT_ENCODING, HTTP_TIMEOUT


class Source(BaseModel):
    """
    An immutable (uri, content) pair.

    Two sources with the same uri are interchangeable, so equality and hashing
    only look at the uri. The uri doubles as the base for resolving relative
    names, which is why file sources always carry an absolute file:// URI.
    """

    model_config = {"frozen": True}

    uri: str
    content: str

    def __eq__(self, other):
        if not isinstance(other, Source):
            return NotImplemented
        return self.uri == other.uri

    def __hash__(self):
        return hash(self.uri)

    @property
    def fingerprint(self) -> str:
        """SHA-256 of the content, used by caches to detect edits."""
        return hashlib.sha256(self.content.encode("utf-8")).hexdigest()

    def resolve(self, name: str) -> str:
        """Resolves `name` against this source's uri, collapsing '.' and '..' segments."""
        return urljoin(self.uri, name)

    @classmethod
    def from_file(cls, path: Union[str, Path], encoding: str = DEFAULT_ENCODING) -> "Source":
        """Reads a file from disk. Raises FileNotFoundError if it does not exist."""
        absolute = Path(path).resolve()
        content = absolute.read_text(encoding=encoding)
        return cls(uri=absolute.as_uri(), content=content)

    @classmethod
    def from_url(cls, url: str, encoding: str = DEFAULT_ENCODING) -> "Source":
        """Reads a file:// URL from disk or fetches an http(s) URL."""
        parts = urlsplit(url)
        if parts.scheme == "file":
            path = Path(url2pathname(parts.path))
            return cls(uri=url, content=path.read_text(encoding=encoding))

        response = requests.get(url, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
        return cls(uri=url, content=response.content.decode(encoding))
