"""
Host-side resource lookups the loader delegates to: the Python equivalent of a
parent class loader searching its class path.
"""

import logging
import os
import sys
from abc import ABC, abstractmethod
from importlib.resources import files as pkg_files
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence, Union
from urllib.parse import unquote, urlparse

logger = logging.getLogger(__name__)


class ResourceLookup(ABC):
    @abstractmethod
    def get_resource(self, name: str) -> Optional[str]:
        """Returns a URL for `name`, or None if this lookup does not know it."""

    def open_resource(self, name: str) -> Optional[BinaryIO]:
        """Opens `name` for reading, or returns None if it cannot be found."""
        url = self.get_resource(name)
        if url is None:
            return None
        try:
            return open(_url_to_path(url), "rb")
        except OSError as e:
            logger.debug("Found '%s' at %s but could not open it: %s", name, url, e)
            return None


class SearchPathLookup(ResourceLookup):
    """
    Searches a list of directories in order. Without explicit paths the live
    `sys.path` is used, the same places Python looks for modules.
    """

    def __init__(self, paths: Optional[Sequence[Union[str, Path]]] = None):
        self._paths = list(paths) if paths is not None else None

    @property
    def paths(self) -> List[str]:
        if self._paths is None:
            return [p or os.curdir for p in sys.path]
        return [str(p) for p in self._paths]

    def get_resource(self, name: str) -> Optional[str]:
        # Absolute names are the file system fallback's job.
        if os.path.isabs(name) or not name:
            return None

        for root in self.paths:
            try:
                root_path = Path(root).resolve()
                candidate = (root_path / name).resolve()
            except ValueError:
                # e.g. an embedded null byte
                return None
            # Names like "../../etc/passwd" must not escape the search root.
            if root_path != candidate and root_path not in candidate.parents:
                continue
            if candidate.is_file():
                return candidate.as_uri()
        return None


class PackageLookup(ResourceLookup):
    """Looks names up as data files shipped inside an importable package."""

    def __init__(self, package: str):
        self.package = package

    def get_resource(self, name: str) -> Optional[str]:
        if not name or os.path.isabs(name):
            return None
        try:
            resource = pkg_files(self.package).joinpath(*name.split("/"))
        except ModuleNotFoundError:
            return None
        if not resource.is_file():
            return None
        # Only resources that exist on disk have a usable URL (not zipped eggs).
        if not isinstance(resource, Path):
            return None
        return resource.resolve().as_uri()


class ChainedLookup(ResourceLookup):
    """Asks each lookup in turn; the first one that knows the name wins."""

    def __init__(self, *lookups: ResourceLookup):
        self.lookups = lookups

    def get_resource(self, name: str) -> Optional[str]:
        for lookup in self.lookups:
            url = lookup.get_resource(name)
            if url is not None:
                return url
        return None

    def open_resource(self, name: str) -> Optional[BinaryIO]:
        for lookup in self.lookups:
            stream = lookup.open_resource(name)
            if stream is not None:
                return stream
        return None


def _url_to_path(url: str) -> str:
    return os.path.abspath(unquote(urlparse(url).path))
