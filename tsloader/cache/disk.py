import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from ..exceptions import CacheStoreError, ErrorCode
from ..source import Source
from .base import CodeCache

logger = logging.getLogger(__name__)


class CacheEntry(BaseModel):
    """What one cache file holds on disk."""

    uri: str
    fingerprint: str
    code: str


class DiskCache(CodeCache):
    """
    Persists compiled code as one JSON file per source, so it survives restarts.

    File names are the SHA-256 of the source uri. The stored fingerprint is compared
    with the current source content on every read; a mismatch is a miss and the next
    `put` overwrites the entry. Writes land in a temp file first and are moved into
    place with os.replace, so readers never see half-written entries and the last
    writer wins.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def entry_path(self, source: Source) -> Path:
        digest = hashlib.sha256(source.uri.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get(self, source: Source) -> Optional[str]:
        path = self.entry_path(source)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheStoreError(ErrorCode.CACHE_READ_FAILED, path=str(path), details=str(e)) from e

        try:
            entry = CacheEntry.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            raise CacheStoreError(ErrorCode.CACHE_READ_FAILED, path=str(path), details=str(e)) from e

        if entry.uri != source.uri or entry.fingerprint != source.fingerprint:
            logger.debug("Cache entry for %s is stale", source.uri)
            return None
        return entry.code

    def put(self, source: Source, code: str) -> None:
        path = self.entry_path(source)
        entry = CacheEntry(uri=source.uri, fingerprint=source.fingerprint, code=code)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(entry.model_dump_json())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise CacheStoreError(ErrorCode.CACHE_WRITE_FAILED, path=str(path), details=str(e)) from e

    def clear(self):
        """Removes every entry this cache has written."""
        if not self.directory.is_dir():
            return
        for path in self.directory.glob("*.json"):
            path.unlink(missing_ok=True)
