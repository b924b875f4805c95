"""
Static configuration data for the TypeScript loader.
This includes the naming convention, URL sniffing rules and I/O defaults.
"""

import re

from pydantic import BaseModel, field_validator, model_validator

SOURCE_EXTENSION = ".ts"
COMPILED_EXTENSION = ".js"
DEFAULT_ENCODING = "utf-8"

# Names only reach the URL parser when they look like "scheme:/...". The check is
# lower case only, so "C:/work/a.ts" goes straight to the path lookups.
URL_NAME_PATTERN = re.compile(r"^[a-z]+:/")
SUPPORTED_URL_SCHEMES = ("file", "http", "https")

RELATIVE_PREFIXES = ("./", "../")

# Seconds to wait for a remote source before giving up.
HTTP_TIMEOUT = 10


class LoaderConfig(BaseModel):
    """The extension pair and text encoding a loader works with."""

    model_config = {"frozen": True}

    source_extension: str = SOURCE_EXTENSION
    compiled_extension: str = COMPILED_EXTENSION
    encoding: str = DEFAULT_ENCODING

    @field_validator("source_extension", "compiled_extension")
    @classmethod
    def _normalize_extension(cls, value: str) -> str:
        value = value.strip().lower()
        if not value.startswith("."):
            value = "." + value
        if len(value) < 2 or "/" in value:
            raise ValueError(f"'{value}' is not a valid file extension")
        return value

    @model_validator(mode="after")
    def _check_distinct(self) -> "LoaderConfig":
        if self.source_extension == self.compiled_extension:
            raise ValueError("source and compiled extensions must differ")
        return self

    @property
    def alias_extension(self) -> str:
        """Suffix of a compiled-alias name, e.g. '.ts.js'."""
        return self.source_extension + self.compiled_extension
