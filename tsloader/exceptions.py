"""
Custom exception types for the TypeScript loader.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):

    # --- Resolution Errors ---
    SOURCE_NOT_FOUND = "Could not find source '{name}' on the URL, module path or file system."
    SOURCE_READ_FAILED = "Could not read source '{name}': {details}"

    # --- Syntax Errors ---
    SYNTAX_INVALID_CHARACTER = "Syntax Error: Invalid character '{char}' found."
    UNBALANCED_BRACKET = "Syntax Error: Unmatched bracket '{char}'."
    UNEXPECTED_END_OF_INPUT = "Syntax Error: Unexpected end of input while reading {context}."
    UNSUPPORTED_SYNTAX = "'{construct}' cannot be erased to plain JavaScript."

    # --- Module Errors ---
    MODULE_NOT_FOUND = "Cannot find module '{specifier}'."

    # --- External Compiler Errors ---
    COMPILER_FAILED = "Compiler exited with status {status}."
    COMPILER_UNAVAILABLE = "Could not run compiler: {details}"

    # --- Cache Errors ---
    CACHE_READ_FAILED = "Could not read cache entry '{path}': {details}"
    CACHE_WRITE_FAILED = "Could not write cache entry '{path}': {details}"


class LoaderError(Exception):
    def __init__(
        self,
        code: ErrorCode,
        name: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        **kwargs,
    ):
        self.code = code
        self.name = name
        self.line = line
        self.column = column
        self.details = kwargs

        # The format string (e.g., "Cannot find module '{specifier}'") is populated
        # with any extra data it needs from kwargs.
        core_message = code.value.format(name=name, **kwargs)

        location_prefix = ""
        if name and line is not None:
            location_prefix = f"Error in '{name}' (Line: {line}, Column: {column}):\n"
        elif name:
            location_prefix = f"Error in '{name}': "

        self.message = location_prefix + core_message
        super().__init__(self.message)


class ResolutionNotFound(LoaderError):
    """No lookup strategy produced a source for the requested name."""

    def __init__(self, name: str, code: ErrorCode = ErrorCode.SOURCE_NOT_FOUND, **kwargs):
        super().__init__(code, name=name, **kwargs)


class CompileError(LoaderError):
    """
    The compiler rejected its input. `diagnostics` holds the text a user should
    see (for external compilers this is whatever they printed on stderr).
    """

    def __init__(self, code: ErrorCode, name: Optional[str] = None, diagnostics: Optional[str] = None, **kwargs):
        super().__init__(code, name=name, **kwargs)
        self.diagnostics = diagnostics if diagnostics is not None else self.message


class CacheStoreError(LoaderError):
    def __init__(self, code: ErrorCode, path: str, details: str):
        super().__init__(code, path=path, details=details)
