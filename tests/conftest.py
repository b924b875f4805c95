import os
import sys
from typing import Dict, Optional

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tsloader.compiler import Compiler, TypeStripCompiler
from tsloader.lookup import ResourceLookup


class CountingCompiler(Compiler):
    """Wraps a real compiler and remembers which names it was asked to compile."""

    def __init__(self, inner: Optional[Compiler] = None):
        self.inner = inner or TypeStripCompiler()
        self.calls = []

    def compile(self, name, source_provider):
        self.calls.append(name)
        return self.inner.compile(name, source_provider)


class DictLookup(ResourceLookup):
    """A fake module path: maps names to URLs and records every name it was asked for."""

    def __init__(self, urls: Dict[str, str]):
        self.urls = urls
        self.requested = []

    def get_resource(self, name):
        self.requested.append(name)
        return self.urls.get(name)


@pytest.fixture
def create_files(tmp_path):
    """A factory fixture to create a temporary file structure."""

    def _create_files(file_dict):
        for file_path, content in file_dict.items():
            path = tmp_path / file_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return _create_files


@pytest.fixture
def counting_compiler():
    return CountingCompiler()


@pytest.fixture
def dict_lookup():
    return DictLookup


@pytest.fixture
def counting_compiler_class():
    return CountingCompiler
