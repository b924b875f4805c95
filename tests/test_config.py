import pytest
from pydantic import ValidationError

from tsloader.config import URL_NAME_PATTERN, LoaderConfig


def test_defaults():
    config = LoaderConfig()
    assert config.source_extension == ".ts"
    assert config.compiled_extension == ".js"
    assert config.alias_extension == ".ts.js"
    assert config.encoding == "utf-8"


def test_extensions_are_normalized():
    config = LoaderConfig(source_extension="TSX", compiled_extension=".MJS")
    assert config.source_extension == ".tsx"
    assert config.compiled_extension == ".mjs"
    assert config.alias_extension == ".tsx.mjs"


def test_extensions_must_differ():
    with pytest.raises(ValidationError):
        LoaderConfig(source_extension=".js", compiled_extension="js")


def test_extension_must_not_be_a_path():
    with pytest.raises(ValidationError):
        LoaderConfig(source_extension="src/ts")


@pytest.mark.parametrize(
    "name, looks_like_url",
    [
        ("file:///tmp/a.ts", True),
        ("https://example.com/a.ts", True),
        ("c:/work/a.ts", True),
        ("C:/work/a.ts", False),
        ("a.ts", False),
        ("./a.ts", False),
    ],
)
def test_url_sniffing_is_lower_case_only(name, looks_like_url):
    assert bool(URL_NAME_PATTERN.match(name)) is looks_like_url
