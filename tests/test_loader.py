import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from tsloader import (
    CacheStoreError,
    CodeCache,
    DiskCache,
    ErrorCode,
    InMemoryCache,
    ResolutionNotFound,
    SearchPathLookup,
    TypeScriptLoader,
)


@pytest.fixture
def project(create_files, tmp_path, monkeypatch):
    # The file system fallback resolves against the working directory.
    monkeypatch.chdir(tmp_path)
    return create_files(
        {
            "a.ts": "let a: number = 1;\n",
            "b.js": "var b = 2;\n",
            "data.txt": "plain data",
            "bad.ts": "enum Color { Red }\n",
            "main.ts": 'import { u } from "./lib/util";\nconsole.log(u as number);\n',
            "lib/util.ts": "export const u: number = 1;\n",
            "broken_import.ts": 'import { gone } from "./gone";\n',
        }
    )


def make_loader(root, compiler, **kwargs):
    return TypeScriptLoader(compiler, parent=SearchPathLookup([root]), **kwargs)


def read(stream):
    assert stream is not None
    with stream:
        return stream.read()


# --- 1. DISPATCH ---


def test_ts_names_are_compiled(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert read(loader.open("a.ts")) == b"let a = 1;\n"
    assert loader.compile("a.ts") == "let a = 1;\n"


def test_compiled_alias_matches_source_name(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert read(loader.open("a.ts.js")) == read(loader.open("a.ts"))
    assert counting_compiler.calls == ["a.ts", "a.ts"]


def test_js_name_falls_back_to_ts_sibling(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert read(loader.open("a.js")) == b"let a = 1;\n"
    assert counting_compiler.calls == ["a.ts"]


def test_existing_js_is_served_as_is(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert read(loader.open("b.js")) == b"var b = 2;\n"
    assert counting_compiler.calls == []


def test_other_resources_pass_through(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert read(loader.open("data.txt")) == b"plain data"
    assert loader.open("nothing.txt") is None
    assert counting_compiler.calls == []


def test_suffix_match_ignores_case(project, counting_compiler):
    (project / "upper.TS").write_text("let up: boolean = true;\n", encoding="utf-8")
    loader = make_loader(project, counting_compiler)

    assert read(loader.open("upper.TS")) == b"let up = true;\n"
    assert read(loader.open("upper.TS.JS")) == b"let up = true;\n"
    assert counting_compiler.calls == ["upper.TS", "upper.TS"]


# --- 2. FAILURES BECOME NONE ---


def test_missing_source_is_none(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert loader.open("missing.ts") is None
    assert loader.open("missing.js") is None
    with pytest.raises(ResolutionNotFound):
        loader.compile("missing.ts")


def test_compile_error_is_none_and_logged(project, counting_compiler, caplog):
    loader = make_loader(project, counting_compiler)

    with caplog.at_level(logging.WARNING, logger="tsloader.loader"):
        assert loader.open("bad.ts") is None

    assert "bad.ts" in caplog.text
    assert "'enum' cannot be erased" in caplog.text


def test_missing_nested_import_is_none(project, counting_compiler, caplog):
    loader = make_loader(project, counting_compiler)

    with caplog.at_level(logging.WARNING, logger="tsloader.loader"):
        assert loader.open("broken_import.ts") is None

    assert "Cannot find module './gone'." in caplog.text



def test_name_with_null_byte_is_none(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert loader.open("a\x00.ts") is None
    assert loader.open("a\x00.txt") is None
    assert counting_compiler.calls == []


# --- 3. CACHING ---


def test_compiles_once_with_memory_cache(project, counting_compiler):
    loader = make_loader(project, counting_compiler, code_cache=InMemoryCache())

    first = read(loader.open("a.ts"))
    second = read(loader.open("a.ts"))

    assert first == second
    assert counting_compiler.calls == ["a.ts"]


def test_compiles_every_time_without_cache(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    loader.open("a.ts")
    loader.open("a.ts")

    assert counting_compiler.calls == ["a.ts", "a.ts"]


def test_disk_cache_is_shared_across_loaders(project, tmp_path, counting_compiler_class):
    first_compiler, second_compiler = counting_compiler_class(), counting_compiler_class()
    cache_dir = tmp_path / ".cache"

    first = make_loader(project, first_compiler, code_cache=DiskCache(cache_dir))
    second = make_loader(project, second_compiler, code_cache=DiskCache(cache_dir))

    assert read(first.open("a.ts")) == read(second.open("a.ts"))
    assert first_compiler.calls == ["a.ts"]
    assert second_compiler.calls == []


def test_edited_source_is_recompiled(project, counting_compiler):
    cache = InMemoryCache()
    make_loader(project, counting_compiler, code_cache=cache).open("a.ts")
    (project / "a.ts").write_text("let a: string = 'x';\n", encoding="utf-8")

    # A new loader has a fresh identity cache and so sees the new content.
    loader = make_loader(project, counting_compiler, code_cache=cache)

    assert read(loader.open("a.ts")) == b"let a = 'x';\n"
    assert counting_compiler.calls == ["a.ts", "a.ts"]


def test_undecodable_disk_entry_is_recompiled(project, tmp_path, counting_compiler, caplog):
    cache = DiskCache(tmp_path / ".cache")
    loader = make_loader(project, counting_compiler, code_cache=cache)
    source = loader.resolve("a.ts")
    cache.entry_path(source).parent.mkdir(parents=True)
    cache.entry_path(source).write_bytes(b"\xff\xfe garbage")

    with caplog.at_level(logging.WARNING, logger="tsloader.loader"):
        assert read(loader.open("a.ts")) == b"let a = 1;\n"

    assert "Ignoring unreadable cache entry" in caplog.text
    assert counting_compiler.calls == ["a.ts"]
    assert cache.get(source) == "let a = 1;\n"


def test_broken_cache_does_not_break_loading(project, counting_compiler, caplog):
    class BrokenCache(CodeCache):
        def get(self, source):
            raise CacheStoreError(ErrorCode.CACHE_READ_FAILED, path="/cache/x.json", details="disk on fire")

        def put(self, source, code):
            raise CacheStoreError(ErrorCode.CACHE_WRITE_FAILED, path="/cache/x.json", details="disk on fire")

    loader = make_loader(project, counting_compiler, code_cache=BrokenCache())

    with caplog.at_level(logging.WARNING, logger="tsloader.loader"):
        assert read(loader.open("a.ts")) == b"let a = 1;\n"

    assert caplog.text.count("disk on fire") == 2


# --- 4. SHARED RESOLUTION ---


def test_nested_imports_share_identity_cache(project, counting_compiler):
    loader = make_loader(project, counting_compiler)

    assert read(loader.open("main.ts")) == b'import { u } from "./lib/util";\nconsole.log(u);\n'

    util_uri = (project / "lib" / "util.ts").resolve().as_uri()
    assert util_uri in loader.identity_cache
    assert loader.resolve("./lib/util.ts", "main.ts") is loader.identity_cache.get(util_uri)


def test_concurrent_opens_agree(project, counting_compiler):
    loader = make_loader(project, counting_compiler, code_cache=InMemoryCache())

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: read(loader.open("main.ts")), range(16)))

    assert set(results) == {b'import { u } from "./lib/util";\nconsole.log(u);\n'}
    assert 1 <= len(counting_compiler.calls) <= 16
