import logging
import sys

import pytest

from tsloader.compiler import CommandCompiler
from tsloader.exceptions import CompileError, ErrorCode
from tsloader.source import Source


class StaticProvider:
    def __init__(self, content):
        self.content = content
        self.requested = []

    def resolve(self, name, base_name=None):
        self.requested.append(name)
        return Source(uri="file:///project/" + name, content=self.content)


def python_command(script):
    return [sys.executable, "-c", script]


def test_source_goes_through_stdin():
    provider = StaticProvider("let a: number = 1;")
    compiler = CommandCompiler(python_command("import sys; sys.stdout.write(sys.stdin.read().upper())"))

    assert compiler.compile("a.ts", provider) == "LET A: NUMBER = 1;"
    assert provider.requested == ["a.ts"]


def test_string_commands_are_split():
    compiler = CommandCompiler("esbuild --loader=ts --format 'esm'")
    assert compiler.command == ["esbuild", "--loader=ts", "--format", "esm"]


def test_non_zero_exit_is_a_compile_error():
    compiler = CommandCompiler(python_command("import sys; sys.stderr.write('a.ts(1,5): error TS1005\\n'); sys.exit(3)"))

    with pytest.raises(CompileError) as excinfo:
        compiler.compile("a.ts", StaticProvider("let a"))

    error = excinfo.value
    assert error.code == ErrorCode.COMPILER_FAILED
    assert error.diagnostics == "a.ts(1,5): error TS1005"
    assert error.details["status"] == 3
    assert "status 3" in error.message


def test_missing_executable():
    compiler = CommandCompiler(["definitely-not-an-installed-transpiler"])

    with pytest.raises(CompileError) as excinfo:
        compiler.compile("a.ts", StaticProvider(""))

    assert excinfo.value.code == ErrorCode.COMPILER_UNAVAILABLE


def test_timeout():
    compiler = CommandCompiler(python_command("import time; time.sleep(10)"), timeout=0.5)

    with pytest.raises(CompileError) as excinfo:
        compiler.compile("a.ts", StaticProvider(""))

    assert excinfo.value.code == ErrorCode.COMPILER_UNAVAILABLE


def test_warnings_on_success_are_logged(caplog):
    script = "import sys; sys.stderr.write('deprecated flag'); sys.stdout.write('ok')"
    compiler = CommandCompiler(python_command(script))

    with caplog.at_level(logging.INFO, logger="tsloader.compiler.command"):
        assert compiler.compile("a.ts", StaticProvider("")) == "ok"

    assert "deprecated flag" in caplog.text
