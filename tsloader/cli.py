import argparse
import logging
import os
import sys
import time

from .cache import DiskCache, NoopCache
from .compiler import CommandCompiler, TypeStripCompiler
from .config import LoaderConfig
from .exceptions import CompileError, LoaderError, ResolutionNotFound
from .loader import TypeScriptLoader
from .lookup import SearchPathLookup
from .utils import TerminalColors, replace_extension


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tsl", description="Compile a .ts file to .js through the TypeScript loader.")
    parser.add_argument("input_file", help="Name of the .ts source: a path, a name on the search path or a URL.")
    parser.add_argument(
        "-o",
        "--output",
        dest="output_file",
        help="Where to write the JavaScript. Defaults to the input with a .js extension; '-' writes to stdout.",
    )
    parser.add_argument("--cache-dir", help="Keep compiled code in this directory between runs.")
    parser.add_argument(
        "--search-path",
        action="append",
        default=[],
        help="Extra directory to look names up in (may be repeated). The current directory is always searched first.",
    )
    parser.add_argument("--command", help="External transpiler reading TypeScript on stdin, e.g. 'esbuild --loader=ts'.")
    parser.add_argument("--no-check-imports", action="store_true", help="Do not require relative imports to resolve.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log resolution and cache activity.")
    return parser


def main(argv=None):
    start_time = time.perf_counter()
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    config = LoaderConfig()
    if args.command:
        compiler = CommandCompiler(args.command, encoding=config.encoding)
    else:
        compiler = TypeStripCompiler(config, check_imports=not args.no_check_imports)
    code_cache = DiskCache(args.cache_dir) if args.cache_dir else NoopCache()
    lookup = SearchPathLookup([os.getcwd(), *args.search_path])
    loader = TypeScriptLoader(compiler, code_cache=code_cache, parent=lookup, config=config)

    print(f"--- Compiling {args.input_file} ---", file=sys.stderr)

    try:
        code = loader.compile(args.input_file)

        if args.output_file == "-":
            sys.stdout.write(code)
        else:
            output_path = args.output_file or replace_extension(args.input_file, config.source_extension, config.compiled_extension)
            output_path = os.path.abspath(output_path)
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            with open(output_path, "w", encoding=config.encoding) as f:
                f.write(code)
            print(f"{TerminalColors.GREEN}--- Compilation Successful ---{TerminalColors.RESET}", file=sys.stderr)
            print(f"JavaScript written to {output_path}", file=sys.stderr)

    except ResolutionNotFound as e:
        print(f"{TerminalColors.RED}ERROR: {e}{TerminalColors.RESET}", file=sys.stderr)
        sys.exit(1)
    except CompileError as e:
        print(f"\n{TerminalColors.RED}--- COMPILATION ERROR ---\n{e.diagnostics}{TerminalColors.RESET}", file=sys.stderr)
        sys.exit(1)
    except (LoaderError, OSError) as e:
        print(f"{TerminalColors.RED}ERROR: {e}{TerminalColors.RESET}", file=sys.stderr)
        sys.exit(1)

    finally:
        duration = time.perf_counter() - start_time
        print(f"{TerminalColors.CYAN}--- Total Execution Time: {duration:.4f} seconds ---{TerminalColors.RESET}", file=sys.stderr)


if __name__ == "__main__":
    main()
