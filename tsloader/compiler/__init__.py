from .base import Compiler, SourceProvider
from .command import CommandCompiler
from .stripper import TypeStripCompiler

__all__ = ["Compiler", "SourceProvider", "CommandCompiler", "TypeStripCompiler"]
