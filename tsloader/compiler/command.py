import logging
import shlex
import subprocess
from typing import List, Optional, Sequence, Union

from ..config import DEFAULT_ENCODING
from ..exceptions import CompileError, ErrorCode
from .base import Compiler, SourceProvider

logger = logging.getLogger(__name__)


class CommandCompiler(Compiler):
    """
    Delegates to an external transpiler that reads TypeScript on stdin and writes
    JavaScript to stdout, for example `esbuild --loader=ts` or `swc --filename x.ts`.
    The source is still fetched through the source provider, so the loader's
    resolution rules and identity cache apply.
    """

    def __init__(self, command: Union[str, Sequence[str]], timeout: Optional[float] = None, encoding: str = DEFAULT_ENCODING):
        self.command: List[str] = shlex.split(command) if isinstance(command, str) else list(command)
        self.timeout = timeout
        self.encoding = encoding

    def compile(self, name: str, source_provider: SourceProvider) -> str:
        source = source_provider.resolve(name)
        logger.debug("Running %s for '%s'", self.command[0], name)
        try:
            result = subprocess.run(
                self.command,
                input=source.content.encode(self.encoding),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise CompileError(ErrorCode.COMPILER_UNAVAILABLE, name=name, details=str(e)) from e

        stderr = result.stderr.decode(self.encoding, errors="replace")
        if result.returncode != 0:
            raise CompileError(ErrorCode.COMPILER_FAILED, name=name, diagnostics=stderr.strip(), status=result.returncode)
        if stderr:
            logger.info("%s reported for '%s': %s", self.command[0], name, stderr.strip())
        return result.stdout.decode(self.encoding)
