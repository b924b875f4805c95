"""
A reference compiler that turns TypeScript into JavaScript by erasing type syntax.

It works on the token stream rather than a full syntax tree: the lark lexer splits
the source into tokens (keeping whitespace and comments), and `_TypeEraser` walks
them once, dropping annotations, type-only declarations and casts while copying
everything else through unchanged. Constructs that have runtime meaning in
TypeScript (enums, namespaces, parameter properties) cannot be erased and are
reported as errors instead.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from lark import Lark, Token
from lark.exceptions import UnexpectedCharacters

from ..config import RELATIVE_PREFIXES, LoaderConfig
from ..exceptions import CompileError, ErrorCode, ResolutionNotFound
from .base import Compiler, SourceProvider

logger = logging.getLogger(__name__)

LARK_LEXER = None

try:
    from importlib.resources import files as pkg_files

    typescript_grammar = (pkg_files("tsloader.compiler") / "typescript.lark").read_text()
    LARK_LEXER = Lark(typescript_grammar, start="start", parser="lalr", lexer="basic")
except Exception:
    # Fallback for running from a source checkout
    grammar_path = os.path.join(os.path.dirname(__file__), "typescript.lark")
    with open(grammar_path, "r") as f:
        typescript_grammar = f.read()
    LARK_LEXER = Lark(typescript_grammar, start="start", parser="lalr", lexer="basic")


TRIVIA = {"WS", "LINE_COMMENT", "BLOCK_COMMENT"}
LITERALS = {"STRING", "TEMPLATE", "NUMBER", "REGEX"}
DECLARATION_KEYWORDS = {"var", "let", "const"}
MEMBER_MODIFIERS = {"public", "private", "protected", "readonly", "override"}
TYPE_PREFIX_KEYWORDS = {"keyof", "typeof", "unique", "readonly", "infer", "new", "asserts"}
STATEMENT_BOUNDARIES = {";", "{", "}", "export"}
# Identifiers after which an expression cannot have ended yet.
EXPRESSION_KEYWORDS = {
    "return", "typeof", "void", "delete", "await", "yield", "new", "in", "of",
    "instanceof", "case", "throw", "else", "do", "extends",
}
OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}
ANGLE_DELTA = {"<": 1, ">": -1, ">>": -2, ">>>": -3}
# Tokens that may appear between the angle brackets of a type argument list.
TYPE_ARGUMENT_PUNCT = {",", ".", "[", "]", "{", "}", "(", ")", "|", "&", "=>", ":", "?", ";", "...", "-"}

# A regular expression literal, starting at its opening slash.
REGEX_LITERAL = re.compile(r"/(?![*/])(?:[^\\/\[\n]|\\.|\[(?:[^\]\\\n]|\\.)*\])+/[A-Za-z]*")
REFERENCE_PATH = re.compile(r"""^///\s*<reference\s+path\s*=\s*["']([^"']+)["']""")


@dataclass
class _Frame:
    kind: str
    opener_prev: Optional[str] = None
    class_body: bool = False
    declaration: bool = False
    ternary: int = 0
    case: int = 0


class _TypeEraser:
    def __init__(self, name: str, content: str):
        self.name = name
        self.content = content
        self.tokens = tokenize(name, content)
        self.out: List[Token] = []
        self.frames: List[_Frame] = [_Frame("top")]
        self.last_closed: Optional[_Frame] = None
        self.pending_class = False
        self.specifiers: List[Tuple[str, int]] = []

    # --- Token helpers ---
    def _sig(self, i: int) -> int:
        """Index of the first non-trivia token at or after i (len(tokens) at the end)."""
        while i < len(self.tokens) and self.tokens[i].type in TRIVIA:
            i += 1
        return i

    def _value(self, i: int) -> Optional[str]:
        return str(self.tokens[i]) if i < len(self.tokens) else None

    def _type(self, i: int) -> Optional[str]:
        return self.tokens[i].type if i < len(self.tokens) else None

    def _prev(self, n: int = 1) -> Optional[Token]:
        """The n-th most recent significant token written to the output."""
        for tok in reversed(self.out):
            if tok.type in TRIVIA:
                continue
            n -= 1
            if n == 0:
                return tok
        return None

    def _prev_value(self, n: int = 1) -> Optional[str]:
        tok = self._prev(n)
        return str(tok) if tok is not None else None

    def _newline_before_current(self) -> bool:
        for tok in reversed(self.out):
            if tok.type not in TRIVIA:
                return False
            if tok.type == "WS" and "\n" in tok:
                return True
        return False

    def _at_statement_start(self) -> bool:
        prev = self._prev_value()
        return prev is None or prev in STATEMENT_BOUNDARIES or self._newline_before_current()

    def _expression_ended(self) -> bool:
        prev = self._prev()
        if prev is None:
            return False
        if prev.type == "IDENT":
            return str(prev) not in EXPRESSION_KEYWORDS
        return prev.type in LITERALS or str(prev) in (")", "]", "}")

    def _drop_trailing_whitespace(self):
        while self.out and self.out[-1].type == "WS":
            self.out.pop()

    def _retract_export(self):
        """Removes an already written 'export' keyword when the declaration it introduces is erased."""
        if self._prev_value() != "export":
            return
        while self.out and self.out[-1].type in TRIVIA:
            self.out.pop()
        self.out.pop()

    def _error(self, code: ErrorCode, i: int, **kwargs) -> CompileError:
        tok = self.tokens[min(i, len(self.tokens) - 1)] if self.tokens else None
        line = getattr(tok, "line", None)
        column = getattr(tok, "column", None)
        return CompileError(code, name=self.name, line=line, column=column, **kwargs)

    # --- Skipping type syntax ---
    def _skip_balanced(self, i: int) -> int:
        """i points at an opening bracket; returns the index just past its partner."""
        opener = self._value(i)
        closer = OPENERS[opener]
        depth = 0
        while i < len(self.tokens):
            v = self._value(i)
            if v == opener:
                depth += 1
            elif v == closer:
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        raise self._error(ErrorCode.UNBALANCED_BRACKET, len(self.tokens) - 1, char=opener)

    def _match_angle(self, i: int) -> Optional[int]:
        """
        If the '<' at i opens something that reads like a type argument list, returns
        the index just past the closing '>'. Returns None for anything that looks
        like a comparison.
        """
        depth = 0
        brackets = []
        while i < len(self.tokens):
            tok = self.tokens[i]
            v = str(tok)
            if v in ANGLE_DELTA:
                depth += ANGLE_DELTA[v]
                if depth <= 0:
                    return i + 1 if depth == 0 and not brackets else None
            elif v in OPENERS:
                brackets.append(v)
            elif v in CLOSERS:
                if not brackets or brackets.pop() != CLOSERS[v]:
                    return None
            elif v == ";" and not brackets:
                return None
            elif tok.type not in TRIVIA and tok.type not in LITERALS and tok.type != "IDENT" and v not in TYPE_ARGUMENT_PUNCT:
                return None
            i += 1
        return None

    def _skip_angle(self, i: int) -> int:
        end = self._match_angle(i)
        if end is None:
            raise self._error(ErrorCode.UNEXPECTED_END_OF_INPUT, i, context="type parameters")
        return end

    def _skip_type(self, i: int) -> int:
        """Skips one type expression starting at the first significant token at or after i."""
        i = self._sig(i)
        if self._value(i) in ("|", "&"):
            i = self._sig(i + 1)
        i = self._skip_type_operand(i)
        while True:
            j = self._sig(i)
            v = self._value(j)
            if v in ("|", "&"):
                i = self._skip_type_operand(self._sig(j + 1))
            elif v == "extends" and self._type(j) == "IDENT":
                # Conditional type: A extends B ? C : D
                i = self._skip_type_operand(self._sig(j + 1))
                q = self._sig(i)
                if self._value(q) != "?":
                    return i
                i = self._skip_type(q + 1)
                c = self._sig(i)
                if self._value(c) != ":":
                    raise self._error(ErrorCode.UNEXPECTED_END_OF_INPUT, c, context="conditional type")
                i = self._skip_type(c + 1)
            else:
                return i

    def _skip_type_operand(self, i: int) -> int:
        if i >= len(self.tokens):
            raise self._error(ErrorCode.UNEXPECTED_END_OF_INPUT, i, context="type annotation")

        tok = self.tokens[i]
        v = str(tok)

        if tok.type == "IDENT" and v in TYPE_PREFIX_KEYWORDS:
            nxt = self._sig(i + 1)
            if self._type(nxt) in ("IDENT", "STRING") or self._value(nxt) in ("(", "[", "{", "<"):
                return self._skip_type_operand(nxt)

        if v == "<":
            # Generic function type: <T>(x: T) => T
            i = self._sig(self._skip_angle(i))
            tok, v = self.tokens[i] if i < len(self.tokens) else None, self._value(i)

        if v == "(":
            i = self._skip_balanced(i)
            arrow = self._sig(i)
            if self._value(arrow) == "=>":
                return self._skip_type(arrow + 1)
            return self._skip_postfix(i)
        if v in ("{", "["):
            return self._skip_postfix(self._skip_balanced(i))
        if tok is not None and tok.type in LITERALS:
            return self._skip_postfix(i + 1)
        if v == "-" and self._type(self._sig(i + 1)) == "NUMBER":
            return self._sig(i + 1) + 1
        if tok is not None and tok.type == "IDENT":
            i += 1
            while self._value(self._sig(i)) == "." and self._type(self._sig(self._sig(i) + 1)) == "IDENT":
                i = self._sig(self._sig(i) + 1) + 1
            if self._value(self._sig(i)) == "<":
                i = self._skip_angle(self._sig(i))
            is_kw = self._sig(i)
            if self._value(is_kw) == "is" and self._type(is_kw) == "IDENT":
                # Type predicate: x is T
                return self._skip_type(is_kw + 1)
            return self._skip_postfix(i)

        raise self._error(ErrorCode.UNEXPECTED_END_OF_INPUT, i, context="type annotation")

    def _skip_postfix(self, i: int) -> int:
        """Array suffixes and indexed access: T[], T['key']."""
        while self._value(self._sig(i)) == "[":
            i = self._skip_balanced(self._sig(i))
        return i

    # --- Skipping whole declarations ---
    def _skip_statement(self, i: int) -> int:
        """Skips up to and including the end of the statement starting at i."""
        depth = 0
        while i < len(self.tokens):
            tok = self.tokens[i]
            v = str(tok)
            if depth == 0 and v == ";":
                return i + 1
            if depth == 0 and v == "{":
                return self._skip_balanced(i)
            if depth == 0 and tok.type == "WS" and "\n" in tok:
                return i
            if v in ("(", "["):
                depth += 1
            elif v in (")", "]"):
                depth -= 1
            i += 1
        return i

    def _skip_module_statement(self, i: int) -> int:
        """Skips a type-only import or export, including its 'from' clause."""
        depth = 0
        while i < len(self.tokens):
            tok = self.tokens[i]
            v = str(tok)
            if v == "{":
                depth += 1
            elif v == "}":
                depth -= 1
                if depth == 0 and self._value(self._sig(i + 1)) != "from":
                    return self._consume_semicolon(i + 1)
            elif depth == 0 and tok.type == "STRING":
                return self._consume_semicolon(i + 1)
            elif depth == 0 and v == ";":
                return i + 1
            i += 1
        return i

    def _consume_semicolon(self, i: int) -> int:
        semi = self._sig(i)
        return semi + 1 if self._value(semi) == ";" else i

    def _skip_interface(self, i: int) -> int:
        while i < len(self.tokens):
            v = self._value(i)
            if v == "<":
                i = self._skip_angle(i)
                continue
            if v == "{":
                return self._skip_balanced(i)
            i += 1
        raise self._error(ErrorCode.UNEXPECTED_END_OF_INPUT, i, context="interface declaration")

    def _skip_type_alias(self, i: int) -> int:
        i = self._sig(i + 1) + 1  # 'type' and the alias name
        j = self._sig(i)
        if self._value(j) == "<":
            j = self._sig(self._skip_angle(j))
        if self._value(j) != "=":
            raise self._error(ErrorCode.UNEXPECTED_END_OF_INPUT, j, context="type alias")
        i = self._skip_type(j + 1)
        semi = self._sig(i)
        if self._value(semi) == ";":
            return semi + 1
        return i

    # --- Module syntax ---
    def _copy_import(self, i: int) -> int:
        """Copies an import declaration through its module specifier, erasing `import type`."""
        first = self._sig(i + 1)
        second = self._sig(first + 1)
        if self._value(first) == "type" and (self._value(second) in ("{", "*") or (self._type(second) == "IDENT" and self._value(second) != "from")):
            return self._skip_module_statement(i)

        while i < len(self.tokens):
            tok = self.tokens[i]
            if str(tok) == "=":
                raise self._error(ErrorCode.UNSUPPORTED_SYNTAX, i, construct="import = require()")
            self.out.append(tok)
            i += 1
            if tok.type == "STRING":
                self.specifiers.append((str(tok)[1:-1], tok.line))
                return i
        raise self._error(ErrorCode.UNEXPECTED_END_OF_INPUT, i, context="import declaration")

    def _copy_export_clause(self, i: int) -> int:
        """Copies `export { a as b } [from '...']` and `export * [as ns] from '...'` verbatim."""
        start = self._sig(i + 1)
        if self._value(start) == "{":
            end = self._skip_balanced(start)
        else:
            end = start + 1
            as_kw = self._sig(end)
            if self._value(as_kw) == "as":
                end = self._sig(as_kw + 1) + 1
        self.out.extend(self.tokens[i:end])

        from_kw = self._sig(end)
        target = self._sig(from_kw + 1)
        if self._value(from_kw) == "from" and self._type(target) == "STRING":
            self.out.extend(self.tokens[end : target + 1])
            self.specifiers.append((str(self.tokens[target])[1:-1], self.tokens[target].line))
            return target + 1
        return end

    # --- Main loop ---
    def erase(self) -> str:
        i = 0
        while i < len(self.tokens):
            tok = self.tokens[i]
            if tok.type in TRIVIA:
                if tok.type == "LINE_COMMENT":
                    match = REFERENCE_PATH.match(str(tok))
                    if match:
                        self.specifiers.append((_as_relative(match.group(1)), tok.line))
                self.out.append(tok)
                i += 1
            elif tok.type == "IDENT":
                i = self._on_identifier(i)
            elif tok.type == "PUNCT":
                i = self._on_punctuation(i)
            else:
                self.out.append(tok)
                i += 1

        if len(self.frames) > 1:
            frame = self.frames[-1]
            raise self._error(ErrorCode.UNBALANCED_BRACKET, len(self.tokens) - 1, char=frame.kind)
        return "".join(str(t) for t in self.out)

    def _on_identifier(self, i: int) -> int:
        tok = self.tokens[i]
        v = str(tok)
        frame = self.frames[-1]
        prev = self._prev_value()
        nxt = self._sig(i + 1)
        nxt_value, nxt_type = self._value(nxt), self._type(nxt)

        if prev in (".", "?."):
            self.out.append(tok)
            return i + 1

        if v == "this" and frame.kind == "(" and prev == "(" and nxt_value == ":":
            # A `this` parameter only types the receiver; drop it with its comma.
            i = self._skip_type(nxt + 1)
            comma = self._sig(i)
            if self._value(comma) == ",":
                return self._sig(comma + 1)
            return i

        if self._at_statement_start():
            if v == "interface" and nxt_type == "IDENT":
                self._retract_export()
                return self._skip_interface(i)
            if v == "type" and nxt_type == "IDENT" and self._value(self._sig(nxt + 1)) in ("=", "<"):
                self._retract_export()
                return self._skip_type_alias(i)
            if v == "declare" and nxt_type == "IDENT":
                self._retract_export()
                return self._skip_statement(i)
            if v == "enum" and nxt_type == "IDENT" or v == "const" and nxt_value == "enum":
                raise self._error(ErrorCode.UNSUPPORTED_SYNTAX, i, construct="enum")
            if v in ("namespace", "module") and nxt_type in ("IDENT", "STRING") and self._value(self._sig(nxt + 1)) in ("{", "."):
                raise self._error(ErrorCode.UNSUPPORTED_SYNTAX, i, construct=v)
            if v == "import" and nxt_value not in ("(", "."):
                return self._copy_import(i)
            if v == "export" and nxt_value == "type" and self._value(self._sig(nxt + 1)) in ("{", "*"):
                return self._skip_module_statement(i)
            if v == "export" and nxt_value in ("{", "*"):
                return self._copy_export_clause(i)

        if v in MEMBER_MODIFIERS and (nxt_type == "IDENT" or nxt_value in ("[", "#")):
            if frame.kind == "(" and prev in ("(", ","):
                raise self._error(ErrorCode.UNSUPPORTED_SYNTAX, i, construct="parameter property")
            if frame.class_body and (prev in (None, "{", ";", "}", "static") or self._newline_before_current()):
                return self._sig(i + 1)

        if v in ("as", "satisfies") and self._expression_ended() and (nxt_type in ("IDENT", "STRING") or nxt_value in ("{", "(", "[")):
            self._drop_trailing_whitespace()
            return self._skip_type(nxt)

        if v == "implements" and self.pending_class:
            self._drop_trailing_whitespace()
            i = self._skip_type(nxt)
            while self._value(self._sig(i)) == ",":
                i = self._skip_type(self._sig(i) + 1)
            return i

        if v in DECLARATION_KEYWORDS:
            frame.declaration = True
        elif v == "class" and (nxt_type == "IDENT" or nxt_value == "{"):
            self.pending_class = True
        elif v == "case":
            frame.case += 1

        self.out.append(tok)
        return i + 1

    def _on_punctuation(self, i: int) -> int:
        tok = self.tokens[i]
        v = str(tok)
        frame = self.frames[-1]

        if v in ("/", "/=") and not self._expression_ended():
            regex = REGEX_LITERAL.match(self.content, tok.start_pos)
            if regex:
                self._splice_regex(i, regex)
                self.out.append(self.tokens[i])
                return i + 1
        if v == "?" and self._is_optional_marker(i):
            return i + 1
        if v == "?":
            frame.ternary += 1
        elif v == "!" and self._is_non_null_assertion(i):
            return i + 1
        elif v == ":" and self._is_annotation_colon():
            return self._skip_type(i + 1)
        elif v == ":":
            if frame.ternary:
                frame.ternary -= 1
            elif frame.case:
                frame.case -= 1
        elif v == "<":
            end = self._match_angle(i)
            if end is not None and self._is_type_parameter_list(end):
                return end
        elif v in OPENERS:
            class_body = v == "{" and self.pending_class
            if class_body:
                self.pending_class = False
            self.frames.append(_Frame(v, opener_prev=self._prev_value(), class_body=class_body))
        elif v in CLOSERS:
            if len(self.frames) == 1 or self.frames[-1].kind != CLOSERS[v]:
                raise self._error(ErrorCode.UNBALANCED_BRACKET, i, char=v)
            self.last_closed = self.frames.pop()
        elif v == ";":
            frame.declaration = False

        self.out.append(tok)
        return i + 1

    def _splice_regex(self, i: int, match):
        """
        The lexer cannot tell a regular expression from a division, so it split the
        literal into punctuation. Replace those tokens with a single one and lex the
        rest of the file again from where the literal ends.
        """
        tok = self.tokens[i]
        literal = Token("REGEX", match.group(0), start_pos=tok.start_pos, line=tok.line, column=tok.column)
        rest = tokenize(self.name, self.content, match.end(), tok.line, tok.column + len(literal))
        self.tokens[i:] = [literal] + rest

    def _is_optional_marker(self, i: int) -> bool:
        frame = self.frames[-1]
        prev, prev2 = self._prev(), self._prev_value(2)
        if prev is None or prev.type != "IDENT":
            return False
        nxt = self._value(self._sig(i + 1))
        if frame.kind == "(" and prev2 in ("(", ",", "..."):
            return nxt in (":", ",", ")", "=")
        if frame.class_body and (prev2 in (None, "{", ";", "}", "static") or self._newline_before_prev()):
            return nxt in (":", ";", "=", "(")
        return False

    def _newline_before_prev(self) -> bool:
        seen = False
        for tok in reversed(self.out):
            if tok.type not in TRIVIA:
                if seen:
                    return False
                seen = True
            elif seen and tok.type == "WS" and "\n" in tok:
                return True
        return seen

    def _is_non_null_assertion(self, i: int) -> bool:
        if not self.out or self.out[-1].type in TRIVIA:
            return False
        return self._expression_ended()

    def _is_annotation_colon(self) -> bool:
        frame = self.frames[-1]
        if frame.ternary or frame.case:
            return False

        prev = self._prev()
        if prev is None:
            return False
        prev2 = self._prev_value(2)

        if prev.type == "IDENT":
            if frame.kind == "(" and prev2 in ("(", ",", "..."):
                return True
            if frame.declaration and prev2 in DECLARATION_KEYWORDS | {","}:
                return True
            return frame.class_body

        closed = self.last_closed
        if str(prev) == ")" and closed is not None and closed.kind == "(":
            return True
        if str(prev) in ("}", "]") and closed is not None:
            if closed.opener_prev in DECLARATION_KEYWORDS:
                return True
            return frame.kind == "(" and closed.opener_prev in ("(", ",", "...")
        return False

    def _is_type_parameter_list(self, end: int) -> bool:
        after = self._value(self._sig(end))
        prev, prev2 = self._prev(), self._prev_value(2)
        if after == "(":
            return True
        if prev is not None and prev.type == "IDENT" and prev2 == "class":
            return True
        return self.pending_class and prev2 == "extends"


def _as_relative(path: str) -> str:
    if path.startswith(RELATIVE_PREFIXES) or path.startswith("/"):
        return path
    return "./" + path


def tokenize(name: str, content: str, pos: int = 0, line: int = 1, column: int = 1) -> List[Token]:
    """
    Lexes content[pos:]. Positions in the returned tokens and in errors are relative
    to the whole content, given that pos sits at (line, column).
    """

    def shift(tok_line, tok_column):
        if tok_line == 1:
            return line, tok_column + column - 1
        return tok_line + line - 1, tok_column

    try:
        tokens = list(LARK_LEXER.lex(content[pos:]))
    except UnexpectedCharacters as e:
        err_line, err_column = shift(e.line, e.column)
        raise CompileError(ErrorCode.SYNTAX_INVALID_CHARACTER, name=name, line=err_line, column=err_column, char=e.char) from e

    if pos == 0:
        return tokens
    shifted = []
    for tok in tokens:
        tok_line, tok_column = shift(tok.line, tok.column)
        shifted.append(Token(tok.type, str(tok), start_pos=tok.start_pos + pos, line=tok_line, column=tok_column))
    return shifted


class TypeStripCompiler(Compiler):
    """
    Compiles TypeScript by erasing its type syntax. With `check_imports` every
    relative module specifier must resolve through the source provider, which is
    the closest this compiler gets to tsc's "Cannot find module" diagnostics.
    """

    def __init__(self, config: Optional[LoaderConfig] = None, check_imports: bool = True):
        self.config = config or LoaderConfig()
        self.check_imports = check_imports

    def compile(self, name: str, source_provider: SourceProvider) -> str:
        source = source_provider.resolve(name)
        eraser = _TypeEraser(name, source.content)
        code = eraser.erase()

        if self.check_imports:
            for specifier, line in eraser.specifiers:
                if specifier.startswith(RELATIVE_PREFIXES):
                    self._check_import(name, specifier, line, source_provider)

        logger.debug("Erased types from '%s' (%d -> %d chars)", name, len(source.content), len(code))
        return code

    def _candidates(self, specifier: str) -> List[str]:
        lower = specifier.lower()
        src_ext, out_ext = self.config.source_extension, self.config.compiled_extension
        if lower.endswith(out_ext):
            return [specifier, specifier[: -len(out_ext)] + src_ext]
        if os.path.splitext(lower)[1]:
            return [specifier]
        return [specifier + src_ext, specifier + out_ext, specifier + "/index" + src_ext]

    def _check_import(self, name: str, specifier: str, line: int, source_provider: SourceProvider):
        for candidate in self._candidates(specifier):
            try:
                source_provider.resolve(candidate, name)
                return
            except ResolutionNotFound:
                continue
        raise CompileError(ErrorCode.MODULE_NOT_FOUND, name=name, line=line, column=1, specifier=specifier)
