"""Statement compilation mixins for the scripted-markup compiler.

OutputStatementMixin turns TEXT and EXPR fragments into ``_append(...)``
calls. BlockStatementMixin turns CODE fragments into Python statements and
tracks the open-block stack:

    <% if user: %>          opens an ``if`` frame
    <% elif guest: %>       extends the ``if`` chain
    <% else: %>             switches the frame to ``orelse``
    <% end %>               closes the frame

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
import re
import textwrap
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ember._types import Token
from ember.environment.exceptions import CompileError, ErrorCode

_CONTINUATION_RE = re.compile(r"(elif|else|except|finally)\b")
_OPENERS = (ast.If, ast.For, ast.While, ast.With, ast.Try, ast.FunctionDef)
_OPENER_KEYWORDS: dict[type, str] = {
    ast.If: "if",
    ast.For: "for",
    ast.While: "while",
    ast.With: "with",
    ast.Try: "try",
    ast.FunctionDef: "def",
}


@dataclass(slots=True)
class BlockFrame:
    """An open ``<% ...: %>`` block awaiting its ``<% end %>``.

    Attributes:
        node: The compound statement that opened the block
        target: Statement list currently receiving compiled fragments
        keyword: Opening keyword (``if``, ``for``, ...)
        lineno: Template line of the opener (for unbalanced-block errors)
        chain: Innermost ``If`` of an ``elif`` chain
        clauses: Continuation keywords seen so far
    """

    node: ast.stmt
    target: list[ast.stmt]
    keyword: str
    lineno: int
    chain: ast.If | None = None
    clauses: list[str] = field(default_factory=list)


def normalize_code(body: str) -> str:
    """Dedent a fragment body so it parses as top-level Python.

    The first line is stripped on its own; the remaining lines are dedented
    together, preserving their relative indentation.
    """
    first, sep, rest = body.partition("\n")
    if not sep:
        return body.strip()
    return (first.strip() + "\n" + textwrap.dedent(rest)).rstrip()


def located(node: ast.stmt, lineno: int) -> ast.stmt:
    node.lineno = lineno
    node.col_offset = 0
    node.end_lineno = lineno
    node.end_col_offset = 0
    return node


def ensure_body(stmts: list[ast.stmt], lineno: int) -> None:
    if not stmts:
        stmts.append(located(ast.Pass(), lineno))


class OutputStatementMixin:
    """Compile literal text and ``<%= expr %>`` output."""

    if TYPE_CHECKING:
        _name: str | None
        _filename: str | None

        def _emit(self, stmt: ast.stmt) -> None: ...

        def _parse(
            self, code: str, token: Token, mode: str = "exec", prefix_lines: int = 0
        ) -> ast.AST: ...

    def _emit_output(self, value_expr: ast.expr, lineno: int) -> ast.stmt:
        """Generate ``_append(value)``."""
        return located(
            ast.Expr(
                value=ast.Call(
                    func=ast.Name(id="_append", ctx=ast.Load()),
                    args=[value_expr],
                    keywords=[],
                ),
            ),
            lineno,
        )

    def _compile_text(self, token: Token) -> None:
        self._emit(self._emit_output(ast.Constant(value=token.value), token.lineno))

    def _compile_expr(self, token: Token) -> None:
        """Compile ``<%= expr %>`` to ``_append(_to_s(expr))``."""
        code = normalize_code(token.value)
        if not code:
            raise CompileError(
                "Empty output tag '<%= %>'",
                template_name=self._filename or self._name,
                lineno=token.lineno,
            )
        tree = self._parse(code, token, mode="eval")
        assert isinstance(tree, ast.Expression)
        value = ast.Call(
            func=ast.Name(id="_to_s", ctx=ast.Load()),
            args=[tree.body],
            keywords=[],
        )
        self._emit(self._emit_output(value, token.lineno))


class BlockStatementMixin:
    """Compile ``<% code %>`` fragments and maintain the block stack."""

    if TYPE_CHECKING:
        _name: str | None
        _filename: str | None
        _frames: list[BlockFrame]

        def _emit(self, stmt: ast.stmt) -> None: ...

        def _parse(
            self, code: str, token: Token, mode: str = "exec", prefix_lines: int = 0
        ) -> ast.AST: ...

    def _compile_code(self, token: Token) -> None:
        code = normalize_code(token.value)
        if not code:
            return
        if code == "end":
            self._close_block(token)
            return
        match = _CONTINUATION_RE.match(code)
        if match and code.endswith(":"):
            self._continue_block(match.group(1), code, token)
            return
        if code.endswith(":"):
            self._open_block(code, token)
            return
        module = self._parse(code, token)
        assert isinstance(module, ast.Module)
        for stmt in module.body:
            self._emit(stmt)

    def _open_block(self, code: str, token: Token) -> None:
        last_line = code.rsplit("\n", 1)[-1]
        indent = last_line[: len(last_line) - len(last_line.lstrip())]
        module = self._parse(f"{code}\n{indent}    pass", token)
        assert isinstance(module, ast.Module)
        *simple, opener = module.body
        if not isinstance(opener, _OPENERS) or not _is_placeholder(opener):
            raise self._block_error(
                "A block-opening fragment must end with a top-level "
                "'if', 'for', 'while', 'with', 'try' or 'def' header",
                token,
            )
        for stmt in simple:
            self._emit(stmt)
        opener.body = []
        if isinstance(opener, ast.Try):
            opener.handlers = []
            opener.finalbody = []
        self._emit(opener)
        self._frames.append(
            BlockFrame(
                node=opener,
                target=opener.body,
                keyword=_OPENER_KEYWORDS[type(opener)],
                lineno=token.lineno,
                chain=opener if isinstance(opener, ast.If) else None,
            )
        )

    def _continue_block(self, keyword: str, code: str, token: Token) -> None:
        if not self._frames:
            raise self._block_error(f"'{keyword}' without an open block", token)
        frame = self._frames[-1]
        ensure_body(frame.target, token.lineno)

        if keyword == "elif":
            if frame.keyword != "if" or "else" in frame.clauses:
                raise self._block_error(f"'elif' cannot follow '{frame.keyword}' here", token)
            module = self._parse(f"{code[2:]}\n    pass", token)
            assert isinstance(module, ast.Module)
            branch = module.body[0]
            assert isinstance(branch, ast.If)
            branch.body = []
            assert frame.chain is not None
            frame.chain.orelse = [branch]
            frame.chain = branch
            frame.target = branch.body
        elif keyword == "else":
            if code != "else:" or "else" in frame.clauses:
                raise self._block_error("Unexpected 'else'", token)
            if frame.keyword == "if":
                assert frame.chain is not None
                frame.target = frame.chain.orelse
            elif frame.keyword in ("for", "while"):
                frame.target = frame.node.orelse  # type: ignore[attr-defined]
            elif frame.keyword == "try" and frame.node.handlers:  # type: ignore[attr-defined]
                frame.target = frame.node.orelse  # type: ignore[attr-defined]
            else:
                raise self._block_error(f"'else' cannot follow '{frame.keyword}'", token)
        elif keyword == "except":
            if frame.keyword != "try" or {"else", "finally"} & set(frame.clauses):
                raise self._block_error("'except' must follow 'try' or 'except'", token)
            module = self._parse(f"try:\n    pass\n{code}\n    pass", token, prefix_lines=2)
            assert isinstance(module, ast.Module)
            handler = module.body[0].handlers[0]  # type: ignore[attr-defined]
            handler.body = []
            frame.node.handlers.append(handler)  # type: ignore[attr-defined]
            frame.target = handler.body
        else:
            if code != "finally:" or frame.keyword != "try" or "finally" in frame.clauses:
                raise self._block_error("Unexpected 'finally'", token)
            frame.target = frame.node.finalbody  # type: ignore[attr-defined]

        frame.clauses.append(keyword)

    def _close_block(self, token: Token) -> None:
        if not self._frames:
            raise self._block_error("'end' without an open block", token)
        frame = self._frames.pop()
        ensure_body(frame.target, token.lineno)
        node = frame.node
        if isinstance(node, ast.Try) and not node.handlers and not node.finalbody:
            raise self._block_error(
                f"'try' opened at line {frame.lineno} needs an 'except' or 'finally'",
                token,
            )

    def _block_error(self, message: str, token: Token) -> CompileError:
        return CompileError(
            message,
            template_name=self._filename or self._name,
            lineno=token.lineno,
            code=ErrorCode.UNBALANCED_BLOCK,
        )


def _is_placeholder(node: ast.stmt) -> bool:
    body = getattr(node, "body", None)
    return isinstance(body, list) and len(body) == 1 and isinstance(body[0], ast.Pass)
