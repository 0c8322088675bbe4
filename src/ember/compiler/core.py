"""Ember Compiler Core: scripted markup to compiled units.

The Compiler turns lexer fragments into a Python ``ast.Module`` holding a
single render function, compiles it to a code object, and wraps the result
in a ``CompiledUnit``. No Python source strings are generated; embedded code
fragments are parsed with ``ast.parse`` and spliced into the module.

Generated Shape:
    ```python
    def _render_orders_index(_scope):
        _lookup = _scope.lookup
        _buf = []
        _append = _buf.append
        _append("<h1>")
        _append(_to_s(_lookup("title")))
        for order in _lookup("orders"):
            _append(_to_s(_lookup("render")("orders/row", {"order": order})))
        return "".join(_buf)
    ```

Compile Once:
``compile_template()`` goes through ``UnitRegistry.get_or_compile``, so a
template identity is compiled at most once until the source cache
invalidates it, even when several threads ask for it at the same time.

"""

from __future__ import annotations

import ast
import logging
import re
import sys
from typing import TYPE_CHECKING

from ember._types import Token, TokenType, UnitKey
from ember.compiler.names import rewrite_free_names
from ember.compiler.statements import (
    BlockFrame,
    BlockStatementMixin,
    OutputStatementMixin,
    located,
)
from ember.environment.exceptions import CompileError, ErrorCode
from ember.lexer import tokenize
from ember.unit import CompiledUnit

if TYPE_CHECKING:
    from ember.cache import TemplateCache

logger = logging.getLogger(__name__)

# Names the generated function defines for itself; never rewritten to lookups.
INTERNAL_NAMES = frozenset({"_scope", "_lookup", "_buf", "_append", "_to_s"})

_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]+$")


class Compiler(OutputStatementMixin, BlockStatementMixin):
    """Compile scripted-markup source into a ``CompiledUnit``.

    Attributes:
        _trim_mode: Trim mode handed to the lexer unchanged
        _name: Executable name of the render function being built
        _filename: Template path (used as the code object's filename)
        _body: Statement list of the render function
        _frames: Open-block stack

    Example:
            >>> unit = Compiler().compile("Hi <%= name %>", name="_render_inline_1")
            >>> unit.render(scope)
            'Hi World'

    """

    __slots__ = ("_body", "_filename", "_frames", "_name", "_trim_mode")

    def __init__(self, trim_mode: str = "-"):
        self._trim_mode = trim_mode
        self._name: str | None = None
        self._filename: str | None = None
        self._body: list[ast.stmt] = []
        self._frames: list[BlockFrame] = []

    def compile(
        self,
        source: str,
        name: str,
        filename: str | None = None,
        key: UnitKey | None = None,
    ) -> CompiledUnit:
        """Compile ``source`` into a unit whose render function is called ``name``.

        Raises:
            CompileError: If a fragment is invalid Python, blocks are
                unbalanced, or the generated module fails to compile
        """
        self._name = name
        self._filename = filename
        self._body = []
        self._frames = []

        tokens = tokenize(source, self._trim_mode, filename or name)
        for token in tokens:
            if token.type is TokenType.TEXT:
                self._compile_text(token)
            elif token.type is TokenType.EXPR:
                self._compile_expr(token)
            elif token.type is TokenType.CODE:
                self._compile_code(token)

        if self._frames:
            frame = self._frames[-1]
            raise CompileError(
                f"Unclosed '{frame.keyword}' block (missing <% end %>)",
                template_name=filename or name,
                lineno=frame.lineno,
                generated_source=self._unparse(self._make_module()),
                code=ErrorCode.UNBALANCED_BLOCK,
            )

        module = self._make_module()
        code_filename = filename or f"<{name}>"
        try:
            code = compile(module, code_filename, "exec", dont_inherit=True)
        except (SyntaxError, ValueError, TypeError) as e:
            raise CompileError(
                f"Error defining {name}: {e}",
                generated_source=self._unparse(module),
                cause=e,
                template_name=filename or name,
                lineno=getattr(e, "lineno", None),
            ) from e

        return CompiledUnit(
            key=key or (UnitKey.for_file(filename) if filename else UnitKey.for_inline(source)),
            name=name,
            code=code,
            filename=filename,
            source=source,
        )

    # ------------------------------------------------------------------
    # Host hooks used by the statement mixins
    # ------------------------------------------------------------------

    def _emit(self, stmt: ast.stmt) -> None:
        target = self._frames[-1].target if self._frames else self._body
        target.append(stmt)

    def _parse(
        self, code: str, token: Token, mode: str = "exec", prefix_lines: int = 0
    ) -> ast.AST:
        try:
            tree = ast.parse(code, filename=self._filename or f"<{self._name}>", mode=mode)
        except SyntaxError as e:
            lineno = token.lineno + max((e.lineno or 1) - 1 - prefix_lines, 0)
            raise CompileError(
                f"Invalid embedded code: {e.msg}",
                generated_source=self._unparse(self._make_module()),
                cause=e,
                template_name=self._filename or self._name,
                lineno=lineno,
            ) from e
        ast.increment_lineno(tree, token.lineno - 1 - prefix_lines)
        return tree

    # ------------------------------------------------------------------
    # Module assembly
    # ------------------------------------------------------------------

    def _make_module(self) -> ast.Module:
        body = list(self._body)
        rewrite_free_names(body, INTERNAL_NAMES)

        prologue: list[ast.stmt] = [
            # _buf = []
            ast.Assign(
                targets=[ast.Name(id="_buf", ctx=ast.Store())],
                value=ast.List(elts=[], ctx=ast.Load()),
            ),
            # _append = _buf.append
            ast.Assign(
                targets=[ast.Name(id="_append", ctx=ast.Store())],
                value=ast.Attribute(
                    value=ast.Name(id="_buf", ctx=ast.Load()),
                    attr="append",
                    ctx=ast.Load(),
                ),
            ),
        ]
        # return "".join(_buf)
        epilogue = ast.Return(
            value=ast.Call(
                func=ast.Attribute(value=ast.Constant(value=""), attr="join", ctx=ast.Load()),
                args=[ast.Name(id="_buf", ctx=ast.Load())],
                keywords=[],
            ),
        )
        return function_module(
            self._name or "_render", ["_scope"], [*prologue, *body, epilogue]
        )

    @staticmethod
    def _unparse(module: ast.Module) -> str | None:
        return unparse(module)


def function_module(name: str, params: list[str], body: list[ast.stmt]) -> ast.Module:
    """Wrap ``body`` in ``def name(*params)``, preceded by ``_lookup = _scope.lookup``.

    Statements without a location are placed on line 1.
    """
    # _lookup = _scope.lookup
    lookup = ast.Assign(
        targets=[ast.Name(id="_lookup", ctx=ast.Store())],
        value=ast.Attribute(
            value=ast.Name(id="_scope", ctx=ast.Load()),
            attr="lookup",
            ctx=ast.Load(),
        ),
    )
    stmts = [located(lookup, 1)]
    stmts.extend(located(s, 1) if getattr(s, "lineno", None) is None else s for s in body)
    func = ast.FunctionDef(
        name=name,
        args=ast.arguments(
            posonlyargs=[],
            args=[ast.arg(arg=p) for p in params],
            vararg=None,
            kwonlyargs=[],
            kw_defaults=[],
            kwarg=None,
            defaults=[],
        ),
        body=stmts,
        decorator_list=[],
        returns=None,
    )
    if sys.version_info >= (3, 12):
        func.type_params = []
    located(func, 1)
    module = ast.Module(body=[func], type_ignores=[])
    ast.fix_missing_locations(module)
    return module


def unparse(module: ast.Module) -> str | None:
    """Best-effort ``ast.unparse`` for error reports."""
    try:
        return ast.unparse(module)
    except Exception:
        logger.debug("Could not unparse generated module", exc_info=True)
        return None


def executable_name(identity: str, base_path: str | None = None) -> str:
    """Derive a deterministic Python identifier from a template path.

    Example:
        >>> executable_name("app/views/orders/show-item.phtml", "app/views")
        '_render_orders_show_item'
    """
    name = identity
    if base_path and base_path in name:
        name = name[name.index(base_path) + len(base_path) :].lstrip("/")
    name = _EXTENSION_RE.sub("", name)
    name = name.translate(str.maketrans("/:-.", "____"))
    name = "".join(c if c.isascii() and (c.isalnum() or c == "_") else str(ord(c)) for c in name)
    return f"_render_{name}"


def compile_template(
    text: str,
    identity: str | None = None,
    *,
    base_path: str | None = None,
    trim_mode: str = "-",
    cache: TemplateCache | None = None,
    log: logging.Logger | None = None,
) -> CompiledUnit:
    """Return the compiled unit for ``text``, compiling it at most once.

    Args:
        text: Scripted-markup source
        identity: Resolved template path, or None for inline text
        base_path: Storage root, stripped from ``identity`` for the executable name
        trim_mode: Lexer trim mode
        cache: Shared cache state (defaults to the process-wide cache)
        log: Host logger receiving the compile debug message

    Raises:
        CompileError: If the template does not compile
    """
    from ember.cache import get_template_cache

    cache = cache or get_template_cache()
    key = UnitKey.for_file(identity) if identity else UnitKey.for_inline(text)

    def build() -> CompiledUnit:
        if identity:
            name = executable_name(identity, base_path)
        else:
            name = f"_render_inline_{cache.next_inline_id()}"
        unit = Compiler(trim_mode).compile(text, name=name, filename=identity, key=key)
        if identity:
            cache.sources.touch(identity, text)
        (log or logger).debug("Compiled template %s\n  ==> %s", key, name)
        return unit

    return cache.units.get_or_compile(key, build)
