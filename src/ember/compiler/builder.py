"""Structured-builder evaluation.

A ``.pxml`` template is plain Python run against an ``XmlMarkup`` bound to
``xml``. Free names resolve through the scope, exactly as in scripted
markup:

    xml.instruct_()
    with xml.rss(version="2.0"):
        with xml.channel():
            xml.title(feed_title)
            for item in items:
                xml.item(item.title)

Builder templates are not cached as compiled units; the source is parsed
and compiled on every render, and each render gets a fresh builder.

"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING, Any

from ember.compiler.core import INTERNAL_NAMES, function_module, unparse
from ember.compiler.names import rewrite_free_names
from ember.environment.exceptions import CompileError
from ember.helpers import STATIC_NAMESPACE
from ember.markup import XmlMarkup

if TYPE_CHECKING:
    from ember.scope import VariableScope

BUILDER_NAMES = INTERNAL_NAMES | {"xml"}


def compile_builder(text: str, filename: str | None = None) -> Any:
    """Compile builder source into ``_build(_scope, xml)``.

    Raises:
        CompileError: If the source is not valid Python
    """
    code_filename = filename or "<builder>"
    try:
        tree = ast.parse(text, filename=code_filename)
    except SyntaxError as e:
        raise CompileError(
            f"Invalid builder code: {e.msg}",
            generated_source=text,
            cause=e,
            template_name=filename,
            lineno=e.lineno,
        ) from e

    body = tree.body
    rewrite_free_names(body, BUILDER_NAMES)
    # return xml.target_()
    body.append(
        ast.Return(
            value=ast.Call(
                func=ast.Attribute(
                    value=ast.Name(id="xml", ctx=ast.Load()), attr="target_", ctx=ast.Load()
                ),
                args=[],
                keywords=[],
            )
        )
    )
    module = function_module("_build", ["_scope", "xml"], body)
    try:
        code = compile(module, code_filename, "exec", dont_inherit=True)
    except (SyntaxError, ValueError, TypeError) as e:
        raise CompileError(
            f"Error defining builder template: {e}",
            generated_source=unparse(module),
            cause=e,
            template_name=filename,
            lineno=getattr(e, "lineno", None),
        ) from e

    namespace: dict[str, Any] = STATIC_NAMESPACE.copy()
    exec(code, namespace)
    return namespace["_build"]


def evaluate_builder(
    text: str,
    scope: VariableScope,
    filename: str | None = None,
    *,
    indent: int = 2,
) -> str:
    """Run builder source against a fresh ``XmlMarkup(indent=indent)`` and return its output."""
    build = compile_builder(text, filename)
    return build(scope, XmlMarkup(indent=indent))
