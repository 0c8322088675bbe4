"""Ember: compile-once template rendering with a two-tier variable scope.

Templates are looked up by logical path, compiled once into render units
and run against a scope that merges a view's persistent assigns with
per-call locals.

Quickstart:
    >>> from ember import DictStorage, View
    >>> storage = DictStorage({"hello.phtml": "Hello, <%= name %>!"})
    >>> View(storage).render("hello", {"name": "World"})
    'Hello, World!'

Flavors:
    .phtml   scripted markup: ``<% stmt %>``, ``<%= expr %>``, ``<%# note %>``
    .pxml    structured builder: Python against an ``XmlMarkup`` named ``xml``
    other    delegate handlers added with ``register_template_handler``

Architecture:
Scripted markup → Lexer → fragments → Compiler → Python AST → CompiledUnit

The compiler builds ``ast.Module`` objects
directly; embedded code is parsed with ``ast.parse`` and its line numbers
are mapped back to the template, so tracebacks point at template lines.

Thread-Safety:
The source cache and unit registry are shared by every view and guarded by
locks; concurrent first renders of one template compile it exactly once.
A View (and its scope) belongs to one thread at a time.

Strict Names:
Unknown names raise ``UndefinedError`` with a "did you mean" hint. A name
that was bound as a local on the view earlier reads as ``None``.

"""

from ember._types import (
    BUILDER_EXTENSION,
    SCRIPTED_EXTENSION,
    SCRIPTED_MARKUP,
    STRUCTURED_BUILDER,
    FlavorKind,
    TemplateFlavor,
    TemplateHandler,
    Token,
    TokenType,
    UnitKey,
)
from ember.cache import (
    SourceCache,
    SourceEntry,
    TemplateCache,
    UnitRegistry,
    get_template_cache,
    reset_template_cache,
)
from ember.compiler import Compiler, compile_template, evaluate_builder
from ember.dispatcher import ExtensionDispatcher
from ember.environment import (
    CompileError,
    DictStorage,
    ErrorCode,
    FileSystemStorage,
    HandlerRegistry,
    Settings,
    SourceSnippet,
    TemplateError,
    TemplateFailure,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateStorage,
    UndefinedError,
    build_source_snippet,
    configure,
    register_template_handler,
    reset_settings,
    settings,
    template_handlers,
)
from ember.helpers import html_escape
from ember.lexer import Lexer, tokenize
from ember.markup import XmlMarkup
from ember.render_context import RenderContext, get_render_context, render_context
from ember.scope import SavedState, VariableScope
from ember.unit import CompiledUnit
from ember.view import View

__version__ = "0.1.0"

__all__ = [
    "BUILDER_EXTENSION",
    "SCRIPTED_EXTENSION",
    "SCRIPTED_MARKUP",
    "STRUCTURED_BUILDER",
    "CompileError",
    "CompiledUnit",
    "Compiler",
    "DictStorage",
    "ErrorCode",
    "ExtensionDispatcher",
    "FileSystemStorage",
    "FlavorKind",
    "HandlerRegistry",
    "Lexer",
    "RenderContext",
    "SavedState",
    "Settings",
    "SourceCache",
    "SourceEntry",
    "SourceSnippet",
    "TemplateCache",
    "TemplateError",
    "TemplateFailure",
    "TemplateFlavor",
    "TemplateHandler",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateStorage",
    "Token",
    "TokenType",
    "UndefinedError",
    "UnitKey",
    "UnitRegistry",
    "VariableScope",
    "View",
    "XmlMarkup",
    "__version__",
    "build_source_snippet",
    "compile_template",
    "configure",
    "evaluate_builder",
    "get_render_context",
    "get_template_cache",
    "html_escape",
    "register_template_handler",
    "render_context",
    "reset_settings",
    "reset_template_cache",
    "settings",
    "template_handlers",
    "tokenize",
]
