"""Ember environment: storage, settings, handler registry and errors."""

from ember.environment.exceptions import (
    CompileError,
    ErrorCode,
    SourceSnippet,
    TemplateError,
    TemplateFailure,
    TemplateNotFoundError,
    TemplateRuntimeError,
    UndefinedError,
    build_source_snippet,
)
from ember.environment.registry import (
    HandlerRegistry,
    register_template_handler,
    template_handlers,
)
from ember.environment.settings import Settings, configure, reset_settings, settings
from ember.environment.storage import DictStorage, FileSystemStorage, TemplateStorage

__all__ = [
    "CompileError",
    "DictStorage",
    "ErrorCode",
    "FileSystemStorage",
    "HandlerRegistry",
    "Settings",
    "SourceSnippet",
    "TemplateError",
    "TemplateFailure",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateStorage",
    "UndefinedError",
    "build_source_snippet",
    "configure",
    "register_template_handler",
    "reset_settings",
    "settings",
    "template_handlers",
]
