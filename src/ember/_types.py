"""Core value types shared across Ember.

Defines the closed set of template flavors, the cache keys used by the
compiled-unit registry, and the fragment tokens produced by the lexer.

Flavors:
    SCRIPTED_MARKUP     literal text + embedded Python (``.phtml``)
    STRUCTURED_BUILDER  Python against an ``XmlMarkup`` builder (``.pxml``)
    DELEGATE            rendered by an externally registered handler

"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ember.view import View

SCRIPTED_EXTENSION = "phtml"
BUILDER_EXTENSION = "pxml"


class TemplateHandler(Protocol):
    """Renderer for a delegate flavor.

    Constructed with the rendering ``View`` so it can issue nested renders.
    """

    def render(self, template: str, local_assigns: Mapping[str, Any]) -> str: ...


HandlerFactory = Callable[["View"], TemplateHandler]


class FlavorKind(Enum):
    """Which compiler applies to a template source."""

    SCRIPTED_MARKUP = "scripted_markup"
    STRUCTURED_BUILDER = "structured_builder"
    DELEGATE = "delegate"


@dataclass(frozen=True, slots=True)
class TemplateFlavor:
    """A flavor bound to the extension that selected it.

    Attributes:
        kind: Compiler family
        extension: File extension (without dot) the flavor was chosen for
        handler: Handler factory, only set for ``FlavorKind.DELEGATE``
    """

    kind: FlavorKind
    extension: str
    handler: HandlerFactory | None = None

    @classmethod
    def for_extension(
        cls,
        extension: str,
        handlers: Mapping[str, HandlerFactory] | None = None,
    ) -> TemplateFlavor:
        """Map an extension to a flavor.

        Registered handlers win over the built-in flavors. Unknown
        extensions fall back to scripted markup.
        """
        if handlers and extension in handlers:
            return cls(FlavorKind.DELEGATE, extension, handlers[extension])
        if extension == BUILDER_EXTENSION:
            return STRUCTURED_BUILDER
        return cls(FlavorKind.SCRIPTED_MARKUP, extension)


SCRIPTED_MARKUP = TemplateFlavor(FlavorKind.SCRIPTED_MARKUP, SCRIPTED_EXTENSION)
STRUCTURED_BUILDER = TemplateFlavor(FlavorKind.STRUCTURED_BUILDER, BUILDER_EXTENSION)


@dataclass(frozen=True, slots=True)
class UnitKey:
    """Registry key for a compiled unit.

    File-backed templates are keyed by resolved path; inline templates are
    keyed by a digest of their text, so identical inline sources share a unit.
    """

    kind: str
    value: str

    @classmethod
    def for_file(cls, path: str) -> UnitKey:
        return cls("file", path)

    @classmethod
    def for_inline(cls, text: str) -> UnitKey:
        return cls("inline", hashlib.sha256(text.encode("utf-8")).hexdigest())

    @property
    def is_file(self) -> bool:
        return self.kind == "file"

    def __str__(self) -> str:
        if self.is_file:
            return self.value
        return f"<inline {self.value[:12]}>"


class TokenType(Enum):
    """Fragment types produced by the scripted-markup lexer."""

    TEXT = "text"
    CODE = "code"
    EXPR = "expr"
    COMMENT = "comment"


@dataclass(frozen=True, slots=True)
class Token:
    """A literal or embedded-code fragment with its 1-based source line."""

    type: TokenType
    value: str
    lineno: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, line={self.lineno})"
