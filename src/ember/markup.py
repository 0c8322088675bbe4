"""XmlMarkup: a small XML builder for structured-builder templates.

Any attribute that is not one of the builder's own methods is a tag:

    xml.em("emphasized")                      # <em>emphasized</em>
    xml.a("A Link", {"href": "http://x.org"}) # <a href="http://x.org">A Link</a>
    xml.br()                                  # <br/>

A tag called with no content can open a nested block:

    with xml.div(class_="person"):
        xml.h1(person.name)
        xml.p(person.bio)

renders (with ``indent=2``)

    <div class="person">
      <h1>Ada</h1>
      <p>Analyst</p>
    </div>

Builder methods end in ``_`` so they never collide with tag names:
``tag_``, ``text_``, ``comment_``, ``cdata_``, ``instruct_`` and ``target_``.
Keyword attribute names lose one trailing underscore (``class_`` → ``class``).

"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from xml.sax.saxutils import escape

_ATTR_ENTITIES = {'"': "&quot;"}


def _attrs(attributes: Mapping[str, Any]) -> str:
    return "".join(
        f' {name}="{escape(str(value), _ATTR_ENTITIES)}"'
        for name, value in attributes.items()
        if value is not None
    )


class _OpenTag:
    """Handle returned for a tag; entering it turns the tag into a block."""

    __slots__ = ("_attrs", "_index", "_markup", "_name")

    def __init__(self, markup: XmlMarkup, name: str, attrs: str, index: int | None):
        self._markup = markup
        self._name = name
        self._attrs = attrs
        self._index = index

    def __enter__(self) -> XmlMarkup:
        if self._index is None:
            raise TypeError(f"<{self._name}> cannot mix text content with a nested block")
        markup = self._markup
        markup._target[self._index] = markup._line(f"<{self._name}{self._attrs}>")
        markup._level += 1
        return markup

    def __exit__(self, *exc_info: object) -> None:
        markup = self._markup
        markup._level -= 1
        markup._target.append(markup._line(f"</{self._name}>"))


class XmlMarkup:
    """Accumulate XML markup into a list of strings.

    Attributes:
        indent: Spaces per nesting level; 0 writes everything on one line
        _level: Current nesting level
        _target: Output fragments
    """

    def __init__(self, indent: int = 0, margin: int = 0):
        self.indent = indent
        self._level = margin
        self._target: list[str] = []

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        tag = name[:-1] if name.endswith("_") else name

        def emit(*args: Any, **attributes: Any) -> _OpenTag:
            return self.tag_(tag, *args, **attributes)

        return emit

    def _line(self, text: str) -> str:
        if not self.indent:
            return text
        return " " * (self._level * self.indent) + text + "\n"

    def tag_(self, name: str, *args: Any, **attributes: Any) -> _OpenTag:
        """Emit ``<name ...>``; mapping arguments are attributes, anything else is content."""
        attrs: dict[str, Any] = {}
        content: list[str] = []
        for arg in args:
            if isinstance(arg, Mapping):
                attrs.update(arg)
            elif arg is not None:
                content.append(str(arg))
        for key, value in attributes.items():
            attrs[key[:-1] if key.endswith("_") else key] = value
        attr_text = _attrs(attrs)

        if content:
            self._target.append(
                self._line(f"<{name}{attr_text}>{escape(''.join(content))}</{name}>")
            )
            return _OpenTag(self, name, attr_text, None)
        self._target.append(self._line(f"<{name}{attr_text}/>"))
        return _OpenTag(self, name, attr_text, len(self._target) - 1)

    def text_(self, text: Any) -> XmlMarkup:
        self._target.append(escape(str(text)))
        return self

    def comment_(self, text: str) -> XmlMarkup:
        self._target.append(self._line(f"<!-- {text} -->"))
        return self

    def cdata_(self, text: str) -> XmlMarkup:
        self._target.append(self._line(f"<![CDATA[{text.replace(']]>', ']]]]><![CDATA[>')}]]>"))
        return self

    def instruct_(self, directive: str = "xml", **attributes: Any) -> XmlMarkup:
        """Emit a processing instruction (``<?xml version="1.0" encoding="UTF-8"?>`` by default)."""
        if directive == "xml" and not attributes:
            attributes = {"version": "1.0", "encoding": "UTF-8"}
        self._target.append(self._line(f"<?{directive}{_attrs(attributes)}?>"))
        return self

    def target_(self) -> str:
        return "".join(self._target)

    def __str__(self) -> str:
        return self.target_()

    def __repr__(self) -> str:
        return f"<XmlMarkup indent={self.indent} fragments={len(self._target)}>"
