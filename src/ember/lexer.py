"""Scripted-markup lexer.

Splits a ``.phtml`` source into literal text and embedded-code fragments:

    <% statement %>     CODE     run, no output
    <%= expression %>   EXPR     evaluated and appended to the output
    <%# comment %>      COMMENT  dropped
    <%% ... %>          TEXT     literal ``<% ... %>``

Trim Modes:
The trim mode string is passed through from settings unchanged and may
combine these characters:

    -   ``<%-`` strips the indentation before a tag; ``-%>`` swallows the
        newline that follows it
    >   every tag swallows the newline that follows it
    <>  a tag that both starts and ends a line swallows the newline
    %   a line starting with ``%`` is a CODE fragment; ``%%`` escapes it

Line numbers on tokens are 1-based and refer to the original source, so
compiled code can be mapped back to the template line that produced it.

"""

from __future__ import annotations

import re

from ember._types import Token, TokenType
from ember.environment.exceptions import CompileError

_TAG_RE = re.compile(r"<%(?P<open>[=#%-]?)(?P<body>.*?)(?P<close>-?)%>", re.DOTALL)
_OPEN_TAG_RE = re.compile(r"<%(?!%)")


def _trim_flags(trim_mode: str) -> tuple[bool, bool, bool, bool]:
    """Return (dash, gt, line, percent) flags for a trim mode string."""
    mode = trim_mode or ""
    line = "<>" in mode
    gt = ">" in mode.replace("<>", "")
    return "-" in mode, gt, line, "%" in mode


class Lexer:
    """Tokenize scripted markup into ``Token`` fragments.

    Example:
            >>> Lexer("Hi <%= name %>!\\n").tokenize()
            [Token(TEXT, 'Hi ', line=1), Token(EXPR, ' name ', line=1), Token(TEXT, '!\\n', line=1)]

    Raises:
        CompileError: On an ``<%`` with no matching ``%>``
    """

    __slots__ = ("_dash", "_gt", "_line", "_name", "_percent", "_source", "_tokens")

    def __init__(self, source: str, trim_mode: str = "-", name: str | None = None):
        self._source = source
        self._name = name
        self._dash, self._gt, self._line, self._percent = _trim_flags(trim_mode)
        self._tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        self._tokens = []
        if self._percent:
            self._tokenize_percent_lines()
        else:
            self._tokenize_chunk(self._source, 1)
        return self._merge_text(self._tokens)

    # ------------------------------------------------------------------

    def _tokenize_percent_lines(self) -> None:
        chunk: list[str] = []
        chunk_start = 1
        for index, line in enumerate(self._source.splitlines(keepends=True)):
            lineno = index + 1
            if line.startswith("%%"):
                if not chunk:
                    chunk_start = lineno
                chunk.append(line[1:])
            elif line.startswith("%"):
                if chunk:
                    self._tokenize_chunk("".join(chunk), chunk_start)
                    chunk = []
                self._tokens.append(Token(TokenType.CODE, line[1:].rstrip("\r\n"), lineno))
            else:
                if not chunk:
                    chunk_start = lineno
                chunk.append(line)
        if chunk:
            self._tokenize_chunk("".join(chunk), chunk_start)

    def _tokenize_chunk(self, text: str, first_line: int) -> None:
        def line_at(index: int) -> int:
            return first_line + text.count("\n", 0, index)

        pos = 0
        swallow_newline = False

        for match in _TAG_RE.finditer(text):
            start = pos
            literal = text[pos : match.start()]
            if swallow_newline:
                trimmed = _drop_leading_newline(literal)
                start += len(literal) - len(trimmed)
                literal = trimmed
                swallow_newline = False

            open_kind = match.group("open")
            body = match.group("body")
            close = match.group("close")

            if open_kind == "%":
                # <%% is an escaped opening delimiter; everything up to %> is literal
                self._emit_text(literal + "<%" + body + close + "%>", line_at(start))
                pos = match.end()
                continue

            if open_kind == "-":
                if self._dash:
                    literal = _strip_indent(literal, _at_line_start(text, start))
                else:
                    body = "-" + body
            if close == "-" and not self._dash:
                body += "-"
            self._emit_text(literal, line_at(start))

            tag_line = line_at(match.start())
            if open_kind == "=":
                self._tokens.append(Token(TokenType.EXPR, body, tag_line))
            elif open_kind == "#":
                self._tokens.append(Token(TokenType.COMMENT, body, tag_line))
            else:
                self._tokens.append(Token(TokenType.CODE, body, tag_line))

            at_line_end = text.startswith(("\n", "\r\n"), match.end())
            if at_line_end and (
                (close == "-" and self._dash)
                or self._gt
                or (self._line and _at_line_start(text, match.start()))
            ):
                swallow_newline = True
            pos = match.end()

        start = pos
        rest = text[pos:]
        if swallow_newline:
            trimmed = _drop_leading_newline(rest)
            start += len(rest) - len(trimmed)
            rest = trimmed

        unclosed = _OPEN_TAG_RE.search(rest)
        if unclosed is not None:
            raise CompileError(
                "Unclosed tag: '<%' without matching '%>'",
                template_name=self._name,
                lineno=line_at(start + unclosed.start()),
            )
        self._emit_text(rest.replace("<%%", "<%"), line_at(start))

    def _emit_text(self, value: str, lineno: int) -> None:
        if value:
            self._tokens.append(Token(TokenType.TEXT, value, lineno))

    @staticmethod
    def _merge_text(tokens: list[Token]) -> list[Token]:
        merged: list[Token] = []
        for token in tokens:
            if merged and token.type is TokenType.TEXT and merged[-1].type is TokenType.TEXT:
                prev = merged[-1]
                merged[-1] = Token(TokenType.TEXT, prev.value + token.value, prev.lineno)
            else:
                merged.append(token)
        return merged


def _drop_leading_newline(text: str) -> str:
    if text.startswith("\r\n"):
        return text[2:]
    if text.startswith("\n"):
        return text[1:]
    return text


def _strip_indent(literal: str, starts_line: bool) -> str:
    """Remove trailing spaces/tabs if they are the only thing on the tag's line."""
    head, sep, tail = literal.rpartition("\n")
    if tail.strip(" \t") or (not sep and not starts_line):
        return literal
    return head + sep


def _at_line_start(text: str, index: int) -> bool:
    return index == 0 or text[index - 1] == "\n"


def tokenize(source: str, trim_mode: str = "-", name: str | None = None) -> list[Token]:
    """Convenience wrapper around ``Lexer(...).tokenize()``."""
    return Lexer(source, trim_mode, name).tokenize()
