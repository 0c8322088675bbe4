"""Exceptions for the Ember template pipeline.

Exception Hierarchy:
TemplateError (base)
├── TemplateNotFoundError     # No flavor/handler matched a logical path
├── CompileError              # Embedded code failed to compile
├── TemplateRuntimeError      # Render-time error raised by Ember itself
├── UndefinedError            # Template referenced an unknown name
└── TemplateFailure           # Wrapped failure + chain of enclosing templates

Propagation:
The first ``View.render_file`` boundary a failure crosses wraps it into a
``TemplateFailure`` carrying the template source and an assigns snapshot.
Every further boundary appends its file name to the failure's chain, so the
outermost caller sees one error naming each template from the failure
point outwards, with the original exception kept as ``cause``.

Example:
    ```
    E-RUN-001: ZeroDivisionError in shared/_row.phtml:3: division by zero
       |
      2 | <td><%= item.name %></td>
    > 3 | <td><%= item.total / item.count %></td>
       |
    Template chain:
      • shared/_row.phtml
      • orders/index.phtml
    ```

"""

from __future__ import annotations

import traceback
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ember.environment import terminal


class ErrorCode(Enum):
    """Searchable error codes for Ember errors.

    Format: E-{CATEGORY}-{NUMBER}
    Categories: TPL (template lookup), CMP (compilation), RUN (rendering)
    """

    TEMPLATE_NOT_FOUND = "E-TPL-001"

    COMPILE_ERROR = "E-CMP-001"
    UNBALANCED_BLOCK = "E-CMP-002"

    RENDER_FAILURE = "E-RUN-001"
    RUNTIME_ERROR = "E-RUN-002"
    UNDEFINED_NAME = "E-RUN-003"
    RENDER_DEPTH = "E-RUN-004"

    @property
    def category(self) -> str:
        """Error category (``template``, ``compile`` or ``runtime``)."""
        prefix = self.value.split("-")[1]
        return {"TPL": "template", "CMP": "compile", "RUN": "runtime"}.get(prefix, "unknown")


# ---------------------------------------------------------------------------
# Source snippets
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Template source lines around an error line.

    Attributes:
        lines: Tuple of (line_number, line_content) pairs around the error.
        error_line: The 1-based line number where the error occurred.
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int

    def format(self) -> str:
        parts: list[str] = [terminal.dim_text("   |")]
        for lineno, content in self.lines:
            parts.append(
                terminal.format_source_line(lineno, content, is_error=lineno == self.error_line)
            )
        parts.append(terminal.dim_text("   |"))
        return "\n".join(parts)


def build_source_snippet(source: str, error_line: int, *, context_lines: int = 2) -> SourceSnippet:
    """Build a SourceSnippet of ``context_lines`` either side of ``error_line``."""
    all_lines = source.splitlines()
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line)


def format_template_chain(chain: Sequence[str]) -> str:
    """Format the inclusion chain, innermost template first.

    Example:
        >>> print(format_template_chain(["_row.phtml", "index.phtml"]))
        Template chain:
          • _row.phtml
          • index.phtml
    """
    if not chain:
        return ""
    lines = [terminal.dim_text("Template chain:")]
    lines.extend(f"  • {terminal.location(name)}" for name in chain)
    return "\n".join(lines)


class TemplateError(Exception):
    """Base exception for all Ember template errors.

    Attributes:
        code: Optional ErrorCode for searchable error identification.
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Format error as a short diagnostic without traceback noise."""
        header = str(self)
        if self.code and self.code.value not in header:
            header = terminal.format_error_header(self.code.value, header)
        return header


class TemplateNotFoundError(TemplateError):
    """No registered handler, scripted-markup or builder template exists for a path.

    Example:
            >>> view.render("missing/page")
        TemplateNotFoundError: No phtml, pxml, or delegate template found for missing/page

    """

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND


class CompileError(TemplateError):
    """Embedded code in a template could not be compiled.

    Carries the generated Python source (``ast.unparse`` of what the compiler
    built) so the failure can be diagnosed without re-running the compiler.

    Attributes:
        message: Error description
        generated_source: Python source generated for the template, if any
        cause: Underlying ``SyntaxError`` (or other compiler exception)
        template_name: Template file name or executable name
        lineno: 1-based template line of the offending fragment
    """

    code: ErrorCode | None = ErrorCode.COMPILE_ERROR

    def __init__(
        self,
        message: str,
        *,
        generated_source: str | None = None,
        cause: BaseException | None = None,
        template_name: str | None = None,
        lineno: int | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.generated_source = generated_source
        self.cause = cause
        self.template_name = template_name
        self.lineno = lineno
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        loc = self.template_name or "<template>"
        if self.lineno:
            loc += f":{self.lineno}"
        msg = f"Compile Error: {self.message}\n  --> {terminal.location(loc)}"
        if self.cause is not None and str(self.cause) not in self.message:
            msg += f"\n  Cause: {type(self.cause).__name__}: {self.cause}"
        return msg


class TemplateRuntimeError(TemplateError):
    """Render-time error raised by Ember (depth limit, misuse of the scope).

    Attributes:
        message: Error description
        template_name: Template being rendered, if known
        suggestion: Actionable fix suggestion
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        template_name: str | None = None,
        suggestion: str | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.template_name = template_name
        self.suggestion = suggestion
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]
        if self.template_name:
            parts.append(f"  Location: {terminal.location(self.template_name)}")
        if self.suggestion:
            parts.append(f"  {terminal.hint('Suggestion:')} {self.suggestion}")
        return "\n".join(parts)


class UndefinedError(TemplateError):
    """A template referenced a name that is not a local, assign, helper or builtin.

    If ``available_names`` is provided, a "Did you mean?" suggestion is
    included when a close match is found.

    Example:
            >>> view.render(inline="<%= titel %>", locals={"title": "Hi"})
        UndefinedError: Undefined name 'titel' in <inline>. Did you mean 'title'?

    """

    code: ErrorCode | None = ErrorCode.UNDEFINED_NAME

    def __init__(
        self,
        name: str,
        template: str | None = None,
        available_names: frozenset[str] | None = None,
    ):
        self.name = name
        self.template = template or "<inline>"
        self._available_names = available_names
        super().__init__(self._format_message())

    @property
    def did_you_mean(self) -> str | None:
        if not self._available_names:
            return None
        from difflib import get_close_matches

        matches = get_close_matches(self.name, self._available_names, n=1, cutoff=0.6)
        return matches[0] if matches else None

    def _format_message(self) -> str:
        msg = f"Undefined name '{self.name}' in {terminal.location(self.template)}"
        close = self.did_you_mean
        if close:
            msg += f". Did you mean '{terminal.suggestion(close)}'?"
        return msg


class TemplateFailure(TemplateError):
    """A template failed to compile or render.

    Created once, at the innermost ``render_file`` boundary, and then
    re-chained (never re-wrapped) at every enclosing boundary.

    Attributes:
        cause: The original exception, unmodified
        base_path: Storage root of the rendering view
        file_name: Template in which the failure occurred
        assigns: Snapshot of the view's assigns at the time of failure
        source: Raw template text that failed
        sub_templates: Enclosing templates, innermost first
    """

    code: ErrorCode | None = ErrorCode.RENDER_FAILURE

    def __init__(
        self,
        base_path: str | None,
        file_name: str | None,
        assigns: Mapping[str, Any],
        source: str,
        cause: BaseException,
    ):
        self.base_path = base_path
        self.file_name = file_name
        self.assigns = dict(assigns)
        self.source = source
        self.cause = cause
        self.sub_templates: list[str] = []
        super().__init__(file_name, cause)

    def sub_template_of(self, file_name: str) -> None:
        """Record that the failing template was rendered from ``file_name``."""
        self.sub_templates.append(file_name)

    @property
    def chain(self) -> list[str]:
        """Template names from the failure point to the outermost template."""
        head = [self.file_name] if self.file_name else []
        return head + self.sub_templates

    @property
    def relative_file_name(self) -> str:
        if not self.file_name:
            return "<inline>"
        if self.base_path and self.file_name.startswith(self.base_path):
            return self.file_name[len(self.base_path) :].lstrip("/")
        return self.file_name

    @property
    def line_number(self) -> int | None:
        """Template line of the failure, recovered from the cause."""
        lineno = getattr(self.cause, "lineno", None)
        if isinstance(self.cause, CompileError) and lineno:
            return lineno
        if self.file_name and self.cause.__traceback__ is not None:
            frames = [
                frame
                for frame in traceback.extract_tb(self.cause.__traceback__)
                if frame.filename == self.file_name
            ]
            if frames:
                return frames[-1].lineno
        return None

    def source_extract(self, context_lines: int = 2) -> SourceSnippet | None:
        lineno = self.line_number
        if not lineno or not self.source:
            return None
        return build_source_snippet(self.source, lineno, context_lines=context_lines)

    def _location(self) -> str:
        loc = self.relative_file_name
        if self.line_number:
            loc += f":{self.line_number}"
        return loc

    def __str__(self) -> str:
        cause_line = str(self.cause).splitlines()[0] if str(self.cause) else ""
        msg = f"{type(self.cause).__name__} in {terminal.location(self._location())}"
        if cause_line:
            msg += f": {cause_line}"
        if self.sub_templates:
            msg += "\n" + format_template_chain(self.chain)
        return msg

    def format_compact(self) -> str:
        parts = [
            terminal.format_error_header(
                self.code.value if self.code else None,
                f"{type(self.cause).__name__} in {terminal.location(self._location())}: "
                f"{self.cause}",
            )
        ]
        snippet = self.source_extract()
        if snippet:
            parts.append(snippet.format())
        if self.chain:
            parts.append(format_template_chain(self.chain))
        return "\n".join(parts)
