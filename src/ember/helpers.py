"""Runtime helpers injected into the namespace of every compiled unit.

Compiled render functions reach template variables through ``_lookup`` on
the scope; the only module-level names they need are the ones listed in
``STATIC_NAMESPACE``.

Thread-Safety:
All functions are stateless and safe for concurrent use.

"""

from __future__ import annotations

import builtins
import html
from typing import Any


def to_s(value: Any) -> str:
    """Convert an output-tag value to text (``None`` renders as empty)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def html_escape(value: Any) -> str:
    """Escape ``&``, ``<``, ``>``, ``"`` and ``'`` for HTML output.

    Example:
        >>> html_escape('<a href="x">')
        '&lt;a href=&quot;x&quot;&gt;'
    """
    return html.escape(to_s(value), quote=True)


# Read-only after module load; copied once per CompiledUnit.
STATIC_NAMESPACE: dict[str, Any] = {
    "__builtins__": vars(builtins),
    "_to_s": to_s,
}
