"""Ember View: the render coordinator.

A View renders templates from one storage root for one host (typically one
request). It owns the variable scope, so assigns persist across every
render made through it while locals are bound per call.

Call Shapes:
    view.render("orders/index", {"page": 2})
    view.render(file="orders/index", use_full_path=True, locals={...})
    view.render(file="/abs/orders/index.phtml", use_full_path=False)
    view.render(inline="Hi <%= name %>", locals={"name": "Ada"})
    view.render(inline="xml.b('x')", type="pxml")
    view.render(partial="row", object=order)
    view.render(partial="row", collection=orders, spacer_template="divider")

Pipeline (``render_file``):
    dispatcher.resolve → sources.load → render_template
        ├─ DELEGATE            handler(view).render(text, locals)
        ├─ SCRIPTED_MARKUP     compile_template → scope.bound(locals) → unit.render
        └─ STRUCTURED_BUILDER  scope.bound(locals) → evaluate_builder

Error Boundary:
Every ``render_file`` call wraps failures in ``TemplateFailure`` the first
time they cross it and appends its own file name on every later crossing,
so the caller of the outermost render sees the whole template chain.

Thread-Safety:
A View and its scope are used by one thread at a time. The caches they
share with other views are thread-safe.

"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ember._types import SCRIPTED_EXTENSION, FlavorKind, TemplateFlavor
from ember.cache import TemplateCache, get_template_cache
from ember.compiler.builder import evaluate_builder
from ember.compiler.core import compile_template
from ember.dispatcher import ExtensionDispatcher
from ember.environment.exceptions import TemplateFailure, TemplateRuntimeError
from ember.environment.registry import HandlerRegistry, template_handlers
from ember.environment.settings import Settings
from ember.environment.settings import settings as default_settings
from ember.environment.storage import TemplateStorage
from ember.helpers import html_escape
from ember.partials import PartialRenderer
from ember.render_context import current_template_name, render_context
from ember.scope import VariableScope

logger = logging.getLogger(__name__)

XML_CONTENT_TYPE = "text/xml"


class View:
    """Render templates against a persistent set of assigns.

    Attributes:
        storage: Backing template storage
        base_path: Storage root (used for executable names and error paths)
        assigns: View-level variables, visible to every template
        host: Optional object with ``logger`` and ``headers`` attributes
        logger: Host logger receiving compile messages, if any
        first_render: First path rendered through this view
        scope: Variable scope shared by every render on this view

    Example:
            >>> storage = DictStorage({"hello.phtml": "Hello <%= name %>!"})
            >>> View(storage).render("hello", {"name": "World"})
            'Hello World!'

    """

    def __init__(
        self,
        storage: TemplateStorage,
        assigns: dict[str, Any] | None = None,
        host: Any = None,
        *,
        cache: TemplateCache | None = None,
        handlers: HandlerRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.storage = storage
        self.base_path = storage.root
        self.assigns: dict[str, Any] = assigns if assigns is not None else {}
        self.host = host
        self.logger: logging.Logger | None = getattr(host, "logger", None)
        self.first_render: str | None = None
        self.cache = cache or get_template_cache()
        self.handlers = handlers if handlers is not None else template_handlers
        self.settings = settings or default_settings
        self.scope = VariableScope(
            self.assigns,
            helpers={
                "render": self.render,
                "h": html_escape,
                "assigns": self.assigns,
                "view": self,
            },
        )
        self.dispatcher = ExtensionDispatcher(
            storage, self.cache.sources, self.handlers, self.settings
        )
        self.partials = PartialRenderer(self)

    # ------------------------------------------------------------------
    # Public rendering API
    # ------------------------------------------------------------------

    def render_file(
        self,
        path: str,
        use_full_path: bool = True,
        locals: Mapping[str, Any] | None = None,
    ) -> str:
        """Render the template at ``path``.

        With ``use_full_path`` the path is logical (``orders/index``) and the
        flavor is resolved by the dispatcher; otherwise ``path`` is a storage
        path whose extension picks the flavor.

        Raises:
            TemplateNotFoundError: If no template exists for ``path``
            TemplateFailure: If the template (or one it renders) fails
        """
        if self.first_render is None:
            self.first_render = path

        if use_full_path:
            extension = self.pick_template_extension(path)
            file_name = self.storage.template_path(path, extension)
        else:
            file_name = path
            extension = path.rsplit(".", 1)[-1]
        flavor = TemplateFlavor.for_extension(extension, self.handlers)

        source = self.cache.sources.load(
            self.storage, file_name, flavor, caching=self.settings.cache_template_loading
        )
        try:
            with render_context(file_name, source, self.settings.max_render_depth):
                return self.render_template(flavor, source, file_name, locals)
        except TemplateFailure as e:
            e.sub_template_of(file_name)
            raise
        except Exception as e:
            logger.debug("Template %s failed: %s: %s", file_name, type(e).__name__, e)
            raise TemplateFailure(
                self.base_path, file_name, self.scope.snapshot_assigns(), source, e
            ) from e

    def render(
        self,
        path: str | None = None,
        locals: Mapping[str, Any] | None = None,
        *,
        file: str | None = None,
        use_full_path: bool = True,
        partial: str | None = None,
        collection: Iterable[Any] | None = None,
        spacer_template: str | None = None,
        object: Any = None,
        inline: str | None = None,
        type: str | None = None,
    ) -> str:
        """Render by call shape; see the module docstring for the shapes.

        Raises:
            TypeError: If no path, ``file``, ``partial`` or ``inline`` is given
        """
        if path is not None:
            return self.render_file(path, True, locals)
        locals = locals or {}
        if file is not None:
            return self.render_file(file, use_full_path, locals)
        if partial is not None and collection is not None:
            return self.render_partial_collection(partial, collection, spacer_template, locals)
        if partial is not None:
            return self.render_partial(partial, object, locals)
        if inline is not None:
            return self.render_template(type or SCRIPTED_EXTENSION, inline, None, locals)
        raise TypeError("render() needs a path, or one of file=, partial= or inline=")

    def render_template(
        self,
        flavor: TemplateFlavor | str,
        text: str,
        file_name: str | None = None,
        locals: Mapping[str, Any] | None = None,
    ) -> str:
        """Render template ``text`` with the given flavor (or extension)."""
        if isinstance(flavor, str):
            flavor = TemplateFlavor.for_extension(flavor.lstrip("."), self.handlers)

        if flavor.kind is FlavorKind.DELEGATE:
            return self._delegate_render(flavor, text, locals)
        if flavor.kind is FlavorKind.STRUCTURED_BUILDER:
            return self._builder_render(text, file_name, locals)
        return self._scripted_render(text, file_name, locals)

    def render_partial(
        self,
        partial_path: str,
        object: Any = None,
        local_assigns: Mapping[str, Any] | None = None,
    ) -> str:
        return self.partials.render_partial(partial_path, object, local_assigns)

    def render_partial_collection(
        self,
        partial_name: str,
        collection: Iterable[Any],
        spacer_template: str | None = None,
        local_assigns: Mapping[str, Any] | None = None,
    ) -> str:
        return self.partials.render_partial_collection(
            partial_name, collection, spacer_template, local_assigns
        )

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def pick_template_extension(self, path: str) -> str:
        """Return the extension of the flavor that renders ``path``.

        Raises:
            TemplateNotFoundError: If nothing matches
        """
        return self.dispatcher.resolve(path).extension

    def file_exists(self, path: str) -> bool:
        return self.dispatcher.file_exists(path)

    def file_public(self, path: str) -> bool:
        return self.dispatcher.is_public(path)

    # ------------------------------------------------------------------
    # Flavor renderers
    # ------------------------------------------------------------------

    def _scripted_render(
        self, text: str, file_name: str | None, locals: Mapping[str, Any] | None
    ) -> str:
        unit = compile_template(
            text,
            file_name,
            base_path=self.base_path,
            trim_mode=self.settings.trim_mode,
            cache=self.cache,
            log=self.logger,
        )
        self.scope.apply_assigns()
        with self.scope.bound(locals):
            return unit.render(self.scope)

    def _builder_render(
        self, text: str, file_name: str | None, locals: Mapping[str, Any] | None
    ) -> str:
        headers = getattr(self.host, "headers", None)
        if headers is not None and not headers.get("Content-Type"):
            headers["Content-Type"] = XML_CONTENT_TYPE
        self.scope.apply_assigns()
        with self.scope.bound(locals):
            return evaluate_builder(text, self.scope, file_name)

    def _delegate_render(
        self, flavor: TemplateFlavor, text: str, locals: Mapping[str, Any] | None
    ) -> str:
        if flavor.handler is None:
            raise TemplateRuntimeError(
                f"No handler registered for .{flavor.extension} templates",
                template_name=current_template_name(),
                suggestion=f"register_template_handler('{flavor.extension}', factory)",
            )
        handler = flavor.handler(self)
        return handler.render(text, dict(locals or {}))

    def __repr__(self) -> str:
        return f"<View root={self.base_path!r} first_render={self.first_render!r}>"
