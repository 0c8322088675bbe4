"""Free-name rewriting for compiled templates.

Template code reads its variables from the rendering scope rather than from
Python globals. Every name the template never binds itself is rewritten
from ``name`` to ``_lookup("name")``; names it binds (assignment targets,
loop variables, ``except ... as`` names, imports, ``def`` names) stay plain
Python locals.

    <% for item in items: %><%= item.title %><% end %>

compiles to

    for item in _lookup("items"):
        _append(_to_s(item.title))

Binding follows Python scoping. A name bound anywhere in the render
function's own body is local everywhere in the template, whichever block
binds it. Functions, lambdas, classes and comprehensions open their own
scopes: their parameters and targets are local inside them only, and a
name they read resolves against their own bindings, then the enclosing
function scopes, then the rendering scope.

    <% def row(order): %><%= order.id %><% end %><%= order %>

Here the first ``order`` is the parameter; the second is ``_lookup("order")``.

"""

from __future__ import annotations

import ast
from collections.abc import Iterable, Iterator
from contextlib import contextmanager


def _arguments(args: ast.arguments) -> list[ast.arg]:
    every = [*args.posonlyargs, *args.args, *args.kwonlyargs]
    if args.vararg:
        every.append(args.vararg)
    if args.kwarg:
        every.append(args.kwarg)
    return every


class _ScopeBindings(ast.NodeVisitor):
    """Collect the names bound in one scope without entering nested scopes.

    Parts of a nested scope that Python evaluates in the enclosing scope
    (decorators, defaults, class bases, a comprehension's first iterable)
    are still visited. ``:=`` inside a comprehension binds in the
    enclosing scope, so its target is collected too.
    """

    def __init__(self) -> None:
        self.names: set[str] = set()

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, (ast.Store, ast.Del)):
            self.names.add(node.id)

    def visit_FunctionDef(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        self.names.add(node.name)
        for expr in node.decorator_list:
            self.visit(expr)
        self._visit_defaults(node.args)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self.names.add(node.name)
        for expr in [*node.decorator_list, *node.bases]:
            self.visit(expr)
        for keyword in node.keywords:
            self.visit(keyword.value)

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._visit_defaults(node.args)

    def _visit_comprehension(self, node: ast.expr) -> None:
        self.visit(node.generators[0].iter)
        for child in ast.walk(node):
            if isinstance(child, ast.NamedExpr) and isinstance(child.target, ast.Name):
                self.names.add(child.target.id)

    visit_ListComp = visit_SetComp = visit_DictComp = visit_GeneratorExp = _visit_comprehension

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.name:
            self.names.add(node.name)
        self.generic_visit(node)

    def visit_alias(self, node: ast.alias) -> None:
        self.names.add((node.asname or node.name).split(".")[0])

    def visit_Global(self, node: ast.Global | ast.Nonlocal) -> None:
        self.names.update(node.names)

    visit_Nonlocal = visit_Global

    def visit_MatchAs(self, node: ast.MatchAs | ast.MatchStar) -> None:
        if node.name:
            self.names.add(node.name)
        self.generic_visit(node)

    visit_MatchStar = visit_MatchAs

    def visit_MatchMapping(self, node: ast.MatchMapping) -> None:
        if node.rest:
            self.names.add(node.rest)
        self.generic_visit(node)

    def _visit_defaults(self, args: ast.arguments) -> None:
        for expr in [*args.defaults, *args.kw_defaults]:
            if expr is not None:
                self.visit(expr)


def bound_names(nodes: Iterable[ast.AST]) -> set[str]:
    """Collect the names ``nodes`` bind in their own scope.

    Example:
        >>> sorted(bound_names(ast.parse("x = [t for t in ts]\\ndef f(a): b = a").body))
        ['f', 'x']
    """
    collector = _ScopeBindings()
    for node in nodes:
        collector.visit(node)
    return collector.names


class ScopeLookupRewriter(ast.NodeTransformer):
    """Replace loads of unbound names with ``_lookup("name")`` calls.

    Attributes:
        _scopes: Stack of ``(bound names, is class body)``, outermost first
        free_names: Names that were rewritten, in first-seen order
    """

    def __init__(self, local: Iterable[str], lookup: str = "_lookup"):
        self._scopes: list[tuple[frozenset[str], bool]] = [(frozenset(local), False)]
        self._lookup = lookup
        self.free_names: list[str] = []

    @contextmanager
    def _scope(self, names: Iterable[str], is_class: bool = False) -> Iterator[None]:
        self._scopes.append((frozenset(names), is_class))
        try:
            yield
        finally:
            self._scopes.pop()

    def _is_bound(self, name: str) -> bool:
        current, _ = self._scopes[-1]
        if name in current:
            return True
        # Class bodies are not visible from the scopes nested inside them.
        return any(name in names for names, is_class in self._scopes[:-1] if not is_class)

    def _visit_all(self, nodes: list) -> list:
        return [self.visit(node) for node in nodes]

    def _visit_signature(self, args: ast.arguments) -> None:
        args.defaults = self._visit_all(args.defaults)
        args.kw_defaults = [None if d is None else self.visit(d) for d in args.kw_defaults]
        for arg in _arguments(args):
            if arg.annotation is not None:
                arg.annotation = self.visit(arg.annotation)

    def visit_Name(self, node: ast.Name) -> ast.expr:
        if not isinstance(node.ctx, ast.Load) or self._is_bound(node.id):
            return node
        if node.id not in self.free_names:
            self.free_names.append(node.id)
        call = ast.Call(
            func=ast.Name(id=self._lookup, ctx=ast.Load()),
            args=[ast.Constant(value=node.id)],
            keywords=[],
        )
        return ast.copy_location(call, node)

    def visit_FunctionDef(
        self, node: ast.FunctionDef | ast.AsyncFunctionDef
    ) -> ast.FunctionDef | ast.AsyncFunctionDef:
        node.decorator_list = self._visit_all(node.decorator_list)
        self._visit_signature(node.args)
        if node.returns is not None:
            node.returns = self.visit(node.returns)
        params = {arg.arg for arg in _arguments(node.args)}
        with self._scope(params | bound_names(node.body)):
            node.body = self._visit_all(node.body)
        return node

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Lambda(self, node: ast.Lambda) -> ast.Lambda:
        self._visit_signature(node.args)
        params = {arg.arg for arg in _arguments(node.args)}
        with self._scope(params | bound_names([node.body])):
            node.body = self.visit(node.body)
        return node

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.ClassDef:
        node.decorator_list = self._visit_all(node.decorator_list)
        node.bases = self._visit_all(node.bases)
        node.keywords = self._visit_all(node.keywords)
        with self._scope(bound_names(node.body), is_class=True):
            node.body = self._visit_all(node.body)
        return node

    def _visit_comprehension(self, node: ast.expr) -> ast.expr:
        first, *rest = node.generators
        first.iter = self.visit(first.iter)
        targets = {
            name.id
            for generator in node.generators
            for name in ast.walk(generator.target)
            if isinstance(name, ast.Name)
        }
        with self._scope(targets):
            first.target = self.visit(first.target)
            first.ifs = self._visit_all(first.ifs)
            for generator in rest:
                generator.iter = self.visit(generator.iter)
                generator.target = self.visit(generator.target)
                generator.ifs = self._visit_all(generator.ifs)
            if isinstance(node, ast.DictComp):
                node.key = self.visit(node.key)
                node.value = self.visit(node.value)
            else:
                node.elt = self.visit(node.elt)
        return node

    visit_ListComp = visit_SetComp = visit_DictComp = visit_GeneratorExp = _visit_comprehension


def rewrite_free_names(
    body: list[ast.stmt],
    internal: Iterable[str],
) -> list[str]:
    """Rewrite free names in ``body`` in place and return them."""
    rewriter = ScopeLookupRewriter(bound_names(body) | set(internal))
    body[:] = [rewriter.visit(stmt) for stmt in body]
    return rewriter.free_names
