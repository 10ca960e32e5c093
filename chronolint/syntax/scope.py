"""Lexical scope and alias resolution over the typed node model."""

from __future__ import annotations

from dataclasses import dataclass, field

from chronolint.syntax.nodes import (
    AssignmentExpression,
    BlockStatement,
    ClassNode,
    Function,
    GenericNode,
    Identifier,
    ImportDeclaration,
    MemberExpression,
    Node,
    Parameter,
    Program,
    Property,
    UpdateExpression,
    VariableDeclaration,
    VariableDeclarator,
    unwrap,
)

_BLOCK_KINDS = {"for_statement", "for_in_statement", "catch_clause", "switch_body"}
_PATTERN_KINDS = {"object_pattern", "array_pattern", "rest_pattern"}
_DEFAULT_PATTERN_KINDS = {"assignment_pattern", "object_assignment_pattern"}
_LEXICAL_KINDS = {"let", "const", "using"}


@dataclass(eq=False)
class Reference:
    identifier: Identifier
    binding: Binding | None
    is_read: bool = True
    is_write: bool = False

    @property
    def start(self) -> int:
        return self.identifier.start


@dataclass(eq=False)
class Binding:
    name: str
    kind: str
    identifier: Identifier
    scope: Scope
    declarator: VariableDeclarator | None = None
    declaration: Node | None = None
    annotation: str | None = None
    import_source: str | None = None
    imported_name: str | None = None
    references: list[Reference] = field(default_factory=list)

    @property
    def init(self) -> Node | None:
        if self.declarator is None or self.declarator.id is not self.identifier:
            return None
        return self.declarator.init


@dataclass(eq=False)
class Scope:
    node: Node
    kind: str
    parent: Scope | None = None
    bindings: dict[str, Binding] = field(default_factory=dict)

    def function_scope(self) -> Scope:
        current: Scope = self
        while current.kind not in {"function", "module"} and current.parent is not None:
            current = current.parent
        return current

    def lookup(self, name: str) -> Binding | None:
        current: Scope | None = self
        while current is not None:
            binding = current.bindings.get(name)
            if binding is not None:
                return binding
            current = current.parent
        return None


class ScopeManager:
    """Resolve identifiers to bindings for one program."""

    def __init__(self, program: Program) -> None:
        self.program = program
        self.module_scope = Scope(node=program, kind="module")
        self._scopes: dict[Node, Scope] = {program: self.module_scope}
        self._references: dict[Identifier, Reference] = {}
        self._declared: dict[Identifier, Binding] = {}
        self._pending: list[tuple[Identifier, Scope, bool, bool]] = []
        self._bindings: list[Binding] = []
        for statement in program.body:
            self._visit(statement, self.module_scope)
        for identifier, scope, is_read, is_write in self._pending:
            binding = scope.lookup(identifier.name)
            reference = Reference(identifier, binding, is_read=is_read, is_write=is_write)
            self._references[identifier] = reference
            if binding is not None:
                binding.references.append(reference)
        for binding in self._bindings:
            binding.references.sort(key=lambda ref: ref.start)

    # -- queries -----------------------------------------------------------

    def resolve(self, identifier: Identifier) -> Binding | None:
        """Return the binding an identifier refers to or declares."""
        declared = self._declared.get(identifier)
        if declared is not None:
            return declared
        reference = self._references.get(identifier)
        return reference.binding if reference is not None else None

    def reference(self, identifier: Identifier) -> Reference | None:
        return self._references.get(identifier)

    def references(self, binding: Binding) -> list[Reference]:
        return list(binding.references)

    def scope_of(self, node: Node) -> Scope:
        current: Node | None = node
        while current is not None:
            scope = self._scopes.get(current)
            if scope is not None:
                return scope
            current = current.parent
        return self.module_scope

    def lookup(self, name: str, at: Node) -> Binding | None:
        return self.scope_of(at).lookup(name)

    def is_shadowed(self, name: str, at: Node) -> bool:
        """True when a local binding hides the global ``name`` at ``at``."""
        return self.lookup(name, at) is not None

    def aliases(self, binding: Binding) -> list[Binding]:
        """Bindings initialized directly from ``binding``."""
        out: list[Binding] = []
        for candidate in self._bindings:
            if candidate is binding:
                continue
            init = unwrap(candidate.init)
            if isinstance(init, Identifier) and self.resolve(init) is binding:
                out.append(candidate)
        return out

    def bindings(self) -> list[Binding]:
        return list(self._bindings)

    def declared_names(self) -> set[str]:
        return {binding.name for binding in self._bindings}

    def referenced_names(self) -> set[str]:
        return {identifier.name for identifier in self._references}

    # -- construction --------------------------------------------------------

    def _new_scope(self, node: Node, kind: str, parent: Scope) -> Scope:
        scope = Scope(node=node, kind=kind, parent=parent)
        self._scopes[node] = scope
        return scope

    def _declare(self, scope: Scope, identifier: Identifier, kind: str, **extra) -> Binding:
        binding = Binding(name=identifier.name, kind=kind, identifier=identifier, scope=scope, **extra)
        existing = scope.bindings.get(identifier.name)
        if existing is None or existing.kind not in {"var", "function"}:
            scope.bindings[identifier.name] = binding
        else:
            binding = existing
        self._declared[identifier] = binding
        if binding not in self._bindings:
            self._bindings.append(binding)
        return binding

    def _use(self, identifier: Identifier, scope: Scope, is_read: bool = True, is_write: bool = False) -> None:
        self._pending.append((identifier, scope, is_read, is_write))

    def _visit(self, node: Node | None, scope: Scope) -> None:
        if node is None:
            return
        if isinstance(node, Identifier):
            self._use(node, scope)
        elif isinstance(node, Function):
            self._visit_function(node, scope)
        elif isinstance(node, ClassNode):
            self._visit_class(node, scope)
        elif isinstance(node, VariableDeclaration):
            self._visit_declaration(node, scope)
        elif isinstance(node, ImportDeclaration):
            self._visit_import(node)
        elif isinstance(node, MemberExpression):
            self._visit(node.object, scope)
            if node.computed:
                self._visit(node.prop, scope)
        elif isinstance(node, Property):
            if node.computed or node.key is None or not isinstance(node.key, Identifier):
                if not node.shorthand:
                    self._visit(node.key, scope)
            self._visit(node.value, scope)
        elif isinstance(node, AssignmentExpression):
            self._visit_target(node.left, scope, is_read=node.operator != "=")
            self._visit(node.right, scope)
        elif isinstance(node, UpdateExpression):
            self._visit_target(node.argument, scope, is_read=True)
        elif isinstance(node, BlockStatement):
            inner = self._new_scope(node, "block", scope)
            for child in node.body:
                self._visit(child, inner)
        elif isinstance(node, GenericNode):
            self._visit_generic(node, scope)
        else:
            for child in node.children():
                self._visit(child, scope)

    def _visit_generic(self, node: GenericNode, scope: Scope) -> None:
        if node.kind in {"break_statement", "continue_statement"}:
            return
        if node.kind == "labeled_statement":
            for child in node.items[1:]:
                self._visit(child, scope)
            return
        if node.kind in _BLOCK_KINDS:
            inner = self._new_scope(node, "block", scope)
            items = list(node.items)
            if node.kind == "catch_clause" and items and not isinstance(items[0], BlockStatement):
                param = items.pop(0)
                for identifier in pattern_identifiers(param):
                    self._declare(inner, identifier, "catch")
                self._visit_pattern_defaults(param, inner)
            for child in items:
                self._visit(child, inner)
            return
        if node.kind in _PATTERN_KINDS | _DEFAULT_PATTERN_KINDS:
            self._visit_target(node, scope, is_read=False)
            return
        for child in node.items:
            self._visit(child, scope)

    def _visit_target(self, target: Node | None, scope: Scope, is_read: bool) -> None:
        target = unwrap(target)
        if isinstance(target, Identifier):
            self._use(target, scope, is_read=is_read, is_write=True)
        elif isinstance(target, GenericNode) and target.kind in _PATTERN_KINDS | _DEFAULT_PATTERN_KINDS:
            for identifier in pattern_identifiers(target):
                self._use(identifier, scope, is_read=False, is_write=True)
            self._visit_pattern_defaults(target, scope)
        else:
            self._visit(target, scope)

    def _visit_pattern_defaults(self, pattern: Node | None, scope: Scope) -> None:
        if isinstance(pattern, Parameter):
            self._visit_pattern_defaults(pattern.pattern, scope)
            self._visit(pattern.default, scope)
        elif isinstance(pattern, Property):
            if pattern.computed:
                self._visit(pattern.key, scope)
            if not pattern.shorthand:
                self._visit_pattern_defaults(pattern.value, scope)
        elif isinstance(pattern, GenericNode):
            if pattern.kind in _DEFAULT_PATTERN_KINDS and pattern.items:
                self._visit_pattern_defaults(pattern.items[0], scope)
                for child in pattern.items[1:]:
                    self._visit(child, scope)
            elif pattern.kind in _PATTERN_KINDS:
                for child in pattern.items:
                    self._visit_pattern_defaults(child, scope)
        elif isinstance(pattern, MemberExpression):
            self._visit(pattern, scope)

    def _visit_declaration(self, node: VariableDeclaration, scope: Scope) -> None:
        target = scope if node.kind in _LEXICAL_KINDS else scope.function_scope()
        for declarator in node.declarations:
            for identifier in pattern_identifiers(declarator.id):
                self._declare(
                    target,
                    identifier,
                    node.kind,
                    declarator=declarator,
                    declaration=node,
                    annotation=declarator.annotation if declarator.id is identifier else None,
                )
            self._visit_pattern_defaults(declarator.id, scope)
            self._visit(declarator.init, scope)

    def _visit_import(self, node: ImportDeclaration) -> None:
        if node.default is not None:
            self._declare(
                self.module_scope,
                node.default,
                "import",
                declaration=node,
                import_source=node.source,
                imported_name="default",
            )
        if node.namespace is not None:
            self._declare(
                self.module_scope,
                node.namespace,
                "import",
                declaration=node,
                import_source=node.source,
                imported_name="*",
            )
        for spec in node.specifiers:
            if spec.local is None:
                continue
            self._declare(
                self.module_scope,
                spec.local,
                "import",
                declaration=node,
                import_source=node.source,
                imported_name=spec.imported,
            )

    def _visit_function(self, node: Function, scope: Scope) -> None:
        if node.is_declaration and node.name is not None:
            self._declare(scope, node.name, "function", declaration=node)
        inner = self._new_scope(node, "function", scope)
        if not node.is_declaration and node.name is not None:
            self._declare(inner, node.name, "function", declaration=node)
        for param in node.params:
            for identifier in pattern_identifiers(param):
                self._declare(inner, identifier, "param", declaration=node, annotation=param.annotation)
            self._visit_pattern_defaults(param, inner)
        body = node.body
        if isinstance(body, BlockStatement):
            for child in body.body:
                self._visit(child, inner)
        else:
            self._visit(body, inner)

    def _visit_class(self, node: ClassNode, scope: Scope) -> None:
        if node.is_declaration and node.name is not None:
            self._declare(scope, node.name, "class", declaration=node)
        inner = self._new_scope(node, "class", scope)
        if not node.is_declaration and node.name is not None:
            self._declare(inner, node.name, "class", declaration=node)
        self._visit(node.heritage, scope)
        for member in node.members:
            self._visit(member, inner)


def pattern_identifiers(pattern: Node | None) -> list[Identifier]:
    """Identifiers bound by a declaration or parameter pattern."""
    if pattern is None:
        return []
    if isinstance(pattern, Identifier):
        return [pattern]
    if isinstance(pattern, Parameter):
        return pattern_identifiers(pattern.pattern)
    if isinstance(pattern, Property):
        return pattern_identifiers(pattern.value)
    if isinstance(pattern, GenericNode):
        if pattern.kind in _DEFAULT_PATTERN_KINDS:
            return pattern_identifiers(pattern.items[0]) if pattern.items else []
        if pattern.kind in _PATTERN_KINDS:
            out: list[Identifier] = []
            for item in pattern.items:
                out.extend(pattern_identifiers(item))
            return out
    return []
