"""Per-unit exception-flow visitor.

Walks one tree-sitter PHP tree and, for each function or method, reconciles
the exceptions declared in its documentation block with the ones that can
escape its body. As a by-product it builds the unit's own method-throws table
and records which traits each class-like type uses.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple

import structlog

from phpthrows.analysis import builtins
from phpthrows.analysis.matching import exceptions_match
from phpthrows.analysis.models import Diagnostic, DiagnosticType
from phpthrows.analysis.signatures import (
    MethodThrowsTable,
    ThrowsLookup,
    UnitSignatures,
    signature_key,
)
from phpthrows.parsing.docblock import DocBlockError, find_doc_comment, parse_throws_tags
from phpthrows.parsing.php import ParsedUnit, node_text

log = structlog.get_logger(__name__)

_CLASS_LIKE = frozenset(
    {"class_declaration", "trait_declaration", "interface_declaration", "enum_declaration"}
)
_CLASS_BODIES = frozenset({"declaration_list", "enum_declaration_list"})
_FUNCTIONS = frozenset({"method_declaration", "function_definition"})
_THROWS = frozenset({"throw_expression", "throw_statement"})
_MEMBER_CALLS = frozenset({"member_call_expression", "nullsafe_member_call_expression"})
_MEMBER_ACCESS = frozenset({"member_access_expression", "nullsafe_member_access_expression"})
_NAMES = frozenset({"name", "qualified_name"})
_USE_CLAUSES = frozenset({"namespace_use_clause", "namespace_use_group_clause"})


class _TypeRef(NamedTuple):
    """An exception type as written in source and as resolved in its scope."""

    written: str
    resolved: str


@dataclass
class _ClassFrame:
    # None for anonymous classes
    name: str | None
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class _FunctionFrame:
    name: str
    declared: list[_TypeRef]
    reconcile: bool
    thrown: list[_TypeRef] = field(default_factory=list)
    # catch types of each enclosing try body, innermost last
    try_stack: list[list[_TypeRef]] = field(default_factory=list)


class ThrowsVisitor:
    """Exception-flow visitor for a single source unit.

    Args:
        path: Path reported in diagnostics and logs.
        global_method_throws: Project-wide method-throws table consulted after
            this unit's own table.
        check_builtins: Whether calls to registered runtime functions count
            as throwing.
    """

    def __init__(
        self,
        path: str,
        global_method_throws: Mapping[str, list[str]] | None = None,
        *,
        check_builtins: bool = True,
    ) -> None:
        self.path = path
        self.check_builtins = check_builtins
        self.diagnostics: list[Diagnostic] = []

        self._method_throws: MethodThrowsTable = {}
        self._trait_uses: dict[str, list[str]] = {}
        self._lookup = ThrowsLookup([self._method_throws, global_method_throws or {}])

        self._namespace: str | None = None
        self._imports: dict[str, str] = {}
        self._classes: list[_ClassFrame] = []
        self._functions: list[_FunctionFrame] = []

    @property
    def signatures(self) -> UnitSignatures:
        return UnitSignatures(
            method_throws=dict(self._method_throws),
            trait_uses={k: list(v) for k, v in self._trait_uses.items()},
        )

    def visit(self, unit: ParsedUnit) -> list[Diagnostic]:
        """Walk the unit and return its diagnostics."""
        self.walk(unit.root_node)
        return self.diagnostics

    def walk(self, root: Any) -> None:
        stack: list[tuple[Any, bool]] = [(root, False)]
        while stack:
            node, leaving = stack.pop()
            if leaving:
                self._leave(node)
                continue
            self._enter(node)
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.named_children))

    # -- dispatch ---------------------------------------------------------

    def _enter(self, node: Any) -> None:
        kind = node.type
        if kind == "namespace_definition":
            self._enter_namespace(node)
        elif kind == "namespace_use_declaration":
            self._record_imports(node)
        elif kind in _CLASS_BODIES:
            self._enter_class_body(node)
        elif kind == "use_declaration":
            self._record_trait_use(node)
        elif kind in _FUNCTIONS:
            self._enter_function(node)
        elif kind in _THROWS:
            self._analyze_throw(node)
        elif kind in _MEMBER_CALLS:
            self._analyze_member_call(node)
        elif kind == "scoped_call_expression":
            self._analyze_static_call(node)
        elif kind == "function_call_expression":
            self._analyze_function_call(node)
        elif kind == "compound_statement" and self._is_try_body(node):
            if self._functions:
                self._functions[-1].try_stack.append(
                    [self._type_ref(name) for name in _catch_types(node.parent)]
                )

    def _leave(self, node: Any) -> None:
        kind = node.type
        if kind == "namespace_definition":
            if node.child_by_field_name("body") is not None:
                self._namespace = None
                self._imports = {}
        elif kind in _CLASS_BODIES:
            self._classes.pop()
        elif kind in _FUNCTIONS:
            self._leave_function(node)
        elif kind == "compound_statement" and self._is_try_body(node):
            if self._functions and self._functions[-1].try_stack:
                self._functions[-1].try_stack.pop()

    # -- scope bookkeeping ------------------------------------------------

    def _enter_namespace(self, node: Any) -> None:
        name_node = node.child_by_field_name("name")
        self._namespace = node_text(name_node).strip("\\") or None
        self._imports = {}

    def _record_imports(self, node: Any) -> None:
        if _imports_non_class(node):
            return

        prefix = ""
        for child in node.named_children:
            if child.type == "namespace_name":
                prefix = node_text(child).strip("\\")

        clauses: list[Any] = []
        for child in node.named_children:
            if child.type in _USE_CLAUSES:
                clauses.append(child)
            elif child.type == "namespace_use_group":
                clauses.extend(c for c in child.named_children if c.type in _USE_CLAUSES)

        for clause in clauses:
            if _imports_non_class(clause):
                continue
            target = next(
                (c for c in clause.named_children if c.type in _NAMES or c.type == "namespace_name"),
                None,
            )
            if target is None:
                continue
            full_name = node_text(target).strip("\\")
            if prefix:
                full_name = f"{prefix}\\{full_name}"
            alias = _alias_of(clause, target) or full_name.rsplit("\\", 1)[-1]
            self._imports[alias] = full_name

    def _enter_class_body(self, node: Any) -> None:
        owner = node.parent
        name: str | None = None
        if owner is not None and owner.type in _CLASS_LIKE:
            name_node = owner.child_by_field_name("name")
            if name_node is not None:
                name = self._qualify(node_text(name_node))
        frame = _ClassFrame(name=name)
        frame.properties = self._promoted_properties(node)
        self._classes.append(frame)

    def _record_trait_use(self, node: Any) -> None:
        if not self._classes or self._classes[-1].name is None:
            return
        consumer = self._classes[-1].name
        used = self._trait_uses.setdefault(consumer, [])
        for child in node.named_children:
            if child.type in _NAMES:
                trait = self.resolve_class_name(node_text(child))
                if trait not in used:
                    used.append(trait)

    def _promoted_properties(self, body: Any) -> dict[str, str]:
        """Map promoted constructor properties to their resolved class types."""
        properties: dict[str, str] = {}
        for member in body.named_children:
            if member.type != "method_declaration":
                continue
            if node_text(member.child_by_field_name("name")).lower() != "__construct":
                continue
            params = member.child_by_field_name("parameters")
            if params is None:
                continue
            for param in params.named_children:
                if param.type != "property_promotion_parameter":
                    continue
                type_name = _class_type_name(param.child_by_field_name("type"))
                var_node = param.child_by_field_name("name")
                if type_name is None or var_node is None:
                    continue
                prop = node_text(var_node).lstrip("$")
                properties[prop] = self.resolve_class_name(type_name)
        return properties

    def _enter_function(self, node: Any) -> None:
        name = node_text(node.child_by_field_name("name"))
        declared = self._declared_throws(node, name)
        has_body = node.child_by_field_name("body") is not None
        self._functions.append(
            _FunctionFrame(
                name=name,
                declared=[self._type_ref(d) for d in declared],
                reconcile=has_body,
            )
        )

        if node.type == "method_declaration" and self._classes:
            owner = self._classes[-1].name
            if owner is not None:
                self._method_throws[signature_key(owner, name)] = list(declared)

    def _leave_function(self, node: Any) -> None:
        frame = self._functions.pop()
        if not frame.reconcile:
            return
        for declared in frame.declared:
            if _matches_any(declared, frame.thrown):
                continue
            self.diagnostics.append(
                Diagnostic(
                    line=node.start_point[0] + 1,
                    type=DiagnosticType.UNNECESSARY_THROWS,
                    exception=declared.written,
                    function=frame.name,
                    message=(
                        f"Exception '{declared.written}' is documented in @throws but never thrown"
                    ),
                )
            )

    def _declared_throws(self, node: Any, function_name: str) -> list[str]:
        doc = find_doc_comment(node)
        if doc is None:
            return []
        try:
            return parse_throws_tags(doc)
        except DocBlockError as e:
            log.debug(
                "docblock_malformed",
                path=self.path,
                function=function_name,
                line=node.start_point[0] + 1,
                reason=str(e),
            )
            return []

    # -- name resolution --------------------------------------------------

    def _qualify(self, name: str) -> str:
        return f"{self._namespace}\\{name}" if self._namespace else name

    def _type_ref(self, written: str) -> _TypeRef:
        if written.startswith("\\"):
            written = "\\" + written.lstrip("\\")
        return _TypeRef(written, self.resolve_class_name(written))

    def resolve_class_name(self, name: str) -> str:
        """Resolve a class reference against the current namespace and imports."""
        if name.startswith("\\"):
            return name.lstrip("\\")
        first, sep, rest = name.partition("\\")
        if first in self._imports:
            return self._imports[first] + (f"\\{rest}" if sep else "")
        if first.lower() == "namespace" and sep:
            return self._qualify(rest)
        return self._qualify(name)

    # -- checks -----------------------------------------------------------

    def _analyze_throw(self, node: Any) -> None:
        if not self._functions:
            return
        expr = node.named_children[0] if node.named_children else None
        if expr is None or expr.type != "object_creation_expression":
            return
        class_node = next((c for c in expr.named_children if c.type in _NAMES), None)
        if class_node is None:
            return

        exception = self._type_ref(node_text(class_node))
        frame = self._functions[-1]
        if _is_caught(frame, exception):
            return

        frame.thrown.append(exception)
        if _matches_any(exception, frame.declared):
            return
        self.diagnostics.append(
            Diagnostic(
                line=node.start_point[0] + 1,
                type=DiagnosticType.UNDECLARED_THROW,
                exception=exception.written,
                function=frame.name,
                message=(
                    f"Exception '{exception.written}' is thrown but not declared in @throws tag"
                ),
            )
        )

    def _analyze_member_call(self, node: Any) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.type != "name":
            return
        method = node_text(name_node)

        target = node.child_by_field_name("object")
        called_class: str | None = None
        if _is_this(target):
            called_class = self._current_class()
        elif target is not None and target.type in _MEMBER_ACCESS:
            called_class = self._property_type(target)

        if called_class is None:
            return
        self._check_call(node, called_class, method, f"{method}()")

    def _analyze_static_call(self, node: Any) -> None:
        name_node = node.child_by_field_name("name")
        scope = node.child_by_field_name("scope")
        if name_node is None or name_node.type != "name" or scope is None:
            return
        method = node_text(name_node)

        scope_text = node_text(scope)
        if scope_text.lower() in ("self", "static"):
            called_class = self._current_class()
        elif scope_text.lower() == "parent":
            return
        elif scope.type in _NAMES:
            called_class = self.resolve_class_name(scope_text)
        else:
            return

        if called_class is None:
            return
        self._check_call(node, called_class, method, f"{called_class}::{method}()")

    def _analyze_function_call(self, node: Any) -> None:
        if not self.check_builtins or not self._functions:
            return
        function_node = node.child_by_field_name("function")
        if function_node is None or function_node.type not in _NAMES:
            return
        written = node_text(function_node).lstrip("\\")
        if "\\" in written or not builtins.can_throw(written):
            return

        arguments_node = node.child_by_field_name("arguments")
        arguments = []
        if arguments_node is not None:
            # first-class callable syntax `json_encode(...)` is not a call
            if any(c.type == "variadic_placeholder" for c in arguments_node.named_children):
                return
            arguments = [c for c in arguments_node.named_children if c.type != "comment"]
        if not builtins.call_verdict(written, arguments).may_throw:
            return

        frame = self._functions[-1]
        for exception in builtins.get_throws(written) or ():
            ref = _TypeRef(exception, exception)
            if _is_caught(frame, ref):
                continue
            frame.thrown.append(ref)
            if _matches_any(ref, frame.declared):
                continue
            self.diagnostics.append(
                Diagnostic(
                    line=node.start_point[0] + 1,
                    type=DiagnosticType.UNDECLARED_THROW_FROM_CALL,
                    exception=exception,
                    function=frame.name,
                    called_method=written,
                    message=(
                        f"Exception '{exception}' can be thrown by '{written}()'"
                        " but is not declared in @throws tag"
                    ),
                )
            )

    def _check_call(self, node: Any, called_class: str, method: str, display: str) -> None:
        if not self._functions:
            return
        throws = self._lookup.find(signature_key(called_class, method))
        if not throws:
            return

        frame = self._functions[-1]
        for exception in throws:
            ref = _TypeRef(exception, exception)
            if _is_caught(frame, ref):
                continue
            frame.thrown.append(ref)
            if _matches_any(ref, frame.declared):
                continue
            self.diagnostics.append(
                Diagnostic(
                    line=node.start_point[0] + 1,
                    type=DiagnosticType.UNDECLARED_THROW_FROM_CALL,
                    exception=exception,
                    function=frame.name,
                    called_method=method,
                    called_class=called_class,
                    message=(
                        f"Exception '{exception}' can be thrown by '{display}'"
                        " but is not declared in @throws tag"
                    ),
                )
            )

    # -- helpers ----------------------------------------------------------

    def _current_class(self) -> str | None:
        return self._classes[-1].name if self._classes else None

    def _property_type(self, access: Any) -> str | None:
        if not self._classes or not _is_this(access.child_by_field_name("object")):
            return None
        name_node = access.child_by_field_name("name")
        if name_node is None or name_node.type != "name":
            return None
        return self._classes[-1].properties.get(node_text(name_node))

    @staticmethod
    def _is_try_body(node: Any) -> bool:
        parent = node.parent
        if parent is None or parent.type != "try_statement":
            return False
        body = parent.child_by_field_name("body")
        return body is not None and body.id == node.id


def _is_this(node: Any) -> bool:
    return node is not None and node.type == "variable_name" and node_text(node) == "$this"


def _matches_any(ref: _TypeRef, candidates: list[_TypeRef]) -> bool:
    return any(
        exceptions_match(ref.written, other.written)
        or exceptions_match(ref.resolved, other.resolved)
        for other in candidates
    )


def _is_caught(frame: _FunctionFrame, exception: _TypeRef) -> bool:
    return any(_matches_any(exception, caught) for caught in frame.try_stack)


def _imports_non_class(node: Any) -> bool:
    """Whether a use declaration or clause is `use function` or `use const`."""
    return any(child.type in ("function", "const") for child in node.children)


def _alias_of(clause: Any, target: Any) -> str | None:
    alias_node = clause.child_by_field_name("alias")
    if alias_node is not None and alias_node.id != target.id:
        return node_text(alias_node)
    for child in clause.named_children:
        if child.type == "namespace_aliasing_clause":
            name = next((c for c in child.named_children if c.type == "name"), None)
            return node_text(name) if name is not None else None
    names = [c for c in clause.named_children if c.type == "name" and c.id != target.id]
    return node_text(names[-1]) if names else None


def _class_type_name(type_node: Any) -> str | None:
    """Class name of a parameter type, or None for primitive, union or absent types."""
    if type_node is None:
        return None
    if type_node.type == "optional_type" and type_node.named_children:
        type_node = type_node.named_children[0]
    if type_node.type == "named_type" and type_node.named_children:
        type_node = type_node.named_children[0]
    if type_node.type in _NAMES:
        return node_text(type_node)
    return None


def _catch_types(try_node: Any) -> list[str]:
    caught: list[str] = []
    for clause in try_node.named_children:
        if clause.type != "catch_clause":
            continue
        type_node = clause.child_by_field_name("type")
        if type_node is not None:
            roots = [type_node]
        else:
            roots = []
            for child in clause.named_children:
                if child.type in ("variable_name", "compound_statement"):
                    break
                roots.append(child)

        stack = list(reversed(roots))
        while stack:
            current = stack.pop()
            if current.type in _NAMES:
                caught.append(node_text(current))
            else:
                stack.extend(reversed(current.named_children))
    return caught
