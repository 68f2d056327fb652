"""Method-throws tables and the project-wide signature table.

A method signature is the key ``"Qualified\\Type::method"``; its value is the
method's *declared* exceptions, never the ones its body actually throws.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

MethodThrowsTable = dict[str, list[str]]


def signature_key(type_name: str, method_name: str) -> str:
    return f"{type_name}::{method_name}"


def split_signature(signature: str) -> tuple[str, str]:
    type_name, _, method_name = signature.rpartition("::")
    return type_name, method_name


@dataclass
class UnitSignatures:
    """Signatures contributed by one source unit."""

    method_throws: MethodThrowsTable = field(default_factory=dict)
    # consumer type -> used traits, in source order
    trait_uses: dict[str, list[str]] = field(default_factory=dict)


class ThrowsLookup:
    """Ordered chain of method-throws tables; the first table holding a signature wins."""

    def __init__(self, tables: Sequence[Mapping[str, list[str]]]) -> None:
        self._tables = list(tables)

    def find(self, signature: str) -> list[str] | None:
        for table in self._tables:
            throws = table.get(signature)
            if throws is not None:
                return throws
        return None


class GlobalSignatureTable:
    """Project-wide method-throws table built during pass 1.

    Units are merged in the order given; a signature defined twice keeps the
    last definition. ``flatten_traits`` must run after every unit is merged so
    that trait methods become visible under each consuming class regardless of
    which file was read first.
    """

    def __init__(self) -> None:
        self.method_throws: MethodThrowsTable = {}
        self.trait_uses: dict[str, list[str]] = {}

    def merge(self, unit: UnitSignatures) -> None:
        self.method_throws.update(unit.method_throws)
        for consumer, traits in unit.trait_uses.items():
            known = self.trait_uses.setdefault(consumer, [])
            known.extend(t for t in traits if t not in known)

    def flatten_traits(self) -> None:
        """Expose trait methods under the qualified name of every consumer.

        A consumer's own methods win over trait methods; among traits the
        first one used wins. Traits using traits are resolved first and
        cycles are cut.
        """
        by_type: dict[str, dict[str, list[str]]] = {}
        for signature, throws in self.method_throws.items():
            type_name, method_name = split_signature(signature)
            by_type.setdefault(type_name, {})[method_name] = throws

        resolved: dict[str, dict[str, list[str]]] = {}

        def methods_of(
            type_name: str, visiting: frozenset[str]
        ) -> tuple[dict[str, list[str]], bool]:
            # the flag is False when a cycle was cut below type_name
            if type_name in resolved:
                return resolved[type_name], True
            methods = dict(by_type.get(type_name, {}))
            complete = True
            for trait in self.trait_uses.get(type_name, []):
                if trait in visiting:
                    complete = False
                    continue
                trait_methods, trait_complete = methods_of(trait, visiting | {trait})
                complete = complete and trait_complete
                for method_name, throws in trait_methods.items():
                    methods.setdefault(method_name, throws)
            if complete:
                resolved[type_name] = methods
            return methods, complete

        for consumer in sorted(self.trait_uses):
            methods, _ = methods_of(consumer, frozenset({consumer}))
            for method_name, throws in methods.items():
                self.method_throws.setdefault(signature_key(consumer, method_name), throws)
