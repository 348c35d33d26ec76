"""Build the element tree from compiled global declarations.

This is the heart of the package. For each global element it creates an
:class:`~facturx_schema_docs.models.ElementNode`, resolves the element's
type and, for structured types, walks the content model (sequence, choice,
``all`` and group references) to create children in declaration order.

Cycle handling:
Schemas such as CII are full of recursive types (a trade party holding a
trade party, a note holding a note). The builder tracks the structured types
entered along the *current descent path* only. Re-entering a type already on
the path stops the descent and leaves the node childless, so a recursive
type is expanded exactly one level deeper than its first occurrence.
Siblings, choice alternatives and separate root elements do not share that
state: two unrelated siblings of the same type are both expanded in full.

Implementation:
The descent uses an explicit work stack instead of Python recursion so deep
schemas cannot exhaust the interpreter stack. Each frame holds the node
receiving children, an iterator over the remaining particle items, and the
visited-type set for that frame. Visited sets are frozensets, so every branch
point works on its own value and nothing is shared by mutation.

Example:
        from facturx_schema_docs.compiler import compile_schema
        from facturx_schema_docs.namespaces import resolve_prefixes
        from facturx_schema_docs.tree_builder import TreeBuilder

        compiled = compile_schema(files[:1])
        builder = TreeBuilder(resolve_prefixes(files), compiled.types, compiled.groups)
        roots = builder.build(compiled.elements)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Union

from .compiler import (
    CompiledSchema,
    ComplexTypeDef,
    ElementDecl,
    GroupDefinition,
    GroupRef,
    Particle,
    TypeDefinition,
)
from .models import ElementNode
from .namespaces import NamespacePrefixes

logger = logging.getLogger(__name__)

UNBOUNDED = "*"


@dataclass
class _Frame:
    node: ElementNode
    items: Iterator[Union[ElementDecl, Particle, GroupRef]]
    visited: FrozenSet[Any]
    groups: FrozenSet[str] = field(default_factory=frozenset)


class TreeBuilder:
    """Turn global element declarations into a forest of :class:`ElementNode`.

    Args:
        prefixes: Namespace table used to render display names.
        types: Qualified type name → type definition.
        groups: Qualified group name → group definition.
    """

    def __init__(
        self,
        prefixes: NamespacePrefixes,
        types: Mapping[str, TypeDefinition],
        groups: Mapping[str, GroupDefinition],
    ) -> None:
        self.prefixes = prefixes
        self.types = types
        self.groups = groups

    def build(self, elements: Iterable[ElementDecl]) -> List[ElementNode]:
        """Build one root per global element, each with fresh cycle state."""
        roots = [self.build_node(element) for element in elements]
        logger.info("Built %d root element(s)", len(roots))
        return roots

    def build_node(
        self, element: ElementDecl, visited: FrozenSet[Any] = frozenset()
    ) -> ElementNode:
        """Build the complete subtree for ``element``.

        Args:
            element: Declaration to build.
            visited: Structured types already entered on the path leading here.
        """
        root = self._create_node(element)
        stack: List[_Frame] = []
        self._enter_type(root, element, visited, stack)

        while stack:
            frame = stack[-1]
            item = next(frame.items, None)
            if item is None:
                stack.pop()
                continue

            if isinstance(item, ElementDecl):
                child = self._create_node(item)
                frame.node.children.append(child)
                self._enter_type(child, item, frame.visited, stack)
            else:
                self._push_particle(frame.node, item, frame.visited, frame.groups, stack)

        return root

    def resolve_type(self, element: ElementDecl) -> Optional[TypeDefinition]:
        """Return the inline type, else the global type named by the element."""
        if element.inline_type is not None:
            return element.inline_type
        if element.type_name:
            return self.types.get(element.type_name)
        return None

    # ---------------- Internal helpers ---------------- #

    def _create_node(self, element: ElementDecl) -> ElementNode:
        type_name = ""
        if element.type_name:
            type_name = self.prefixes.prefixed(element.type_name)
        elif element.inline_type is not None and element.inline_type.name:
            type_name = self.prefixes.prefixed(element.inline_type.name)

        return ElementNode(
            name=self.prefixes.prefixed(element.qualified_name),
            type_name=type_name,
            cardinality=format_cardinality(element.min_occurs, element.max_occurs),
        )

    def _enter_type(
        self,
        node: ElementNode,
        element: ElementDecl,
        visited: FrozenSet[Any],
        stack: List[_Frame],
    ) -> None:
        type_def = self.resolve_type(element)
        if not isinstance(type_def, ComplexTypeDef):
            return

        token = type_def.cycle_token
        if token in visited:
            logger.debug("Recursive type %s truncated at %s", type_def.name or "<anonymous>", node.name)
            return

        self._push_particle(node, type_def.particle, visited | {token}, frozenset(), stack)

    def _push_particle(
        self,
        node: ElementNode,
        particle: Optional[Union[Particle, GroupRef]],
        visited: FrozenSet[Any],
        groups: FrozenSet[str],
        stack: List[_Frame],
    ) -> None:
        if isinstance(particle, GroupRef):
            # a group inlined into itself without an element in between never ends
            if particle.name in groups:
                return
            group = self.groups.get(particle.name)
            if group is None or group.particle is None or not group.particle.items:
                return
            groups = groups | {particle.name}
            particle = group.particle

        if isinstance(particle, Particle):
            stack.append(_Frame(node, iter(particle.items), visited, groups))


def format_cardinality(min_occurs: Any, max_occurs: Any) -> str:
    """Return ``"{min}..{max}"``; ``max_occurs`` of ``None`` means unbounded.

    Malformed occurrence data yields an empty string.

    Example:
        >>> format_cardinality(0, None)
        '0..*'
        >>> format_cardinality("1", "unbounded")
        '1..*'
        >>> format_cardinality("x", 1)
        ''
    """
    try:
        minimum = int(min_occurs)
        if max_occurs is None or str(max_occurs).lower() == "unbounded":
            maximum = UNBOUNDED
        else:
            maximum = str(int(max_occurs))
    except (TypeError, ValueError):
        return ""
    return f"{minimum}..{maximum}"


def build_tree(compiled: CompiledSchema, prefixes: NamespacePrefixes) -> List[ElementNode]:
    """Convenience wrapper building the forest for a :class:`CompiledSchema`."""
    return TreeBuilder(prefixes, compiled.types, compiled.groups).build(compiled.elements)
