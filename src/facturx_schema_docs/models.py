"""Core data structures for the documented Factur-X schema tree.

``ElementNode`` objects are produced by the tree builder from a compiled XSD
set, receive their absolute xpath from the xpath builder, and are finally
enriched with business documentation taken from the Factur-X documentation
workbook. They avoid framework dependencies so they can be serialized,
cached, or transported easily.

Overview:
        * ``ElementNode`` forms a tree mirroring the CII element hierarchy.
            Each node captures its prefixed name, prefixed type name and XSD
            cardinality plus the documentation fields attached later.
        * ``ElementDocumentation`` holds one row of the documentation
            workbook; all values are kept as text.

Typical construction (simplified)::

        from facturx_schema_docs.models import ElementNode

        context = ElementNode(
                name="rsm:ExchangedDocumentContext",
                type_name="ram:ExchangedDocumentContextType",
                cardinality="1..1",
        )
        context.children.append(
                ElementNode(name="ram:TestIndicator", type_name="udt:IndicatorType", cardinality="0..1")
        )

        payload = context.to_dict()

Design notes:
        * ``ElementNode`` compares by identity so nodes can key dictionaries
            even when two siblings carry identical names and types.
        * Children are kept in a plain list whose order is the schema
            declaration order; positional xpath predicates rely on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List


@dataclass
class ElementDocumentation:
    """A documentation row describing one business term.

    Attributes:
        id: Business term identifier (e.g. ``BT-1``).
        business_term: Short business term label.
        description: Long description of the term.
        business_rule: Business rules (``BR-*``) applying to the term.
        cii_cardinality: Cardinality expected by the CII syntax binding.
        xpath_primary: Main xpath the row documents.
        xpath_secondary: Alternative xpath for the same term (optional).
        profile_support: Profiles whose worksheet lists this row.

    Example:
        >>> doc = ElementDocumentation(id="BT-1", xpath_primary="/rsm:CrossIndustryInvoice/rsm:ExchangedDocument/ram:ID")
        >>> doc.name
        'ram:ID'
    """

    id: str = ""
    id_ctc_fr_reform: str = ""
    xsd_level: str = ""
    en16931_semantic_cardinality: str = ""
    business_term: str = ""
    description: str = ""
    usage_note: str = ""
    cius: str = ""
    business_rule: str = ""
    semantic_data_type: str = ""
    ext_profiles_cardinality: str = ""
    xpath_primary: str = ""
    xpath_secondary: str = ""
    dt: str = ""
    type: str = ""
    cii_cardinality: str = ""
    match: str = ""
    rules: str = ""
    profile_support: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        """Element name documented by this row (last segment of the xpath)."""
        parts = [part for part in self.xpath_primary.split("/") if part]
        return parts[-1] if parts else ""


@dataclass(eq=False)
class ElementNode:
    """Represents one schema element along with its documentation.

    Attributes:
        name: Prefixed element name (e.g. ``ram:ID``).
        type_name: Prefixed type name; empty for anonymous or unresolved types.
        cardinality: ``"{min}..{max}"`` with ``*`` for unbounded.
        children: Nested ``ElementNode`` instances in declaration order.
        xpath: Absolute xpath, empty until computed.
        id: Business term identifier from the documentation.
        business_term: Business term label from the documentation.
        business_rule: Business rule text from the documentation.
        description: Description from the documentation.
        cii_cardinality: Syntax binding cardinality from the documentation.
        profile_support: Profiles supporting the element.
        additional_data: Free-form annotations for downstream consumers.

    Example creation:
        >>> node = ElementNode(name="ram:ID", type_name="udt:IDType", cardinality="0..1")
        >>> node.xpath
        ''
        >>> len(node.children)
        0
    """

    name: str = ""
    type_name: str = ""
    cardinality: str = ""
    children: List["ElementNode"] = field(default_factory=list)
    xpath: str = ""
    id: str = ""
    business_term: str = ""
    business_rule: str = ""
    description: str = ""
    cii_cardinality: str = ""
    profile_support: List[str] = field(default_factory=list)
    additional_data: Dict[str, str] = field(default_factory=dict)

    @property
    def documented(self) -> bool:
        """True once documentation has been attached to this node."""
        return bool(self.id or self.business_term or self.description)

    def iter_nodes(self) -> Iterator["ElementNode"]:
        """Yield this node and all descendants depth-first, in document order.

        Example:
            >>> parent = ElementNode(name="A")
            >>> parent.children.append(ElementNode(name="B"))
            >>> [n.name for n in parent.iter_nodes()]
            ['A', 'B']
        """
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict:
        """Convert the node (recursively) into a JSON-serializable dictionary.

        Example:
            >>> node = ElementNode(name="ram:ID", xpath="/ram:ID")
            >>> node.to_dict()["xpath"]
            '/ram:ID'
        """
        return {
            "name": self.name,
            "type_name": self.type_name,
            "cardinality": self.cardinality,
            "xpath": self.xpath,
            "id": self.id,
            "business_term": self.business_term,
            "business_rule": self.business_rule,
            "description": self.description,
            "cii_cardinality": self.cii_cardinality,
            "profile_support": list(self.profile_support),
            "additional_data": dict(self.additional_data),
            "children": [child.to_dict() for child in self.children],
        }
