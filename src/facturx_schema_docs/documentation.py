"""Attach business documentation to a forest of schema nodes.

Documentation rows are matched to nodes by exact xpath. A row may name two
xpaths (the CII binding sometimes documents one business term at two
locations); both become lookup keys unless they collide with an existing
key, in which case the row registered first keeps it.

Example:
        from facturx_schema_docs.documentation import attach_documentation, build_documentation_lookup

        lookup = build_documentation_lookup(rows)
        matched = attach_documentation(roots, lookup)
        print("Documented", matched, "elements")
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping

from .models import ElementDocumentation, ElementNode

logger = logging.getLogger(__name__)


def build_documentation_lookup(
    records: Iterable[ElementDocumentation],
) -> Dict[str, ElementDocumentation]:
    """Index documentation rows by their primary and secondary xpath.

    The primary xpath is registered if not already present. The secondary
    xpath is registered when it is non-blank, differs from the primary one
    and is not already present.
    """
    lookup: Dict[str, ElementDocumentation] = {}
    for record in records:
        primary = record.xpath_primary
        secondary = record.xpath_secondary
        if primary and primary.strip() and primary not in lookup:
            lookup[primary] = record
        if (
            secondary
            and secondary.strip()
            and secondary != primary
            and secondary not in lookup
        ):
            lookup[secondary] = record
    return lookup


def attach_documentation(
    roots: Iterable[ElementNode], lookup: Mapping[str, ElementDocumentation]
) -> int:
    """Copy documentation onto every node whose xpath is a lookup key.

    Children are visited whether or not their parent matched.

    Returns:
        Number of nodes that received documentation.
    """
    matched = 0
    for root in roots:
        for node in root.iter_nodes():
            record = lookup.get(node.xpath)
            if record is None:
                continue
            apply_documentation(node, record)
            matched += 1
    logger.info("Attached documentation to %d element(s)", matched)
    return matched


def apply_documentation(node: ElementNode, record: ElementDocumentation) -> None:
    node.id = record.id
    node.business_term = record.business_term
    node.business_rule = record.business_rule
    node.description = record.description
    node.cii_cardinality = record.cii_cardinality
    node.profile_support = list(record.profile_support)
