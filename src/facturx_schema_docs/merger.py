"""Combine structural (XSD) and business (workbook) documentation.

This module provides thin orchestration helpers producing the documented
forest: schema structure from the XSD files, business term, description,
rules and profile support from the Factur-X documentation workbook. Heavy
lifting is delegated to the XSD parser and the workbook reader.

Example:
    from facturx_schema_docs.merger import build_documentation_tree

    roots = build_documentation_tree(
        ["schemas/FACTUR-X_EXTENDED.xsd"], "Factur-X_1.07.2_EXTENDED.xlsx"
    )
    for node in roots[0].iter_nodes():
        if node.documented:
            print(node.id, node.xpath)
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Union

from .documentation import attach_documentation, build_documentation_lookup
from .excel_parser import DocumentationConfig, parse_documentation_workbook
from .models import ElementDocumentation, ElementNode
from .xsd_parser import ParserConfig, parse_xsd

PathLike = Union[str, Path]


def build_documentation_tree(
    xsd_paths: Union[PathLike, Iterable[PathLike]],
    excel_path: Optional[PathLike] = None,
    parser_config: Optional[ParserConfig] = None,
    documentation_config: Optional[DocumentationConfig] = None,
) -> List[ElementNode]:
    """Parse the XSD files then (optionally) attach workbook documentation.

    Args:
        xsd_paths: Entry XSD path(s).
        excel_path: Optional documentation workbook; if omitted only
            structural metadata is returned.
        parser_config: Optional :class:`ParserConfig`.
        documentation_config: Optional :class:`DocumentationConfig`.

    Returns:
        The xpath-annotated forest with documentation attached.
    """
    roots = parse_xsd(xsd_paths, config=parser_config)
    if excel_path:
        records = parse_documentation_workbook(excel_path, documentation_config)
        merge_documentation(roots, records)
    return roots


def merge_documentation(
    roots: List[ElementNode], records: Iterable[ElementDocumentation]
) -> int:
    """Attach ``records`` to ``roots`` by exact xpath; return the match count."""
    return attach_documentation(roots, build_documentation_lookup(records))
