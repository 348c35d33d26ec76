"""Read business documentation from the Factur-X documentation workbook.

The Factur-X technical appendix ships an Excel workbook with one worksheet
per profile (``MINIMUM``, ``BASIC WL``, ``BASIC``, ``EN16931``,
``EXTENDED``). Every worksheet lists the business terms of its profile, one
row per term, below a four-row header block. Columns D to W hold, among
others, the business term id, its description, the business rules and the
xpath(s) of the term in the CII syntax.

The ``EXTENDED`` worksheet is a superset of the other profiles and serves as
the base list; every returned row is tagged with the profiles whose worksheet
lists the same primary xpath.

Example:
        from facturx_schema_docs.excel_parser import parse_documentation_workbook

        rows = parse_documentation_workbook("Factur-X_1.07.2_EXTENDED.xlsx")
        for row in rows[:3]:
                print(row.id, row.business_term, row.profile_support)

Notes:
* Reading stops at the first row whose D–W cells are all empty.
* A missing profile worksheet is logged and treated as empty.
* All values are returned as stripped text; no type conversion happens here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from openpyxl import load_workbook

from .models import ElementDocumentation

logger = logging.getLogger(__name__)


class DocumentationSourceError(ValueError):
    """Raised when no documentation workbook path was supplied."""


DEFAULT_WORKSHEETS: Dict[str, str] = {
    "BASIC": "Factur-X CII D22B BASIC",
    "BASIC WL": "Factur-X CII D22B BASIC WL",
    "MINIMUM": "Factur-X CII D22B MINIMUM",
    "EN16931": "Factur-X CII D22B EN16931",
    "EXTENDED": "Factur-X CII D22B EXTENDED",
}

# Offset within the D..W column block → ElementDocumentation attribute.
COLUMN_MAP: Dict[int, str] = {
    1: "id",
    2: "id_ctc_fr_reform",
    3: "xsd_level",
    4: "en16931_semantic_cardinality",
    5: "business_term",
    6: "description",
    7: "usage_note",
    8: "cius",
    9: "business_rule",
    10: "semantic_data_type",
    12: "ext_profiles_cardinality",
    13: "xpath_primary",
    14: "xpath_secondary",
    15: "dt",
    16: "type",
    17: "cii_cardinality",
    18: "match",
    19: "rules",
}


@dataclass
class DocumentationConfig:
    """Layout of the documentation workbook.

    Args:
        worksheets: Profile name → worksheet title, in profile order.
        default_profile: Profile whose worksheet provides the returned rows.
        first_data_row: 1-based spreadsheet row of the first data row.
        first_column: 1-based column of the first read column (D).
        column_count: Number of columns read (D..W).
    """

    worksheets: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_WORKSHEETS))
    default_profile: str = "EXTENDED"
    first_data_row: int = 5
    first_column: int = 4
    column_count: int = 20


def parse_documentation_workbook(
    excel_path: Union[str, Path], config: Optional[DocumentationConfig] = None
) -> List[ElementDocumentation]:
    """Parse every profile worksheet and return the default profile's rows.

    Args:
        excel_path: Path to the ``.xlsx`` workbook.
        config: Optional :class:`DocumentationConfig` for non-standard layouts.

    Returns:
        Rows of the default profile, each with ``profile_support`` filled in.

    Raises:
        DocumentationSourceError: If ``excel_path`` is blank.
        FileNotFoundError: If the workbook does not exist.
    """
    config = config or DocumentationConfig()
    if excel_path is None or not str(excel_path).strip():
        raise DocumentationSourceError("Excel file path must be provided.")
    path = Path(excel_path)
    if not path.is_file():
        raise FileNotFoundError(f"Excel file not found: {path}")

    if config.default_profile not in config.worksheets:
        logger.warning(
            "Default profile %s has no worksheet configured", config.default_profile
        )
        return []

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        profile_rows = {
            profile: _read_worksheet(workbook, sheet_name, config)
            for profile, sheet_name in config.worksheets.items()
        }
    finally:
        workbook.close()

    result = profile_rows[config.default_profile]
    for profile, rows in profile_rows.items():
        xpaths = {row.xpath_primary for row in rows}
        for row in result:
            if row.xpath_primary in xpaths:
                row.profile_support.append(profile)

    logger.info(
        "Read %d documentation row(s) from %s (%s profile)",
        len(result),
        path,
        config.default_profile,
    )
    return result


def _read_worksheet(
    workbook: Any, sheet_name: str, config: DocumentationConfig
) -> List[ElementDocumentation]:
    if sheet_name not in workbook.sheetnames:
        logger.warning("Worksheet %r not found in documentation workbook", sheet_name)
        return []

    worksheet = workbook[sheet_name]
    rows: List[ElementDocumentation] = []
    for values in worksheet.iter_rows(
        min_row=config.first_data_row,
        min_col=config.first_column,
        max_col=config.first_column + config.column_count - 1,
        values_only=True,
    ):
        cells = [_cell_text(value) for value in values]
        cells.extend([""] * (config.column_count - len(cells)))
        if not any(cells):
            break
        rows.append(map_row(cells))
    logger.debug("Worksheet %r: %d row(s)", sheet_name, len(rows))
    return rows


def map_row(cells: Sequence[str]) -> ElementDocumentation:
    """Map the D..W cell texts of one row onto an :class:`ElementDocumentation`."""
    values = {
        attribute: cells[offset]
        for offset, attribute in COLUMN_MAP.items()
        if offset < len(cells)
    }
    return ElementDocumentation(**values)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
