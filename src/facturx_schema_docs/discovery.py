"""Discover every XSD file reachable from one or more entry schemas.

Factur-X ships its CII schema as a small family of files: the entry
``FACTUR-X_EXTENDED.xsd`` imports the reusable aggregate / unqualified data
type modules, which in turn import code lists. This module follows
``xs:import``, ``xs:include`` and ``xs:redefine`` references on the local
filesystem and returns the complete, de-duplicated file list.

Example:
        from facturx_schema_docs.discovery import collect_schema_files

        files = collect_schema_files(["schemas/FACTUR-X_EXTENDED.xsd"])
        for path in files:
                print(path)

Notes:
* ``schemaLocation`` values are resolved relative to the referencing file.
  Remote locations (``http://...``) never exist on disk and are ignored.
* Files that cannot be read or parsed are logged and skipped; references
  found before the failure are still followed.
* The returned list keeps discovery order so that anything derived from it
  (namespace prefixes in particular) is reproducible across runs.
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

XS_NS = "{http://www.w3.org/2001/XMLSchema}"

REFERENCE_TAGS = {f"{XS_NS}import", f"{XS_NS}include", f"{XS_NS}redefine"}


class ConfigurationError(ValueError):
    """Raised when no usable schema entry path was supplied."""


def collect_schema_files(entry_paths: Iterable[Union[str, Path]]) -> List[Path]:
    """Return every schema file transitively referenced by ``entry_paths``.

    Args:
        entry_paths: One or more entry XSD paths. Blank entries are ignored,
            entries that do not exist on disk contribute nothing.

    Returns:
        Absolute paths in discovery order, each file listed once. Membership
        is case-insensitive on the path string.

    Raises:
        ConfigurationError: If ``entry_paths`` is empty or only holds blanks.

    Example:
        >>> collect_schema_files([])
        Traceback (most recent call last):
        ...
        facturx_schema_docs.discovery.ConfigurationError: At least one XSD entry path is required.
    """
    entries = [os.fspath(path).strip() for path in entry_paths or [] if not _is_blank(path)]
    if not entries:
        raise ConfigurationError("At least one XSD entry path is required.")

    collected: Dict[str, Path] = {}
    for entry in entries:
        entry_path = _absolute(Path(entry))
        if not entry_path.is_file():
            logger.warning("Schema entry path %s does not exist, skipping", entry_path)
            continue
        _collect_from(entry_path, collected)

    logger.info(
        "Discovered %d schema file(s) from %d entry path(s)", len(collected), len(entries)
    )
    return list(collected.values())


def _collect_from(start_path: Path, collected: Dict[str, Path]) -> None:
    """Depth-first, stack based walk over schema references from ``start_path``."""
    stack = [start_path]
    while stack:
        current = stack.pop()
        if not current.is_file():
            continue
        key = _visit_key(current)
        if key in collected:
            continue
        collected[key] = current

        for location in _iter_schema_locations(current):
            target = _resolve_location(current, location)
            if target.is_file() and _visit_key(target) not in collected:
                stack.append(target)


def _iter_schema_locations(path: Path) -> List[str]:
    """Return the ``schemaLocation`` of every import/include/redefine in ``path``.

    Read failures are logged; locations seen before a parse error are kept.
    """
    locations: List[str] = []
    try:
        with open(path, "rb") as handle:
            for _event, element in ET.iterparse(handle, events=("start",)):
                if element.tag in REFERENCE_TAGS:
                    location = element.get("schemaLocation")
                    if location:
                        locations.append(location)
    except (OSError, ET.ParseError) as exc:
        logger.warning("Could not scan schema references in %s: %s", path, exc)
    return locations


def _is_blank(path: Optional[Union[str, Path]]) -> bool:
    # Path("") renders as "."
    if path is None:
        return True
    text = os.fspath(path).strip()
    return not text or text == "."


def _resolve_location(referencing_file: Path, location: str) -> Path:
    candidate = Path(location)
    if candidate.is_absolute():
        return _absolute(candidate)
    return _absolute(referencing_file.parent / candidate)


def _absolute(path: Path) -> Path:
    return Path(os.path.abspath(path))


def _visit_key(path: Path) -> str:
    return str(path).casefold()
