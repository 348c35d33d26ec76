"""Namespace URI to preferred prefix resolution.

The CII schemas declare short prefixes (``rsm``, ``ram``, ``udt``, ``qdt``)
on their ``xs:schema`` root elements. Display names and xpaths in the
documentation workbook use exactly those prefixes, so the tree builder needs
the same URI → prefix table to render ``ram:SellerTradeParty`` instead of an
expanded ``{urn:...}SellerTradeParty`` name.

Example:
        from facturx_schema_docs.discovery import collect_schema_files
        from facturx_schema_docs.namespaces import resolve_prefixes

        prefixes = resolve_prefixes(collect_schema_files(["FACTUR-X_EXTENDED.xsd"]))
        prefixes.prefixed("{urn:un:unece:uncefact:data:standard:ReusableAggregateBusinessInformationEntity:100}ID")
        # 'ram:ID'
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

_PREFIX_CHARS = re.compile(r"[^\w-]", re.UNICODE)


def split_qname(qname: Optional[str]) -> Tuple[str, str]:
    """Split an expanded ``{namespace}local`` name into its two parts.

    Example:
        >>> split_qname("{urn:x}Item")
        ('urn:x', 'Item')
        >>> split_qname("Item")
        ('', 'Item')
    """
    if not qname:
        return "", ""
    if qname.startswith("{"):
        namespace, _, local = qname[1:].partition("}")
        return namespace, local
    return "", qname


class NamespacePrefixes(Mapping[str, str]):
    """Read-only namespace URI → prefix table.

    An empty prefix denotes the default namespace. Instances are built once by
    :func:`resolve_prefixes` and never change afterwards.
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None) -> None:
        self._mapping: Dict[str, str] = dict(mapping or {})

    def __getitem__(self, namespace: str) -> str:
        return self._mapping[namespace]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:
        return f"NamespacePrefixes({self._mapping!r})"

    def prefixed(self, qname: Optional[str]) -> str:
        """Render an expanded qualified name as ``prefix:local``."""
        namespace, local = split_qname(qname)
        return self.display_name(namespace, local)

    def display_name(self, namespace: str, local: str) -> str:
        """Render ``local`` with the preferred prefix for ``namespace``.

        Unknown namespaces get a best-effort prefix made of the last
        ``/`` segment of the URI, restricted to letters, digits, ``_`` and ``-``.
        """
        if not local:
            return ""
        if not namespace:
            return local

        if namespace in self._mapping:
            prefix = self._mapping[namespace]
            return f"{prefix}:{local}" if prefix else local

        segments = [segment for segment in namespace.split("/") if segment]
        candidate = _PREFIX_CHARS.sub("", segments[-1]) if segments else ""
        if candidate:
            return f"{candidate}:{local}"
        return local


def resolve_prefixes(files: Iterable[Union[str, Path]]) -> NamespacePrefixes:
    """Build the namespace table from the root element of every file.

    Only declarations on the first element of each file are read. The first
    file declaring a URI wins; later declarations of the same URI are ignored.
    Files that cannot be read contribute nothing.
    """
    mapping: Dict[str, str] = {}
    for path in files:
        for prefix, uri in _read_root_declarations(Path(path)):
            if uri not in mapping:
                mapping[uri] = prefix
    logger.debug("Resolved %d namespace prefix(es)", len(mapping))
    return NamespacePrefixes(mapping)


def _read_root_declarations(path: Path) -> Iterator[Tuple[str, str]]:
    declarations = []
    try:
        with open(path, "rb") as handle:
            for event, payload in ET.iterparse(handle, events=("start-ns", "start")):
                if event == "start":
                    break
                prefix, uri = payload
                declarations.append((prefix or "", uri))
    except (OSError, ET.ParseError) as exc:
        logger.warning("Could not read namespace declarations from %s: %s", path, exc)
        return iter(())
    return iter(declarations)
