"""Parse a family of XSD files into a forest of xpath-annotated nodes.

This module wires the individual steps together:

1. :func:`~facturx_schema_docs.discovery.collect_schema_files` follows
   import / include / redefine references from the entry schemas.
2. :func:`~facturx_schema_docs.namespaces.resolve_prefixes` reads the
   preferred namespace prefixes of every discovered file.
3. :func:`~facturx_schema_docs.compiler.compile_schema` compiles the entry
   schemas and exposes their global declarations.
4. :class:`~facturx_schema_docs.tree_builder.TreeBuilder` builds one tree
   per global element, truncating recursive types per descent path.
5. :func:`~facturx_schema_docs.xpath_builder.compute_xpaths` assigns the
   absolute xpath of every node.

Typical usage:
        from facturx_schema_docs.xsd_parser import parse_xsd, ParserConfig

        roots = parse_xsd(["schemas/FACTUR-X_EXTENDED.xsd"])
        invoice = roots[0]
        print(invoice.name)            # rsm:CrossIndustryInvoice
        print(len(invoice.children))   # top-level sections

        # Strict compilation (schema errors raise SchemaCompilationError)
        roots = parse_xsd(["FACTUR-X_EXTENDED.xsd"], config=ParserConfig(validation="strict"))

Notes:
* Only element content models are traversed; attributes are ignored.
* In the default ``lax`` mode the run is best-effort: unreadable files and
  schema errors are logged and yield a smaller forest rather than an
  exception. An empty list of entry paths is always fatal, and ``strict``
  mode also raises on a schema that does not compile.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .compiler import CompiledSchema, compile_schema
from .discovery import collect_schema_files
from .models import ElementNode
from .namespaces import NamespacePrefixes, resolve_prefixes
from .tree_builder import build_tree
from .xpath_builder import compute_xpaths

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class ParserConfig:
    """Configuration for XSD parsing behavior.

    Args:
        validation: ``xmlschema`` validation mode used while compiling:
            ``lax`` logs schema errors and continues, ``strict`` raises
            :class:`~facturx_schema_docs.compiler.SchemaCompilationError`,
            ``skip`` ignores them.
        allow: ``xmlschema`` resource access mode. The default ``local``
            never fetches remote schema locations.
        include_builtin_namespaces: Also build trees for global elements of
            the XSD / XML / XSI namespaces.
    """

    validation: str = "lax"
    allow: str = "local"
    include_builtin_namespaces: bool = False


class XSDParser:
    """Parse one or more entry XSD files into a forest of :class:`ElementNode`.

    Discovery and prefix resolution happen on construction, so the file list
    and the namespace table can be inspected before the (slower) compile step.

    Example:
        parser = XSDParser(["FACTUR-X_EXTENDED.xsd"])
        print(parser.schema_files)
        print(dict(parser.prefixes))
        roots = parser.parse()

    Raises:
        ConfigurationError: If no usable entry path is given.
    """

    def __init__(
        self,
        entry_paths: Union[PathLike, Iterable[PathLike]],
        config: Optional[ParserConfig] = None,
    ) -> None:
        if isinstance(entry_paths, (str, Path)):
            entry_paths = [entry_paths]
        self.entry_paths: List[PathLike] = list(entry_paths)
        self.config = config or ParserConfig()
        self.schema_files: List[Path] = collect_schema_files(self.entry_paths)
        self.prefixes: NamespacePrefixes = resolve_prefixes(self.schema_files)
        self.compiled: Optional[CompiledSchema] = None

    def compile(self) -> CompiledSchema:
        """Compile the existing entry schemas (cached after the first call)."""
        if self.compiled is None:
            entries = [
                Path(os.path.abspath(str(path).strip()))
                for path in self.entry_paths
                if path and str(path).strip()
            ]
            self.compiled = compile_schema(
                [path for path in entries if path.is_file()],
                validation=self.config.validation,
                allow=self.config.allow,
                include_builtin_namespaces=self.config.include_builtin_namespaces,
            )
        return self.compiled

    def parse(self) -> List[ElementNode]:
        """Build the forest and compute every node's absolute xpath."""
        roots = build_tree(self.compile(), self.prefixes)
        compute_xpaths(roots)
        logger.info(
            "Parsed %d root element(s) from %d schema file(s)",
            len(roots),
            len(self.schema_files),
        )
        return roots


def parse_xsd(
    entry_paths: Union[PathLike, Iterable[PathLike]],
    config: Optional[ParserConfig] = None,
) -> List[ElementNode]:
    """Parse XSD entry files and return the xpath-annotated forest.

    This is a convenience wrapper around :class:`XSDParser` for callers that
    do not need access to the intermediate results.

    Args:
        entry_paths: One entry path or a list of them.
        config: Optional :class:`ParserConfig`.

    Returns:
        One root :class:`ElementNode` per global element, in schema order.

    Raises:
        ConfigurationError: If no usable entry path is given.
        SchemaCompilationError: In ``strict`` mode, if an entry does not compile.
    """
    return XSDParser(entry_paths, config=config).parse()
