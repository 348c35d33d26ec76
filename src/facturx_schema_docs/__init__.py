"""Factur-X Schema Docs
=====================

Toolkit that turns the Factur-X / UN/CEFACT CII XML Schema family into a
navigable element tree whose nodes carry stable absolute xpaths, and attaches
the contents of the Factur-X documentation workbook (business
term, description, business rules, profile support) to those nodes.

Key capabilities
----------------
- Discover every schema file reachable through ``xs:import`` /
  ``xs:include`` / ``xs:redefine``.
- Resolve the preferred namespace prefixes (``rsm``, ``ram``, ``udt``...).
- Build a cycle-safe tree of :class:`~facturx_schema_docs.models.ElementNode`
  objects from the compiled schema.
- Compute deterministic absolute xpaths with positional predicates for
  repeated sibling names.
- Merge documentation rows by exact xpath; serve the result through a CLI
  and a FastAPI application.

Design principles
-----------------
1. **Deterministic parsing** – discovery order and declaration order drive
    prefixes and xpaths, so identical input yields identical paths.
2. **Best effort** – unreadable files and schema errors are logged and yield
    a partial tree; only a missing entry path is fatal.
3. **Capability boundary** – the schema compiler is hidden behind the small
    adapter types of :mod:`facturx_schema_docs.compiler`.

Docstring style
---------------
Public functions, classes, and significant private helpers follow the
Google style docstring convention (Args, Returns, Raises, Examples).

Minimal quick start
-------------------
::

    from facturx_schema_docs import build_documentation_tree

    roots = build_documentation_tree(["FACTUR-X_EXTENDED.xsd"], "Factur-X_EXTENDED.xlsx")
    print([child.name for child in roots[0].children][:3])

FastAPI application instance (for ASGI servers like uvicorn)::

    from facturx_schema_docs.app import app

Public surface
--------------
Only a curated subset is exported at the package level to keep the import
surface stable; advanced modules can be imported explicitly.
"""

__version__ = "0.1.0"

from .compiler import SchemaCompilationError
from .discovery import ConfigurationError, collect_schema_files
from .merger import build_documentation_tree
from .models import ElementDocumentation, ElementNode
from .xpath_builder import compute_xpaths
from .xsd_parser import ParserConfig, parse_xsd

__all__ = [
    "ConfigurationError",
    "ElementDocumentation",
    "ElementNode",
    "ParserConfig",
    "SchemaCompilationError",
    "build_documentation_tree",
    "collect_schema_files",
    "compute_xpaths",
    "parse_xsd",
]
