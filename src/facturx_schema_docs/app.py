"""FastAPI application exposing the documented Factur-X schema tree.

Quick start (run the server)::

    FACTURX_XSD_PATHS=schemas/FACTUR-X_EXTENDED.xsd \
    FACTURX_DOCUMENTATION_PATH=Factur-X_1.07.2_EXTENDED.xlsx \
    uvicorn facturx_schema_docs.app:app --reload

Core endpoints (REST):

    GET /health                 Basic health probe
    GET /metadata               Source files, counts + ETag
    GET /tree                   Entire forest or the subtree at ?xpath=
    GET /node?xpath=...         One node with its direct children
    GET /search?query=SellerTradeParty   Search by name / xpath / business term

Example: retrieve a subtree (depth limited)::

    curl "http://localhost:8000/tree?xpath=/rsm:CrossIndustryInvoice/rsm:ExchangedDocument&depth=1" | jq .

Example: documented elements mentioning VAT::

    curl "http://localhost:8000/search?query=VAT&documented=true&limit=20"

Configuration (environment):

    FACTURX_XSD_PATHS            Entry XSD paths separated by os.pathsep
    FACTURX_DOCUMENTATION_PATH   Optional documentation workbook (.xlsx)
    FACTURX_PARSER_CONFIG        ParserConfig overrides, e.g. "validation=strict"

ETag / caching notes:
    * The forest is built once per process and served read-only.
    * ``/metadata`` and ``/tree`` emit an ETag derived from the source paths
      and parser configuration; conditional requests get ``304``.
"""

from __future__ import annotations

import hashlib
import os
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .discovery import ConfigurationError
from .merger import build_documentation_tree
from .models import ElementNode
from .xsd_parser import ParserConfig


def _get_xsd_paths() -> List[str]:
    """Get the entry XSD paths from the environment."""
    raw = os.getenv("FACTURX_XSD_PATHS", "")
    return [part for part in raw.split(os.pathsep) if part.strip()]


def _get_parser_config() -> ParserConfig:
    """Get parser configuration from environment variables."""
    config_str = os.getenv("FACTURX_PARSER_CONFIG", "")
    config = ParserConfig()

    if config_str:
        for pair in config_str.split(","):
            if "=" in pair:
                key, value = pair.split("=", 1)
                key = key.strip()
                value = value.strip()
                if hasattr(config, key):
                    if isinstance(getattr(config, key), bool):
                        setattr(config, key, value.lower() == "true")
                    else:
                        setattr(config, key, value)

    return config


app = FastAPI(
    title="Factur-X Schema Documentation API",
    version=__version__,
    description="Browse the Factur-X / CII schema tree together with its business documentation",
    docs_url="/docs",
    redoc_url="/redoc",
)


class SearchResult(BaseModel):
    """A single search hit."""

    xpath: str = Field(..., description="Absolute xpath of the element")
    name: str = Field(..., description="Prefixed element name")
    type_name: str = Field("", description="Prefixed type name")
    cardinality: str = Field("", description="XSD cardinality")
    id: str = Field("", description="Business term identifier")
    business_term: str = Field("", description="Business term label")


class SearchResponse(BaseModel):
    """Response model for the search endpoint."""

    results: List[SearchResult] = Field(default_factory=list)
    total: int = Field(..., description="Number of returned results")
    limited: bool = Field(..., description="True when the result list was truncated")


class DocumentationRepository:
    """Hold the documented forest and answer lookups against it.

    Args:
        xsd_paths: Entry XSD paths; defaults to ``FACTURX_XSD_PATHS``.
        excel_path: Optional documentation workbook.
        parser_config: Optional :class:`ParserConfig`.
        roots: Pre-built forest (used by tests and embedding callers); when
            given, nothing is parsed.

    Raises:
        ConfigurationError: If neither ``roots`` nor any XSD path is available.
    """

    def __init__(
        self,
        xsd_paths: Optional[List[str]] = None,
        excel_path: Optional[str] = None,
        parser_config: Optional[ParserConfig] = None,
        roots: Optional[List[ElementNode]] = None,
    ) -> None:
        self.parser_config = parser_config or ParserConfig()
        self.xsd_paths = list(xsd_paths) if xsd_paths else _get_xsd_paths()
        self.excel_path = excel_path

        if roots is not None:
            self.roots = roots
            source = "in-memory"
        else:
            if not self.xsd_paths:
                raise ConfigurationError(
                    "No XSD entry path configured (set FACTURX_XSD_PATHS)."
                )
            self.roots = build_documentation_tree(
                self.xsd_paths, excel_path, parser_config=self.parser_config
            )
            source = "xsd"

        nodes = list(self.iter_nodes())
        self._index = {node.xpath: node for node in nodes}
        self.metadata: Dict[str, Any] = {
            "source": source,
            "xsd_paths": [str(Path(path)) for path in self.xsd_paths],
            "documentation_path": str(excel_path) if excel_path else None,
            "root_count": len(self.roots),
            "node_count": len(nodes),
            "documented_count": sum(1 for node in nodes if node.documented),
            "generated_at": datetime.now().isoformat(),
        }
        self._calculate_etag()

    def _calculate_etag(self) -> None:
        """Compute a weak ETag using parser configuration + source paths."""
        config_str = str(self.parser_config.__dict__)
        content = f"{config_str}-{self.metadata['xsd_paths']}-{self.excel_path}"
        self.etag = f'"{hashlib.md5(content.encode()).hexdigest()}"'
        self.last_modified = datetime.now()

    def iter_nodes(self) -> Iterator[ElementNode]:
        for root in self.roots:
            yield from root.iter_nodes()

    def find(self, xpath: str) -> Optional[ElementNode]:
        """Return the node with exactly this xpath (trailing ``/`` ignored)."""
        normalized = xpath.rstrip("/")
        return self._index.get(normalized)


@lru_cache(maxsize=1)
def get_repository() -> DocumentationRepository:
    return DocumentationRepository(
        excel_path=os.getenv("FACTURX_DOCUMENTATION_PATH") or None,
        parser_config=_get_parser_config(),
    )


@app.get("/health")
def health(repo: DocumentationRepository = Depends(get_repository)) -> Dict[str, Any]:
    """Health check endpoint."""
    return {"status": "healthy", "root_count": repo.metadata["root_count"]}


@app.get("/metadata")
def metadata(
    response: Response,
    if_none_match: Optional[str] = Header(None),
    repo: DocumentationRepository = Depends(get_repository),
) -> Dict[str, object]:
    """Get provenance information about the loaded forest.

    Supports conditional GET semantics via *ETag*.
    """
    if if_none_match and if_none_match == repo.etag:
        response.status_code = 304
        return {}

    response.headers["ETag"] = repo.etag
    response.headers["Last-Modified"] = repo.last_modified.strftime(
        "%a, %d %b %Y %H:%M:%S GMT"
    )
    response.headers["Cache-Control"] = "public, max-age=3600"
    return repo.metadata


@app.get("/tree")
def tree(
    response: Response,
    xpath: Optional[str] = Query(None, description="Absolute xpath of the subtree root"),
    depth: Optional[int] = Query(
        None, ge=0, le=50, description="Maximum depth to traverse"
    ),
    if_none_match: Optional[str] = Header(None),
    repo: DocumentationRepository = Depends(get_repository),
) -> Dict[str, object]:
    """Retrieve the whole forest, or the subtree starting at *xpath*.

    Example (limit to two levels)::

        curl "http://localhost:8000/tree?xpath=/rsm:CrossIndustryInvoice&depth=2" | jq '.node.name'
    """
    if if_none_match and if_none_match == repo.etag:
        response.status_code = 304
        return {}

    response.headers["ETag"] = repo.etag
    response.headers["Cache-Control"] = "public, max-age=3600"

    if xpath is None:
        roots = [root.to_dict() for root in repo.roots]
        if depth is not None:
            for root in roots:
                _limit_depth(root, depth)
        return {"roots": roots}

    node = repo.find(xpath)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Element not found: {xpath}")
    node_dict = node.to_dict()
    if depth is not None:
        _limit_depth(node_dict, depth)
    return {"node": node_dict}


def _limit_depth(node_dict: dict, max_depth: int, current_depth: int = 0) -> None:
    """Limit the depth of a node dictionary."""
    if current_depth >= max_depth:
        node_dict["children"] = []
    else:
        for child in node_dict.get("children", []):
            _limit_depth(child, max_depth, current_depth + 1)


@app.get("/node")
def node(
    xpath: str = Query(..., description="Absolute xpath of the element"),
    repo: DocumentationRepository = Depends(get_repository),
) -> Dict[str, object]:
    """Return one element with a summary of its direct children."""
    found = repo.find(xpath)
    if found is None:
        raise HTTPException(status_code=404, detail=f"Element not found: {xpath}")
    payload = found.to_dict()
    payload["children"] = [
        {"name": child.name, "xpath": child.xpath, "cardinality": child.cardinality}
        for child in found.children
    ]
    return payload


@app.get("/search", response_model=SearchResponse)
def search(
    query: str = Query(
        ..., min_length=2, description="Case-insensitive name / xpath / business term search"
    ),
    documented: Optional[bool] = Query(
        None, description="Only documented (true) or undocumented (false) elements"
    ),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of results"),
    repo: DocumentationRepository = Depends(get_repository),
) -> SearchResponse:
    """Search elements by partial name, xpath, id or business term.

    Example::

        curl "http://localhost:8000/search?query=seller&limit=5" | jq .results
    """
    lower = query.lower()
    matches: List[SearchResult] = []

    for candidate in repo.iter_nodes():
        if len(matches) >= limit:
            break
        if documented is not None and candidate.documented != documented:
            continue
        haystack = (candidate.name, candidate.xpath, candidate.id, candidate.business_term)
        if any(lower in value.lower() for value in haystack if value):
            matches.append(
                SearchResult(
                    xpath=candidate.xpath,
                    name=candidate.name,
                    type_name=candidate.type_name,
                    cardinality=candidate.cardinality,
                    id=candidate.id,
                    business_term=candidate.business_term,
                )
            )

    return SearchResponse(
        results=matches, total=len(matches), limited=len(matches) == limit
    )


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Custom 404 handler with more helpful error messages."""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "detail": (
                str(exc.detail)
                if hasattr(exc, "detail")
                else "The requested resource was not found"
            ),
            "path": str(request.url.path),
        },
    )
