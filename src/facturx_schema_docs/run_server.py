"""Executable entry point for launching the documentation FastAPI application.

Environment Variables:
    PORT (int): Override listening port (default 8000).
    FACTURX_XSD_PATHS, FACTURX_DOCUMENTATION_PATH: see :mod:`facturx_schema_docs.app`.

Example:
    $ FACTURX_XSD_PATHS=FACTUR-X_EXTENDED.xsd python -m facturx_schema_docs.run_server

Production Recommendation:
    Prefer invoking uvicorn directly:
        uvicorn facturx_schema_docs.app:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import os

import uvicorn

from .app import app


def main() -> None:
    """Launch the ASGI server with development-friendly defaults."""
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
