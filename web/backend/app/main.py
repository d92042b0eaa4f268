"""FastAPI application for the module certification backend.

Exposes the ``modcert`` callables over HTTP:
- ``POST /api/functions/{name}`` -- invoke a callable
- ``GET /api/functions`` -- list callables
- ``GET /health`` -- health check
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Ensure the modcert package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from modcert import __version__
from modcert.config import Settings
from modcert.errors import ModcertError
from modcert.logging_config import configure_logging
from web.backend.app.routers import functions


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(Settings.from_env().log_level)
    yield


app = FastAPI(
    title="Module Certification API",
    description=(
        "Callable functions for the module certification backend, "
        "guarded by authentication, role checks, the active-round gate, "
        "input validation and rate limiting."
    ),
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ModcertError)
async def modcert_error_handler(request: Request, exc: ModcertError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


app.include_router(functions.router)


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "Module Certification API",
        "version": __version__,
        "functions": "/api/functions",
        "docs": "/docs",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
