"""
Lab algorithm builder FastAPI application entrypoint.

Run with: uvicorn backend.main:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.database import Base, engine
from backend.exceptions import LookupMiss, ParseError, StorageError, ValidationRejection
from backend.models_db import ActionModel, AlgorithmModel, GlobalParameterModel, TemplateModel  # noqa: F401 (register tables)
from backend.routes import api_router
from backend.utils.logging import configure_logging

logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("LABTREE_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]


def ensure_dirs():
    """Create the logs directory if missing."""
    root = Path(__file__).resolve().parent.parent
    (root / "logs").mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create DB tables, dirs, and configure logging on startup."""
    ensure_dirs()
    configure_logging()
    Base.metadata.create_all(bind=engine)
    yield
    # Shutdown: nothing to do for SQLite


app = FastAPI(
    title="Lab Algorithm Builder API",
    description="""Build laboratory decision trees: conditions over lab parameters with
process (non-terminal) and result (terminal) actions.

## Resources
Templates, global parameters, actions and algorithms answer with `{success, data | error}`.

## Builder
`/api/builder/sessions` holds an in-progress algorithm. Edits that break a tree rule
(e.g. adding a child under a node with result actions) answer **422** and leave the tree unchanged.
""",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationRejection)
async def validation_rejection_handler(request: Request, exc: ValidationRejection):
    return JSONResponse(status_code=422, content={"detail": exc.message, **exc.to_dict()})


@app.exception_handler(LookupMiss)
async def lookup_miss_handler(request: Request, exc: LookupMiss):
    return JSONResponse(status_code=404, content={"detail": exc.message, **exc.to_dict()})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.warning("Storage failure on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=502, content={"detail": exc.message, **exc.to_dict()})


@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError):
    logger.info("Rejected algorithm document on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=400, content={"detail": "Error parsing algorithm file", **exc.to_dict()})


app.include_router(api_router)


@app.get("/")
def root():
    return {"service": "labtree", "docs": "/docs", "api": "/api"}
