"""Calcgraph Backend: FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.routes import library, projects

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    from calcgraph.registry import build_default_registry
    registry = build_default_registry()
    app.state.registry = registry

    store_kind = os.getenv("CALCGRAPH_STORE", "sqlite").lower()
    if store_kind == "memory":
        from backend.projects.store import InMemoryProjectStore
        app.state.project_store = InMemoryProjectStore(registry)
    else:
        from backend.database import init_db
        from backend.projects.store import SQLiteProjectStore
        init_db()
        app.state.project_store = SQLiteProjectStore(registry)
    logger.info("Started with %d node types, %s project store", len(registry), store_kind)
    yield


app = FastAPI(
    title="Calcgraph API",
    description="Dependency-driven structural calculation sheets",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow frontend origins
_frontend_url = os.getenv("FRONTEND_URL")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[_frontend_url] if _frontend_url else [],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(library.router, prefix="/api", tags=["Library"])
app.include_router(projects.router, prefix="/api", tags=["Projects"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "calcgraph-backend"}
