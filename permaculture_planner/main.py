"""
Main application module for the Permaculture Planner backend.

This module defines the FastAPI application, its lifecycle, middleware and routers.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from permaculture_planner import __version__
from permaculture_planner.api import admin, ai, auth, community, content, farms, learning, search, shop
from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag.startup import initialize_rag, shutdown_rag
from permaculture_planner.services.db_operations import dispose_engine, init_db
from permaculture_planner.services.rate_limit import start_cleanup_task, stop_cleanup_task
from permaculture_planner.services.seed import seed_database

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    for warning in Config.validate():
        logger.warning(warning)

    await init_db()
    if Config.SEED_ON_STARTUP:
        added = await seed_database()
        logger.info("Seed data: %s", added)
    await initialize_rag()
    start_cleanup_task()

    yield

    await stop_cleanup_task()
    await shutdown_rag()
    await dispose_engine()


# Create FastAPI app
app = FastAPI(
    title="Permaculture Planner",
    description="Farm design, community and learning backend for permaculture planners",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report invalid request bodies and parameters as 400 with the first problem as detail."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        detail = f"{field}: {message}" if field else message
    else:
        detail = "Invalid request"
    return JSONResponse(status_code=400, content={"detail": detail})


@app.get("/ping")
@app.head("/ping")
async def ping():
    """Health check endpoint. Supports both GET and HEAD methods."""
    return {"status": "ok"}


for module in (auth, farms, community, learning, content, shop, search, ai, admin):
    app.include_router(module.router)
