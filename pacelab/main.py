from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

import pacelab.core.database  # noqa: F401 - registers database lifespan
import pacelab.core.logging_config  # noqa: F401 - registers logging lifespan
from pacelab import __version__
from pacelab.activities.router import router as activities_router
from pacelab.best_efforts.router import router as best_efforts_router
from pacelab.classification.router import router as hr_zones_router
from pacelab.config import get_settings
from pacelab.core.lifespan import manager
from pacelab.core.logging_config import configure_logging
from pacelab.sync.router import router as sync_router

# Configure logging FIRST (before app creation and settings access)
configure_logging()

settings = get_settings()

app_configs = {
    "title": settings.APP_NAME,
    "version": __version__,
    "lifespan": manager,
}

if settings.ENVIRONMENT not in ("local", "staging"):
    app_configs["openapi_url"] = None

app = FastAPI(**app_configs)

if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(sync_router)
app.include_router(activities_router)
app.include_router(best_efforts_router)
app.include_router(hr_zones_router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with structured logging.

    Parameters
    ----------
    request : Request
        The HTTP request that caused the exception
    exc : Exception
        The unhandled exception

    Returns
    -------
    JSONResponse
        Generic 500 response, details stay in the logs
    """
    logger.opt(exception=exc).error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health():
    return {"status": "healthy"}
