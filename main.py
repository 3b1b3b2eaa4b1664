import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from nobodyreads.config import settings
from nobodyreads.database import engine, init_db
from nobodyreads.exception_handlers import register_exception_handlers
from nobodyreads.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from nobodyreads.middleware.tenant import TenantMiddleware
from nobodyreads.routes import blog, editor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info("Starting %s %s (%s)", settings.app_name, settings.app_version, settings.environment)
    await init_db()
    yield
    logger.info("Shutting down the application...")
    await engine.dispose()


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Create the FastAPI application."""
    setup_structured_logging(settings.log_level, json_format=settings.json_logs)

    app = FastAPI(
        title=settings.app_name,
        description="A small multi-tenant blog engine",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan if use_lifespan else None,
    )

    register_exception_handlers(app)

    # Starlette middleware is LIFO: tenant resolution runs inside request logging
    app.add_middleware(TenantMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "version": settings.app_version}

    app.include_router(editor.router)
    # Catch-all public routes go last
    app.include_router(blog.router)

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
