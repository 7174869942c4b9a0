"""
FastAPI application factory exposing models over HTTP.

Usage:
    students = Model("students")
    students.schema({"firstName": {"type": "string", "required": True}})
    app = create_app([students])

Serve the returned app with any ASGI server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mongo_model.api.errors import register_exception_handlers
from mongo_model.api.middleware import RequestLoggingMiddleware
from mongo_model.api.router import build_router
from mongo_model.core.config import Settings, get_settings
from mongo_model.core.logging import setup_logging
from mongo_model.database.model import Model
from mongo_model.database.mongodb import MongoDB

logger = logging.getLogger(__name__)


def create_app(
    models: Iterable[Model],
    config: Optional[Settings] = None,
    connection: Optional[MongoDB] = None
) -> FastAPI:
    """
    Build the application.

    Models without a database handle are wired to the connection opened
    on startup; models that already have one keep it.

    Args:
        models: Models to expose, one router each under API_PREFIX
        config: Settings, defaults to the global settings
        connection: Connection manager, defaults to a new one built from config
    """
    config = config or get_settings()
    connection = connection or MongoDB(config)
    models = list(models)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.LOG_LEVEL, config.LOG_FILE)
        logger.info("Starting application...")
        try:
            db = await connection.connect()
        except Exception as e:
            logger.error(f"Failed to start application: {e}")
            raise
        for model in models:
            if model.database() is None:
                model.database(db)
        logger.info("Application started successfully")

        yield

        logger.info("Shutting down application...")
        await connection.close()
        logger.info("Application shut down successfully")

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        lifespan=lifespan
    )
    app.state.connection = connection

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    for model in models:
        app.include_router(build_router(model), prefix=config.API_PREFIX)

    @app.get("/health", tags=["health"])
    async def health_check():
        """
        Health check endpoint to verify API and database status.
        """
        try:
            db = await connection.get_database()
            await db.command("ping")
            return {
                "status": "healthy",
                "database": "connected",
                "environment": config.ENVIRONMENT
            }
        except Exception as e:
            logger.error(f"Health check failed: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "unhealthy",
                    "database": "disconnected",
                    "error": str(e)
                }
            )

    return app

