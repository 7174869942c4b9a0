"""
Exception handlers mapping model errors onto HTTP responses.
"""

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from mongo_model.core.errors import (
    DocumentMissingError,
    InvalidIdError,
    ModelError,
    NoDatabaseError,
    NotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: Dict[Type[ModelError], int] = {
    InvalidIdError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ValidationFailedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DocumentMissingError: status.HTTP_404_NOT_FOUND,
    NoDatabaseError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: ModelError) -> int:
    """HTTP status code for a model error; 500 for unknown kinds."""
    for error_class in type(exc).__mro__:
        if error_class in ERROR_STATUS:
            return ERROR_STATUS[error_class]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def model_exception_handler(request: Request, exc: ModelError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{exc.type} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.type} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request parsing errors with detailed error messages.
    """
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "error_code": "RequestValidation",
            "errors": [
                {"message": e.get("msg"), "field": ".".join(str(p) for p in e.get("loc", ())), "type": e.get("type")}
                for e in exc.errors()
            ]
        }
    )


async def duplicate_key_exception_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    logger.warning(f"Duplicate key on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": "Document already exists",
            "error_code": "DuplicateKey"
        }
    )


async def mongodb_exception_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    """
    Handle MongoDB-specific errors.
    """
    logger.error(f"MongoDB error: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Database error occurred",
            "error_code": "DB_ERROR"
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all other unexpected exceptions.
    """
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An unexpected error occurred",
            "error_code": "INTERNAL_ERROR"
        }
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install the handlers on an application.

    Handlers are resolved by exception class, most specific first, so
    DuplicateKeyError wins over the generic PyMongoError handler.
    """
    app.add_exception_handler(ModelError, model_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_exception_handler)
    app.add_exception_handler(PyMongoError, mongodb_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
