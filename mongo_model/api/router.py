"""
CRUD routes for a Model.

build_router() produces one APIRouter per model:

    POST   /          create one document or a batch
    GET    /          paginated list
    GET    /count     number of documents
    GET    /{id}      single document
    PATCH  /{id}      partial update
    DELETE /{id}      delete
"""

import logging
from typing import Any, Dict, List, Optional, Union
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from mongo_model.api.schemas import (
    CountResponse,
    DocumentListResponse,
    ErrorResponse,
    MessageResponse,
)
from mongo_model.database.model import Model
from mongo_model.schema.fields import ID_FIELD

logger = logging.getLogger(__name__)


def build_router(model: Model, prefix: Optional[str] = None) -> APIRouter:
    """
    Create the CRUD router of a model.

    Args:
        model: Model serving the routes
        prefix: Route prefix, defaults to ``/<collection name>``

    Returns:
        Router ready to be included in an application
    """
    name = model.collection_name
    router = APIRouter(
        prefix=prefix if prefix is not None else f"/{name}",
        tags=[name],
        responses={
            404: {"model": ErrorResponse, "description": "Document not found"},
            422: {"model": ErrorResponse, "description": "Validation error"},
            500: {"model": ErrorResponse, "description": "Internal server error"}
        }
    )

    def get_model() -> Model:
        return model

    @router.post(
        "/",
        status_code=status.HTTP_201_CREATED,
        summary=f"Create {name}",
        description="Create one document, or a batch when given a list"
    )
    async def create_document(
        document: Union[Dict[str, Any], List[Dict[str, Any]]] = Body(...),
        model: Model = Depends(get_model)
    ) -> Any:
        return await model.create(document)

    @router.get(
        "/",
        response_model=DocumentListResponse,
        summary=f"List {name}",
        description="Retrieve a paginated list of documents"
    )
    async def list_documents(
        skip: int = Query(0, ge=0, description="Number of documents to skip"),
        limit: int = Query(100, ge=1, le=1000, description="Maximum number of documents to return"),
        model: Model = Depends(get_model)
    ) -> DocumentListResponse:
        items = await model.find({}, skip=skip, limit=limit, sort=[(ID_FIELD, 1)])
        total = await model.count({})
        return DocumentListResponse(items=items, total=total, skip=skip, limit=limit)

    @router.get(
        "/count",
        response_model=CountResponse,
        summary=f"Count {name}"
    )
    async def count_documents(model: Model = Depends(get_model)) -> CountResponse:
        return CountResponse(count=await model.count({}))

    @router.get(
        "/{document_id}",
        summary=f"Get {name} by ID"
    )
    async def get_document(document_id: str, model: Model = Depends(get_model)) -> Any:
        return await model.find_by_id(document_id)

    @router.patch(
        "/{document_id}",
        summary=f"Partially update {name}",
        description="Update only the provided fields"
    )
    async def update_document(
        document_id: str,
        changes: Dict[str, Any] = Body(...),
        model: Model = Depends(get_model)
    ) -> Any:
        changes = {k: v for k, v in changes.items() if k != ID_FIELD}
        if not changes:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="No fields provided for update"
            )
        return await model.update({**changes, ID_FIELD: document_id})

    @router.delete(
        "/{document_id}",
        response_model=MessageResponse,
        summary=f"Delete {name}"
    )
    async def delete_document(document_id: str, model: Model = Depends(get_model)) -> MessageResponse:
        # raises NotFoundError for unknown ids
        await model.find_by_id(document_id)
        await model.remove_by_id(document_id)
        logger.info(f"Deleted {name} {document_id}")
        return MessageResponse(message=f"{name} with id '{document_id}' successfully deleted")

    return router
