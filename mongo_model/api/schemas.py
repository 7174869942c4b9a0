"""
Response schemas of the HTTP surface.

Documents themselves are schema-less here: their shape is whatever the
model's schema and output formatter produce.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class DocumentListResponse(BaseModel):
    """Paginated list of documents."""
    items: List[Any] = Field(..., description="Documents of the current page")
    total: int = Field(..., description="Number of documents matching the query")
    skip: int = Field(..., description="Number of documents skipped")
    limit: int = Field(..., description="Maximum number of documents returned")


class CountResponse(BaseModel):
    count: int = Field(..., description="Number of documents in the collection")


class MessageResponse(BaseModel):
    message: str = Field(..., description="Response message")


class ErrorResponse(BaseModel):
    """Body of every error response."""
    detail: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error kind for client handling")
    collection: Optional[str] = Field(None, description="Collection the error relates to")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Validation problems, if any")
