"""
Model-layer exceptions.

Every I/O error of a model operation is raised from the awaited coroutine.
Store errors (e.g. pymongo's DuplicateKeyError) are not wrapped.
"""

from typing import Any, Dict, List, Optional


class ModelError(Exception):
    """Base class for errors raised by the model layer."""

    type = "ModelError"

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.collection = collection
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serializable representation used by the HTTP error handlers."""
        payload: Dict[str, Any] = {"detail": self.message, "error_code": self.type}
        if self.collection:
            payload["collection"] = self.collection
        return payload


class InvalidIdError(ModelError):
    """Raised for a missing or malformed document identifier."""

    type = "InvalidId"


class ValidationFailedError(ModelError):
    """
    Raised when a document is rejected by the schema.

    Attributes:
        errors: one entry per problem, each with at least ``message`` and ``field``
    """

    type = "ValidationFailed"

    def __init__(
        self,
        errors: List[Dict[str, Any]],
        collection: Optional[str] = None
    ):
        self.errors = errors
        summary = "; ".join(
            f"{e['field']}: {e['message']}" if e.get("field") else e["message"]
            for e in errors
        )
        super().__init__(f"Validation failed: {summary}", collection=collection)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = [
            {k: v for k, v in e.items() if k != "value"} for e in self.errors
        ]
        return payload


class NotFoundError(ModelError):
    """Raised when a lookup yields no document."""

    type = "NotFound"

    def __init__(self, query: Any = None, collection: Optional[str] = None):
        super().__init__(
            "Not found",
            collection=collection,
            detail={"query": query, "collection": collection}
        )


class DocumentMissingError(ModelError):
    """Raised when an update targets a document that does not exist."""

    type = "DocumentMissing"


class NoDatabaseError(ModelError):
    """Raised when an operation runs before a store handle was configured."""

    type = "NoDatabase"
