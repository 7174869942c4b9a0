"""
ObjectId recognition and conversion helpers.
"""

from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from mongo_model.core.errors import InvalidIdError


def is_object_id(value: Any) -> bool:
    """
    Check whether a value is, or can be read as, a MongoDB ObjectId.

    Args:
        value: ObjectId, 24-character hex string or 12-byte raw id

    Returns:
        True for valid identifiers, False for empty or malformed input
    """
    if isinstance(value, ObjectId):
        return True
    if not value:
        return False
    if not isinstance(value, (str, bytes)):
        value = str(value)
    try:
        ObjectId(value)
    except InvalidId:
        return False
    return True


def to_object_id(value: Any, collection: Optional[str] = None) -> ObjectId:
    """
    Convert a string (or ObjectId) into an ObjectId.

    Raises:
        InvalidIdError: If the value is not a valid identifier
    """
    if isinstance(value, ObjectId):
        return ObjectId(value)
    if not is_object_id(value):
        raise InvalidIdError(f"Invalid mongo id: {value}", collection=collection)
    return ObjectId(value if isinstance(value, (str, bytes)) else str(value))


def id_to_string(value: Any) -> Any:
    """Render ObjectIds as hex strings, leave everything else untouched."""
    if isinstance(value, ObjectId):
        return str(value)
    return value


def validate_object_id(v: Any) -> Any:
    """Pydantic before-validator accepting ObjectIds and hex strings."""
    if isinstance(v, ObjectId):
        return v
    if isinstance(v, str) and ObjectId.is_valid(v):
        return v
    raise ValueError("Invalid ObjectId")
