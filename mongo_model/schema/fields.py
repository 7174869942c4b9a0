"""
Schema Field Descriptors
========================
Normalized representation shared by both schema dialects.

Both the JSON-Schema-like declarations and the legacy validator maps are
parsed into a tuple of FieldDescriptor values; validators work on that shape
only.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

ID_FIELD = "_id"


class FieldKind(str, Enum):
    """Value kinds a schema field can declare."""
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT_ID = "objectid"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    ANY = "any"


class FieldTest(BaseModel):
    """Custom check attached to a legacy field: ``test(value)`` must be truthy."""

    model_config = ConfigDict(frozen=True)

    test: Callable[[Any], bool]
    message: str


class FieldDescriptor(BaseModel):
    """A single declared field."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field name as stored in the document")
    kind: FieldKind = Field(FieldKind.ANY, description="Declared value kind")
    required: bool = Field(False, description="Whether the field must be present")
    properties: Tuple["FieldDescriptor", ...] = Field((), description="Sub-fields of an object field")
    items: Optional["FieldDescriptor"] = Field(None, description="Element descriptor of an array field")
    tests: Tuple[FieldTest, ...] = Field((), description="Extra legacy checks")

    @property
    def is_identifier(self) -> bool:
        return self.kind == FieldKind.OBJECT_ID


FieldDescriptor.model_rebuild()


_KIND_ALIASES: Dict[str, FieldKind] = {
    "string": FieldKind.STRING,
    "str": FieldKind.STRING,
    "number": FieldKind.NUMBER,
    "float": FieldKind.NUMBER,
    "integer": FieldKind.INTEGER,
    "int": FieldKind.INTEGER,
    "boolean": FieldKind.BOOLEAN,
    "bool": FieldKind.BOOLEAN,
    "objectid": FieldKind.OBJECT_ID,
    "oid": FieldKind.OBJECT_ID,
    "date": FieldKind.DATE,
    "datetime": FieldKind.DATE,
    "object": FieldKind.OBJECT,
    "dict": FieldKind.OBJECT,
    "array": FieldKind.ARRAY,
    "list": FieldKind.ARRAY,
    "any": FieldKind.ANY,
}

# bool before int: bool is a subclass of int
_PYTHON_TYPES: List[Tuple[type, FieldKind]] = [
    (bool, FieldKind.BOOLEAN),
    (str, FieldKind.STRING),
    (int, FieldKind.INTEGER),
    (float, FieldKind.NUMBER),
    (ObjectId, FieldKind.OBJECT_ID),
    (datetime, FieldKind.DATE),
    (dict, FieldKind.OBJECT),
    (list, FieldKind.ARRAY),
]


def parse_kind(value: Any) -> FieldKind:
    """
    Resolve a declared type into a FieldKind.

    Args:
        value: type name ("string", "objectid", ...), Python type or FieldKind

    Raises:
        ValueError: If the type is unknown
    """
    if value is None:
        return FieldKind.ANY
    if isinstance(value, FieldKind):
        return value
    if isinstance(value, str):
        kind = _KIND_ALIASES.get(value.lower())
        if kind is None:
            raise ValueError(f"Unknown field type: {value!r}")
        return kind
    if isinstance(value, type):
        for python_type, kind in _PYTHON_TYPES:
            if issubclass(value, python_type):
                return kind
    raise ValueError(f"Unknown field type: {value!r}")


# ============================================================================
# JSON-SCHEMA-LIKE DIALECT
# ============================================================================

def parse_json_declaration(declaration: Mapping[str, Any]) -> Tuple[FieldDescriptor, ...]:
    """
    Parse a JSON-Schema-like declaration.

    Accepts either the short form ``{field: {"type": ..., "required": bool}}``
    or a full object schema ``{"type": "object", "properties": {...},
    "required": [...]}``.
    """
    properties, required = _split_object_schema(declaration)
    return tuple(
        _parse_json_field(name, spec, name in required)
        for name, spec in properties.items()
    )


def _split_object_schema(declaration: Mapping[str, Any]) -> Tuple[Mapping[str, Any], List[str]]:
    if declaration.get("type") == "object" and isinstance(declaration.get("properties"), Mapping):
        return declaration["properties"], list(declaration.get("required") or [])
    return declaration, []


def _parse_json_field(name: str, spec: Any, required_by_parent: bool = False) -> FieldDescriptor:
    if not isinstance(spec, Mapping):
        # shorthand: {"firstName": "string"}
        return FieldDescriptor(name=name, kind=parse_kind(spec), required=required_by_parent)

    kind = parse_kind(spec.get("type"))
    required = required_by_parent or spec.get("required") is True

    properties: Tuple[FieldDescriptor, ...] = ()
    items: Optional[FieldDescriptor] = None
    if kind == FieldKind.OBJECT and isinstance(spec.get("properties"), Mapping):
        nested_required = spec.get("required") if isinstance(spec.get("required"), list) else []
        properties = tuple(
            _parse_json_field(sub_name, sub_spec, sub_name in nested_required)
            for sub_name, sub_spec in spec["properties"].items()
        )
    elif kind == FieldKind.ARRAY and spec.get("items") is not None:
        items = _parse_json_field("items", spec["items"])

    return FieldDescriptor(
        name=name,
        kind=kind,
        required=required,
        properties=properties,
        items=items
    )


# ============================================================================
# LEGACY DIALECT
# ============================================================================

def parse_legacy_declaration(declaration: Mapping[str, Any]) -> Tuple[FieldDescriptor, ...]:
    """
    Parse a legacy validator map.

    Each entry looks like ``{"type": str, "required": True}``; identifier
    fields are marked with ``{"$special": "oid"}``. An optional ``validate``
    list holds ``{"test": callable, "message": str}`` checks.
    """
    descriptors = []
    for name, spec in declaration.items():
        if not isinstance(spec, Mapping):
            descriptors.append(FieldDescriptor(name=name, kind=parse_kind(spec)))
            continue

        if spec.get("$special") == "oid":
            kind = FieldKind.OBJECT_ID
        else:
            kind = parse_kind(spec.get("type"))

        tests = tuple(
            FieldTest(test=entry["test"], message=entry.get("message", f"`{name}` is invalid"))
            for entry in (spec.get("validate") or [])
        )
        descriptors.append(FieldDescriptor(
            name=name,
            kind=kind,
            required=bool(spec.get("required", False)),
            tests=tests
        ))
    return tuple(descriptors)


def object_id_test(name: str) -> List[Dict[str, Any]]:
    """
    Legacy ``validate`` entry asserting that a field holds an ObjectId.

    Usage:
        {"ownerId": {"$special": "oid", "validate": object_id_test("ownerId")}}
    """
    return [
        {
            "test": lambda v: isinstance(v, ObjectId),
            "message": f"`{name}` must be an ObjectID"
        }
    ]
