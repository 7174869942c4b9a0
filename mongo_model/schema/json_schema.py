"""
JSON-Schema-like schema dialect.

Declarations are compiled into two pydantic models (full and partial) that
forbid undeclared keys. Pydantic errors are translated into the
``{"message", "field", "type"}`` entries carried by ValidationFailedError.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    Strict,
    ValidationError,
    create_model,
)

from mongo_model.core.errors import ValidationFailedError
from mongo_model.schema.base import Document, SchemaValidator, string_to_id
from mongo_model.schema.fields import (
    ID_FIELD,
    FieldDescriptor,
    FieldKind,
    parse_json_declaration,
)
from mongo_model.schema.object_id import validate_object_id

REQUIRED_MESSAGE = "Property is required"
ADDITIONAL_PROPERTIES_MESSAGE = "Additional properties are not allowed"

ObjectIdValue = Annotated[Any, BeforeValidator(validate_object_id)]

_SCALAR_ANNOTATIONS: Dict[FieldKind, Any] = {
    FieldKind.STRING: StrictStr,
    FieldKind.NUMBER: StrictFloat,
    FieldKind.INTEGER: StrictInt,
    FieldKind.BOOLEAN: StrictBool,
    FieldKind.OBJECT_ID: ObjectIdValue,
    FieldKind.DATE: Annotated[datetime, Strict()],
    FieldKind.ANY: Any,
}

_MESSAGES = {
    "missing": REQUIRED_MESSAGE,
    "extra_forbidden": ADDITIONAL_PROPERTIES_MESSAGE,
}

_ID_DESCRIPTOR = FieldDescriptor(name=ID_FIELD, kind=FieldKind.OBJECT_ID)


class JsonSchema(SchemaValidator):
    """
    Validator built from a JSON-Schema-like declaration.

    Usage:
        schema = JsonSchema({"firstName": {"type": "string", "required": True}})
        schema.validate({"firstName": "class"})
    """

    def __init__(self, declaration: Mapping[str, Any], name: Optional[str] = None):
        self.declaration = declaration
        super().__init__(parse_json_declaration(declaration), name=name)
        model_name = _model_name(name)
        # _id is always accepted as an optional identifier
        top_level = (_ID_DESCRIPTOR,) + tuple(d for d in self.descriptors if d.name != ID_FIELD)
        self._model = _build_model(model_name, top_level, partial=False)
        self._partial_model = _build_model(f"{model_name}Partial", top_level, partial=True)

    def validate(self, document: Mapping[str, Any]) -> None:
        self._run(self._model, document)

    def partial_validate(self, document: Mapping[str, Any]) -> None:
        self._run(self._partial_model, document)

    def strings_to_ids(self, document: Mapping[str, Any]) -> Document:
        converted = dict(document)
        for name, value in document.items():
            if name == ID_FIELD:
                converted[name] = string_to_id(value)
                continue
            descriptor = self.descriptor(name)
            if descriptor is not None:
                converted[name] = _strings_to_ids(descriptor, value)
        return converted

    def _run(self, model: Type[BaseModel], document: Mapping[str, Any]) -> None:
        try:
            model.model_validate(dict(document))
        except ValidationError as e:
            raise ValidationFailedError(
                [_translate_error(error) for error in e.errors()],
                collection=self.name
            ) from e


def _strings_to_ids(descriptor: FieldDescriptor, value: Any) -> Any:
    if descriptor.kind == FieldKind.OBJECT_ID:
        if isinstance(value, list):
            return [string_to_id(v) for v in value]
        return string_to_id(value)
    if descriptor.kind == FieldKind.OBJECT and descriptor.properties and isinstance(value, Mapping):
        nested = {d.name: d for d in descriptor.properties}
        return {
            k: _strings_to_ids(nested[k], v) if k in nested else v
            for k, v in value.items()
        }
    if descriptor.kind == FieldKind.ARRAY and descriptor.items is not None and isinstance(value, list):
        return [_strings_to_ids(descriptor.items, v) for v in value]
    return value


def _model_name(name: Optional[str]) -> str:
    if not name:
        return "Document"
    return "".join(part.capitalize() for part in name.replace("-", "_").split("_") if part) or "Document"


def _build_model(
    model_name: str,
    descriptors: Tuple[FieldDescriptor, ...],
    partial: bool
) -> Type[BaseModel]:
    """
    Compile descriptors into a pydantic model.

    Python attribute names are generated; the declared names are aliases so
    that any field name (``_id``, ``json``, ...) can be declared.
    """
    fields: Dict[str, Any] = {}
    for index, descriptor in enumerate(descriptors):
        annotation = _annotation(model_name, descriptor, partial)
        if descriptor.required and not partial:
            fields[f"field_{index}"] = (annotation, Field(..., alias=descriptor.name))
        else:
            fields[f"field_{index}"] = (annotation, Field(None, alias=descriptor.name))
    return create_model(
        model_name,
        __config__=ConfigDict(extra="forbid"),
        **fields
    )


def _annotation(parent: str, descriptor: FieldDescriptor, partial: bool) -> Any:
    if descriptor.kind == FieldKind.OBJECT:
        if not descriptor.properties:
            return Dict[str, Any]
        nested_name = f"{parent}_{descriptor.name}"
        return _build_model(nested_name, descriptor.properties, partial)
    if descriptor.kind == FieldKind.ARRAY:
        if descriptor.items is None:
            return List[Any]
        return List[_annotation(parent, descriptor.items, partial)]
    return _SCALAR_ANNOTATIONS[descriptor.kind]


def _translate_error(error: Dict[str, Any]) -> Dict[str, Any]:
    location = [str(part) for part in error.get("loc", ())]
    message = _MESSAGES.get(error["type"], error.get("msg", "Invalid value"))
    return {
        "message": message,
        "field": ".".join(location) if location else None,
        "type": error["type"],
        "value": error.get("input"),
    }
