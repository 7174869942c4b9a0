"""
Legacy validator-map schema dialect.

Fields are checked one at a time in declaration order and validation stops
at the first failure. Identifier conversion of documents is strict: a value
that cannot become an ObjectId is an error naming the field. Queries only
convert an `_id` that reads as an ObjectId.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from bson.errors import InvalidId

from mongo_model.core.errors import InvalidIdError, ValidationFailedError
from mongo_model.schema.base import Document, SchemaValidator, string_to_id
from mongo_model.schema.fields import (
    ID_FIELD,
    FieldDescriptor,
    FieldKind,
    parse_legacy_declaration,
)
from mongo_model.schema.json_schema import REQUIRED_MESSAGE

logger = logging.getLogger(__name__)

_KIND_TYPES: Dict[FieldKind, Any] = {
    FieldKind.STRING: str,
    FieldKind.NUMBER: (int, float),
    FieldKind.INTEGER: int,
    FieldKind.BOOLEAN: bool,
    FieldKind.OBJECT_ID: ObjectId,
    FieldKind.DATE: datetime,
    FieldKind.OBJECT: dict,
    FieldKind.ARRAY: list,
}


class LegacySchema(SchemaValidator):
    """
    Validator built from a legacy validator map.

    An empty declaration accepts any document and only converts ``_id``.
    """

    def __init__(self, declaration: Optional[Mapping[str, Any]] = None, name: Optional[str] = None):
        self.declaration = declaration or {}
        super().__init__(parse_legacy_declaration(self.declaration), name=name)

    @property
    def restricts_fields(self) -> bool:
        return bool(self.descriptors)

    def sanitize(self, document: Mapping[str, Any]) -> Document:
        """Drop ``_id`` and, when fields are declared, every undeclared key."""
        sanitized = {k: v for k, v in document.items() if k != ID_FIELD}
        if self.restricts_fields:
            sanitized = {k: v for k, v in sanitized.items() if k in self._by_name}
        return sanitized

    def validate(self, document: Mapping[str, Any]) -> None:
        for descriptor in self.descriptors:
            if descriptor.name not in document or document[descriptor.name] is None:
                if descriptor.required:
                    self._fail(descriptor, REQUIRED_MESSAGE, "missing")
                continue
            self._check(descriptor, document[descriptor.name])

    def partial_validate(self, document: Mapping[str, Any]) -> None:
        for name, value in document.items():
            descriptor = self.descriptor(name)
            if descriptor is None:
                continue
            if value is None:
                if descriptor.required:
                    self._fail(descriptor, REQUIRED_MESSAGE, "missing")
                continue
            self._check(descriptor, value)

    def strings_to_ids(self, document: Mapping[str, Any]) -> Document:
        return self._convert(document, [ID_FIELD] + self._identifier_names())

    def convert_query(self, query: Mapping[str, Any]) -> Document:
        """
        Convert declared identifier fields strictly; ``_id`` only when it
        looks like an ObjectId, so custom keys can still be queried.
        """
        # operator sub-documents are skipped field by field
        converted = self._convert(query, self._identifier_names())
        if ID_FIELD in converted:
            converted[ID_FIELD] = string_to_id(converted[ID_FIELD])
        return converted

    def _identifier_names(self) -> List[str]:
        return [d.name for d in self.descriptors if d.is_identifier]

    def _convert(self, document: Mapping[str, Any], names: List[str]) -> Document:
        converted = dict(document)
        for name in names:
            value = converted.get(name)
            if not value or isinstance(value, (ObjectId, Mapping, list)):
                continue
            try:
                converted[name] = ObjectId(str(value))
            except InvalidId:
                raise InvalidIdError(
                    f"Must provide a valid MongoId for `{name}`",
                    collection=self.name
                )
        return converted

    def _check(self, descriptor: FieldDescriptor, value: Any) -> None:
        expected = _KIND_TYPES.get(descriptor.kind)
        if expected is not None and not _is_instance(value, descriptor.kind, expected):
            self._fail(descriptor, f"`{descriptor.name}` must be of type {descriptor.kind.value}", "type")
        for check in descriptor.tests:
            if not check.test(value):
                self._fail(descriptor, check.message, "test")

    def _fail(self, descriptor: FieldDescriptor, message: str, error_type: str) -> None:
        logger.debug(f"Validation of `{descriptor.name}` failed for {self.name}: {message}")
        raise ValidationFailedError(
            [{"message": message, "field": descriptor.name, "type": error_type}],
            collection=self.name
        )


def _is_instance(value: Any, kind: FieldKind, expected: Any) -> bool:
    # bool is an int subclass but never a number here
    if kind in (FieldKind.NUMBER, FieldKind.INTEGER) and isinstance(value, bool):
        return False
    return isinstance(value, expected)
