"""
Validator interface shared by both schema dialects.

The Model only talks to this interface:
- validate: full document check
- partial_validate: check only the fields present (updates)
- strings_to_ids / ids_to_strings: identifier representation conversion
- convert_query: identifier conversion applied to read/remove/count queries
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from bson import ObjectId

from mongo_model.schema.fields import ID_FIELD, FieldDescriptor, FieldKind
from mongo_model.schema.object_id import id_to_string

Document = Dict[str, Any]


def has_operators(query: Any) -> bool:
    """True if any key, at any depth, starts with the query-operator sigil."""
    if isinstance(query, Mapping):
        return any(
            (isinstance(key, str) and key.startswith("$")) or has_operators(value)
            for key, value in query.items()
        )
    if isinstance(query, (list, tuple)):
        return any(has_operators(item) for item in query)
    return False


class SchemaValidator(ABC):
    """Template for schema dialect adapters."""

    def __init__(self, descriptors: Tuple[FieldDescriptor, ...], name: Optional[str] = None):
        self.name = name
        self.descriptors = descriptors
        self._by_name: Dict[str, FieldDescriptor] = {d.name: d for d in descriptors}

    @property
    def fields(self) -> Tuple[str, ...]:
        """Declared top-level field names."""
        return tuple(self._by_name)

    @property
    def id_fields(self) -> FrozenSet[str]:
        """Top-level fields holding identifiers, ``_id`` included."""
        return frozenset(
            [ID_FIELD] + [d.name for d in self.descriptors if d.is_identifier]
        )

    def descriptor(self, name: str) -> Optional[FieldDescriptor]:
        return self._by_name.get(name)

    @abstractmethod
    def validate(self, document: Mapping[str, Any]) -> None:
        """Validate a complete document; raise ValidationFailedError on failure."""
        pass

    @abstractmethod
    def partial_validate(self, document: Mapping[str, Any]) -> None:
        """Validate only the fields present in ``document``."""
        pass

    @abstractmethod
    def strings_to_ids(self, document: Mapping[str, Any]) -> Document:
        """Return a copy with identifier fields in ObjectId form."""
        pass

    def convert_query(self, query: Mapping[str, Any]) -> Document:
        """Convert identifier values of an operator-free query."""
        if has_operators(query):
            return dict(query)
        return self.strings_to_ids(query)

    def ids_to_strings(self, document: Mapping[str, Any]) -> Document:
        """Return a copy with declared identifier fields rendered as strings."""
        converted = dict(document)
        for name, value in document.items():
            if name == ID_FIELD:
                converted[name] = id_to_string(value)
                continue
            descriptor = self._by_name.get(name)
            if descriptor is not None:
                converted[name] = _ids_to_strings(descriptor, value)
        return converted


def _ids_to_strings(descriptor: FieldDescriptor, value: Any) -> Any:
    if descriptor.kind == FieldKind.OBJECT_ID:
        if isinstance(value, list):
            return [id_to_string(v) for v in value]
        return id_to_string(value)
    if descriptor.kind == FieldKind.OBJECT and descriptor.properties and isinstance(value, Mapping):
        nested = {d.name: d for d in descriptor.properties}
        return {
            k: _ids_to_strings(nested[k], v) if k in nested else v
            for k, v in value.items()
        }
    if descriptor.kind == FieldKind.ARRAY and descriptor.items is not None and isinstance(value, list):
        return [_ids_to_strings(descriptor.items, v) for v in value]
    return value


def string_to_id(value: Any) -> Any:
    """Convert a 24-hex string to ObjectId; leave anything else untouched."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value
