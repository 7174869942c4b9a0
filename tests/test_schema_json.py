"""
Tests for the JSON-Schema-like dialect.
"""

from datetime import datetime

import pytest
from bson import ObjectId

from mongo_model.core.errors import ValidationFailedError
from mongo_model.schema.base import has_operators
from mongo_model.schema.json_schema import (
    ADDITIONAL_PROPERTIES_MESSAGE,
    REQUIRED_MESSAGE,
    JsonSchema,
)

STUDENT_SCHEMA = {
    "firstName": {"type": "string", "required": True},
    "lastName": {"type": "string"}
}

OWNER_ID = "52535efb0555c1353a75f54b"


@pytest.fixture
def schema():
    return JsonSchema(STUDENT_SCHEMA, name="fakeusers")


def test_valid_document_passes(schema):
    schema.validate({"firstName": "class", "lastName": "dojo"})


def test_missing_required_field(schema):
    with pytest.raises(ValidationFailedError) as exc_info:
        schema.validate({"lastName": "dojo"})
    errors = exc_info.value.errors
    assert errors[0]["message"] == REQUIRED_MESSAGE
    assert errors[0]["field"] == "firstName"
    assert exc_info.value.collection == "fakeusers"


def test_undeclared_field_is_rejected(schema):
    with pytest.raises(ValidationFailedError) as exc_info:
        schema.validate({"firstName": "class", "zoobuddydoo": True})
    assert exc_info.value.errors[0]["message"] == ADDITIONAL_PROPERTIES_MESSAGE
    assert exc_info.value.errors[0]["field"] == "zoobuddydoo"


def test_wrong_type_is_rejected(schema):
    with pytest.raises(ValidationFailedError) as exc_info:
        schema.validate({"firstName": 12})
    assert exc_info.value.errors[0]["field"] == "firstName"


def test_id_is_always_accepted(schema):
    schema.validate({"_id": OWNER_ID, "firstName": "class"})
    schema.validate({"_id": ObjectId(OWNER_ID), "firstName": "class"})


def test_partial_validation_ignores_required(schema):
    schema.partial_validate({"lastName": "dodo"})


def test_partial_validation_still_forbids_undeclared(schema):
    with pytest.raises(ValidationFailedError) as exc_info:
        schema.partial_validate({"nonField": "aValue"})
    assert exc_info.value.errors[0]["message"] == ADDITIONAL_PROPERTIES_MESSAGE


def test_every_problem_is_reported(schema):
    with pytest.raises(ValidationFailedError) as exc_info:
        schema.validate({"lastName": 3, "other": 1})
    fields = {e["field"] for e in exc_info.value.errors}
    assert fields == {"firstName", "lastName", "other"}


def test_full_object_schema_form():
    schema = JsonSchema({
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "age": {"type": "integer"},
            "score": {"type": "number"},
        },
        "required": ["name"]
    })
    schema.validate({"name": "class", "age": 3, "score": 2})
    with pytest.raises(ValidationFailedError):
        schema.validate({"age": 3})
    with pytest.raises(ValidationFailedError):
        schema.validate({"name": "class", "age": True})


def test_nested_objects_and_arrays():
    schema = JsonSchema({
        "address": {
            "type": "object",
            "properties": {
                "city": {"type": "string"},
                "ownerId": {"type": "objectid"}
            },
            "required": ["city"]
        },
        "tags": {"type": "array", "items": {"type": "string"}},
        "createdAt": {"type": "date"}
    })
    schema.validate({
        "address": {"city": "Paris", "ownerId": OWNER_ID},
        "tags": ["a", "b"],
        "createdAt": datetime(2020, 1, 1)
    })
    with pytest.raises(ValidationFailedError) as exc_info:
        schema.validate({"address": {"city": "Paris", "street": "x"}})
    assert exc_info.value.errors[0]["field"] == "address.street"
    with pytest.raises(ValidationFailedError):
        schema.validate({"tags": ["a", 1]})
    # nested required fields are relaxed by partial validation
    schema.partial_validate({"address": {"ownerId": OWNER_ID}})


def test_identifier_conversion():
    schema = JsonSchema({
        "ownerId": {"type": "objectid"},
        "friendIds": {"type": "array", "items": {"type": "objectid"}},
        "name": {"type": "string"}
    })
    converted = schema.strings_to_ids({
        "_id": OWNER_ID,
        "ownerId": OWNER_ID,
        "friendIds": [OWNER_ID],
        "name": OWNER_ID
    })
    assert converted["_id"] == ObjectId(OWNER_ID)
    assert converted["ownerId"] == ObjectId(OWNER_ID)
    assert converted["friendIds"] == [ObjectId(OWNER_ID)]
    assert converted["name"] == OWNER_ID

    back = schema.ids_to_strings(converted)
    assert back["_id"] == OWNER_ID
    assert back["ownerId"] == OWNER_ID
    assert back["friendIds"] == [OWNER_ID]


def test_invalid_identifier_strings_are_left_alone():
    schema = JsonSchema({"ownerId": {"type": "objectid"}})
    assert schema.strings_to_ids({"ownerId": "nope"}) == {"ownerId": "nope"}


def test_queries_with_operators_are_not_converted(schema):
    query = {"_id": {"$in": [OWNER_ID]}}
    assert has_operators(query) is True
    assert schema.convert_query(query) == query
    assert schema.convert_query({"_id": OWNER_ID}) == {"_id": ObjectId(OWNER_ID)}


def test_error_payload_drops_values(schema):
    with pytest.raises(ValidationFailedError) as exc_info:
        schema.validate({"firstName": 12})
    payload = exc_info.value.to_dict()
    assert payload["error_code"] == "ValidationFailed"
    assert payload["collection"] == "fakeusers"
    assert "value" not in payload["errors"][0]
