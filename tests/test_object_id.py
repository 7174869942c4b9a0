"""
Tests for identifier recognition and conversion.
"""

import pytest
from bson import ObjectId

from mongo_model.core.errors import InvalidIdError
from mongo_model.database.model import Model
from mongo_model.schema.object_id import id_to_string, is_object_id, to_object_id

VALID_ID = "521fc86d178a92165200001d"


def test_is_object_id_rejects_empty_values():
    assert is_object_id(None) is False
    assert is_object_id("") is False


def test_is_object_id_rejects_malformed_strings():
    assert is_object_id("1234123412341234") is False
    assert is_object_id("zzzzzzzzzzzzzzzzzzzzzzzz") is False


def test_is_object_id_accepts_hex_strings_and_object_ids():
    assert is_object_id(VALID_ID) is True
    assert is_object_id(ObjectId(VALID_ID)) is True


def test_to_object_id_converts_strings():
    assert to_object_id(VALID_ID) == ObjectId(VALID_ID)


def test_to_object_id_returns_equal_object_id():
    oid = ObjectId(VALID_ID)
    assert to_object_id(oid) == oid


def test_to_object_id_raises_for_bad_input():
    with pytest.raises(InvalidIdError) as exc_info:
        to_object_id("badId", collection="fakeusers")
    assert "Invalid" in exc_info.value.message
    assert exc_info.value.collection == "fakeusers"


def test_id_to_string_leaves_other_values():
    assert id_to_string(ObjectId(VALID_ID)) == VALID_ID
    assert id_to_string("plain") == "plain"
    assert id_to_string(42) == 42


def test_model_helpers():
    model = Model("fakeusers", write_concern=None)
    assert model.is_object_id(VALID_ID) is True
    assert model.is_object_id(None) is False
    assert model.ObjectID(VALID_ID) == ObjectId(VALID_ID)
    assert model.object_id(ObjectId(VALID_ID)) == ObjectId(VALID_ID)


def test_model_requires_collection_name():
    with pytest.raises(ValueError, match="collection_name cannot be empty"):
        Model("")
