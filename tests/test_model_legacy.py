"""
Tests for models configured with a legacy validator map.
"""

import pytest
from bson import ObjectId

from mongo_model.core.errors import InvalidIdError, ValidationFailedError
from mongo_model.database.model import Model
from mongo_model.schema.fields import object_id_test

OWNER_ID = "52535efb0555c1353a75f54b"

PETS_SCHEMA = {
    "name": {"type": str, "required": True},
    "age": {"type": int},
    "ownerId": {"$special": "oid", "validate": object_id_test("ownerId")},
}


@pytest.fixture
def pets(db):
    return Model("pets", PETS_SCHEMA, database=db, write_concern=None)


@pytest.mark.asyncio
async def test_create_converts_identifiers_and_drops_undeclared_fields(pets, db):
    created = await pets.create({"name": "rex", "ownerId": OWNER_ID, "color": "brown"})

    assert created["ownerId"] == OWNER_ID
    assert "color" not in created

    stored = await db["pets"].find_one({"name": "rex"})
    assert stored["ownerId"] == ObjectId(OWNER_ID)
    assert "color" not in stored


@pytest.mark.asyncio
async def test_create_with_invalid_identifier(pets):
    with pytest.raises(InvalidIdError) as exc_info:
        await pets.create({"name": "rex", "ownerId": "nope"})
    assert exc_info.value.message == "Must provide a valid MongoId for `ownerId`"


@pytest.mark.asyncio
async def test_create_stops_at_first_failure(pets, db):
    with pytest.raises(ValidationFailedError) as exc_info:
        await pets.create([{"name": "rex"}, {"age": "old"}])
    assert exc_info.value.errors[0]["field"] == "name"
    assert await db["pets"].count_documents({}) == 0


@pytest.mark.asyncio
async def test_update_ignores_undeclared_fields(pets):
    created = await pets.create({"name": "rex", "age": 2})

    updated = await pets.update({"_id": created["_id"], "age": 3, "color": "brown"})

    assert updated["age"] == 3
    assert "color" not in updated


@pytest.mark.asyncio
async def test_update_checks_declared_fields(pets):
    created = await pets.create({"name": "rex"})
    with pytest.raises(ValidationFailedError):
        await pets.update({"_id": created["_id"], "age": "three"})


@pytest.mark.asyncio
async def test_queries_convert_identifier_fields(pets):
    await pets.create({"name": "rex", "ownerId": OWNER_ID})

    found = await pets.find({"ownerId": OWNER_ID})

    assert [pet["name"] for pet in found] == ["rex"]


@pytest.mark.asyncio
async def test_schemaless_model_accepts_anything(db):
    model = Model("things", database=db, write_concern=None)
    created = await model.create({"_id": OWNER_ID, "anything": {"nested": [1, 2]}})

    # _id is stripped before insertion, a new one is generated
    assert created["_id"] != OWNER_ID
    assert created["anything"] == {"nested": [1, 2]}


@pytest.mark.asyncio
async def test_json_schema_takes_precedence(pets):
    pets.schema({"name": {"type": "string", "required": True}})
    with pytest.raises(ValidationFailedError) as exc_info:
        await pets.create({"name": "rex", "color": "brown"})
    assert exc_info.value.errors[0]["message"] == "Additional properties are not allowed"
    assert pets.fields == ("name",)


@pytest.mark.asyncio
async def test_queries_on_custom_id_keys(db):
    model = Model("things", database=db, write_concern=None)
    await model.create_with_no_validation({"_id": "custom-key", "x": 1})

    found = await model.find({"_id": "custom-key"})
    assert found == [{"_id": "custom-key", "x": 1}]
    assert (await model.find_one({"_id": "custom-key"}))["x"] == 1
    assert await model.count({"_id": "custom-key"}) == 1

    await model.remove({"_id": "custom-key"})
    assert await model.count({}) == 0


@pytest.mark.asyncio
async def test_queries_still_convert_object_id_strings(db):
    model = Model("things", database=db, write_concern=None)
    await db["things"].insert_one({"_id": ObjectId(OWNER_ID), "x": 1})

    assert await model.count({"_id": OWNER_ID}) == 1


@pytest.mark.asyncio
async def test_query_with_invalid_declared_identifier(pets):
    with pytest.raises(InvalidIdError):
        await pets.find({"ownerId": "nope"})
