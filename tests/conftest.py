"""
Shared fixtures: an in-memory Motor database and models bound to it.
"""

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from mongo_model.database.model import Model

COLLECTION = "fakeusers"

STUDENT_SCHEMA = {
    "firstName": {
        "type": "string",
        "required": True
    },
    "lastName": {
        "type": "string"
    }
}

CLASS_DOJO_ID = "52535efb0555c1353a75f54b"
CRASS_MOJO_ID = "52535efb0555c1353a75f54c"
BRASS_MONKEY_ID = "52535efb0555c1353a75f54d"


@pytest.fixture
def db():
    """Fresh in-memory database for each test."""
    return AsyncMongoMockClient()["tests"]


@pytest.fixture
def collection(db):
    """Raw collection backing the models, for seeding and assertions."""
    return db[COLLECTION]


@pytest.fixture
def model(db):
    """Model with the student JSON schema attached."""
    model = Model(COLLECTION, database=db, write_concern=None)
    model.schema(STUDENT_SCHEMA)
    return model


@pytest.fixture
def plain_model(db):
    """Model without any schema."""
    return Model(COLLECTION, database=db, write_concern=None)


@pytest.fixture
async def students(collection):
    """Two seeded students with explicit ids."""
    docs = [
        {"_id": ObjectId(CLASS_DOJO_ID), "firstName": "class", "lastName": "dojo"},
        {"_id": ObjectId(CRASS_MOJO_ID), "firstName": "crass", "lastName": "mojo"},
    ]
    await collection.insert_many(docs)
    return docs
