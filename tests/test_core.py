"""
Tests for configuration, logging, errors and the connection manager.
"""

import logging

import pytest

from mongo_model.core.config import Settings
from mongo_model.core.errors import NotFoundError, ValidationFailedError
from mongo_model.core.logging import get_logger, setup_logging
from mongo_model.database.mongodb import MongoDB


def test_settings_parse_environment(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("WRITE_CONCERN_JOURNAL", "false")

    config = Settings()

    assert config.CORS_ORIGINS == ["http://a.test", "http://b.test"]
    assert config.LOG_LEVEL == "DEBUG"
    assert config.write_concern().document == {"w": 1, "j": False}


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "model.log"
    root = setup_logging("info", str(log_file))
    try:
        get_logger("mongo_model.test").info("hello")
        for handler in root.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()
        assert root.level == logging.INFO
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)


def test_error_payloads():
    error = NotFoundError(query={"a": 1}, collection="fakeusers")
    assert error.to_dict() == {"detail": "Not found", "error_code": "NotFound", "collection": "fakeusers"}

    failed = ValidationFailedError([{"message": "Property is required", "field": "firstName", "type": "missing"}])
    assert str(failed) == "Validation failed: firstName: Property is required"


@pytest.mark.asyncio
async def test_database_requires_connection():
    connection = MongoDB(Settings())
    with pytest.raises(RuntimeError):
        await connection.get_database()
    # closing an unopened connection is a no-op
    await connection.close()
