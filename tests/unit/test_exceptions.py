"""Unit tests for custom exception hierarchy"""
import json
import pytest
from datetime import datetime

from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from progression.exceptions import (
    ConfigurationError,
    CorruptRecordError,
    ProgressionError,
    StorageError,
    StoreConnectionError,
    StoreReadError,
    StoreWriteError,
    ValidationError,
    wrap_store_exception,
)


class TestProgressionError:
    """Test base exception class"""

    def test_basic_exception(self):
        error = ProgressionError("Test error")
        assert error.message == "Test error"
        assert error.user_message == "An error occurred. Please try again."
        assert error.request_id is not None
        assert isinstance(error.timestamp, datetime)

    def test_exception_with_context(self):
        error = ProgressionError(
            message="Failed to save streak",
            learner_id="learner-1",
            operation="record_day",
            context={"date": "2024-01-15"},
            user_message="Could not save your streak"
        )
        assert error.learner_id == "learner-1"
        assert error.operation == "record_day"
        assert error.context["date"] == "2024-01-15"
        assert error.user_message == "Could not save your streak"

    def test_to_dict(self):
        error = ProgressionError("Test error", request_id="req-1")
        data = error.to_dict()

        assert data["error"] == "ProgressionError"
        assert data["message"] == "Test error"
        assert data["request_id"] == "req-1"
        assert "timestamp" in data


class TestSubclasses:
    """Test specialized errors"""

    def test_validation_error(self):
        error = ValidationError("must not be negative", field="amount", value=-5)

        assert isinstance(error, ProgressionError)
        assert error.field == "amount"
        assert error.context == {"field": "amount", "value": -5}
        assert "amount" in error.user_message

    def test_storage_error_context(self):
        error = StoreWriteError("write failed", key="quests:l1", learner_id="l1")

        assert isinstance(error, StorageError)
        assert error.key == "quests:l1"
        assert error.context["key"] == "quests:l1"
        assert "could not be saved" in error.user_message

    def test_connection_error_message(self):
        error = StoreConnectionError(key="streak:l1")
        assert error.message == "Progress store connection failed"
        assert "trouble reaching" in error.user_message

    def test_configuration_error(self):
        error = ConfigurationError("bad backend", config_key="STORE_BACKEND")
        assert error.config_key == "STORE_BACKEND"


class TestWrapStoreException:
    """Test backend exception mapping"""

    @pytest.mark.parametrize("error", [
        RedisConnectionError("refused"),
        RedisTimeoutError("timed out"),
        ConnectionRefusedError("refused"),
    ])
    def test_connection_errors(self, error):
        wrapped = wrap_store_exception(error, operation="get", key="k")
        assert isinstance(wrapped, StoreConnectionError)
        assert wrapped.cause is error

    def test_decode_error(self):
        try:
            json.loads("{oops")
        except json.JSONDecodeError as e:
            wrapped = wrap_store_exception(e, operation="get", key="k")

        assert isinstance(wrapped, CorruptRecordError)

    def test_operation_decides_read_or_write(self):
        assert isinstance(wrap_store_exception(RuntimeError("x"), operation="put"), StoreWriteError)
        assert isinstance(wrap_store_exception(RuntimeError("x"), operation="get"), StoreReadError)

    def test_storage_errors_pass_through(self):
        original = StoreReadError("already wrapped", key="k")
        assert wrap_store_exception(original, operation="get") is original
