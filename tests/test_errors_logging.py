"""Tests for the error taxonomy and logging helpers."""

import logging

import pytest

from mailcache.utils.errors import (
    ConnectivityError,
    ErrorCategory,
    ErrorHandler,
    MailCacheError,
    NotFoundOffline,
    PartialWriteError,
    RemoteNotFoundError,
    ReplayHaltError,
    StorageError,
    ValidationError,
    format_error_message,
)
from mailcache.utils.logging import (
    SensitiveDataFilter,
    SensitiveDataMasker,
    async_log_call,
    get_logger,
)


class TestErrorTaxonomy:
    """Hierarchy, categories and serialisation"""

    def test_hierarchy(self):
        assert issubclass(PartialWriteError, StorageError)
        assert issubclass(RemoteNotFoundError, ConnectivityError)
        for cls in (StorageError, ConnectivityError, NotFoundOffline, ValidationError, ReplayHaltError):
            assert issubclass(cls, MailCacheError)

    def test_categories(self):
        assert StorageError.category == ErrorCategory.DATABASE
        assert ConnectivityError.category == ErrorCategory.NETWORK
        assert NotFoundOffline.category == ErrorCategory.CACHE
        assert ReplayHaltError.category == ErrorCategory.SYNC

    def test_default_message_and_to_dict(self):
        error = NotFoundOffline(details={"email_id": "e1"})

        assert error.message == NotFoundOffline.user_message
        assert error.to_dict() == {
            "error_type": "NotFoundOffline",
            "category": "cache",
            "message": "Not available offline",
            "details": {"email_id": "e1"},
        }

    def test_format_error_message(self):
        assert format_error_message(ValidationError("Recipient required")) == "Recipient required"
        assert "unexpected" in format_error_message(RuntimeError("boom"))

    def test_handler_converts_unknown_errors(self):
        result = ErrorHandler.handle(RuntimeError("boom"), context="sync", log_traceback=False)

        assert result["error_type"] == "UnknownError"
        assert result["details"] == {"context": "sync"}


class TestMasking:
    """Sensitive data never reaches log output"""

    def test_masks_addresses_and_secrets(self):
        masker = SensitiveDataMasker()

        masked = masker.mask_string("login alice@example.com password=hunter2")

        assert "alice@example.com" not in masked
        assert "hunter2" not in masked
        assert "a***@e***" in masked

    def test_masks_sensitive_dict_fields(self):
        masked = SensitiveDataMasker().mask_dict({"token": "abc", "nested": {"to": "bob@example.com"}, "count": 3})

        assert masked["token"] == "[REDACTED]"
        assert "bob@example.com" not in masked["nested"]["to"]
        assert masked["count"] == 3

    def test_filter_leaves_non_string_messages(self):
        record = logging.LogRecord("mailcache", logging.INFO, __file__, 1, {"k": "v"}, None, None)

        assert SensitiveDataFilter().filter(record) is True
        assert record.msg == {"k": "v"}


class TestLoggers:
    """Logger naming and the async call decorator"""

    def test_loggers_are_namespaced(self):
        assert get_logger("sync.replay").name == "mailcache.sync.replay"
        assert get_logger("mailcache.core").name == "mailcache.core"

    @pytest.mark.asyncio
    async def test_async_log_call_propagates(self):
        @async_log_call
        async def failing():
            raise StorageError("nope")

        with pytest.raises(StorageError):
            await failing()

        @async_log_call
        async def ok(value):
            return value * 2

        assert await ok(21) == 42
