"""Tests for collaborator failure logging."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from loan_review.models.error_log import ErrorLog, ErrorSeverity
from loan_review.services.error_logger import log_error


def _raised(exc):
    try:
        raise exc
    except Exception as e:
        return e


class TestLogError:

    @pytest.mark.asyncio
    async def test_without_session_only_logs(self, caplog):
        with caplog.at_level(logging.ERROR, logger="loan_review.errors"):
            result = await log_error(_raised(ConnectionError("refused")), application_id=1, actor_id=7)
        assert result is None
        assert "application=1 actor=7 [ERROR] ConnectionError: refused" in caplog.text

    @pytest.mark.asyncio
    async def test_writes_row_with_failure_site(self):
        db = AsyncMock()
        db.add = MagicMock()
        entry = await log_error(_raised(RuntimeError("bad\x00value")), db=db, application_id=3)

        assert isinstance(entry, ErrorLog)
        assert entry.error_type == "RuntimeError"
        assert entry.message == "bad value"
        assert entry.function_name == "_raised"
        assert entry.application_id == 3
        assert "RuntimeError" in entry.traceback
        db.add.assert_called_once_with(entry)
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_explicit_module_kept(self):
        db = AsyncMock()
        db.add = MagicMock()
        entry = await log_error(_raised(KeyError("x")), db=db, module="timeline",
                                function_name="append_timeline_event", severity=ErrorSeverity.WARNING)
        assert entry.module == "timeline"
        assert entry.function_name == "append_timeline_event"
        assert entry.severity == ErrorSeverity.WARNING

    @pytest.mark.asyncio
    async def test_flush_failure_returns_none(self):
        db = AsyncMock()
        db.add = MagicMock()
        db.flush.side_effect = RuntimeError("session closed")
        assert await log_error(_raised(ValueError("x")), db=db) is None
