"""Failure capture for collaborator calls.

Every failure goes to the ``loan_review.errors`` logger. When a session is
at hand it is also written to ``error_logs`` so admins can inspect it.
Callers re-raise afterwards; nothing here swallows the original error.

    try:
        ...
    except Exception as e:
        await log_error(e, db=db, module="repository", function_name="save_mutation")
        raise UpstreamFailure("Could not save changes") from e
"""

from __future__ import annotations

import logging
import traceback
from typing import NamedTuple, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from loan_review.models.error_log import ErrorLog, ErrorSeverity

logger = logging.getLogger("loan_review.errors")

MESSAGE_LIMIT = 2000
TRACEBACK_LIMIT = 10000


class FailureSite(NamedTuple):
    module: Optional[str]
    function_name: Optional[str]
    line_number: Optional[int]


def _clip(value: Optional[object], limit: int) -> Optional[str]:
    """Replace control characters (keeping newlines and tabs) and cut to ``limit``."""
    if value is None:
        return None
    cleaned = "".join(ch if ch >= " " or ch in "\n\r\t" else " " for ch in str(value))
    return cleaned[:limit]


def _innermost_site(exc: BaseException) -> FailureSite:
    tb = exc.__traceback__
    if tb is None:
        return FailureSite(None, None, None)
    while tb.tb_next is not None:
        tb = tb.tb_next
    code = tb.tb_frame.f_code
    return FailureSite(code.co_filename, code.co_name, tb.tb_lineno)


def _describe(exc: BaseException, severity: ErrorSeverity,
              application_id: Optional[int], actor_id: Optional[int]) -> str:
    parts = [f"[{severity.value.upper()}]", f"{type(exc).__name__}: {_clip(exc, MESSAGE_LIMIT)}"]
    if application_id is not None:
        parts.insert(0, f"application={application_id}")
    if actor_id is not None:
        parts.insert(1 if application_id is not None else 0, f"actor={actor_id}")
    return " ".join(parts)


async def log_error(
    exc: Exception,
    *,
    db: Optional[AsyncSession] = None,
    severity: ErrorSeverity = ErrorSeverity.ERROR,
    module: Optional[str] = None,
    function_name: Optional[str] = None,
    line_number: Optional[int] = None,
    application_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Optional[ErrorLog]:
    """Record ``exc``. Returns the ErrorLog row, or None when no row was written."""
    logger.error(_describe(exc, severity, application_id, actor_id), exc_info=exc)

    if db is None:
        return None

    if module is None:
        site = _innermost_site(exc)
        module = site.module
        function_name = function_name or site.function_name
        line_number = line_number or site.line_number

    entry = ErrorLog(
        severity=severity,
        error_type=type(exc).__name__,
        message=_clip(exc, MESSAGE_LIMIT),
        traceback=_clip(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            TRACEBACK_LIMIT,
        ),
        module=_clip(module, 300),
        function_name=_clip(function_name, 200),
        line_number=line_number,
        application_id=application_id,
        actor_id=actor_id,
    )
    try:
        db.add(entry)
        await db.flush()
    except Exception as db_err:
        logger.warning("Could not write error_logs row: %s", db_err)
        return None
    return entry


async def log_error_standalone(
    exc: Exception,
    *,
    severity: ErrorSeverity = ErrorSeverity.ERROR,
    module: Optional[str] = None,
    function_name: Optional[str] = None,
    application_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Optional[ErrorLog]:
    """Same as ``log_error`` but in a session of its own, committed immediately.

    Used by the SQLAlchemy collaborators, whose own session may be mid-rollback.
    """
    from loan_review.database import async_session

    try:
        async with async_session() as db:
            entry = await log_error(
                exc, db=db, severity=severity, module=module, function_name=function_name,
                application_id=application_id, actor_id=actor_id,
            )
            await db.commit()
    except Exception as db_err:
        logger.warning("Could not open a session for error logging: %s", db_err)
        return None
    return entry
