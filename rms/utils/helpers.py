"""Shared utility functions.

parse_date_input:  raises ValueError on bad input (services wrap it)
unit_of_work:      single commit point for a service-level operation
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError

from rms.models import db

logger = logging.getLogger(__name__)


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Supports: YYYY-MM-DD, YYYY-MM-DDTHH:MM:SS, DD.MM.YYYY, date objects.
    Empty input returns None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except ValueError as exc:
        raise ValueError(
            "Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY."
        ) from exc


# ── Unit of work ─────────────────────────────────────────────────────────────

@contextmanager
def unit_of_work(operation: str):
    """Commit everything flushed inside the block, or nothing.

    Usage::

        with unit_of_work("forward document"):
            document_store.update(doc, fields)
            workflow_log.append_entry(...)

    Any exception rolls the session back and propagates.  Database errors
    are logged here; no retry is attempted, the caller resubmits.
    """
    try:
        yield
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error during %s", operation)
        raise
    except Exception:
        db.session.rollback()
        raise
