"""
Records dashboard metrics.

Read-only aggregates over ``rms_documents`` for the role dashboards:
  - Headline counters (total, received, in progress, decided, ...)
  - Per-status and per-priority breakdowns
No state is stored; every call recomputes from the table.
"""

import logging

from sqlalchemy import func

from rms.models import db
from rms.models.records import (
    DOCUMENT_STATUSES,
    PRIORITIES,
    STATUS_AGENDA_SET,
    STATUS_BOARD_MEETING,
    STATUS_DECISION_MADE,
    STATUS_DISPATCHED,
    STATUS_FILED,
    STATUS_RECEIVED,
    RecordDocument,
)

logger = logging.getLogger(__name__)

_BOARD_STAGES = (STATUS_AGENDA_SET, STATUS_BOARD_MEETING)
_NOT_IN_PROGRESS = (STATUS_RECEIVED, STATUS_DISPATCHED, STATUS_FILED)


def get_status_breakdown(handler: str | None = None) -> dict:
    """Count documents per status (every status present, zero-filled)."""
    query = db.session.query(RecordDocument.status, func.count(RecordDocument.id))
    if handler:
        query = query.filter(RecordDocument.current_handler == handler)
    counts = dict(query.group_by(RecordDocument.status).all())
    return {status: counts.get(status, 0) for status in DOCUMENT_STATUSES}


def get_priority_breakdown() -> dict:
    rows = (
        db.session.query(RecordDocument.priority, func.count(RecordDocument.id))
        .group_by(RecordDocument.priority)
        .all()
    )
    counts = dict(rows)
    return {priority: counts.get(priority, 0) for priority in PRIORITIES}


def get_stats() -> dict:
    """Dashboard counters used by every role's landing page."""
    by_status = get_status_breakdown()
    by_priority = get_priority_breakdown()
    total = sum(by_status.values())
    return {
        "total": total,
        "received": by_status[STATUS_RECEIVED],
        "in_progress": total - sum(by_status[s] for s in _NOT_IN_PROGRESS),
        "at_board_meeting": sum(by_status[s] for s in _BOARD_STAGES),
        "decided": by_status[STATUS_DECISION_MADE],
        "dispatched": by_status[STATUS_DISPATCHED],
        "filed": by_status[STATUS_FILED],
        "completed": by_status[STATUS_DISPATCHED] + by_status[STATUS_FILED],
        "urgent": by_priority["urgent"],
        "high_priority": by_priority["high"],
        "by_status": by_status,
        "by_priority": by_priority,
    }
