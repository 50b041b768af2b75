"""
Workflow audit log: append and read.

``append_entry`` is internal to the service layer (document store, workflow
engine, comment ledger, finalizer).  It only flushes, so the caller keeps
transaction control and the log row commits together with the record
change it describes.  Rows are never updated or deleted.
"""

import logging

from sqlalchemy import select

from rms.models import db
from rms.models.records import WORKFLOW_ACTIONS, WorkflowLogEntry

logger = logging.getLogger(__name__)


def append_entry(
    *,
    document_id: int,
    from_status: str | None,
    to_status: str,
    from_handler: str | None,
    to_handler: str,
    action_type: str,
    actor_id: int | None = None,
    actor_role: str | None = None,
    notes: str | None = None,
    created_at=None,
) -> WorkflowLogEntry:
    """Append a single log row and flush it.

    Returns the flushed WorkflowLogEntry.
    """
    if action_type not in WORKFLOW_ACTIONS:
        raise ValueError(f"Unknown workflow action: {action_type}")

    entry = WorkflowLogEntry(
        document_id=document_id,
        from_status=from_status,
        to_status=to_status,
        from_handler=from_handler,
        to_handler=to_handler,
        actor_id=actor_id,
        actor_role=actor_role,
        action_type=action_type,
        notes=(notes or "").strip() or None,
    )
    if created_at is not None:
        entry.created_at = created_at
    db.session.add(entry)
    db.session.flush()
    return entry


def list_entries(document_id: int, *, state_changes_only: bool = False) -> list[WorkflowLogEntry]:
    """Return a document's log in creation order (oldest first).

    With ``state_changes_only`` the annotation rows (from == to) are
    dropped, leaving creation plus real transitions.
    """
    stmt = (
        select(WorkflowLogEntry)
        .where(WorkflowLogEntry.document_id == document_id)
        .order_by(WorkflowLogEntry.created_at, WorkflowLogEntry.id)
    )
    entries = list(db.session.execute(stmt).scalars())
    if state_changes_only:
        entries = [e for e in entries if e.is_state_change]
    return entries


def status_path(document_id: int) -> list[str]:
    """The ordered ``to_status`` values of every state-changing entry."""
    return [e.to_status for e in list_entries(document_id, state_changes_only=True)]
