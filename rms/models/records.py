"""
Board Records Management Service
Records domain models.

Models:
    - RecordDocument: one row per internal document; aggregate root that
      carries the current ``status`` and ``current_handler``.
    - DocumentComment: append-only remarks attached to a document.
    - WorkflowLogEntry: append-only history of every status/handler change
      and every annotation event.

Comments and log entries are separate tables that share one ordering key
(``created_at`` then ``id``) so the two streams can be interleaved for
display without a polymorphic table.
"""

from datetime import datetime, timezone

from rms.models import db

# ── Constants ────────────────────────────────────────────────────────────────

STATUS_RECEIVED = "received"
STATUS_FORWARDED_TO_SECRETARY = "forwarded_to_secretary"
STATUS_COMMENTED_BY_SECRETARY = "commented_by_secretary"
STATUS_SENT_TO_CHAIR = "sent_to_chair"
STATUS_COMMENTED_BY_CHAIR = "commented_by_chair"
STATUS_SENT_TO_HR = "sent_to_hr"
STATUS_SENT_TO_COMMITTEE = "sent_to_committee"
STATUS_AGENDA_SET = "agenda_set"
STATUS_BOARD_MEETING = "board_meeting"
STATUS_DECISION_MADE = "decision_made"
STATUS_SENT_TO_RECORDS = "sent_to_records"
STATUS_DISPATCHED = "dispatched"
STATUS_FILED = "filed"

DOCUMENT_STATUSES = (
    STATUS_RECEIVED,
    STATUS_FORWARDED_TO_SECRETARY,
    STATUS_COMMENTED_BY_SECRETARY,
    STATUS_SENT_TO_CHAIR,
    STATUS_COMMENTED_BY_CHAIR,
    STATUS_SENT_TO_HR,
    STATUS_SENT_TO_COMMITTEE,
    STATUS_AGENDA_SET,
    STATUS_BOARD_MEETING,
    STATUS_DECISION_MADE,
    STATUS_SENT_TO_RECORDS,
    STATUS_DISPATCHED,
    STATUS_FILED,
)

TERMINAL_STATUSES = frozenset({STATUS_DISPATCHED, STATUS_FILED})

# Pseudo-handlers for terminal states: nobody acts on the document any more.
HANDLER_INITIATOR = "initiator"
HANDLER_REGISTRY = "registry"

PRIORITIES = ("low", "normal", "high", "urgent")

DOCUMENT_TYPES = ("letter", "memo", "report", "application", "proposal", "other")

COMMENT_REMARK = "remark"
COMMENT_RECOMMENDATION = "recommendation"
COMMENT_DECISION = "decision"
COMMENT_EXTERNAL_REF = "external_ref"

COMMENT_KINDS = frozenset({
    COMMENT_REMARK,
    COMMENT_RECOMMENDATION,
    COMMENT_DECISION,
    COMMENT_EXTERNAL_REF,
})

RECOMMENDATIONS = frozenset({"approve", "reject", "revise"})

ACTION_RECEIVED = "Document Received"
ACTION_FORWARDED = "Document Forwarded"
ACTION_SENT_TO_RECORDS = "Sent to Records"
ACTION_COMMENT_ADDED = "Comment Added"
ACTION_DISPATCHED = "Document Dispatched"
ACTION_FILED = "Document Filed"

WORKFLOW_ACTIONS = frozenset({
    ACTION_RECEIVED,
    ACTION_FORWARDED,
    ACTION_SENT_TO_RECORDS,
    ACTION_COMMENT_ADDED,
    ACTION_DISPATCHED,
    ACTION_FILED,
})


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class RecordDocument(db.Model):
    """
    Internal document travelling through the board workflow.

    ``status`` and ``current_handler`` are only written by the workflow
    engine and the finalizer; metadata edits go through
    ``document_store.update_metadata`` which refuses both columns.
    """

    __tablename__ = "rms_documents"
    __table_args__ = (
        db.Index("ix_rms_documents_status", "status"),
        db.Index("ix_rms_documents_priority", "priority"),
        db.Index("ix_rms_documents_handler", "current_handler"),
    )

    id = db.Column(db.Integer, primary_key=True)
    reference_number = db.Column(db.String(50), unique=True, nullable=True)
    subject = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text)
    document_type = db.Column(db.String(30), nullable=False, default="letter")
    document_date = db.Column(db.Date)
    priority = db.Column(
        db.String(10), nullable=False, default="normal",
        comment="low | normal | high | urgent",
    )

    # Originator contact
    initiator_department = db.Column(db.String(200), nullable=False)
    initiator_name = db.Column(db.String(200))
    initiator_email = db.Column(db.String(200))
    initiator_phone = db.Column(db.String(50))

    # Attachment reference only; bytes live in external storage
    file_path = db.Column(db.String(500))

    # Workflow position
    status = db.Column(db.String(40), nullable=False, default=STATUS_RECEIVED)
    current_handler = db.Column(db.String(30), nullable=False)

    # Board scheduling
    agenda_item_number = db.Column(db.String(30))
    board_meeting_date = db.Column(db.Date)

    # Finalization
    decision_summary = db.Column(db.Text)
    dispatched_at = db.Column(db.DateTime(timezone=True))
    dispatched_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )

    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reference_number": self.reference_number,
            "subject": self.subject,
            "description": self.description,
            "document_type": self.document_type,
            "document_date": _iso(self.document_date),
            "priority": self.priority,
            "initiator_department": self.initiator_department,
            "initiator_name": self.initiator_name,
            "initiator_email": self.initiator_email,
            "initiator_phone": self.initiator_phone,
            "file_path": self.file_path,
            "status": self.status,
            "current_handler": self.current_handler,
            "agenda_item_number": self.agenda_item_number,
            "board_meeting_date": _iso(self.board_meeting_date),
            "decision_summary": self.decision_summary,
            "dispatched_at": _iso(self.dispatched_at),
            "dispatched_by_id": self.dispatched_by_id,
            "created_by_id": self.created_by_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<RecordDocument {self.id}: {self.reference_number} [{self.status}]>"


class DocumentComment(db.Model):
    """
    Immutable remark on a document.

    ``author_role`` and ``author_name`` are snapshots taken at write time;
    the user's current role may differ later.  ``document_status`` pins
    the comment to the stage the document was in when it was written.
    """

    __tablename__ = "rms_comments"
    __table_args__ = (
        db.Index("ix_rms_comments_document", "document_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("rms_documents.id", ondelete="CASCADE"), nullable=False,
    )
    author_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    author_name = db.Column(db.String(200))
    author_role = db.Column(db.String(30), nullable=False)
    kind = db.Column(
        db.String(20), nullable=False, default=COMMENT_REMARK,
        comment="remark | recommendation | decision | external_ref",
    )
    recommendation = db.Column(db.String(10), comment="approve | reject | revise")
    body = db.Column(db.Text, nullable=False)
    document_status = db.Column(db.String(40), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "author_role": self.author_role,
            "kind": self.kind,
            "recommendation": self.recommendation,
            "body": self.body,
            "document_status": self.document_status,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<DocumentComment {self.id}: {self.kind} on {self.document_id}>"


class WorkflowLogEntry(db.Model):
    """
    Append-only audit row.

    One row per creation, transition, finalization and comment.  A comment
    row has ``from_status == to_status`` (annotation only).  The creation
    row is the only one with ``from_status`` NULL.
    """

    __tablename__ = "rms_workflow_logs"
    __table_args__ = (
        db.Index("ix_rms_workflow_logs_document", "document_id", "created_at"),
        db.Index("ix_rms_workflow_logs_action", "action_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("rms_documents.id", ondelete="CASCADE"), nullable=False,
    )
    from_status = db.Column(db.String(40))
    to_status = db.Column(db.String(40), nullable=False)
    from_handler = db.Column(db.String(30))
    to_handler = db.Column(db.String(30), nullable=False)
    actor_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    actor_role = db.Column(db.String(30))
    action_type = db.Column(db.String(60), nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def is_state_change(self) -> bool:
        return self.from_status != self.to_status

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "from_handler": self.from_handler,
            "to_handler": self.to_handler,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "action_type": self.action_type,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return (
            f"<WorkflowLogEntry {self.id}: {self.from_status}->{self.to_status} "
            f"on {self.document_id}>"
        )
