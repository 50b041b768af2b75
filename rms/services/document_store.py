"""
Document record store.

Creates, reads and updates ``RecordDocument`` rows.

Two update paths exist:
  - ``update``          low-level primitive for the workflow engine and the
                        finalizer.  It writes whatever it is given and never
                        commits; the caller owns the unit of work.
  - ``update_metadata`` the only path open to HTTP callers.  It refuses the
                        workflow columns so status can never change without
                        a matching audit row.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from rms.core.exceptions import ConflictError, NotFoundError, ValidationError
from rms.models import db
from rms.models.auth import ROLE_RECORDS_OFFICER
from rms.models.records import (
    ACTION_RECEIVED,
    DOCUMENT_STATUSES,
    DOCUMENT_TYPES,
    PRIORITIES,
    STATUS_RECEIVED,
    RecordDocument,
)
from rms.services import workflow_log
from rms.utils.helpers import parse_date_input, unit_of_work

logger = logging.getLogger(__name__)

INTAKE_HANDLER = ROLE_RECORDS_OFFICER

# Columns owned by the workflow engine / finalizer.
WORKFLOW_FIELDS = frozenset({
    "status",
    "current_handler",
    "decision_summary",
    "dispatched_at",
    "dispatched_by_id",
})

# Columns a metadata PATCH may touch.
METADATA_FIELDS = frozenset({
    "subject",
    "description",
    "document_type",
    "document_date",
    "priority",
    "initiator_department",
    "initiator_name",
    "initiator_email",
    "initiator_phone",
    "reference_number",
    "file_path",
})

_DATE_FIELDS = {"document_date", "board_meeting_date"}


def _generate_reference_number(doc: RecordDocument) -> str:
    year = (doc.created_at or datetime.now(timezone.utc)).year
    return f"RMS-{year}-{doc.id:05d}"


def _clean_metadata(data: dict) -> dict:
    """Validate and normalise metadata values. Raises ValidationError."""
    cleaned = {}
    for key, value in data.items():
        if value is not None and not isinstance(value, str) and key not in _DATE_FIELDS:
            raise ValidationError(f"{key} must be a string", details={key: "must be a string"})
        if isinstance(value, str):
            value = value.strip()
        if key == "priority" and value not in PRIORITIES:
            raise ValidationError(
                f"Invalid priority '{value}'",
                details={"priority": f"must be one of {', '.join(PRIORITIES)}"},
            )
        if key == "document_type" and value not in DOCUMENT_TYPES:
            raise ValidationError(
                f"Invalid document_type '{value}'",
                details={"document_type": f"must be one of {', '.join(DOCUMENT_TYPES)}"},
            )
        if key in ("subject", "initiator_department") and not value:
            raise ValidationError(f"{key} is required", details={key: "required"})
        if key in _DATE_FIELDS:
            try:
                value = parse_date_input(value)
            except ValueError as exc:
                raise ValidationError(str(exc), details={key: "invalid date"}) from exc
        # Empty optional strings are stored as NULL
        cleaned[key] = value if value not in ("", None) else None
    return cleaned


# ── Public API ───────────────────────────────────────────────────────────────


def create_document(data: dict, *, actor_id: int | None = None, actor_role: str | None = None) -> RecordDocument:
    """Register a new document at intake.

    The document starts in ``received`` with the records officer as
    handler, and the first workflow log row (from_status NULL) is written
    in the same transaction.

    Args:
        data: metadata fields (see METADATA_FIELDS); ``subject`` and
              ``initiator_department`` are required.  Any other key is
              rejected, as on the PATCH path.
        actor_id: user registering the document.
        actor_role: role snapshot of that user.

    Returns:
        The committed RecordDocument.
    """
    blocked = sorted(set(data) & WORKFLOW_FIELDS)
    if blocked:
        raise ValidationError(
            "Workflow fields cannot be set at intake",
            details={f: "not allowed" for f in blocked},
        )
    unknown = sorted(set(data) - METADATA_FIELDS)
    if unknown:
        raise ValidationError(
            "Unknown fields at intake",
            details={f: "unknown field" for f in unknown},
        )
    payload = dict(data)
    for required in ("subject", "initiator_department"):
        if not str(payload.get(required) or "").strip():
            raise ValidationError(f"{required} is required", details={required: "required"})
    payload = _clean_metadata(payload)
    ensure_reference_available(payload.get("reference_number"))

    with unit_of_work("create document"):
        doc = RecordDocument(
            status=STATUS_RECEIVED,
            current_handler=INTAKE_HANDLER,
            created_by_id=actor_id,
            **payload,
        )
        db.session.add(doc)
        db.session.flush()
        if not doc.reference_number:
            doc.reference_number = _generate_reference_number(doc)

        workflow_log.append_entry(
            document_id=doc.id,
            from_status=None,
            to_status=STATUS_RECEIVED,
            from_handler=None,
            to_handler=INTAKE_HANDLER,
            action_type=ACTION_RECEIVED,
            actor_id=actor_id,
            actor_role=actor_role,
            notes=f"Registered {doc.reference_number}: {doc.subject}",
        )

    logger.info(
        "Document received",
        extra={
            "document_id": doc.id,
            "event_type": ACTION_RECEIVED,
            "to_status": STATUS_RECEIVED,
            "actor_id": actor_id,
        },
    )
    return doc


def ensure_reference_available(reference_number: str | None, *, exclude_id: int | None = None) -> None:
    """Raise ConflictError when another document already uses the number."""
    if not reference_number:
        return
    query = RecordDocument.query.filter(RecordDocument.reference_number == reference_number)
    if exclude_id is not None:
        query = query.filter(RecordDocument.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Document", "reference_number", reference_number)


def get_document(document_id: int, *, for_update: bool = False) -> RecordDocument:
    """Load a document or raise NotFoundError.

    ``for_update`` takes a row lock (SELECT ... FOR UPDATE) so concurrent
    transitions on the same document serialise; SQLite ignores the hint.
    """
    stmt = select(RecordDocument).where(RecordDocument.id == document_id)
    if for_update:
        stmt = stmt.with_for_update()
    doc = db.session.execute(stmt).scalar_one_or_none()
    if doc is None:
        raise NotFoundError(resource="Document", resource_id=document_id)
    return doc


def list_documents(
    *,
    status: str | None = None,
    priority: str | None = None,
    handler: str | None = None,
):
    """Return a query of documents, newest first, optionally filtered."""
    if status and status not in DOCUMENT_STATUSES:
        raise ValidationError(f"Unknown status '{status}'", details={"status": "unknown"})
    if priority and priority not in PRIORITIES:
        raise ValidationError(f"Unknown priority '{priority}'", details={"priority": "unknown"})

    query = RecordDocument.query
    if status:
        query = query.filter(RecordDocument.status == status)
    if priority:
        query = query.filter(RecordDocument.priority == priority)
    if handler:
        query = query.filter(RecordDocument.current_handler == handler)
    return query.order_by(RecordDocument.created_at.desc(), RecordDocument.id.desc())


def update(document: RecordDocument, fields: dict) -> RecordDocument:
    """Low-level write used by the workflow engine and the finalizer.

    No validation, no commit.  Never call this from a blueprint.
    """
    for key, value in fields.items():
        if not hasattr(RecordDocument, key):
            raise AttributeError(f"RecordDocument has no column '{key}'")
        setattr(document, key, value)
    document.updated_at = datetime.now(timezone.utc)
    db.session.flush()
    return document


def update_metadata(document_id: int, data: dict) -> RecordDocument:
    """Apply a metadata PATCH.

    Raises ValidationError when the payload names a workflow column or an
    unknown field; status changes must go through the workflow engine.
    """
    blocked = sorted(set(data) & WORKFLOW_FIELDS)
    if blocked:
        raise ValidationError(
            "Workflow fields can only change through a workflow transition",
            details={f: "use the forward or dispatch endpoints" for f in blocked},
        )
    unknown = sorted(set(data) - METADATA_FIELDS)
    if unknown:
        raise ValidationError(
            "Unknown fields in update",
            details={f: "unknown field" for f in unknown},
        )
    if not data:
        raise ValidationError("No fields to update")

    cleaned = _clean_metadata(data)
    with unit_of_work("update document metadata"):
        doc = get_document(document_id, for_update=True)
        if "reference_number" in cleaned:
            ensure_reference_available(cleaned["reference_number"], exclude_id=doc.id)
        update(doc, cleaned)

    logger.info(
        "Document metadata updated",
        extra={"document_id": doc.id, "fields": sorted(data)},
    )
    return doc
