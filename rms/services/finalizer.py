"""
Dispatch & filing finalizer.

Two mutually exclusive terminal operations, both reachable only from
``decision_made``:

  dispatch  → status=dispatched, handler=initiator  ("Document Dispatched")
  file      → status=filed,      handler=registry   ("Document Filed")

Both store the decision summary, stamp ``dispatched_at``/``dispatched_by_id``
and append exactly one log row.  A second call on a terminal document
raises AlreadyTerminalError before anything is written, so the log is
never doubled.
"""

import logging
from datetime import datetime, timezone

from rms.core.exceptions import AlreadyTerminalError, InvalidTransitionError, ValidationError
from rms.models.records import STATUS_DISPATCHED, STATUS_FILED, RecordDocument
from rms.services import document_store, workflow_engine
from rms.utils.helpers import unit_of_work

logger = logging.getLogger(__name__)

OUTCOME_DISPATCH = "dispatch"
OUTCOME_FILE = "file"

_OUTCOME_STATUS = {
    OUTCOME_DISPATCH: STATUS_DISPATCHED,
    OUTCOME_FILE: STATUS_FILED,
}

MAX_SUMMARY_LENGTH = 5000


def _validate_request(outcome, decision_summary) -> tuple[str, str]:
    to_status = _OUTCOME_STATUS.get(outcome)
    if to_status is None:
        raise ValidationError(
            f"Unknown outcome '{outcome}'",
            details={"outcome": "must be 'dispatch' or 'file'"},
        )
    summary = (decision_summary or "").strip()
    if not summary:
        raise ValidationError(
            "Decision summary is required", details={"decisionSummary": "required"},
        )
    if len(summary) > MAX_SUMMARY_LENGTH:
        raise ValidationError(
            f"Decision summary must be at most {MAX_SUMMARY_LENGTH} characters",
            details={"decisionSummary": "too long"},
        )
    return to_status, summary


def finalize_document(
    document_id: int,
    outcome: str,
    *,
    actor_id: int | None,
    actor_role: str,
    decision_summary: str,
) -> RecordDocument:
    """
    Close a document's workflow.

    Args:
        outcome: "dispatch" (decision returned to the originator) or
                 "file" (archived in the registry).
        decision_summary: required free text describing the decision.

    Raises:
        NotFoundError, ValidationError, AlreadyTerminalError,
        InvalidTransitionError
    """
    with unit_of_work("finalize document"):
        doc = document_store.get_document(document_id, for_update=True)
        # A repeat call is answered as already terminal whatever its payload.
        if doc.is_terminal:
            raise AlreadyTerminalError(doc.id, doc.status)
        to_status, summary = _validate_request(outcome, decision_summary)
        from_status = doc.status
        try:
            rule = workflow_engine.validate_transition(from_status, to_status, actor_role)
        except InvalidTransitionError as exc:
            logger.warning(
                "Finalization rejected: %s", exc,
                extra={"document_id": doc.id, "from_status": from_status,
                       "to_status": to_status, "actor_id": actor_id},
            )
            raise
        workflow_engine.apply_transition(
            doc, rule, to_status,
            actor_id=actor_id,
            actor_role=actor_role,
            notes=summary,
            extra_fields={
                "decision_summary": summary,
                "dispatched_at": datetime.now(timezone.utc),
                "dispatched_by_id": actor_id,
            },
        )

    logger.info(
        "Document %s", to_status,
        extra={
            "document_id": doc.id,
            "event_type": rule["action"],
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
        },
    )
    return doc


def dispatch_document(document_id: int, *, actor_id, actor_role, decision_summary) -> RecordDocument:
    """Return the decision to the document's originator."""
    return finalize_document(
        document_id, OUTCOME_DISPATCH,
        actor_id=actor_id, actor_role=actor_role, decision_summary=decision_summary,
    )


def file_document(document_id: int, *, actor_id, actor_role, decision_summary) -> RecordDocument:
    """Archive the document in the registry."""
    return finalize_document(
        document_id, OUTCOME_FILE,
        actor_id=actor_id, actor_role=actor_role, decision_summary=decision_summary,
    )
