"""
Records workflow: transition engine.

Moves a document between board workflow stages with:
  - One declarative table keyed by (from_status, to_status)
  - Role check per edge (the acting role must be the edge's required role)
  - Record update + audit row in a single transaction
  - Row lock on the document so concurrent requests see committed state

Workflow graph:

    received ─▶ forwarded_to_secretary ─▶ commented_by_secretary ─▶ sent_to_chair
        │                ▲                                              │
        ▼                │                                              ▼
    sent_to_records ─────┘                                    commented_by_chair
                                                                 │           │
                                                                 ▼           ▼
                                                           sent_to_hr  sent_to_committee
                                                                 │           │
                                                                 └─▶ agenda_set ◀┘
                                                                        │
                                                                        ▼
                                                                  board_meeting
                                                                        │
                                                                        ▼
                                                                  decision_made
                                                                   │         │
                                                                   ▼         ▼
                                                              dispatched   filed

Terminal edges (decision_made → dispatched | filed) live in the same table
but are only executed by ``finalizer``; ``transition_document`` refuses them
because they need a decision summary.

Usage:
    from rms.services.workflow_engine import transition_document

    doc = transition_document(
        document_id=7,
        to_status="forwarded_to_secretary",
        actor_id=3,
        actor_role="recordsOfficer",
        notes="For the secretary's review",
    )
"""

import logging

from rms.core.exceptions import AlreadyTerminalError, InvalidTransitionError, ValidationError
from rms.models.auth import (
    ROLE_BOARD_CHAIR,
    ROLE_BOARD_COMMITTEE,
    ROLE_BOARD_SECRETARY,
    ROLE_CHIEF_OFFICER,
    ROLE_HR,
    ROLE_RECORDS_OFFICER,
)
from rms.models.records import (
    ACTION_DISPATCHED,
    ACTION_FILED,
    ACTION_FORWARDED,
    ACTION_SENT_TO_RECORDS,
    COMMENT_EXTERNAL_REF,
    HANDLER_INITIATOR,
    HANDLER_REGISTRY,
    STATUS_AGENDA_SET,
    STATUS_BOARD_MEETING,
    STATUS_COMMENTED_BY_CHAIR,
    STATUS_COMMENTED_BY_SECRETARY,
    STATUS_DECISION_MADE,
    STATUS_DISPATCHED,
    STATUS_FILED,
    STATUS_FORWARDED_TO_SECRETARY,
    STATUS_RECEIVED,
    STATUS_SENT_TO_CHAIR,
    STATUS_SENT_TO_COMMITTEE,
    STATUS_SENT_TO_HR,
    STATUS_SENT_TO_RECORDS,
    TERMINAL_STATUSES,
    RecordDocument,
)
from rms.services import comment_ledger, document_store, workflow_log
from rms.utils.helpers import parse_date_input, unit_of_work

logger = logging.getLogger(__name__)


# ── Status → responsible handler ─────────────────────────────────────────────

STATUS_HANDLER = {
    STATUS_RECEIVED: ROLE_RECORDS_OFFICER,
    STATUS_SENT_TO_RECORDS: ROLE_RECORDS_OFFICER,
    STATUS_FORWARDED_TO_SECRETARY: ROLE_BOARD_SECRETARY,
    STATUS_COMMENTED_BY_SECRETARY: ROLE_BOARD_SECRETARY,
    STATUS_SENT_TO_CHAIR: ROLE_BOARD_CHAIR,
    STATUS_COMMENTED_BY_CHAIR: ROLE_BOARD_CHAIR,
    STATUS_SENT_TO_HR: ROLE_HR,
    STATUS_SENT_TO_COMMITTEE: ROLE_BOARD_COMMITTEE,
    STATUS_AGENDA_SET: ROLE_BOARD_SECRETARY,
    STATUS_BOARD_MEETING: ROLE_BOARD_COMMITTEE,
    STATUS_DECISION_MADE: ROLE_RECORDS_OFFICER,
    STATUS_DISPATCHED: HANDLER_INITIATOR,
    STATUS_FILED: HANDLER_REGISTRY,
}


def _edge(role: str, to_status: str, action: str = ACTION_FORWARDED) -> dict:
    return {"role": role, "handler": STATUS_HANDLER[to_status], "action": action}


# ── Transition table ─────────────────────────────────────────────────────────
# (from_status, to_status) → {role: required acting role,
#                             handler: resulting handler,
#                             action: workflow log action type}

TRANSITIONS = {
    (STATUS_RECEIVED, STATUS_FORWARDED_TO_SECRETARY):
        _edge(ROLE_RECORDS_OFFICER, STATUS_FORWARDED_TO_SECRETARY),
    (STATUS_RECEIVED, STATUS_SENT_TO_RECORDS):
        _edge(ROLE_CHIEF_OFFICER, STATUS_SENT_TO_RECORDS, ACTION_SENT_TO_RECORDS),
    (STATUS_SENT_TO_RECORDS, STATUS_FORWARDED_TO_SECRETARY):
        _edge(ROLE_RECORDS_OFFICER, STATUS_FORWARDED_TO_SECRETARY),
    (STATUS_FORWARDED_TO_SECRETARY, STATUS_COMMENTED_BY_SECRETARY):
        _edge(ROLE_BOARD_SECRETARY, STATUS_COMMENTED_BY_SECRETARY),
    (STATUS_COMMENTED_BY_SECRETARY, STATUS_SENT_TO_CHAIR):
        _edge(ROLE_BOARD_SECRETARY, STATUS_SENT_TO_CHAIR),
    (STATUS_SENT_TO_CHAIR, STATUS_COMMENTED_BY_CHAIR):
        _edge(ROLE_BOARD_CHAIR, STATUS_COMMENTED_BY_CHAIR),
    (STATUS_COMMENTED_BY_CHAIR, STATUS_SENT_TO_HR):
        _edge(ROLE_BOARD_CHAIR, STATUS_SENT_TO_HR),
    (STATUS_COMMENTED_BY_CHAIR, STATUS_SENT_TO_COMMITTEE):
        _edge(ROLE_BOARD_CHAIR, STATUS_SENT_TO_COMMITTEE),
    (STATUS_SENT_TO_HR, STATUS_AGENDA_SET):
        _edge(ROLE_HR, STATUS_AGENDA_SET),
    (STATUS_SENT_TO_COMMITTEE, STATUS_AGENDA_SET):
        _edge(ROLE_BOARD_COMMITTEE, STATUS_AGENDA_SET),
    (STATUS_AGENDA_SET, STATUS_BOARD_MEETING):
        _edge(ROLE_BOARD_SECRETARY, STATUS_BOARD_MEETING),
    (STATUS_BOARD_MEETING, STATUS_DECISION_MADE):
        _edge(ROLE_BOARD_COMMITTEE, STATUS_DECISION_MADE),
    (STATUS_DECISION_MADE, STATUS_DISPATCHED):
        _edge(ROLE_RECORDS_OFFICER, STATUS_DISPATCHED, ACTION_DISPATCHED),
    (STATUS_DECISION_MADE, STATUS_FILED):
        _edge(ROLE_RECORDS_OFFICER, STATUS_FILED, ACTION_FILED),
}


def next_statuses(from_status: str, acting_role: str | None = None) -> list[str]:
    """Legal successors of ``from_status``, optionally limited to one role."""
    return [
        to for (frm, to), rule in TRANSITIONS.items()
        if frm == from_status and (acting_role is None or rule["role"] == acting_role)
    ]


def validate_transition(from_status: str, to_status: str, acting_role: str | None) -> dict:
    """
    Look up the edge and check the acting role.

    Returns:
        The table rule {"role", "handler", "action"}.

    Raises:
        InvalidTransitionError when the pair is not an edge or the role
        does not match.
    """
    rule = TRANSITIONS.get((from_status, to_status))
    if rule is None:
        allowed = next_statuses(from_status)
        raise InvalidTransitionError(
            from_status, to_status, acting_role,
            reason=f"allowed next statuses: {', '.join(allowed) or 'none'}",
        )
    if acting_role != rule["role"]:
        raise InvalidTransitionError(
            from_status, to_status, acting_role,
            reason=f"requires role '{rule['role']}', not '{acting_role}'",
        )
    return rule


def apply_transition(
    doc: RecordDocument,
    rule: dict,
    to_status: str,
    *,
    actor_id: int | None,
    actor_role: str,
    notes: str | None = None,
    extra_fields: dict | None = None,
):
    """Write the record change and its log row.  Flushes, never commits.

    Shared by ``transition_document`` and the finalizer; always call it
    inside a ``unit_of_work`` block.
    """
    from_status = doc.status
    from_handler = doc.current_handler
    fields = {"status": to_status, "current_handler": rule["handler"]}
    fields.update(extra_fields or {})
    document_store.update(doc, fields)
    return workflow_log.append_entry(
        document_id=doc.id,
        from_status=from_status,
        to_status=to_status,
        from_handler=from_handler,
        to_handler=rule["handler"],
        action_type=rule["action"],
        actor_id=actor_id,
        actor_role=actor_role,
        notes=notes,
    )


def _transition_fields(
    doc: RecordDocument,
    to_status: str,
    *,
    attachment_ref: str | None,
    reference_number: str | None,
    agenda_item_number: str | None,
    board_meeting_date,
) -> dict:
    """Collect optional column updates carried by a transition."""
    fields = {}
    if attachment_ref:
        fields["file_path"] = attachment_ref.strip()
    if reference_number and reference_number.strip() != doc.reference_number:
        reference_number = reference_number.strip()
        document_store.ensure_reference_available(reference_number, exclude_id=doc.id)
        fields["reference_number"] = reference_number

    if to_status == STATUS_AGENDA_SET:
        details = {}
        if not (agenda_item_number or "").strip():
            details["agendaItemNumber"] = "required when setting the agenda"
        try:
            meeting_date = parse_date_input(board_meeting_date)
        except ValueError:
            meeting_date = None
            details["boardMeetingDate"] = "invalid date"
        if meeting_date is None and "boardMeetingDate" not in details:
            details["boardMeetingDate"] = "required when setting the agenda"
        if details:
            raise ValidationError("Agenda details are incomplete", details=details)
        fields["agenda_item_number"] = agenda_item_number.strip()
        fields["board_meeting_date"] = meeting_date
    return fields


# ── Public API ───────────────────────────────────────────────────────────────


def transition_document(
    document_id: int,
    to_status: str,
    *,
    actor_id: int | None,
    actor_role: str,
    notes: str | None = None,
    attachment_ref: str | None = None,
    reference_number: str | None = None,
    to_handler: str | None = None,
    agenda_item_number: str | None = None,
    board_meeting_date=None,
) -> RecordDocument:
    """
    Execute one non-terminal workflow transition.

    Args:
        document_id: target document (must exist and not be terminal).
        to_status: requested next status.
        actor_id / actor_role: the acting user and the role read for this
            request.
        notes: free text stored on the log row.
        attachment_ref: file reference to store on the document.
        reference_number: replacement reference number.
        to_handler: optional; when given it must equal the table's
            resulting handler.
        agenda_item_number / board_meeting_date: required when entering
            ``agenda_set``.

    Returns:
        The updated RecordDocument.

    Raises:
        NotFoundError, AlreadyTerminalError, InvalidTransitionError,
        ValidationError, ConflictError
    """
    with unit_of_work("transition document"):
        doc = document_store.get_document(document_id, for_update=True)
        _execute(
            doc, to_status,
            actor_id=actor_id,
            actor_role=actor_role,
            notes=notes,
            attachment_ref=attachment_ref,
            reference_number=reference_number,
            to_handler=to_handler,
            agenda_item_number=agenda_item_number,
            board_meeting_date=board_meeting_date,
        )
    return doc


def _execute(
    doc: RecordDocument,
    to_status: str,
    *,
    actor_id,
    actor_role,
    notes,
    attachment_ref=None,
    reference_number=None,
    to_handler=None,
    agenda_item_number=None,
    board_meeting_date=None,
):
    from_status = doc.status
    if doc.is_terminal:
        raise AlreadyTerminalError(doc.id, doc.status)
    if to_status in TERMINAL_STATUSES:
        raise InvalidTransitionError(
            from_status, to_status, actor_role,
            reason="dispatch and filing go through the dispatch endpoint",
        )
    try:
        rule = validate_transition(from_status, to_status, actor_role)
    except InvalidTransitionError as exc:
        logger.warning(
            "Transition rejected: %s",
            exc,
            extra={"document_id": doc.id, "from_status": from_status,
                   "to_status": to_status, "actor_id": actor_id},
        )
        raise
    if to_handler and to_handler != rule["handler"]:
        raise InvalidTransitionError(
            from_status, to_status, actor_role,
            reason=f"'{to_status}' is handled by '{rule['handler']}', not '{to_handler}'",
        )

    extra_fields = _transition_fields(
        doc, to_status,
        attachment_ref=attachment_ref,
        reference_number=reference_number,
        agenda_item_number=agenda_item_number,
        board_meeting_date=board_meeting_date,
    )
    apply_transition(
        doc, rule, to_status,
        actor_id=actor_id,
        actor_role=actor_role,
        notes=notes,
        extra_fields=extra_fields,
    )
    logger.info(
        "Document transitioned %s -> %s",
        from_status, to_status,
        extra={
            "document_id": doc.id,
            "event_type": rule["action"],
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
        },
    )


def send_to_records(
    document_id: int,
    *,
    actor_id: int | None,
    actor_role: str,
    author_name: str | None = None,
    notes: str | None = None,
    attachment_ref: str | None = None,
    external_reference: str | None = None,
) -> tuple[RecordDocument, object]:
    """
    Chief officer returns a received document to records intake.

    Compound operation: the ``received → sent_to_records`` transition and
    (when ``external_reference`` is given) an ``external_ref`` comment are
    written in one transaction as two separate records.

    Returns:
        (document, comment_or_None)
    """
    comment = None
    with unit_of_work("send document to records"):
        doc = document_store.get_document(document_id, for_update=True)
        _execute(
            doc, STATUS_SENT_TO_RECORDS,
            actor_id=actor_id,
            actor_role=actor_role,
            notes=notes,
            attachment_ref=attachment_ref,
        )
        if (external_reference or "").strip():
            comment = comment_ledger.add_comment(
                doc.id,
                author_id=actor_id,
                author_role=actor_role,
                author_name=author_name,
                kind=COMMENT_EXTERNAL_REF,
                body=external_reference,
                document=doc,
                commit=False,
            )
    return doc, comment


def verify_workflow_walk(document_id: int) -> bool:
    """True when the state-changing log rows form a legal walk.

    The first row must be the creation row (from NULL to ``received``);
    every later row must be a table edge leaving the previous status.
    """
    entries = workflow_log.list_entries(document_id, state_changes_only=True)
    if not entries:
        return False
    first = entries[0]
    if first.from_status is not None or first.to_status != STATUS_RECEIVED:
        return False
    current = first.to_status
    for entry in entries[1:]:
        if entry.from_status != current:
            return False
        if (current, entry.to_status) not in TRANSITIONS:
            return False
        current = entry.to_status
    return True
