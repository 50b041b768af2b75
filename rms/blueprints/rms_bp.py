"""
Board Records Management Blueprint.

HTTP surface for the document workflow. Every route resolves the acting user
through the X-User-Id header (see rms.auth) before the view runs.

Endpoints (all under /api/v1/rms):
    POST   /documents                         register a document at intake
    GET    /documents                         list (status, priority, handler, mine)
    GET    /documents/<id>                    detail + comments + log + timeline
    PATCH  /documents/<id>                    metadata-only update
    GET    /documents/<id>/comments           comments, oldest first
    POST   /documents/<id>/comments           add a comment
    GET    /documents/<id>/workflow           workflow log, oldest first
    GET    /documents/<id>/transitions        legal next statuses for the actor
    POST   /documents/<id>/forward            one workflow transition
    POST   /documents/<id>/send-to-records    chief officer side path (+ comment)
    POST   /documents/<id>/dispatch           dispatch or file a decided document
    GET    /stats                             dashboard counters

Layer contract:
    - Blueprint: parse + normalise input, resolve the actor, call a service,
                 return JSON.
    - NO db.session calls here; services own every write and commit.
    - Transition role checks live in workflow_engine, not here.
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from rms.auth import require_roles
from rms.blueprints import paginate_query
from rms.core.exceptions import (
    AlreadyTerminalError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from rms.models.auth import ROLE_ADMIN, ROLE_CHIEF_OFFICER, ROLE_RECORDS_OFFICER
from rms.services import (
    comment_ledger,
    dashboard_service,
    document_store,
    document_view,
    finalizer,
    workflow_engine,
    workflow_log,
)
from rms.utils.errors import E, api_error

logger = logging.getLogger(__name__)

rms_bp = Blueprint("rms", __name__, url_prefix="/api/v1/rms")

# camelCase request keys → column names; snake_case keys pass through
_FIELD_ALIASES = {
    "referenceNumber": "reference_number",
    "documentType": "document_type",
    "documentDate": "document_date",
    "initiatorDepartment": "initiator_department",
    "initiatorName": "initiator_name",
    "initiatorEmail": "initiator_email",
    "initiatorPhone": "initiator_phone",
    "filePath": "file_path",
    "attachmentRef": "file_path",
    "attachment_ref": "file_path",
    "currentHandler": "current_handler",
    "decisionSummary": "decision_summary",
    "dispatchedAt": "dispatched_at",
    "dispatchedById": "dispatched_by_id",
}


# ── Error handlers ─────────────────────────────────────────────────────────────


@rms_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


@rms_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_INVALID, str(error), details=error.details)


@rms_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    return api_error(E.CONFLICT_DUPLICATE, str(error), details={error.field: "already in use"})


@rms_bp.errorhandler(ForbiddenError)
def _handle_forbidden(error: ForbiddenError):
    return api_error(E.FORBIDDEN, str(error))


@rms_bp.errorhandler(InvalidTransitionError)
def _handle_invalid_transition(error: InvalidTransitionError):
    return api_error(E.INVALID_TRANSITION, str(error), details=error.to_details())


@rms_bp.errorhandler(AlreadyTerminalError)
def _handle_already_terminal(error: AlreadyTerminalError):
    return api_error(E.ALREADY_TERMINAL, str(error), details={"status": error.status})


@rms_bp.errorhandler(IntegrityError)
def _handle_integrity(error: IntegrityError):
    logger.warning("Integrity error in rms endpoint=%s: %s", request.endpoint, error.orig)
    return api_error(E.CONFLICT_DUPLICATE, "Conflicting write, the record already exists")


@rms_bp.errorhandler(SQLAlchemyError)
def _handle_database(error: SQLAlchemyError):
    return api_error(E.DATABASE, "Database error, the operation was not applied")


@rms_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return jsonify({"error": error.description, "code": f"ERR_HTTP_{error.code}"}), error.code
    logger.exception("Unexpected error in rms endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


# ── Helpers ────────────────────────────────────────────────────────────────────


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _normalise_fields(data: dict) -> dict:
    return {_FIELD_ALIASES.get(k, k): v for k, v in data.items()}


def _first(data: dict, *keys):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _str_field(data: dict, *keys):
    """First non-null value among ``keys``; it must be a JSON string."""
    value = _first(data, *keys)
    if value is not None and not isinstance(value, str):
        raise ValidationError(
            f"{keys[0]} must be a string", details={keys[0]: "must be a string"},
        )
    return value


def _check_attachment(ref):
    """Attachment references must live under RMS_UPLOAD_PREFIX when it is set."""
    if ref is None:
        return None
    if not isinstance(ref, str):
        raise ValidationError("Attachment reference must be a string", details={"filePath": "invalid"})
    prefix = current_app.config.get("RMS_UPLOAD_PREFIX") or ""
    if ref and prefix and not ref.startswith(prefix):
        raise ValidationError(
            "Attachment reference is outside the upload area",
            details={"filePath": f"must start with {prefix}"},
        )
    return ref


def _actor():
    user = g.current_user
    return user.id, user.role, user.full_name


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").lower() in ("1", "true", "yes")


# ── Documents ──────────────────────────────────────────────────────────────────


@rms_bp.route("/documents", methods=["POST"])
@require_roles(ROLE_RECORDS_OFFICER, ROLE_ADMIN)
def create_document():
    """Register an incoming document. Starts in 'received' with the records officer."""
    data = _normalise_fields(_json_body())
    if "file_path" in data:
        _check_attachment(data["file_path"])
    actor_id, actor_role, _ = _actor()
    doc = document_store.create_document(data, actor_id=actor_id, actor_role=actor_role)
    return jsonify(doc.to_dict()), 201


@rms_bp.route("/documents", methods=["GET"])
def list_documents():
    """List documents, newest first.

    Query params: status, priority, handler, mine=true (handler = my role),
    limit, offset.
    """
    handler = request.args.get("handler") or None
    if _flag("mine"):
        handler = g.current_user_role
    query = document_store.list_documents(
        status=request.args.get("status") or None,
        priority=request.args.get("priority") or None,
        handler=handler,
    )
    items, total = paginate_query(query)
    return jsonify({"items": [d.to_dict() for d in items], "total": total}), 200


@rms_bp.route("/documents/<int:document_id>", methods=["GET"])
def get_document(document_id: int):
    detail = document_view.get_document_detail(document_id, acting_role=g.current_user_role)
    return jsonify(detail), 200


@rms_bp.route("/documents/<int:document_id>", methods=["PATCH"])
def update_document(document_id: int):
    """Metadata-only update. Status and handler change through /forward and /dispatch."""
    data = _normalise_fields(_json_body())
    if "file_path" in data:
        _check_attachment(data["file_path"])
    doc = document_store.update_metadata(document_id, data)
    return jsonify(doc.to_dict()), 200


# ── Comments & log ─────────────────────────────────────────────────────────────


@rms_bp.route("/documents/<int:document_id>/comments", methods=["GET"])
def list_comments(document_id: int):
    comments = comment_ledger.list_comments(document_id)
    return jsonify([c.to_dict() for c in comments]), 200


@rms_bp.route("/documents/<int:document_id>/comments", methods=["POST"])
def add_comment(document_id: int):
    """Body: {commentType, comment, recommendation?}"""
    data = _json_body()
    actor_id, actor_role, actor_name = _actor()
    comment = comment_ledger.add_comment(
        document_id,
        author_id=actor_id,
        author_role=actor_role,
        author_name=actor_name,
        kind=_str_field(data, "commentType", "kind") or "remark",
        body=_str_field(data, "comment", "body"),
        recommendation=_str_field(data, "recommendation"),
    )
    return jsonify(comment.to_dict()), 201


@rms_bp.route("/documents/<int:document_id>/workflow", methods=["GET"])
def list_workflow(document_id: int):
    """Workflow log, oldest first. ?state_changes=true hides comment rows."""
    document_store.get_document(document_id)
    entries = workflow_log.list_entries(document_id, state_changes_only=_flag("state_changes"))
    return jsonify([e.to_dict() for e in entries]), 200


# ── Workflow ───────────────────────────────────────────────────────────────────


@rms_bp.route("/documents/<int:document_id>/transitions", methods=["GET"])
def list_transitions(document_id: int):
    doc = document_store.get_document(document_id)
    return jsonify({
        "document_id": doc.id,
        "status": doc.status,
        "current_handler": doc.current_handler,
        "next_statuses": workflow_engine.next_statuses(doc.status, g.current_user_role),
    }), 200


@rms_bp.route("/documents/<int:document_id>/forward", methods=["POST"])
def forward_document(document_id: int):
    """Body: {toStatus, toHandler?, notes?, referenceNumber?, filePath?,
    agendaItemNumber?, boardMeetingDate?}"""
    data = _json_body()
    to_status = _str_field(data, "toStatus", "to_status")
    if not to_status:
        raise ValidationError("toStatus is required", details={"toStatus": "required"})
    actor_id, actor_role, _ = _actor()
    doc = workflow_engine.transition_document(
        document_id,
        to_status,
        actor_id=actor_id,
        actor_role=actor_role,
        notes=_str_field(data, "notes"),
        attachment_ref=_check_attachment(_first(data, "attachmentRef", "filePath", "file_path")),
        reference_number=_str_field(data, "referenceNumber", "reference_number"),
        to_handler=_str_field(data, "toHandler", "to_handler"),
        agenda_item_number=_str_field(data, "agendaItemNumber", "agenda_item_number"),
        board_meeting_date=_str_field(data, "boardMeetingDate", "board_meeting_date"),
    )
    return jsonify(doc.to_dict()), 200


@rms_bp.route("/documents/<int:document_id>/send-to-records", methods=["POST"])
@require_roles(ROLE_CHIEF_OFFICER)
def send_to_records(document_id: int):
    """Body: {notes?, externalReference?, filePath?}

    Moves a received document to records intake and, when an external
    reference is given, stores it as an external_ref comment.
    """
    data = _json_body()
    actor_id, actor_role, actor_name = _actor()
    doc, comment = workflow_engine.send_to_records(
        document_id,
        actor_id=actor_id,
        actor_role=actor_role,
        author_name=actor_name,
        notes=_str_field(data, "notes"),
        attachment_ref=_check_attachment(_first(data, "attachmentRef", "filePath", "file_path")),
        external_reference=_str_field(data, "externalReference", "external_reference"),
    )
    return jsonify({
        "document": doc.to_dict(),
        "comment": comment.to_dict() if comment else None,
    }), 200


@rms_bp.route("/documents/<int:document_id>/dispatch", methods=["POST"])
def dispatch_document(document_id: int):
    """Body: {decisionSummary, outcome: "dispatch" | "file"} (outcome defaults to dispatch)"""
    data = _json_body()
    actor_id, actor_role, _ = _actor()
    doc = finalizer.finalize_document(
        document_id,
        _str_field(data, "outcome") or finalizer.OUTCOME_DISPATCH,
        actor_id=actor_id,
        actor_role=actor_role,
        decision_summary=_str_field(data, "decisionSummary", "decision_summary"),
    )
    return jsonify(doc.to_dict()), 200


# ── Dashboard ──────────────────────────────────────────────────────────────────


@rms_bp.route("/stats", methods=["GET"])
def stats():
    return jsonify(dashboard_service.get_stats()), 200
