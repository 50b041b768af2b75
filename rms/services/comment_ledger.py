"""
Comment / annotation ledger.

Comments are immutable: there is an ``add`` and a ``list`` and nothing
else.  Every comment also appends one workflow log row with
``from_status == to_status == document.status`` and action
"Comment Added", so the audit trail interleaves annotations with
transitions.  A comment never touches ``status`` or ``current_handler``.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from rms.core.exceptions import ValidationError
from rms.models import db
from rms.models.records import (
    ACTION_COMMENT_ADDED,
    COMMENT_KINDS,
    COMMENT_RECOMMENDATION,
    RECOMMENDATIONS,
    DocumentComment,
    RecordDocument,
)
from rms.services import document_store, workflow_log
from rms.utils.helpers import unit_of_work

logger = logging.getLogger(__name__)

MAX_BODY_LENGTH = 10_000


def add_comment(
    document_id: int,
    *,
    author_id: int | None,
    author_role: str,
    kind: str,
    body: str,
    author_name: str | None = None,
    recommendation: str | None = None,
    document: RecordDocument | None = None,
    commit: bool = True,
) -> DocumentComment:
    """Attach a comment to a document and log it.

    Args:
        document_id: target document.
        author_id / author_role / author_name: snapshot of the writer.
        kind: remark | recommendation | decision | external_ref.
        body: comment text (required).
        recommendation: approve | reject | revise, only for kind=recommendation.
        document: already-loaded (and locked) document, when called from
                  inside another unit of work.
        commit: False when the caller owns the transaction (send-to-records).

    Raises:
        NotFoundError, ValidationError
    """
    body = (body or "").strip()
    if not body:
        raise ValidationError("Comment text is required", details={"comment": "required"})
    if len(body) > MAX_BODY_LENGTH:
        raise ValidationError(
            f"Comment must be at most {MAX_BODY_LENGTH} characters",
            details={"comment": "too long"},
        )
    if kind not in COMMENT_KINDS:
        raise ValidationError(
            f"Unknown comment kind '{kind}'",
            details={"commentType": f"must be one of {', '.join(sorted(COMMENT_KINDS))}"},
        )
    if recommendation is not None:
        if kind != COMMENT_RECOMMENDATION:
            raise ValidationError(
                "recommendation is only valid on recommendation comments",
                details={"recommendation": "not allowed for this kind"},
            )
        if recommendation not in RECOMMENDATIONS:
            raise ValidationError(
                f"Unknown recommendation '{recommendation}'",
                details={"recommendation": f"must be one of {', '.join(sorted(RECOMMENDATIONS))}"},
            )

    if commit:
        with unit_of_work("add comment"):
            # Status snapshot and annotation row are read under the row lock.
            doc = document or document_store.get_document(document_id, for_update=True)
            comment = _write_comment(
                doc, author_id, author_role, author_name, kind, recommendation, body,
            )
    else:
        doc = document or document_store.get_document(document_id, for_update=True)
        comment = _write_comment(
            doc, author_id, author_role, author_name, kind, recommendation, body,
        )

    logger.info(
        "Comment added",
        extra={
            "document_id": doc.id,
            "event_type": ACTION_COMMENT_ADDED,
            "comment_kind": kind,
            "actor_id": author_id,
        },
    )
    return comment


def _write_comment(doc, author_id, author_role, author_name, kind, recommendation, body):
    # One timestamp for both rows keeps them adjacent in the timeline.
    now = datetime.now(timezone.utc)
    comment = DocumentComment(
        document_id=doc.id,
        author_id=author_id,
        author_name=author_name,
        author_role=author_role,
        kind=kind,
        recommendation=recommendation,
        body=body,
        document_status=doc.status,
        created_at=now,
    )
    db.session.add(comment)
    db.session.flush()

    workflow_log.append_entry(
        document_id=doc.id,
        from_status=doc.status,
        to_status=doc.status,
        from_handler=doc.current_handler,
        to_handler=doc.current_handler,
        action_type=ACTION_COMMENT_ADDED,
        actor_id=author_id,
        actor_role=author_role,
        notes=f"{kind} comment #{comment.id}",
        created_at=now,
    )
    return comment


def list_comments(document_id: int) -> list[DocumentComment]:
    """Comments for a document, oldest first."""
    document_store.get_document(document_id)
    stmt = (
        select(DocumentComment)
        .where(DocumentComment.document_id == document_id)
        .order_by(DocumentComment.created_at, DocumentComment.id)
    )
    return list(db.session.execute(stmt).scalars())
