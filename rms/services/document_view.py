"""
Document detail read model.

Assembles what the detail screen needs in one call: the record, its
comments, its workflow log and a merged timeline where comments and log
rows are interleaved by creation time.
"""

from rms.services import comment_ledger, document_store, workflow_engine, workflow_log

# Tie-break at equal timestamps: the comment row is written before the
# log row it produces.
_KIND_ORDER = {"comment": 0, "log": 1}


def _naive_utc(value):
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def build_timeline(comments, entries) -> list[dict]:
    """Interleave comments and log entries into one chronological list."""
    keyed = [((_naive_utc(c.created_at), _KIND_ORDER["comment"], c.id), {"type": "comment", **c.to_dict()})
             for c in comments]
    keyed += [((_naive_utc(e.created_at), _KIND_ORDER["log"], e.id), {"type": "log", **e.to_dict()})
              for e in entries]
    keyed.sort(key=lambda pair: pair[0])
    return [item for _, item in keyed]


def get_document_detail(document_id: int, *, acting_role: str | None = None) -> dict:
    """Return {document, comments, workflow_log, timeline, next_statuses}."""
    doc = document_store.get_document(document_id)
    comments = comment_ledger.list_comments(document_id)
    entries = workflow_log.list_entries(document_id)
    return {
        "document": doc.to_dict(),
        "comments": [c.to_dict() for c in comments],
        "workflow_log": [e.to_dict() for e in entries],
        "timeline": build_timeline(comments, entries),
        "next_statuses": workflow_engine.next_statuses(doc.status, acting_role),
    }
