"""
Blueprints for the records service: ``rms_bp`` (documents, workflow, stats)
and ``health_bp`` (probes).
"""

from flask import request


def paginate_query(query, default_limit=200, max_limit=1000):
    """Slice the documents listing by ``?limit=`` and ``?offset=``.

    ``total`` is counted before slicing so the dashboard can show the full
    size of a filtered queue (e.g. ``?mine=true``) while paging through it.
    Unparseable values fall back to the defaults; ``limit`` is clamped to
    1..max_limit.

    Returns:
        (documents, total)
    """
    total = query.count()
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return query.limit(limit).offset(offset).all(), total
