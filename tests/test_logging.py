"""
Structured logging tests: workflow extras reach the JSON output.
"""

import json
import logging

from rms.middleware.logging_config import JSONFormatter, ReadableFormatter


def _record(**extra):
    record = logging.LogRecord(
        "rms.services.workflow_engine", logging.INFO, __file__, 10,
        "Document transitioned %s -> %s", ("received", "forwarded_to_secretary"), None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_lifts_workflow_fields():
    out = json.loads(JSONFormatter().format(_record(
        document_id=7, event_type="Document Forwarded",
        from_status="received", to_status="forwarded_to_secretary", actor_id=3,
    )))
    assert out["message"] == "Document transitioned received -> forwarded_to_secretary"
    assert out["document_id"] == 7
    assert out["event_type"] == "Document Forwarded"
    assert out["actor_id"] == 3
    assert "path" not in out


def test_readable_formatter_shows_document():
    line = ReadableFormatter().format(_record(document_id=7))
    assert "doc=7" in line


def test_request_headers_stamped(client):
    res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"
    assert "X-Request-Duration-Ms" in res.headers
