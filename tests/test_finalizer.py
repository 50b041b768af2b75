"""
Dispatch & filing finalizer tests.
"""

import pytest

from rms.core.exceptions import AlreadyTerminalError, InvalidTransitionError, ValidationError
from rms.models import db
from rms.models.records import WorkflowLogEntry
from rms.services import finalizer, workflow_log


def _finalize(doc, user, outcome="dispatch", summary="Approved as proposed"):
    return finalizer.finalize_document(
        doc.id, outcome, actor_id=user.id, actor_role=user.role, decision_summary=summary,
    )


class TestFinalize:
    def test_dispatch(self, users, make_document):
        doc = make_document(status="decision_made")
        officer = users["recordsOfficer"]

        doc = _finalize(doc, officer)

        assert doc.status == "dispatched"
        assert doc.current_handler == "initiator"
        assert doc.decision_summary == "Approved as proposed"
        assert doc.dispatched_by_id == officer.id
        assert doc.dispatched_at is not None
        last = workflow_log.list_entries(doc.id)[-1]
        assert last.action_type == "Document Dispatched"
        assert last.from_status == "decision_made"
        assert last.notes == "Approved as proposed"

    def test_file(self, users, make_document):
        doc = make_document(status="decision_made")
        doc = _finalize(doc, users["recordsOfficer"], outcome="file", summary="For the record")
        assert doc.status == "filed"
        assert doc.current_handler == "registry"
        assert workflow_log.list_entries(doc.id)[-1].action_type == "Document Filed"

    @pytest.mark.parametrize("status", ["received", "board_meeting", "agenda_set"])
    def test_requires_decision_made(self, users, make_document, status):
        doc = make_document(status=status)
        with pytest.raises(InvalidTransitionError):
            _finalize(doc, users["recordsOfficer"])
        db.session.refresh(doc)
        assert doc.status == status
        assert doc.decision_summary is None

    def test_wrong_role(self, users, make_document):
        doc = make_document(status="decision_made")
        with pytest.raises(InvalidTransitionError):
            _finalize(doc, users["boardChair"])

    @pytest.mark.parametrize("terminal", ["dispatched", "filed"])
    def test_second_finalize_is_rejected_without_new_log(self, users, make_document, terminal):
        doc = make_document(status="decision_made")
        officer = users["recordsOfficer"]
        _finalize(doc, officer, outcome="dispatch" if terminal == "dispatched" else "file")
        count = WorkflowLogEntry.query.filter_by(document_id=doc.id).count()

        for outcome in ("dispatch", "file"):
            with pytest.raises(AlreadyTerminalError) as exc:
                _finalize(doc, officer, outcome=outcome)
            assert exc.value.status == terminal

        assert WorkflowLogEntry.query.filter_by(document_id=doc.id).count() == count

    @pytest.mark.parametrize("outcome, summary", [("dispatch", ""), ("shred", "Again")])
    def test_repeat_with_bad_payload_is_still_terminal(self, users, make_document, outcome, summary):
        doc = make_document(status="decision_made")
        officer = users["recordsOfficer"]
        _finalize(doc, officer)

        with pytest.raises(AlreadyTerminalError):
            _finalize(doc, officer, outcome=outcome, summary=summary)

    @pytest.mark.parametrize("summary", ["", "   ", None])
    def test_summary_required(self, users, make_document, summary):
        doc = make_document(status="decision_made")
        with pytest.raises(ValidationError):
            _finalize(doc, users["recordsOfficer"], summary=summary)

    def test_summary_too_long(self, users, make_document):
        doc = make_document(status="decision_made")
        with pytest.raises(ValidationError):
            _finalize(doc, users["recordsOfficer"], summary="x" * (finalizer.MAX_SUMMARY_LENGTH + 1))

    def test_unknown_outcome(self, users, make_document):
        doc = make_document(status="decision_made")
        with pytest.raises(ValidationError):
            _finalize(doc, users["recordsOfficer"], outcome="shred")
