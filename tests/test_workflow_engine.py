"""
Transition engine tests.

Covers:
  - Table shape: every edge's handler matches the target status
  - Every valid edge succeeds for its required role and writes one log row
  - Wrong role / unknown edge / terminal target are rejected without writes
  - Full board path (10 log rows, ends with the initiator)
  - Agenda details, toHandler check, reference number uniqueness
  - Chief officer side path (send to records)
  - Workflow walk verification
"""

from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError

from rms.core.exceptions import (
    AlreadyTerminalError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from rms.models import db
from rms.models.records import (
    ACTION_COMMENT_ADDED,
    ACTION_SENT_TO_RECORDS,
    DOCUMENT_STATUSES,
    TERMINAL_STATUSES,
    RecordDocument,
    WorkflowLogEntry,
)
from rms.services import finalizer, workflow_engine, workflow_log
from rms.services.workflow_engine import STATUS_HANDLER, TRANSITIONS

_AGENDA = {"agenda_item_number": "7.2", "board_meeting_date": "2026-11-04"}

_NON_TERMINAL_EDGES = [pair for pair in TRANSITIONS if pair[1] not in TERMINAL_STATUSES]


def _log_count(doc_id):
    return WorkflowLogEntry.query.filter_by(document_id=doc_id).count()


def _move(doc, to_status, users, **kwargs):
    rule = TRANSITIONS[(doc.status, to_status)]
    actor = users[rule["role"]]
    if to_status == "agenda_set":
        kwargs = {**_AGENDA, **kwargs}
    return workflow_engine.transition_document(
        doc.id, to_status, actor_id=actor.id, actor_role=actor.role, **kwargs,
    )


# ═════════════════════════════════════════════════════════════════════════
# TABLE SHAPE
# ═════════════════════════════════════════════════════════════════════════


class TestTransitionTable:
    def test_every_status_has_a_handler(self):
        assert set(STATUS_HANDLER) == set(DOCUMENT_STATUSES)

    @pytest.mark.parametrize("pair", list(TRANSITIONS))
    def test_edge_handler_matches_target_status(self, pair):
        assert TRANSITIONS[pair]["handler"] == STATUS_HANDLER[pair[1]]

    def test_terminal_statuses_have_no_successors(self):
        for status in TERMINAL_STATUSES:
            assert workflow_engine.next_statuses(status) == []

    def test_next_statuses_filters_by_role(self):
        assert workflow_engine.next_statuses("commented_by_chair", "boardChair") == [
            "sent_to_hr", "sent_to_committee",
        ]
        assert workflow_engine.next_statuses("commented_by_chair", "HR") == []
        assert workflow_engine.next_statuses("received", "chiefOfficer") == ["sent_to_records"]

    def test_validate_unknown_edge(self):
        with pytest.raises(InvalidTransitionError) as exc:
            workflow_engine.validate_transition("received", "board_meeting", "recordsOfficer")
        assert exc.value.from_status == "received"
        assert exc.value.to_status == "board_meeting"

    def test_admin_does_not_bypass_role_check(self):
        with pytest.raises(InvalidTransitionError):
            workflow_engine.validate_transition("received", "forwarded_to_secretary", "admin")


# ═════════════════════════════════════════════════════════════════════════
# SINGLE TRANSITIONS
# ═════════════════════════════════════════════════════════════════════════


class TestTransitionDocument:
    @pytest.mark.parametrize("from_status,to_status", _NON_TERMINAL_EDGES)
    def test_valid_edge(self, users, make_document, from_status, to_status):
        doc = make_document(status=from_status)
        before = _log_count(doc.id)

        updated = _move(doc, to_status, users, notes="moving on")

        assert updated.status == to_status
        assert updated.current_handler == STATUS_HANDLER[to_status]
        assert _log_count(doc.id) == before + 1
        last = workflow_log.list_entries(doc.id)[-1]
        assert last.from_status == from_status
        assert last.to_status == to_status
        assert last.from_handler == STATUS_HANDLER[from_status]
        assert last.to_handler == STATUS_HANDLER[to_status]
        assert last.notes == "moving on"
        assert last.actor_role == TRANSITIONS[(from_status, to_status)]["role"]

    def test_wrong_role_rejected_without_writes(self, users, make_document):
        doc = make_document()
        hr = users["HR"]
        before = _log_count(doc.id)

        with pytest.raises(InvalidTransitionError) as exc:
            workflow_engine.transition_document(
                doc.id, "forwarded_to_secretary", actor_id=hr.id, actor_role=hr.role,
            )

        assert exc.value.acting_role == "HR"
        db.session.refresh(doc)
        assert doc.status == "received"
        assert doc.current_handler == "recordsOfficer"
        assert _log_count(doc.id) == before

    def test_unknown_edge_rejected(self, users, make_document):
        doc = make_document()
        officer = users["recordsOfficer"]
        with pytest.raises(InvalidTransitionError):
            workflow_engine.transition_document(
                doc.id, "decision_made", actor_id=officer.id, actor_role=officer.role,
            )
        assert _log_count(doc.id) == 1

    def test_terminal_target_goes_through_finalizer(self, users, make_document):
        doc = make_document(status="decision_made")
        officer = users["recordsOfficer"]
        with pytest.raises(InvalidTransitionError):
            workflow_engine.transition_document(
                doc.id, "dispatched", actor_id=officer.id, actor_role=officer.role,
            )
        db.session.refresh(doc)
        assert doc.status == "decision_made"

    def test_terminal_document_rejected(self, users, make_document):
        doc = make_document(status="filed")
        officer = users["recordsOfficer"]
        before = _log_count(doc.id)
        with pytest.raises(AlreadyTerminalError):
            workflow_engine.transition_document(
                doc.id, "forwarded_to_secretary", actor_id=officer.id, actor_role=officer.role,
            )
        assert _log_count(doc.id) == before

    def test_missing_document(self, users):
        officer = users["recordsOfficer"]
        with pytest.raises(NotFoundError):
            workflow_engine.transition_document(
                9999, "forwarded_to_secretary", actor_id=officer.id, actor_role=officer.role,
            )

    def test_to_handler_must_match_table(self, users, make_document):
        doc = make_document()
        with pytest.raises(InvalidTransitionError):
            _move(doc, "forwarded_to_secretary", users, to_handler="boardChair")
        updated = _move(doc, "forwarded_to_secretary", users, to_handler="boardSecretary")
        assert updated.current_handler == "boardSecretary"

    def test_attachment_and_reference_number(self, users, make_document):
        doc = make_document()
        updated = _move(
            doc, "forwarded_to_secretary", users,
            attachment_ref="uploads/2026/leave-policy.pdf",
            reference_number="BRD/2026/014",
        )
        assert updated.file_path == "uploads/2026/leave-policy.pdf"
        assert updated.reference_number == "BRD/2026/014"

    def test_reference_number_must_be_unique(self, users, make_document):
        make_document(reference_number="BRD/2026/001")
        doc = make_document()
        with pytest.raises(ConflictError):
            _move(doc, "forwarded_to_secretary", users, reference_number="BRD/2026/001")
        db.session.refresh(doc)
        assert doc.status == "received"


class TestAgendaDetails:
    def test_agenda_requires_item_and_date(self, users, make_document):
        doc = make_document(status="sent_to_committee")
        member = users["boardCommittee"]
        with pytest.raises(ValidationError) as exc:
            workflow_engine.transition_document(
                doc.id, "agenda_set", actor_id=member.id, actor_role=member.role,
            )
        assert set(exc.value.details) == {"agendaItemNumber", "boardMeetingDate"}
        db.session.refresh(doc)
        assert doc.status == "sent_to_committee"

    def test_agenda_rejects_bad_date(self, users, make_document):
        doc = make_document(status="sent_to_hr")
        with pytest.raises(ValidationError) as exc:
            _move(doc, "agenda_set", users, board_meeting_date="next tuesday")
        assert "boardMeetingDate" in exc.value.details

    def test_agenda_stores_details(self, users, make_document):
        doc = make_document(status="sent_to_hr")
        updated = _move(doc, "agenda_set", users)
        assert updated.agenda_item_number == "7.2"
        assert updated.board_meeting_date == date(2026, 11, 4)
        assert updated.current_handler == "boardSecretary"


# ═════════════════════════════════════════════════════════════════════════
# FULL PATHS
# ═════════════════════════════════════════════════════════════════════════


_BOARD_PATH = [
    "forwarded_to_secretary",
    "commented_by_secretary",
    "sent_to_chair",
    "commented_by_chair",
    "sent_to_committee",
    "agenda_set",
    "board_meeting",
    "decision_made",
]


class TestFullPath:
    def test_happy_path_to_dispatch(self, users, make_document):
        doc = make_document()
        for status in _BOARD_PATH:
            doc = _move(doc, status, users)

        officer = users["recordsOfficer"]
        doc = finalizer.dispatch_document(
            doc.id, actor_id=officer.id, actor_role=officer.role,
            decision_summary="Approved with amendments",
        )

        entries = workflow_log.list_entries(doc.id)
        assert len(entries) == 10
        assert doc.status == "dispatched"
        assert doc.current_handler == "initiator"
        assert workflow_log.status_path(doc.id) == ["received", *_BOARD_PATH, "dispatched"]
        assert workflow_engine.verify_workflow_walk(doc.id)

    def test_hr_branch_to_filing(self, users, make_document):
        doc = make_document()
        path = ["forwarded_to_secretary", "commented_by_secretary", "sent_to_chair",
                "commented_by_chair", "sent_to_hr", "agenda_set", "board_meeting",
                "decision_made"]
        for status in path:
            doc = _move(doc, status, users)
        officer = users["recordsOfficer"]
        doc = finalizer.file_document(
            doc.id, actor_id=officer.id, actor_role=officer.role,
            decision_summary="Noted; no action required",
        )
        assert doc.current_handler == "registry"
        assert workflow_engine.verify_workflow_walk(doc.id)

    def test_comments_do_not_break_the_walk(self, users, make_document):
        from rms.services import comment_ledger

        doc = make_document()
        doc = _move(doc, "forwarded_to_secretary", users)
        secretary = users["boardSecretary"]
        comment_ledger.add_comment(
            doc.id, author_id=secretary.id, author_role=secretary.role,
            kind="remark", body="Needs the HR annex",
        )
        doc = _move(doc, "commented_by_secretary", users)

        actions = [e.action_type for e in workflow_log.list_entries(doc.id)]
        assert ACTION_COMMENT_ADDED in actions
        assert workflow_engine.verify_workflow_walk(doc.id)

    def test_walk_detects_tampering(self, users, make_document):
        doc = make_document()
        workflow_log.append_entry(
            document_id=doc.id,
            from_status="received",
            to_status="board_meeting",
            from_handler="recordsOfficer",
            to_handler="boardCommittee",
            action_type="Document Forwarded",
        )
        db.session.commit()
        assert workflow_engine.verify_workflow_walk(doc.id) is False


# ═════════════════════════════════════════════════════════════════════════
# CHIEF OFFICER SIDE PATH
# ═════════════════════════════════════════════════════════════════════════


class TestSendToRecords:
    def test_send_to_records_with_external_reference(self, users, make_document):
        doc = make_document()
        chief = users["chiefOfficer"]

        doc, comment = workflow_engine.send_to_records(
            doc.id, actor_id=chief.id, actor_role=chief.role,
            author_name=chief.full_name, external_reference="MIN/EXT/2026/88",
        )

        assert doc.status == "sent_to_records"
        assert doc.current_handler == "recordsOfficer"
        assert comment.kind == "external_ref"
        assert comment.document_status == "sent_to_records"
        actions = [e.action_type for e in workflow_log.list_entries(doc.id)]
        assert actions == ["Document Received", ACTION_SENT_TO_RECORDS, ACTION_COMMENT_ADDED]

    def test_send_to_records_without_reference(self, users, make_document):
        doc = make_document()
        chief = users["chiefOfficer"]
        doc, comment = workflow_engine.send_to_records(doc.id, actor_id=chief.id, actor_role=chief.role)
        assert comment is None
        assert _log_count(doc.id) == 2

    def test_send_to_records_requires_chief_officer(self, users, make_document):
        doc = make_document()
        officer = users["recordsOfficer"]
        with pytest.raises(InvalidTransitionError):
            workflow_engine.send_to_records(
                doc.id, actor_id=officer.id, actor_role=officer.role,
                external_reference="MIN/EXT/2026/88",
            )
        assert _log_count(doc.id) == 1

    def test_side_path_rejoins_board_track(self, users, make_document):
        doc = make_document(status="sent_to_records")
        doc = _move(doc, "forwarded_to_secretary", users)
        assert doc.current_handler == "boardSecretary"

    def test_chief_officer_cannot_skip_ahead(self, users, make_document):
        doc = make_document()
        chief = users["chiefOfficer"]
        with pytest.raises(InvalidTransitionError):
            workflow_engine.transition_document(
                doc.id, "forwarded_to_secretary", actor_id=chief.id, actor_role=chief.role,
            )


# ═════════════════════════════════════════════════════════════════════════
# ATOMICITY
# ═════════════════════════════════════════════════════════════════════════


class TestAtomicity:
    def test_failed_comment_rolls_back_the_transition(self, users, make_document):
        doc = make_document()
        chief = users["chiefOfficer"]

        with pytest.raises(ValidationError):
            workflow_engine.send_to_records(
                doc.id, actor_id=chief.id, actor_role=chief.role,
                external_reference="x" * 20000,
            )

        doc = db.session.get(RecordDocument, doc.id)
        assert doc.status == "received"
        assert doc.current_handler == "recordsOfficer"
        assert _log_count(doc.id) == 1

    def test_failed_log_write_rolls_back_the_record(self, users, make_document, monkeypatch):
        doc = make_document(status="sent_to_chair")
        chair = users["boardChair"]

        def _fail(**kwargs):
            raise SQLAlchemyError("log table unavailable")

        monkeypatch.setattr(workflow_log, "append_entry", _fail)
        with pytest.raises(SQLAlchemyError):
            workflow_engine.transition_document(
                doc.id, "commented_by_chair", actor_id=chair.id, actor_role=chair.role,
            )
        monkeypatch.undo()

        doc = db.session.get(RecordDocument, doc.id)
        assert doc.status == "sent_to_chair"
        assert doc.current_handler == "boardChair"
        assert _log_count(doc.id) == 1
