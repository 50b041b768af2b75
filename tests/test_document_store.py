"""
Document store tests: intake, lookup, listing filters, metadata PATCH.
"""

from datetime import date

import pytest

from rms.core.exceptions import ConflictError, NotFoundError, ValidationError
from rms.models import db
from rms.services import document_store, workflow_log


class TestCreateDocument:
    def test_intake_defaults(self, users):
        officer = users["recordsOfficer"]
        doc = document_store.create_document(
            {"subject": "Budget variance report", "initiator_department": "Finance",
             "document_date": "2026-10-01", "priority": "high"},
            actor_id=officer.id, actor_role=officer.role,
        )

        assert doc.status == "received"
        assert doc.current_handler == "recordsOfficer"
        assert doc.document_date == date(2026, 10, 1)
        assert doc.created_by_id == officer.id
        assert doc.reference_number == f"RMS-{doc.created_at.year}-{doc.id:05d}"

    def test_intake_writes_creation_log(self, make_document):
        doc = make_document()
        entries = workflow_log.list_entries(doc.id)
        assert len(entries) == 1
        assert entries[0].from_status is None
        assert entries[0].to_status == "received"
        assert entries[0].action_type == "Document Received"

    def test_caller_reference_number_kept(self, make_document):
        doc = make_document(reference_number="BRD/IN/2026/3")
        assert doc.reference_number == "BRD/IN/2026/3"

    def test_duplicate_reference_number(self, make_document):
        make_document(reference_number="BRD/IN/2026/3")
        with pytest.raises(ConflictError):
            make_document(reference_number="BRD/IN/2026/3")

    @pytest.mark.parametrize("missing", ["subject", "initiator_department"])
    def test_required_fields(self, users, missing):
        data = {"subject": "Tender notice", "initiator_department": "Procurement"}
        data[missing] = "  "
        with pytest.raises(ValidationError) as exc:
            document_store.create_document(data)
        assert missing in exc.value.details

    def test_rejects_workflow_fields(self):
        with pytest.raises(ValidationError) as exc:
            document_store.create_document(
                {"subject": "x", "initiator_department": "y", "status": "decision_made"},
            )
        assert "status" in exc.value.details

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError) as exc:
            document_store.create_document(
                {"subject": "x", "initiator_department": "y", "agenda_item_number": "3"},
            )
        assert exc.value.details == {"agenda_item_number": "unknown field"}
        assert db.session.query(document_store.RecordDocument).count() == 0

    def test_rejects_unknown_priority(self):
        with pytest.raises(ValidationError):
            document_store.create_document(
                {"subject": "x", "initiator_department": "y", "priority": "critical"},
            )


class TestLookup:
    def test_get_missing(self):
        with pytest.raises(NotFoundError):
            document_store.get_document(12345)

    def test_list_filters_and_order(self, make_document):
        first = make_document(priority="urgent")
        second = make_document(status="sent_to_chair")
        third = make_document(priority="urgent", status="sent_to_chair")

        ids = [d.id for d in document_store.list_documents().all()]
        assert ids == [third.id, second.id, first.id]

        urgent = document_store.list_documents(priority="urgent").all()
        assert {d.id for d in urgent} == {first.id, third.id}

        chair = document_store.list_documents(handler="boardChair").all()
        assert {d.id for d in chair} == {second.id, third.id}

        both = document_store.list_documents(status="sent_to_chair", priority="urgent").all()
        assert [d.id for d in both] == [third.id]

    def test_list_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            document_store.list_documents(status="lost")


class TestUpdateMetadata:
    def test_updates_metadata_only(self, make_document):
        doc = make_document()
        updated = document_store.update_metadata(
            doc.id, {"subject": "Revised subject", "initiator_phone": "+254700000000"},
        )
        assert updated.subject == "Revised subject"
        assert updated.initiator_phone == "+254700000000"
        assert updated.status == "received"
        assert len(workflow_log.list_entries(doc.id)) == 1

    @pytest.mark.parametrize("field", ["status", "current_handler", "decision_summary"])
    def test_rejects_workflow_fields(self, make_document, field):
        doc = make_document()
        with pytest.raises(ValidationError) as exc:
            document_store.update_metadata(doc.id, {field: "filed"})
        assert field in exc.value.details
        db.session.refresh(doc)
        assert doc.status == "received"

    def test_rejects_unknown_fields(self, make_document):
        doc = make_document()
        with pytest.raises(ValidationError):
            document_store.update_metadata(doc.id, {"colour": "blue"})

    def test_rejects_empty_payload(self, make_document):
        doc = make_document()
        with pytest.raises(ValidationError):
            document_store.update_metadata(doc.id, {})

    def test_optional_blank_stored_as_null(self, make_document):
        doc = make_document(initiator_email="clerk@example.org")
        updated = document_store.update_metadata(doc.id, {"initiator_email": ""})
        assert updated.initiator_email is None

    def test_reference_number_conflict(self, make_document):
        make_document(reference_number="A-1")
        doc = make_document()
        with pytest.raises(ConflictError):
            document_store.update_metadata(doc.id, {"reference_number": "A-1"})
