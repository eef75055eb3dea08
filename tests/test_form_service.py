"""
Form service — persistence round trips, lifecycle workflow and audit trail.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

import sgld.services.form_service as fs
from sgld.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from sgld.models import db
from sgld.domain.document import create_draft
from sgld.models.audit import AUDIT_ACTIONS, AuditLog
from sgld.models.planning_form import PlanningForm

NOW = datetime(2026, 7, 1, 10, 0, tzinfo=timezone.utc)
LATER = datetime(2026, 7, 3, 16, 45, tzinfo=timezone.utc)

FULL_PAYLOAD = {
    "organization_name": "Environmental Club",
    "organization_goal": "Cleaner campus",
    "proposed_venues": [
        {"venue": "Quad", "capacity": "500", "cost": "0"},
        {"venue": "Hall B", "capacity": "120", "cost": "150"},
        {"venue": "Library Lawn", "capacity": "80", "cost": "40"},
    ],
    "guest_list": [
        {"name": "Dr. Owusu", "organization": "EPA", "contact": "owusu@example.org"},
        {"name": "Ms. Boateng", "organization": "City Council", "contact": "555-0199"},
    ],
    "budget_expenditure": [{"description": "Gloves and bags", "amount": "245.75"}],
    "swot_analysis": {"strengths": "Committed volunteers"},
}


def _naive(value):
    return value.replace(tzinfo=None) if value else value


def _failing_commit(*args, **kwargs):
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


@pytest.fixture()
def draft(member):
    return fs.create_form(member, {"organization_name": "Chess Club"}, today=date(2026, 7, 1))


@pytest.fixture()
def submitted(draft, member):
    return fs.submit_form(draft.id, member, now=NOW)


class TestCreateAndFetch:
    def test_round_trip_preserves_sections(self, member):
        created = fs.create_form(member, FULL_PAYLOAD)
        loaded = fs.get_form(created.id, member)
        assert loaded.status == "draft"
        assert loaded.owner_id == member.id
        assert [v.venue for v in loaded.proposed_venues] == ["Quad", "Hall B", "Library Lawn"]
        assert [g.name for g in loaded.guest_list] == ["Dr. Owusu", "Ms. Boateng"]
        assert len(loaded.budget_expenditure) == 1
        assert str(loaded.budget_expenditure[0].amount) == "245.75"
        assert loaded.swot_analysis.strengths == "Committed volunteers"
        assert [r.row_id for r in loaded.proposed_venues] == [r.row_id for r in created.proposed_venues]

    def test_budget_amounts_stored_exactly(self, member):
        created = fs.create_form(member, {"budget_income": [
            {"description": "Endowment", "amount": "12345678901234567.89"},
            {"description": "Bequest", "amount": "1e400"},
        ]})
        db.session.expire_all()
        loaded = fs.fetch_document(created.id)
        assert [line.amount for line in loaded.budget_income] == [
            Decimal("12345678901234567.89"), Decimal("1E+400"),
        ]
        row = db.session.get(PlanningForm, created.id)
        assert row.budget_income[0]["amount"] == "12345678901234567.89"

    def test_defaults_when_no_payload(self, member):
        created = fs.create_form(member, today=date(2026, 7, 1))
        assert created.date_submission == "2026-07-01"
        assert len(created.task_team) == 1
        assert created.created_at is not None

    def test_requires_actor(self):
        with pytest.raises(AuthorizationError):
            fs.create_form(None)

    def test_not_found(self, member):
        with pytest.raises(NotFoundError):
            fs.get_form("missing-id", member)

    def test_other_member_cannot_view(self, draft, other_member):
        with pytest.raises(AuthorizationError):
            fs.get_form(draft.id, other_member)

    def test_reviewer_can_view(self, draft, reviewer):
        assert fs.get_form(draft.id, reviewer).id == draft.id


class TestSaveDocument:
    def test_insert_then_update(self):
        doc = create_draft("member-9", today=date(2026, 7, 1))
        doc.organization_name = "Music Club"
        stored = fs.save_document(doc)
        assert stored.id
        assert doc.id is None

        stored.organization_name = "Music & Dance Club"
        again = fs.save_document(stored)
        assert again.id == stored.id
        assert PlanningForm.query.count() == 1
        assert fs.fetch_document(stored.id).organization_name == "Music & Dance Club"

    def test_update_of_missing_row(self):
        doc = create_draft("member-9")
        doc.id = "gone"
        with pytest.raises(NotFoundError):
            fs.save_document(doc)


class TestPersistenceFailure:
    def test_create_rolls_back(self, member, monkeypatch):
        monkeypatch.setattr(db.session(), "commit", _failing_commit)
        with pytest.raises(PersistenceError, match="Could not save planning form"):
            fs.create_form(member, {"organization_name": "Ghost Club"})
        monkeypatch.undo()
        assert PlanningForm.query.count() == 0
        assert AuditLog.query.count() == 0

    def test_update_keeps_stored_state(self, draft, member, monkeypatch):
        monkeypatch.setattr(db.session(), "commit", _failing_commit)
        with pytest.raises(PersistenceError):
            fs.update_draft(draft.id, member, {"organization_name": "Renamed"})
        monkeypatch.undo()
        assert fs.fetch_document(draft.id).organization_name == "Chess Club"


class TestUpdateDraft:
    def test_saves_changes(self, draft, member):
        updated = fs.update_draft(draft.id, member, {"activity_concept": "Simultaneous exhibition"})
        assert updated.status == "draft"
        assert fs.fetch_document(draft.id).activity_concept == "Simultaneous exhibition"

    def test_rejects_empty_section(self, draft, member):
        with pytest.raises(ValidationError):
            fs.update_draft(draft.id, member, {"task_team": []})
        assert len(fs.fetch_document(draft.id).task_team) == 1

    def test_submitted_form_is_read_only(self, submitted, member):
        with pytest.raises(InvalidStateError):
            fs.update_draft(submitted.id, member, {"organization_goal": "late edit"})


class TestRows:
    def test_append_and_remove(self, draft, member):
        doc, row = fs.append_row(draft.id, member, "guest_list", {"name": "Kwame"})
        assert doc.guest_list[-1].row_id == row.row_id
        assert len(fs.fetch_document(draft.id).guest_list) == 2

        doc = fs.remove_row_at(draft.id, member, "guest_list", 0)
        assert [g.name for g in doc.guest_list] == ["Kwame"]

    def test_remove_last_row_rejected(self, draft, member):
        with pytest.raises(ValidationError):
            fs.remove_row_at(draft.id, member, "guest_list", 0)
        assert len(fs.fetch_document(draft.id).guest_list) == 1

    def test_unknown_section(self, draft, member):
        with pytest.raises(ValidationError):
            fs.append_row(draft.id, member, "sponsors")

    def test_only_owner_edits_rows(self, draft, other_member):
        with pytest.raises(AuthorizationError):
            fs.append_row(draft.id, other_member, "guest_list")


class TestSubmitAndDecide:
    def test_submit(self, submitted):
        stored = fs.fetch_document(submitted.id)
        assert stored.status == "submitted"
        assert _naive(stored.submitted_at) == _naive(NOW)

    def test_submit_incomplete_persists_nothing(self, member):
        doc = fs.create_form(member)
        with pytest.raises(ValidationError) as exc:
            fs.submit_form(doc.id, member, {"organization_goal": "unsaved"}, now=NOW)
        assert "organization_name" in exc.value.details
        stored = fs.fetch_document(doc.id)
        assert stored.status == "draft"
        assert stored.organization_goal == ""

    def test_submit_with_final_payload(self, member):
        doc = fs.create_form(member)
        result = fs.submit_form(doc.id, member, {"organization_name": "Art Society"}, now=NOW)
        assert result.status == "submitted"
        assert result.organization_name == "Art Society"

    def test_approve(self, submitted, reviewer):
        result = fs.decide_form(submitted.id, reviewer, "approve", "Looks good", now=LATER)
        assert result.status == "approved"
        stored = fs.fetch_document(submitted.id)
        assert stored.decision.kind == "approve"
        assert stored.decision.comments == "Looks good"
        assert stored.decision.decided_by == reviewer.id
        assert _naive(stored.decision.decided_at) == _naive(LATER)

    def test_second_decision_conflicts(self, submitted, reviewer):
        fs.decide_form(submitted.id, reviewer, "reject", "Incomplete budget", now=LATER)
        with pytest.raises(InvalidStateError):
            fs.decide_form(submitted.id, reviewer, "approve", now=LATER)
        assert fs.fetch_document(submitted.id).decision.kind == "reject"

    def test_member_cannot_decide(self, submitted, member):
        with pytest.raises(AuthorizationError):
            fs.decide_form(submitted.id, member, "approve")


class TestHistory:
    def test_audit_trail(self, submitted, member, reviewer):
        fs.decide_form(submitted.id, reviewer, "approve", now=LATER)
        actions = [entry["action"] for entry in fs.form_history(submitted.id, member)]
        assert actions == [
            "planning_form.create",
            "planning_form.submit",
            "planning_form.approve",
        ]

    def test_actions_are_known(self, draft, member):
        fs.append_row(draft.id, member, "guest_list", {"name": "Yaw"})
        fs.remove_row_at(draft.id, member, "guest_list", 0)
        fs.update_draft(draft.id, member, {"evaluation": "Post-event survey"})
        fs.submit_form(draft.id, member, now=NOW)
        history = fs.form_history(draft.id, member)
        assert len(history) == 5
        for entry in history:
            assert entry["action"] in AUDIT_ACTIONS
            assert entry["entity_type"] == "planning_form"

    def test_status_diff_recorded(self, submitted, member):
        entry = fs.form_history(submitted.id, member)[-1]
        assert entry["diff"]["status"] == {"old": "draft", "new": "submitted"}
        assert entry["actor"] == member.id


class TestReviewerViews:
    def test_summary(self, submitted, member, reviewer):
        fs.create_form(member, {"organization_name": "Still Drafting"})
        summary = fs.review_summary(reviewer)
        assert summary["total"] == 2
        assert summary["pending"] == 1
        assert summary["by_status"] == {"draft": 1, "submitted": 1, "approved": 0, "rejected": 0}

    def test_summary_requires_reviewer(self, member):
        with pytest.raises(AuthorizationError):
            fs.review_summary(member)

    def test_register_excludes_drafts(self, submitted, member, reviewer):
        fs.create_form(member, {"organization_name": "Still Drafting"})
        docs = fs.review_register(reviewer)
        assert [d.id for d in docs] == [submitted.id]

    def test_visible_forms(self, draft, member, other_member, reviewer):
        fs.create_form(other_member, {"organization_name": "Other"})
        assert fs.visible_forms_query(member).count() == 1
        assert fs.visible_forms_query(reviewer).count() == 2
        assert fs.visible_forms_query(reviewer, search="chess").count() == 1

    def test_unknown_status_filter(self, reviewer):
        with pytest.raises(ValidationError):
            fs.visible_forms_query(reviewer, status="archived")


class TestReport:
    def test_draft_cannot_be_exported(self, draft, member):
        with pytest.raises(InvalidStateError):
            fs.render_form_report(draft.id, member)

    def test_submitted_report(self, submitted, member):
        report = fs.render_form_report(submitted.id, member, generated_at=LATER)
        assert report.content.startswith(b"%PDF")
        assert report.filename == "SGLD_Form_Chess_Club_2026-07-03.pdf"

    def test_stranger_cannot_export(self, submitted, other_member):
        with pytest.raises(AuthorizationError):
            fs.render_form_report(submitted.id, other_member)
