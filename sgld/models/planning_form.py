"""
SGLD Project Planning
Planning form persistence model.

Models:
    - PlanningForm: one row per planning form; repeatable sections and the
      SWOT block live in JSON columns, in insertion order.

Lifecycle states:
    PlanningForm:  draft → submitted → approved | rejected

The ORM row is a storage shape only. Business rules live in
``sgld.domain``; services convert with ``to_record`` / ``apply_record``.
"""

import uuid
from datetime import datetime, timezone

from sgld.models import db

# ── Constants ────────────────────────────────────────────────────────────────

JSON_SECTION_COLUMNS = (
    "proposed_dates",
    "proposed_venues",
    "task_team",
    "guest_list",
    "task_delegation",
    "budget_expenditure",
    "budget_income",
)

TEXT_COLUMNS = (
    "organization_name",
    "date_submission",
    "organization_goal",
    "activity_concept",
    "activity_objective",
    "targeted_population",
    "empowerment_opportunities",
    "marketing_opportunities",
    "accreditation_certification",
    "proposed_programme",
    "facilitator_recommendation",
    "evaluation",
)

DECISION_COLUMNS = (
    "admin_decision",
    "admin_comments",
    "admin_decision_date",
    "admin_decision_by",
    "admin_signature_url",
)


# ── Helper ───────────────────────────────────────────────────────────────────

def _uuid():
    """Generate a new UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class PlanningForm(db.Model):
    """
    Project planning form submitted by an organization member.

    ``submitted_at`` is written once on the first submission; the
    ``admin_*`` columns are populated together when a reviewer decides.
    """

    __tablename__ = "planning_forms"
    __table_args__ = (
        db.Index("idx_pf_owner", "owner_id"),
        db.Index("idx_pf_status", "status"),
        db.Index("idx_pf_created", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    owner_id = db.Column(db.String(150), nullable=False, comment="Actor id of the author")
    status = db.Column(
        db.String(20), nullable=False, default="draft",
        comment="draft | submitted | approved | rejected",
    )

    # Header
    organization_name = db.Column(db.String(255), nullable=False, default="")
    date_submission = db.Column(
        db.String(32), nullable=True,
        comment="ISO date as entered; drafts may hold partial input",
    )

    # Narrative
    organization_goal = db.Column(db.Text, default="")
    activity_concept = db.Column(db.Text, default="")
    activity_objective = db.Column(db.Text, default="")
    targeted_population = db.Column(db.Text, default="")
    empowerment_opportunities = db.Column(db.Text, default="")
    marketing_opportunities = db.Column(db.Text, default="")
    accreditation_certification = db.Column(db.Text, default="")
    proposed_programme = db.Column(db.Text, default="")
    facilitator_recommendation = db.Column(db.Text, default="")
    evaluation = db.Column(db.Text, default="")

    swot_analysis = db.Column(
        db.JSON, default=dict,
        comment="{strengths, weaknesses, opportunities, threats}",
    )

    # Repeatable sections
    proposed_dates = db.Column(db.JSON, default=list)
    proposed_venues = db.Column(db.JSON, default=list)
    task_team = db.Column(db.JSON, default=list)
    guest_list = db.Column(db.JSON, default=list)
    task_delegation = db.Column(db.JSON, default=list)
    budget_expenditure = db.Column(db.JSON, default=list)
    budget_income = db.Column(db.JSON, default=list)

    # Review decision
    admin_decision = db.Column(db.String(20), nullable=True, comment="approve | reject")
    admin_comments = db.Column(db.Text, nullable=True)
    admin_decision_date = db.Column(db.DateTime(timezone=True), nullable=True)
    admin_decision_by = db.Column(db.String(150), nullable=True)
    admin_signature_url = db.Column(db.String(1000), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # ── Record mapping ───────────────────────────────────────────────────

    def to_record(self) -> dict:
        record = {
            "id": self.id,
            "owner_id": self.owner_id,
            "status": self.status,
            "created_at": self.created_at,
            "submitted_at": self.submitted_at,
            "swot_analysis": dict(self.swot_analysis or {}),
        }
        for name in TEXT_COLUMNS + DECISION_COLUMNS:
            record[name] = getattr(self, name)
        for name in JSON_SECTION_COLUMNS:
            record[name] = list(getattr(self, name) or [])
        return record

    def apply_record(self, record: dict) -> None:
        """Copy a record onto this row. Lists are copied so JSON changes are detected."""
        self.owner_id = record["owner_id"]
        self.status = record.get("status") or "draft"
        if record.get("created_at") is not None:
            self.created_at = record["created_at"]
        self.submitted_at = record.get("submitted_at")
        self.swot_analysis = dict(record.get("swot_analysis") or {})
        for name in TEXT_COLUMNS + DECISION_COLUMNS:
            setattr(self, name, record.get(name))
        for name in JSON_SECTION_COLUMNS:
            setattr(self, name, [dict(r) for r in record.get(name) or []])

    def to_dict(self) -> dict:
        d = self.to_record()
        for key in ("created_at", "submitted_at", "admin_decision_date"):
            d[key] = d[key].isoformat() if d[key] else None
        d["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return d

    def __repr__(self):
        return f"<PlanningForm {self.id}: {self.organization_name!r} ({self.status})>"
