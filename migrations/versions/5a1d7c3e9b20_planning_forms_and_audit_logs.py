"""planning_forms_and_audit_logs

Creates the initial schema:
  - planning_forms  — one row per project planning form; sections as JSON
  - audit_logs      — append-only lifecycle trail

Tables created conditionally (IF NOT EXISTS semantics) to support idempotent
execution against databases that already received these tables via
db.create_all() in a development environment.

Revision ID: 5a1d7c3e9b20
Revises:
Create Date: 2026-10-19 09:12:44.318207
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5a1d7c3e9b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── PlanningForm ──────────────────────────────────────────────────────
    if "planning_forms" not in existing:
        op.create_table(
            "planning_forms",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("owner_id", sa.String(length=150), nullable=False,
                      comment="Actor id of the author"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft",
                      comment="draft | submitted | approved | rejected"),
            sa.Column("organization_name", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("date_submission", sa.String(length=32), nullable=True,
                      comment="ISO date as entered; drafts may hold partial input"),
            sa.Column("organization_goal", sa.Text(), nullable=True),
            sa.Column("activity_concept", sa.Text(), nullable=True),
            sa.Column("activity_objective", sa.Text(), nullable=True),
            sa.Column("targeted_population", sa.Text(), nullable=True),
            sa.Column("empowerment_opportunities", sa.Text(), nullable=True),
            sa.Column("marketing_opportunities", sa.Text(), nullable=True),
            sa.Column("accreditation_certification", sa.Text(), nullable=True),
            sa.Column("proposed_programme", sa.Text(), nullable=True),
            sa.Column("facilitator_recommendation", sa.Text(), nullable=True),
            sa.Column("evaluation", sa.Text(), nullable=True),
            sa.Column("swot_analysis", sa.JSON(), nullable=True,
                      comment="{strengths, weaknesses, opportunities, threats}"),
            sa.Column("proposed_dates", sa.JSON(), nullable=True),
            sa.Column("proposed_venues", sa.JSON(), nullable=True),
            sa.Column("task_team", sa.JSON(), nullable=True),
            sa.Column("guest_list", sa.JSON(), nullable=True),
            sa.Column("task_delegation", sa.JSON(), nullable=True),
            sa.Column("budget_expenditure", sa.JSON(), nullable=True),
            sa.Column("budget_income", sa.JSON(), nullable=True),
            sa.Column("admin_decision", sa.String(length=20), nullable=True,
                      comment="approve | reject"),
            sa.Column("admin_comments", sa.Text(), nullable=True),
            sa.Column("admin_decision_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("admin_decision_by", sa.String(length=150), nullable=True),
            sa.Column("admin_signature_url", sa.String(length=1000), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_pf_owner", "planning_forms", ["owner_id"])
        op.create_index("idx_pf_status", "planning_forms", ["status"])
        op.create_index("idx_pf_created", "planning_forms", ["created_at"])

    # ── AuditLog ──────────────────────────────────────────────────────────
    if "audit_logs" not in existing:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("entity_type", sa.String(length=30), nullable=False,
                      comment="planning_form"),
            sa.Column("entity_id", sa.String(length=36), nullable=False,
                      comment="PK of the referenced entity (UUID)"),
            sa.Column("action", sa.String(length=60), nullable=False,
                      comment="planning_form.submit | planning_form.approve | …"),
            sa.Column("actor", sa.String(length=150), nullable=False, server_default="system"),
            sa.Column("actor_role", sa.String(length=50), nullable=True),
            sa.Column("diff_json", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_actor", "audit_logs", ["actor"])
        op.create_index("idx_audit_action", "audit_logs", ["action"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])


def downgrade():
    op.drop_index("idx_audit_ts", table_name="audit_logs")
    op.drop_index("idx_audit_action", table_name="audit_logs")
    op.drop_index("idx_audit_actor", table_name="audit_logs")
    op.drop_index("idx_audit_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("idx_pf_created", table_name="planning_forms")
    op.drop_index("idx_pf_status", table_name="planning_forms")
    op.drop_index("idx_pf_owner", table_name="planning_forms")
    op.drop_table("planning_forms")
