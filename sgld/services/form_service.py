"""
Planning form service layer — persistence plus lifecycle workflow.

All business rules live in ``sgld.domain``; this module loads a Document,
hands it to the state machine, and persists the result together with an
audit row in one transaction.

Rules:
  - The actor is always an explicit parameter (never read from g).
  - db.session.commit() happens only in this file.
  - A failed write rolls back and raises PersistenceError; the caller's
    in-memory Document is never modified.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from flask import current_app, has_app_context, request
from sqlalchemy.exc import SQLAlchemyError

from sgld.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from sgld.domain import lifecycle
from sgld.domain.actor import DEFAULT_REVIEWER_ROLES, Actor, can_perform
from sgld.domain.budget import budget_summary
from sgld.domain.document import (
    FORM_STATUSES,
    STATUS_DRAFT,
    Document,
    append_element,
    apply_changes,
    create_draft,
    remove_element,
)
from sgld.models import db
from sgld.models.audit import audit_trail, write_audit
from sgld.models.planning_form import PlanningForm
from sgld.services.report import RenderedReport, ReportSettings, render_report

logger = logging.getLogger(__name__)

ENTITY_TYPE = "planning_form"


def reviewer_roles() -> frozenset:
    if has_app_context():
        return frozenset(current_app.config.get("REVIEWER_ROLES") or DEFAULT_REVIEWER_ROLES)
    return DEFAULT_REVIEWER_ROLES


def current_actor() -> Actor | None:
    """Actor of the current request from ``X-User-Id`` / ``X-User-Role``.

    Identity is owned by the upstream gateway; this only reads what it
    forwarded. Returns None when no user id is present.
    """
    user_id = (request.headers.get("X-User-Id") or "").strip()
    if not user_id:
        return None
    role = (request.headers.get("X-User-Role") or "member").strip().lower()
    return Actor(id=user_id, role=role)


# ── Persistence collaborator ─────────────────────────────────────────────────


def _get_row(form_id: str) -> PlanningForm:
    row = db.session.get(PlanningForm, form_id)
    if row is None:
        raise NotFoundError(resource="PlanningForm", resource_id=form_id)
    return row


def fetch_document(form_id: str) -> Document:
    """Load one form. Raises NotFoundError."""
    return Document.from_record(_get_row(form_id).to_record())


def forms_query(owner_id: str | None = None, status: str | None = None, search: str | None = None):
    """SQLAlchemy query over planning forms, newest first."""
    q = PlanningForm.query
    if owner_id is not None:
        q = q.filter(PlanningForm.owner_id == owner_id)
    if status:
        if status not in FORM_STATUSES:
            raise ValidationError(
                f"Unknown status '{status}'",
                details={"status": f"must be one of: {', '.join(FORM_STATUSES)}"},
            )
        q = q.filter(PlanningForm.status == status)
    if search and search.strip():
        q = q.filter(PlanningForm.organization_name.ilike(f"%{search.strip()}%"))
    return q.order_by(PlanningForm.created_at.desc(), PlanningForm.id)


def list_documents(owner_id: str | None = None, status: str | None = None,
                   search: str | None = None) -> list[Document]:
    return [Document.from_record(r.to_record()) for r in forms_query(owner_id, status, search).all()]


def _stage(doc: Document) -> PlanningForm:
    if doc.id:
        row = _get_row(doc.id)
    else:
        row = PlanningForm()
        db.session.add(row)
    row.apply_record(doc.to_record())
    db.session.flush()
    return row


def _persist(doc: Document, *, action: str | None = None, actor: Actor | None = None,
             diff: dict | None = None) -> Document:
    try:
        row = _stage(doc)
        if action:
            write_audit(
                entity_type=ENTITY_TYPE,
                entity_id=row.id,
                action=f"{ENTITY_TYPE}.{action}",
                actor=actor.id if actor else "system",
                actor_role=actor.role if actor else None,
                diff=diff,
            )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Persisting planning form failed: %s", exc, extra={"form_id": doc.id})
        raise PersistenceError(f"Could not save planning form ({exc.__class__.__name__})") from exc
    return Document.from_record(row.to_record())


def save_document(doc: Document) -> Document:
    """Insert when ``doc.id`` is absent, update otherwise. Returns the stored Document."""
    return _persist(doc)


# ── Authorization helpers ────────────────────────────────────────────────────


def _require_actor(actor: Actor | None, action: str) -> Actor:
    if actor is None or not actor.id:
        raise AuthorizationError(None, action, "no authenticated user")
    return actor


def _require_can(actor: Actor | None, action: str, doc: Document) -> None:
    if not can_perform(actor, action, doc, reviewer_roles()):
        raise AuthorizationError(actor.id if actor else None, action)


def _require_reviewer(actor: Actor | None, action: str) -> Actor:
    actor = _require_actor(actor, action)
    if not actor.is_reviewer(reviewer_roles()):
        raise AuthorizationError(actor.id, action, "reviewer role required")
    return actor


# ── Workflow ─────────────────────────────────────────────────────────────────


def create_form(actor: Actor | None, payload: dict | None = None, today: date | None = None) -> Document:
    """Create and persist a new draft owned by ``actor``."""
    actor = _require_actor(actor, "create")
    doc = create_draft(actor.id, today=today)
    if payload:
        apply_changes(doc, payload)
    created = _persist(doc, action="create", actor=actor, diff={"status": {"old": None, "new": STATUS_DRAFT}})
    logger.info("Form created", extra={"form_id": created.id, "event_type": "form.created", "actor_id": actor.id})
    return created


def get_form(form_id: str, actor: Actor | None) -> Document:
    doc = fetch_document(form_id)
    _require_can(actor, "view", doc)
    return doc


def visible_forms_query(actor: Actor | None, status: str | None = None, search: str | None = None):
    """Reviewers see every form; everyone else sees only their own."""
    actor = _require_actor(actor, "view")
    owner_id = None if actor.is_reviewer(reviewer_roles()) else actor.id
    return forms_query(owner_id=owner_id, status=status, search=search)


def update_draft(form_id: str, actor: Actor | None, payload: dict) -> Document:
    """Save-as-draft: apply the editor payload, status stays draft."""
    doc = fetch_document(form_id)
    updated = lifecycle.save_draft(doc, actor, payload or {}, reviewer_roles())
    return _persist(updated, action="save_draft", actor=actor, diff={"fields": sorted(payload or {})})


def submit_form(form_id: str, actor: Actor | None, payload: dict | None = None,
                now: datetime | None = None) -> Document:
    """draft → submitted, optionally applying a final editor payload first.

    Nothing is persisted when validation fails.
    """
    doc = fetch_document(form_id)
    if payload:
        doc = lifecycle.save_draft(doc, actor, payload, reviewer_roles())
    submitted = lifecycle.submit(doc, actor, now=now, reviewer_roles=reviewer_roles())
    return _persist(
        submitted, action="submit", actor=actor,
        diff={"status": {"old": doc.status, "new": submitted.status}},
    )


def decide_form(form_id: str, actor: Actor | None, decision: str, comments: str = "",
                signature_url: str | None = None, now: datetime | None = None) -> Document:
    """submitted → approved | rejected."""
    doc = fetch_document(form_id)
    decided = lifecycle.decide(
        doc, actor, decision, comments,
        signature_url=signature_url, now=now, reviewer_roles=reviewer_roles(),
    )
    return _persist(
        decided, action=decision, actor=actor,
        diff={"status": {"old": doc.status, "new": decided.status}, "comments": comments or ""},
    )


def append_row(form_id: str, actor: Actor | None, section: str, template: dict | None = None):
    """Append a row to a draft section. Returns (document, new_row)."""
    doc = fetch_document(form_id)
    lifecycle.ensure_editable(doc, actor, reviewer_roles())
    updated = doc.clone()
    row = append_element(updated, section, template)
    stored = _persist(updated, action="append_row", actor=actor,
                      diff={"section": section, "row_id": row.row_id})
    return stored, row


def remove_row_at(form_id: str, actor: Actor | None, section: str, index: int) -> Document:
    """Remove the row at ``index`` of a draft section."""
    doc = fetch_document(form_id)
    lifecycle.ensure_editable(doc, actor, reviewer_roles())
    updated = doc.clone()
    removed = remove_element(updated, section, index)
    return _persist(updated, action="remove_row", actor=actor,
                    diff={"section": section, "index": index, "row_id": removed.row_id})


def form_history(form_id: str, actor: Actor | None) -> list[dict]:
    get_form(form_id, actor)
    return [log.to_dict() for log in audit_trail(ENTITY_TYPE, form_id)]


def review_summary(actor: Actor | None) -> dict:
    """Status counts across all forms, as shown on the reviewer dashboard."""
    _require_reviewer(actor, "review")
    rows = (
        db.session.query(PlanningForm.status, db.func.count(PlanningForm.id))
        .group_by(PlanningForm.status)
        .all()
    )
    counts = {status: 0 for status in FORM_STATUSES}
    counts.update({status: n for status, n in rows})
    return {
        "total": sum(counts.values()),
        "pending": counts["submitted"],
        "by_status": counts,
    }


def review_register(actor: Actor | None, status: str | None = None,
                    search: str | None = None) -> list[Document]:
    """Non-draft forms for the reviewer register export."""
    _require_reviewer(actor, "export")
    docs = list_documents(status=status, search=search)
    return [d for d in docs if d.status != STATUS_DRAFT]


def render_form_report(form_id: str, actor: Actor | None, settings: ReportSettings | None = None,
                       generated_at: datetime | None = None) -> RenderedReport:
    """Render the PDF report of a submitted, approved or rejected form."""
    doc = fetch_document(form_id)
    _require_can(actor, "export", doc)
    if doc.status == STATUS_DRAFT:
        raise InvalidStateError("export", doc.status, "submit the form before exporting it")
    settings = settings or ReportSettings.from_config(current_app.config)
    return render_report(doc, settings, generated_at=generated_at)


def form_payload(doc: Document, actor: Actor | None) -> dict:
    """API representation: record + derived budget + transitions open to ``actor``."""
    d = doc.to_dict()
    d["budget"] = budget_summary(doc).to_dict()
    d["available_transitions"] = lifecycle.available_transitions(doc, actor, reviewer_roles())
    return d
