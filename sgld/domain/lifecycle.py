"""
Planning form lifecycle — the state machine behind save, submit and review.

4 valid transitions:
  save_draft, submit, approve, reject

Every transition follows the same order:
  1. authorization (``can_perform``)          → AuthorizationError
  2. state rule (FORM_TRANSITIONS)            → InvalidStateError
  3. content rule (submit only)               → ValidationError
  4. side effects applied to a *copy*         → new Document returned

The input Document is never modified, so a failed transition leaves the
caller's state exactly as it was.

Usage:
    from sgld.domain.lifecycle import submit

    submitted = submit(doc, actor, now=datetime.now(timezone.utc))
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sgld.core.exceptions import AuthorizationError, InvalidStateError, ValidationError
from sgld.domain.actor import DEFAULT_REVIEWER_ROLES, Actor, can_perform
from sgld.domain.document import (
    DECISION_APPROVE,
    DECISION_KINDS,
    DECISION_REJECT,
    STATUS_APPROVED,
    STATUS_DRAFT,
    STATUS_REJECTED,
    STATUS_SUBMITTED,
    Decision,
    Document,
    apply_changes,
    validate_for_submission,
)

logger = logging.getLogger(__name__)

# Form transition rules
FORM_TRANSITIONS = {
    "save_draft": {"from": [STATUS_DRAFT], "to": STATUS_DRAFT},
    "submit": {"from": [STATUS_DRAFT], "to": STATUS_SUBMITTED},
    DECISION_APPROVE: {"from": [STATUS_SUBMITTED], "to": STATUS_APPROVED},
    DECISION_REJECT: {"from": [STATUS_SUBMITTED], "to": STATUS_REJECTED},
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_form_transition(doc: Document, action: str) -> dict:
    """Validate whether an action is valid for the form's current status.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    rule = FORM_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": doc.status, "to": None,
                "reason": f"Unknown action: {action}"}

    if doc.status not in rule["from"]:
        return {"valid": False, "from": doc.status, "to": rule["to"],
                "reason": f"Cannot '{action}' from status '{doc.status}'"}

    return {"valid": True, "from": doc.status, "to": rule["to"], "reason": None}


def _guard(doc: Document, actor: Actor | None, action: str, reviewer_roles) -> None:
    if not can_perform(actor, action, doc, reviewer_roles):
        raise AuthorizationError(actor.id if actor else None, action)
    check = validate_form_transition(doc, action)
    if not check["valid"]:
        raise InvalidStateError(action, doc.status)


def ensure_editable(doc: Document, actor: Actor | None, reviewer_roles=DEFAULT_REVIEWER_ROLES) -> None:
    """Raise unless ``actor`` may edit ``doc`` right now (owner, status draft)."""
    if not can_perform(actor, "edit", doc, reviewer_roles):
        raise AuthorizationError(actor.id if actor else None, "edit")
    if doc.status != STATUS_DRAFT:
        raise InvalidStateError("edit", doc.status, "only drafts can be edited")


def save_draft(
    doc: Document,
    actor: Actor | None,
    changes: dict | None = None,
    reviewer_roles=DEFAULT_REVIEWER_ROLES,
) -> Document:
    """draft → draft. Returns a copy with ``changes`` applied; status unchanged."""
    _guard(doc, actor, "save_draft", reviewer_roles)
    updated = doc.clone()
    if changes:
        apply_changes(updated, changes)
    return updated


def submit(
    doc: Document,
    actor: Actor | None,
    now: datetime | None = None,
    reviewer_roles=DEFAULT_REVIEWER_ROLES,
) -> Document:
    """draft → submitted. Blocks with ValidationError when required fields are missing."""
    _guard(doc, actor, "submit", reviewer_roles)

    errors = validate_for_submission(doc)
    if errors:
        raise ValidationError(
            "Form is incomplete",
            details={e.field: e.message for e in errors},
        )

    updated = doc.clone()
    updated.status = STATUS_SUBMITTED
    if updated.submitted_at is None:
        updated.submitted_at = now or _utcnow()
    logger.info(
        "Form submitted",
        extra={"form_id": doc.id, "event_type": "form.submitted", "actor_id": actor.id},
    )
    return updated


def decide(
    doc: Document,
    actor: Actor | None,
    kind: str,
    comments: str = "",
    signature_url: str | None = None,
    now: datetime | None = None,
    reviewer_roles=DEFAULT_REVIEWER_ROLES,
) -> Document:
    """submitted → approved | rejected, attaching exactly one Decision.

    Authorization and status are checked before the decision kind, so an
    unknown kind from a non-reviewer is still refused as unauthorized.
    """
    # approve and reject share their capability and source status
    _guard(doc, actor, kind if kind in DECISION_KINDS else DECISION_APPROVE, reviewer_roles)
    if kind not in DECISION_KINDS:
        raise ValidationError(
            f"Unknown decision '{kind}'",
            details={"decision": f"must be one of: {', '.join(sorted(DECISION_KINDS))}"},
        )

    updated = doc.clone()
    updated.status = FORM_TRANSITIONS[kind]["to"]
    updated.decision = Decision(
        kind=kind,
        comments=comments or "",
        decided_at=now or _utcnow(),
        decided_by=actor.id,
        signature_url=signature_url or None,
    )
    logger.info(
        "Form %s", updated.status,
        extra={"form_id": doc.id, "event_type": f"form.{updated.status}", "actor_id": actor.id},
    )
    return updated


def approve(doc: Document, actor: Actor | None, comments: str = "", **kwargs) -> Document:
    return decide(doc, actor, DECISION_APPROVE, comments, **kwargs)


def reject(doc: Document, actor: Actor | None, comments: str = "", **kwargs) -> Document:
    return decide(doc, actor, DECISION_REJECT, comments, **kwargs)


def available_transitions(
    doc: Document,
    actor: Actor | None,
    reviewer_roles=DEFAULT_REVIEWER_ROLES,
) -> list[str]:
    """Triggers ``actor`` may invoke on ``doc`` in its current status."""
    return [
        action for action, rule in FORM_TRANSITIONS.items()
        if doc.status in rule["from"] and can_perform(actor, action, doc, reviewer_roles)
    ]
