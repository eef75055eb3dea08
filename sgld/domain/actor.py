"""
Actor value and the authorization predicate for planning-form transitions.

Identity is owned by an external collaborator; the core only ever sees an
explicit ``Actor`` handed in by the caller and never reads session state.

Usage:
    from sgld.domain.actor import Actor, can_perform

    actor = Actor(id="u-42", role="member")
    if can_perform(actor, "submit", doc):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_REVIEWER_ROLES = frozenset({"admin"})

# Trigger -> who may invoke it.
OWNER_ACTIONS = frozenset({"edit", "save_draft", "submit"})
REVIEWER_ACTIONS = frozenset({"approve", "reject"})
READ_ACTIONS = frozenset({"view", "export"})


@dataclass(frozen=True)
class Actor:
    """The caller of a core operation."""

    id: str
    role: str = "member"

    def is_reviewer(self, reviewer_roles=DEFAULT_REVIEWER_ROLES) -> bool:
        return self.role in reviewer_roles

    def to_dict(self) -> dict:
        return {"id": self.id, "role": self.role}


def is_owner(actor: Actor | None, doc) -> bool:
    return actor is not None and bool(actor.id) and actor.id == doc.owner_id


def can_perform(actor: Actor | None, action: str, doc, reviewer_roles=DEFAULT_REVIEWER_ROLES) -> bool:
    """Return True when ``actor`` holds the capability required for ``action`` on ``doc``.

    Only answers "who", never "when": status checks belong to the state
    machine. Owners edit, save and submit their own forms; reviewers decide;
    both may view and export.
    """
    if actor is None or not actor.id:
        return False
    if action in OWNER_ACTIONS:
        return is_owner(actor, doc)
    if action in REVIEWER_ACTIONS:
        return actor.is_reviewer(reviewer_roles)
    if action in READ_ACTIONS:
        return is_owner(actor, doc) or actor.is_reviewer(reviewer_roles)
    return False
