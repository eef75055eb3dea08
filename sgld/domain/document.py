"""
Planning form document model — schema, defaults and field-level validation.

A Document is the in-memory form a member composes: header fields, free-text
narrative, a SWOT block, seven ordered repeatable sections and, once
reviewed, a Decision. Persistence maps it to/from a flat record with
``to_record`` / ``from_record``; nothing here touches the database.

Repeatable sections:
    proposed_dates      ProposedDate{date, description}
    proposed_venues     Venue{venue, capacity, cost}
    task_team           TeamMember{name, portfolio}
    guest_list          Guest{name, organization, contact}
    task_delegation     DelegatedTask{activity, person_responsible, assignment_date,
                                      target_date, contact_person, telephone}
    budget_expenditure  BudgetLine{description, amount}
    budget_income       BudgetLine{description, amount}

Every row carries a ``row_id`` token. Index-addressed operations resolve the
index to that token first, so removing "row 2 of 5" stays correct after
earlier removals in the same editing session.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from sgld.core.exceptions import ValidationError
from sgld.utils.helpers import parse_iso_date

# ── Constants ────────────────────────────────────────────────────────────────

STATUS_DRAFT = "draft"
STATUS_SUBMITTED = "submitted"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

FORM_STATUSES = (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_APPROVED, STATUS_REJECTED)
TERMINAL_STATUSES = frozenset({STATUS_APPROVED, STATUS_REJECTED})

DECISION_APPROVE = "approve"
DECISION_REJECT = "reject"
DECISION_KINDS = frozenset({DECISION_APPROVE, DECISION_REJECT})

NARRATIVE_FIELDS = (
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

HEADER_FIELDS = ("organization_name", "date_submission")

SWOT_FIELDS = ("strengths", "weaknesses", "opportunities", "threats")

ZERO = Decimal("0")

# Amounts beyond ±10**MAX_AMOUNT_EXPONENT are treated as invalid input.
MAX_AMOUNT_EXPONENT = 1000

# Column widths of the planning_forms header fields.
HEADER_MAX_LENGTHS = {"organization_name": 255, "date_submission": 32}


def _row_id() -> str:
    return uuid.uuid4().hex[:12]


def _text(value) -> str:
    if value is None:
        return ""
    return str(value)


def coerce_amount(value) -> Decimal:
    """Coerce user input to a Decimal amount.

    Non-numeric, empty, NaN, infinite and out-of-range input all become
    zero so that budget totals are always well-defined. Signs and the
    exact digits of valid input are preserved.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip()
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite() or abs(amount.adjusted()) > MAX_AMOUNT_EXPONENT:
        return ZERO
    return amount


def _as_datetime(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ═════════════════════════════════════════════════════════════════════════════
# Rows
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class ProposedDate:
    date: str = ""
    description: str = ""
    row_id: str = field(default_factory=_row_id)


@dataclass
class Venue:
    venue: str = ""
    capacity: str = ""
    cost: str = ""
    row_id: str = field(default_factory=_row_id)


@dataclass
class TeamMember:
    name: str = ""
    portfolio: str = ""
    row_id: str = field(default_factory=_row_id)


@dataclass
class Guest:
    name: str = ""
    organization: str = ""
    contact: str = ""
    row_id: str = field(default_factory=_row_id)


@dataclass
class DelegatedTask:
    activity: str = ""
    person_responsible: str = ""
    assignment_date: str = ""
    target_date: str = ""
    contact_person: str = ""
    telephone: str = ""
    row_id: str = field(default_factory=_row_id)


@dataclass
class BudgetLine:
    """One expenditure or income line. Amounts are signed; see ``coerce_amount`` for the accepted range."""

    description: str = ""
    amount: Decimal = ZERO
    row_id: str = field(default_factory=_row_id)

    def __post_init__(self):
        self.amount = coerce_amount(self.amount)


SECTION_TYPES = {
    "proposed_dates": ProposedDate,
    "proposed_venues": Venue,
    "task_team": TeamMember,
    "guest_list": Guest,
    "task_delegation": DelegatedTask,
    "budget_expenditure": BudgetLine,
    "budget_income": BudgetLine,
}

SECTION_NAMES = tuple(SECTION_TYPES)


def row_fields(section: str) -> tuple[str, ...]:
    """Editable field names of a section's rows (row_id excluded)."""
    return tuple(f.name for f in fields(_section_type(section)) if f.name != "row_id")


def _section_type(section: str):
    row_type = SECTION_TYPES.get(section)
    if row_type is None:
        raise ValidationError(
            f"Unknown section '{section}'",
            details={"section": f"must be one of: {', '.join(SECTION_NAMES)}"},
        )
    return row_type


def make_row(section: str, data: dict | None = None):
    """Build a row for ``section`` from a loose dict, keeping a supplied row_id."""
    row_type = _section_type(section)
    data = data or {}
    kwargs = {}
    for name in row_fields(section):
        if name not in data:
            continue
        kwargs[name] = data[name] if name == "amount" else _text(data[name])
    if data.get("row_id"):
        kwargs["row_id"] = str(data["row_id"])
    return row_type(**kwargs)


def row_to_dict(row) -> dict:
    """Plain dict of a row; amounts as decimal strings so they round-trip exactly."""
    d = asdict(row)
    if "amount" in d:
        d["amount"] = str(d["amount"])
    return d


# ═════════════════════════════════════════════════════════════════════════════
# SWOT / Decision
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class Swot:
    strengths: str = ""
    weaknesses: str = ""
    opportunities: str = ""
    threats: str = ""

    def is_empty(self) -> bool:
        return not any((getattr(self, name) or "").strip() for name in SWOT_FIELDS)

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in SWOT_FIELDS}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Swot":
        data = data or {}
        return cls(**{name: _text(data.get(name)) for name in SWOT_FIELDS})


@dataclass(frozen=True)
class Decision:
    """Reviewer's terminal verdict. Attached exactly once per form."""

    kind: str
    comments: str
    decided_at: datetime
    decided_by: str
    signature_url: str | None = None

    def to_dict(self) -> dict:
        return {
            "decision": self.kind,
            "comments": self.comments,
            "decided_at": _iso(self.decided_at),
            "decided_by": self.decided_by,
            "signature_url": self.signature_url,
        }


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


# ═════════════════════════════════════════════════════════════════════════════
# Document
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class Document:
    owner_id: str
    id: str | None = None
    status: str = STATUS_DRAFT
    organization_name: str = ""
    date_submission: str = ""
    created_at: datetime | None = None
    submitted_at: datetime | None = None

    organization_goal: str = ""
    activity_concept: str = ""
    activity_objective: str = ""
    targeted_population: str = ""
    empowerment_opportunities: str = ""
    marketing_opportunities: str = ""
    accreditation_certification: str = ""
    proposed_programme: str = ""
    facilitator_recommendation: str = ""
    evaluation: str = ""

    swot_analysis: Swot = field(default_factory=Swot)

    proposed_dates: list[ProposedDate] = field(default_factory=list)
    proposed_venues: list[Venue] = field(default_factory=list)
    task_team: list[TeamMember] = field(default_factory=list)
    guest_list: list[Guest] = field(default_factory=list)
    task_delegation: list[DelegatedTask] = field(default_factory=list)
    budget_expenditure: list[BudgetLine] = field(default_factory=list)
    budget_income: list[BudgetLine] = field(default_factory=list)

    decision: Decision | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def section(self, name: str) -> list:
        _section_type(name)
        return getattr(self, name)

    def clone(self) -> "Document":
        return copy.deepcopy(self)

    # ── Record mapping ───────────────────────────────────────────────────

    def to_record(self) -> dict:
        """Flatten to the persisted record shape (datetimes left as objects)."""
        record = {
            "id": self.id,
            "owner_id": self.owner_id,
            "status": self.status,
            "created_at": self.created_at,
            "submitted_at": self.submitted_at,
            "swot_analysis": self.swot_analysis.to_dict(),
        }
        for name in HEADER_FIELDS + NARRATIVE_FIELDS:
            record[name] = getattr(self, name)
        for name in SECTION_NAMES:
            record[name] = [row_to_dict(r) for r in getattr(self, name)]

        d = self.decision
        record.update({
            "admin_decision": d.kind if d else None,
            "admin_comments": d.comments if d else None,
            "admin_decision_date": d.decided_at if d else None,
            "admin_decision_by": d.decided_by if d else None,
            "admin_signature_url": d.signature_url if d else None,
        })
        return record

    @classmethod
    def from_record(cls, record: dict) -> "Document":
        """Rebuild a Document from a persisted record.

        Storage does not enforce the one-row minimum, so empty sections are
        accepted here. Rows lacking a row_id get a fresh one.
        """
        doc = cls(
            owner_id=_text(record.get("owner_id")),
            id=record.get("id"),
            status=record.get("status") or STATUS_DRAFT,
            created_at=_as_datetime(record.get("created_at")),
            submitted_at=_as_datetime(record.get("submitted_at")),
            swot_analysis=Swot.from_dict(record.get("swot_analysis")),
        )
        for name in HEADER_FIELDS + NARRATIVE_FIELDS:
            setattr(doc, name, _text(record.get(name)))
        for name in SECTION_NAMES:
            setattr(doc, name, [make_row(name, r) for r in (record.get(name) or [])])

        kind = record.get("admin_decision")
        if kind:
            doc.decision = Decision(
                kind=kind,
                comments=_text(record.get("admin_comments")),
                decided_at=_as_datetime(record.get("admin_decision_date")),
                decided_by=_text(record.get("admin_decision_by")),
                signature_url=record.get("admin_signature_url") or None,
            )
        return doc

    def to_dict(self) -> dict:
        """JSON-friendly representation for API responses."""
        record = self.to_record()
        for key in ("created_at", "submitted_at", "admin_decision_date"):
            value = record[key]
            record[key] = _iso(value) if isinstance(value, datetime) else value
        return record


# ═════════════════════════════════════════════════════════════════════════════
# Operations
# ═════════════════════════════════════════════════════════════════════════════


def create_draft(owner_id: str, today: date | None = None, now: datetime | None = None) -> Document:
    """Return a fresh draft: one empty row per section, submission date = today."""
    today = today or date.today()
    doc = Document(
        owner_id=owner_id,
        status=STATUS_DRAFT,
        date_submission=today.isoformat(),
        created_at=now or datetime.now(timezone.utc),
    )
    for name, row_type in SECTION_TYPES.items():
        setattr(doc, name, [row_type()])
    return doc


def validate_for_submission(doc: Document) -> list[FieldError]:
    """Field-level checks required before submission. Never raises."""
    errors: list[FieldError] = []
    if not (doc.organization_name or "").strip():
        errors.append(FieldError("organization_name", "Organization name is required"))

    raw_date = (doc.date_submission or "").strip()
    if not raw_date:
        errors.append(FieldError("date_submission", "Submission date is required"))
    elif parse_iso_date(raw_date) is None:
        errors.append(FieldError("date_submission", "Submission date must be an ISO date (YYYY-MM-DD)"))
    return errors


def append_element(doc: Document, section: str, template: dict | None = None):
    """Append a row built from ``template`` to the end of ``section``."""
    row = make_row(section, {k: v for k, v in (template or {}).items() if k != "row_id"})
    doc.section(section).append(row)
    return row


def remove_row(doc: Document, section: str, row_id: str):
    """Remove the row identified by ``row_id``; remaining rows keep their order."""
    rows = doc.section(section)
    target = next((r for r in rows if r.row_id == row_id), None)
    if target is None:
        raise ValidationError(
            f"Row {row_id} not found in {section}",
            details={section: f"unknown row_id {row_id}"},
        )
    if len(rows) <= 1:
        raise ValidationError(
            f"Section {section} must keep at least one row",
            details={section: "at least one row is required"},
        )
    setattr(doc, section, [r for r in rows if r.row_id != row_id])
    return target


def remove_element(doc: Document, section: str, index: int):
    """Remove the row at ``index`` by resolving it to its identity token.

    Raises ValidationError without touching the section when the index is
    out of bounds or the section would be left empty.
    """
    rows = doc.section(section)
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(rows):
        raise ValidationError(
            f"Row index {index} is out of range for {section}",
            details={section: f"index must be between 0 and {len(rows) - 1}"},
        )
    return remove_row(doc, section, rows[index].row_id)


def apply_changes(doc: Document, payload: dict) -> Document:
    """Apply an editor payload onto ``doc`` in place.

    Only header, narrative, SWOT and section keys are honoured; identity,
    status, timestamps and decision fields are ignored. A section payload
    replaces the whole section and must hold at least one row. Header values
    longer than their column raise ValidationError before anything changes.
    """
    too_long = {
        name: f"must be at most {limit} characters"
        for name, limit in HEADER_MAX_LENGTHS.items()
        if name in payload and len(_text(payload[name])) > limit
    }
    if too_long:
        raise ValidationError("Header field too long", details=too_long)

    for name in HEADER_FIELDS + NARRATIVE_FIELDS:
        if name in payload:
            setattr(doc, name, _text(payload[name]))

    if isinstance(payload.get("swot_analysis"), dict):
        current = doc.swot_analysis.to_dict()
        current.update({k: v for k, v in payload["swot_analysis"].items() if k in SWOT_FIELDS})
        doc.swot_analysis = Swot.from_dict(current)

    for name in SECTION_NAMES:
        if name not in payload:
            continue
        rows = payload[name]
        if not isinstance(rows, list):
            raise ValidationError(f"{name} must be a list", details={name: "expected a list of rows"})
        if not rows:
            raise ValidationError(
                f"Section {name} must keep at least one row",
                details={name: "at least one row is required"},
            )
        setattr(doc, name, [make_row(name, r if isinstance(r, dict) else {}) for r in rows])
    return doc
