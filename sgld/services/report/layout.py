"""
Report layout — turns a planning form into positioned draw primitives.

Pure and deterministic: given the same Document, text measurer, settings
and ``generated_at`` the resulting Layout is identical. No pixels are
produced here; ``raster.PillowRasterizer`` consumes the Layout.

Coordinates are layout units (1 unit = 1 px at scale 1), origin top-left,
y growing downward. The canvas is ``settings.canvas_width`` wide and as
tall as its content.

Section order is fixed:
    header → basic_info → proposed_dates → project_details → opportunities
    → swot → proposed_venues → task_team → guest_list → proposed_programme
    → task_delegation → budget → additional_info → footer
Optional sections are omitted entirely when empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sgld.domain.budget import budget_summary, format_amount

# ── Palette ──────────────────────────────────────────────────────────────────

TEXT_COLOR = "#333333"
TITLE_COLOR = "#2c3e50"
SUBTITLE_COLOR = "#34495e"
MUTED_COLOR = "#7f8c8d"
RULE_COLOR = "#bdc3c7"
BORDER_COLOR = "#dddddd"
HEADER_FILL = "#ecf0f1"
TOTAL_FILL = "#f8f9fa"
BOX_FILL = "#f9f9f9"
SURPLUS_COLOR = "#27ae60"
DEFICIT_COLOR = "#e74c3c"

SWOT_ROWS = (
    ("Strengths:", "strengths", "#e8f5e8"),
    ("Weaknesses:", "weaknesses", "#ffe8e8"),
    ("Opportunities:", "opportunities", "#e8f8ff"),
    ("Threats:", "threats", "#fff8e8"),
)

# ── Spacing (layout units) ───────────────────────────────────────────────────

SECTION_SPACING = 25
CELL_PADDING = 8
COMPACT_CELL_PADDING = 6
BOX_PADDING = 12
COLUMN_GAP = 20

EMPTY_VALUE = "N/A"


class TextMeasurer(Protocol):
    def measure(self, text: str, size: float, bold: bool = False) -> float:
        """Width of ``text`` in layout units at font ``size``."""


class FixedWidthMeasurer:
    """Every glyph is ``ratio * size`` wide. Used for deterministic layout math."""

    def __init__(self, ratio: float = 0.55):
        self.ratio = ratio

    def measure(self, text: str, size: float, bold: bool = False) -> float:
        return len(text) * size * self.ratio


@dataclass(frozen=True)
class ReportSettings:
    canvas_width: int = 800
    scale: int = 2
    padding: int = 40
    font_size: int = 12
    line_height: float = 1.4
    font_path: str | None = None
    currency_symbol: str = "$"
    title: str = "Student Government & Leadership Development"
    subtitle: str = "Project Planning Form"

    @property
    def page_height(self) -> float:
        """A4 page height at full canvas width."""
        return self.canvas_width * 297 / 210

    @classmethod
    def from_config(cls, config) -> "ReportSettings":
        defaults = cls()
        return cls(
            canvas_width=int(config.get("REPORT_CANVAS_WIDTH", defaults.canvas_width)),
            scale=int(config.get("REPORT_SCALE", defaults.scale)),
            font_path=config.get("REPORT_FONT_PATH") or None,
            currency_symbol=config.get("REPORT_CURRENCY_SYMBOL", defaults.currency_symbol),
            title=config.get("REPORT_TITLE", defaults.title),
            subtitle=config.get("REPORT_SUBTITLE", defaults.subtitle),
        )


# ═════════════════════════════════════════════════════════════════════════════
# Primitives
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str | None = None
    outline: str | None = None


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float
    bold: bool = False
    color: str = TEXT_COLOR


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = RULE_COLOR
    width: float = 1


@dataclass(frozen=True)
class SectionBlock:
    key: str
    title: str | None
    top: float
    height: float
    primitives: tuple

    def texts(self) -> list[str]:
        return [p.text for p in self.primitives if isinstance(p, Text)]


@dataclass(frozen=True)
class Layout:
    width: float
    height: float
    blocks: tuple

    @property
    def section_keys(self) -> list[str]:
        return [b.key for b in self.blocks]

    def block(self, key: str) -> SectionBlock | None:
        return next((b for b in self.blocks if b.key == key), None)

    def primitives(self):
        for block in self.blocks:
            yield from block.primitives


def _value(text) -> str:
    text = "" if text is None else str(text)
    return text if text.strip() else EMPTY_VALUE


# ═════════════════════════════════════════════════════════════════════════════
# Composer
# ═════════════════════════════════════════════════════════════════════════════


class _Composer:
    """Cursor-based builder; each ``begin``/``end`` pair yields one SectionBlock."""

    def __init__(self, measurer: TextMeasurer, settings: ReportSettings):
        self.measurer = measurer
        self.settings = settings
        self.left = settings.padding
        self.inner = settings.canvas_width - 2 * settings.padding
        self.y = float(settings.padding)
        self.blocks: list[SectionBlock] = []
        self._items: list = []
        self._key = None
        self._title = None
        self._top = 0.0

    def add(self, primitive):
        self._items.append(primitive)

    # ── Text helpers ─────────────────────────────────────────────────────

    def line_height(self, size: float) -> float:
        return size * self.settings.line_height

    def _fits(self, text: str, width: float, size: float, bold: bool) -> bool:
        return self.measurer.measure(text, size, bold) <= width

    def _fit_prefix(self, word: str, width: float, size: float, bold: bool) -> int:
        cut = 1
        while cut < len(word) and self._fits(word[:cut + 1], width, size, bold):
            cut += 1
        return cut

    def wrap(self, text: str, width: float, size: float, bold: bool = False) -> list[str]:
        """Greedy word wrap. Explicit newlines always start a new line."""
        lines: list[str] = []
        for paragraph in text.replace("\r\n", "\n").split("\n"):
            current = ""
            for word in paragraph.split(" "):
                candidate = f"{current} {word}" if current else word
                if self._fits(candidate, width, size, bold):
                    current = candidate
                    continue
                if current:
                    lines.append(current)
                current = word
                while len(current) > 1 and not self._fits(current, width, size, bold):
                    cut = self._fit_prefix(current, width, size, bold)
                    lines.append(current[:cut])
                    current = current[cut:]
            lines.append(current)
        return lines

    def draw_lines(self, x, top, lines, size, *, bold=False, color=TEXT_COLOR,
                   align="left", box_width=0.0):
        lh = self.line_height(size)
        offset = (lh - size) / 2
        for i, line in enumerate(lines):
            if align == "right":
                lx = x + box_width - self.measurer.measure(line, size, bold)
            elif align == "center":
                lx = x + (box_width - self.measurer.measure(line, size, bold)) / 2
            else:
                lx = x
            self._items.append(Text(lx, top + i * lh + offset, line, size, bold, color))
        return len(lines) * lh

    def centered(self, text, size, *, bold=False, color=TEXT_COLOR):
        lines = self.wrap(text, self.inner, size, bold)
        self.y += self.draw_lines(self.left, self.y, lines, size, bold=bold, color=color,
                                  align="center", box_width=self.inner)

    # ── Blocks ───────────────────────────────────────────────────────────

    def begin(self, key: str, title: str | None = None):
        self._key, self._title, self._top, self._items = key, title, self.y, []
        if title:
            self.heading(title)

    def end(self, spacing: float = SECTION_SPACING):
        self.y += spacing
        self.blocks.append(SectionBlock(
            key=self._key,
            title=self._title,
            top=self._top,
            height=self.y - self._top,
            primitives=tuple(self._items),
        ))

    def heading(self, title: str):
        size = 16
        self.y += self.draw_lines(self.left, self.y, [title], size, bold=True, color=TITLE_COLOR)
        self.y += 5
        self._items.append(Line(self.left, self.y, self.left + self.inner, self.y, RULE_COLOR, 1))
        self.y += 15

    def subheading(self, x, top, title, width):
        size = 14
        lines = self.wrap(title, width, size, True)
        return top + self.draw_lines(x, top, lines, size, bold=True, color=SUBTITLE_COLOR) + 10

    # ── Tables ───────────────────────────────────────────────────────────

    def _row(self, x, top, widths, cells, *, size, pad, bold=False, fills=None, aligns=None):
        """Draw one table row; ``bold`` is a flag for the whole row or one per cell."""
        weights = bold if isinstance(bold, (list, tuple)) else [bold] * len(cells)
        wrapped = [
            self.wrap(cell, w - 2 * pad, size, b)
            for cell, w, b in zip(cells, widths, weights)
        ]
        height = max(len(lines) for lines in wrapped) * self.line_height(size) + 2 * pad
        cx = x
        for i, (lines, w) in enumerate(zip(wrapped, widths)):
            fill = fills[i] if fills else None
            self._items.append(Rect(cx, top, w, height, fill=fill, outline=BORDER_COLOR))
            align = aligns[i] if aligns else "left"
            self.draw_lines(cx + pad, top + pad, lines, size, bold=weights[i],
                            align=align, box_width=w - 2 * pad)
            cx += w
        return top + height

    def label_value_table(self, rows, *, label_ratio=0.4, label_fills=None):
        label_w = self.inner * label_ratio
        widths = (label_w, self.inner - label_w)
        for i, (label, value) in enumerate(rows):
            fill = label_fills[i] if label_fills else None
            self.y = self._row(
                self.left, self.y, widths, [label, _value(value)],
                size=self.settings.font_size, pad=CELL_PADDING,
                bold=[True, False], fills=[fill, None],
            )

    def grid_table(self, x, top, width, headers, rows, *, size=None, pad=CELL_PADDING,
                   aligns=None, footer=None):
        size = size or self.settings.font_size
        widths = [width / len(headers)] * len(headers)
        y = self._row(x, top, widths, headers, size=size, pad=pad, bold=True,
                      fills=[HEADER_FILL] * len(headers), aligns=aligns)
        for cells in rows:
            y = self._row(x, y, widths, [_value(c) for c in cells], size=size, pad=pad,
                          aligns=aligns)
        if footer:
            y = self._row(x, y, widths, footer, size=size, pad=pad, bold=True,
                          fills=[TOTAL_FILL] * len(headers), aligns=aligns)
        return y

    def boxed_text(self, x, top, width, text, *, pad=BOX_PADDING):
        size = self.settings.font_size
        lines = self.wrap(text, width - 2 * pad, size)
        height = len(lines) * self.line_height(size) + 2 * pad
        self._items.append(Rect(x, top, width, height, fill=BOX_FILL, outline=BORDER_COLOR))
        self.draw_lines(x + pad, top + pad, lines, size)
        return top + height


# ═════════════════════════════════════════════════════════════════════════════
# Sections
# ═════════════════════════════════════════════════════════════════════════════


def _header(c: _Composer, doc):
    s = c.settings
    c.begin("header")
    c.centered(s.title, 24, bold=True, color=TITLE_COLOR)
    c.y += 10
    c.centered(s.subtitle, 20, bold=True, color=SUBTITLE_COLOR)
    c.y += 5
    c.centered(_value(doc.organization_name), 16, bold=True, color=TEXT_COLOR)
    c.y += 5
    status = (doc.status or "draft").upper()
    c.centered(f"Form ID: {doc.id or EMPTY_VALUE} | Status: {status}", 14, color=MUTED_COLOR)
    c.y += 20
    c.add(Line(c.left, c.y, c.left + c.inner, c.y, TEXT_COLOR, 2))
    c.y += 2
    c.end(30)


def _table_section(c: _Composer, key, title, headers, rows, **kwargs):
    if not rows:
        return
    c.begin(key, title)
    c.y = c.grid_table(c.left, c.y, c.inner, headers, rows, **kwargs)
    c.end()


def _boxed_section(c: _Composer, key, title, text):
    if not (text or "").strip():
        return
    c.begin(key, title)
    c.y = c.boxed_text(c.left, c.y, c.inner, text, pad=15)
    c.end()


def _budget(c: _Composer, doc):
    s = c.settings
    summary = budget_summary(doc)
    money = lambda v: format_amount(v, s.currency_symbol)  # noqa: E731

    c.begin("budget", "Budget")
    col_w = (c.inner - COLUMN_GAP) / 2
    columns = (
        ("Estimated Expenditure", doc.budget_expenditure, "Total Expenditure:",
         summary.total_expenditure, "No expenditure items listed"),
        ("Estimated Income", doc.budget_income, "Total Income:",
         summary.total_income, "No income items listed"),
    )
    bottoms = []
    for i, (title, lines, total_label, total, empty_text) in enumerate(columns):
        x = c.left + i * (col_w + COLUMN_GAP)
        y = c.subheading(x, c.y, title, col_w)
        if lines:
            y = c.grid_table(
                x, y, col_w, ["Description", "Amount"],
                [[line.description, money(line.amount)] for line in lines],
                aligns=["left", "right"],
                footer=[total_label, money(total)],
            )
        else:
            y += c.draw_lines(x, y, [empty_text], s.font_size)
        bottoms.append(y)
    c.y = max(bottoms) + 20

    box_top = c.y
    inner_top = box_top + 15
    heading_h = c.line_height(14)
    amount_h = c.line_height(18)
    box_h = 15 + heading_h + 10 + amount_h + 15
    c.add(Rect(c.left, box_top, c.inner, box_h, fill=TOTAL_FILL, outline=BORDER_COLOR))
    c.draw_lines(c.left + 15, inner_top, ["Net Balance"], 14, bold=True, color=TITLE_COLOR)
    color = SURPLUS_COLOR if summary.is_surplus else DEFICIT_COLOR
    c.draw_lines(c.left + 15, inner_top + heading_h + 10, [money(summary.net_balance)], 18,
                 bold=True, color=color)
    c.y = box_top + box_h
    c.end()


def _additional_info(c: _Composer, doc):
    entries = [
        ("Facilitator's / HOD Recommendation", doc.facilitator_recommendation),
        ("Evaluation", doc.evaluation),
    ]
    entries = [(title, text) for title, text in entries if (text or "").strip()]
    if not entries:
        return
    c.begin("additional_info", "Additional Information")
    for title, text in entries:
        c.y = c.subheading(c.left, c.y, title, c.inner) - 2
        c.y = c.boxed_text(c.left, c.y, c.inner, text) + 15
    c.end(10)


def _footer(c: _Composer, generated_at: datetime):
    s = c.settings
    c.begin("footer")
    c.y += 15
    c.add(Line(c.left, c.y, c.left + c.inner, c.y, TEXT_COLOR, 2))
    c.y += 20
    stamp = f"Generated on {generated_at:%Y-%m-%d} at {generated_at:%H:%M:%S}"
    c.centered(stamp, s.font_size, color=MUTED_COLOR)
    c.y += 6
    c.centered(f"{s.title} {s.subtitle}", s.font_size, color=MUTED_COLOR)
    c.end(0)


def compose(doc, measurer: TextMeasurer, settings: ReportSettings | None = None,
            generated_at: datetime | None = None) -> Layout:
    """Lay out ``doc`` as ordered SectionBlocks on a single tall canvas."""
    settings = settings or ReportSettings()
    generated_at = generated_at or datetime.now(timezone.utc)
    c = _Composer(measurer, settings)

    _header(c, doc)

    c.begin("basic_info", "Basic Information")
    c.label_value_table([
        ("Organization Name:", doc.organization_name),
        ("Date of Submission:", doc.date_submission),
    ])
    c.end()

    _table_section(c, "proposed_dates", "Proposed Dates", ["Date", "Description"],
                   [[r.date, r.description] for r in doc.proposed_dates])

    c.begin("project_details", "Project Details")
    c.label_value_table([
        ("Organization Goal:", doc.organization_goal),
        ("Activity Concept:", doc.activity_concept),
        ("Activity Objective:", doc.activity_objective),
        ("Targeted Population:", doc.targeted_population),
    ])
    c.end()

    c.begin("opportunities", "Opportunities")
    c.label_value_table([
        ("Empowerment Opportunities:", doc.empowerment_opportunities),
        ("Marketing Opportunities:", doc.marketing_opportunities),
        ("Accreditation/Certification:", doc.accreditation_certification),
    ])
    c.end()

    if not doc.swot_analysis.is_empty():
        c.begin("swot", "SWOT Analysis")
        c.label_value_table(
            [(label, getattr(doc.swot_analysis, attr)) for label, attr, _ in SWOT_ROWS],
            label_ratio=0.25,
            label_fills=[fill for _, _, fill in SWOT_ROWS],
        )
        c.end()

    _table_section(c, "proposed_venues", "Proposed Venues", ["Venue", "Capacity", "Cost"],
                   [[r.venue, r.capacity, r.cost] for r in doc.proposed_venues])
    _table_section(c, "task_team", "Task Team", ["Name", "Portfolio"],
                   [[r.name, r.portfolio] for r in doc.task_team])
    _table_section(c, "guest_list", "Guest List", ["Name", "Organization", "Contact"],
                   [[r.name, r.organization, r.contact] for r in doc.guest_list])
    _boxed_section(c, "proposed_programme", "Proposed Programme", doc.proposed_programme)
    _table_section(
        c, "task_delegation", "Task Delegation",
        ["Activity", "Person Responsible", "Assignment Date", "Target Date",
         "Contact Person", "Telephone"],
        [[r.activity, r.person_responsible, r.assignment_date, r.target_date,
          r.contact_person, r.telephone] for r in doc.task_delegation],
        size=10, pad=COMPACT_CELL_PADDING,
    )
    _budget(c, doc)
    _additional_info(c, doc)
    _footer(c, generated_at)

    height = c.y + settings.padding
    return Layout(width=settings.canvas_width, height=height, blocks=tuple(c.blocks))
