"""
Reviewer dashboard — status summary and the register export (xlsx / csv).
"""

import csv
import io
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from openpyxl import load_workbook

import sgld.services.form_service as fs
from sgld.domain.document import BudgetLine, Decision, create_draft
from sgld.services.export_service import (
    REGISTER_HEADERS,
    export_forms_csv,
    export_forms_xlsx,
    register_rows,
)

DECIDED_AT = datetime(2026, 8, 5, 11, 0, tzinfo=timezone.utc)


@pytest.fixture()
def approved_doc():
    doc = create_draft("member-1")
    doc.id = "form-a"
    doc.organization_name = "Debate Society"
    doc.status = "approved"
    doc.budget_expenditure = [BudgetLine("Trophies", "300"), BudgetLine("Snacks", "75.5")]
    doc.budget_income = [BudgetLine("Sponsor", "500")]
    doc.decision = Decision("approve", "Well costed", DECIDED_AT, "admin-1")
    return doc


@pytest.fixture()
def submitted_doc():
    doc = create_draft("member-2")
    doc.id = "form-b"
    doc.organization_name = "Chess Club"
    doc.status = "submitted"
    return doc


class TestRegisterRows:
    def test_values(self, approved_doc, submitted_doc):
        rows = register_rows([approved_doc, submitted_doc])
        assert len(rows[0]) == len(REGISTER_HEADERS)
        first = dict(zip(REGISTER_HEADERS, rows[0]))
        assert first["Organization"] == "Debate Society"
        assert first["Total Expenditure"] == 375.5
        assert first["Net Balance"] == 124.5
        assert first["Decision"] == "approve"
        assert first["Decided At"] == DECIDED_AT.isoformat()
        second = dict(zip(REGISTER_HEADERS, rows[1]))
        assert second["Decision"] == ""
        assert second["Net Balance"] == 0.0

    def test_amounts_beyond_float_range_kept_as_text(self, submitted_doc):
        submitted_doc.budget_income = [BudgetLine("Bequest", "1e400")]
        row = dict(zip(REGISTER_HEADERS, register_rows([submitted_doc])[0]))
        assert isinstance(row["Total Income"], str)
        assert Decimal(row["Total Income"]) == Decimal("1e400")
        assert row["Total Expenditure"] == 0.0


class TestXlsx:
    def test_workbook(self, approved_doc, submitted_doc):
        content = export_forms_xlsx([approved_doc, submitted_doc], generated_at=DECIDED_AT)
        wb = load_workbook(io.BytesIO(content))
        assert wb.sheetnames == ["Register", "Budget Lines"]

        ws = wb["Register"]
        assert ws.cell(row=4, column=1).value == "Form ID"
        assert ws.cell(row=5, column=2).value == "Debate Society"
        assert ws.cell(row=6, column=3).value == "submitted"
        assert "2 form(s)" in ws["A2"].value

        lines = wb["Budget Lines"]
        values = [[c.value for c in row] for row in lines.iter_rows(min_row=2)]
        # draft default rows are carried through for the submitted form
        assert ["form-a", "Debate Society", "Expenditure", "Trophies", 300] in values
        assert ["form-a", "Debate Society", "Income", "Sponsor", 500] in values

    def test_empty_register(self):
        wb = load_workbook(io.BytesIO(export_forms_xlsx([])))
        assert wb["Register"].max_row == 4


class TestCsv:
    def test_rows(self, approved_doc):
        rows = list(csv.reader(io.StringIO(export_forms_csv([approved_doc]))))
        assert rows[0] == REGISTER_HEADERS
        assert rows[1][:3] == ["form-a", "Debate Society", "approved"]


class TestReviewEndpoints:
    @pytest.fixture()
    def forms(self, member, reviewer):
        submitted = fs.create_form(member, {"organization_name": "Art Club"})
        fs.submit_form(submitted.id, member)
        fs.create_form(member, {"organization_name": "Draft Only"})
        return submitted

    def test_summary(self, client, forms, reviewer_headers):
        res = client.get("/api/v1/review/summary", headers=reviewer_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 2
        assert data["pending"] == 1

    def test_summary_forbidden_for_members(self, client, forms, member_headers):
        res = client.get("/api/v1/review/summary", headers=member_headers)
        assert res.status_code == 403

    def test_export_xlsx(self, client, forms, reviewer_headers):
        res = client.get("/api/v1/review/export", headers=reviewer_headers)
        assert res.status_code == 200
        assert "spreadsheetml" in res.mimetype
        ws = load_workbook(io.BytesIO(res.data))["Register"]
        assert ws.cell(row=5, column=2).value == "Art Club"
        assert ws.cell(row=6, column=2).value is None

    def test_export_csv(self, client, forms, reviewer_headers):
        res = client.get("/api/v1/review/export?format=csv", headers=reviewer_headers)
        assert res.status_code == 200
        assert res.mimetype == "text/csv"
        rows = list(csv.reader(io.StringIO(res.get_data(as_text=True))))
        assert [r[1] for r in rows[1:]] == ["Art Club"]

    def test_export_bad_format(self, client, reviewer_headers):
        res = client.get("/api/v1/review/export?format=pdf", headers=reviewer_headers)
        assert res.status_code == 400

    def test_export_requires_reviewer(self, client, member_headers):
        res = client.get("/api/v1/review/export", headers=member_headers)
        assert res.status_code == 403
