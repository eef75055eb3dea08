"""
Planning form API — editor, lifecycle, report and health endpoints.
"""

import pytest


def _create(client, headers, **payload):
    res = client.post("/api/v1/forms", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _submit(client, headers, form_id):
    res = client.post(f"/api/v1/forms/{form_id}/submit", headers=headers)
    assert res.status_code == 200, res.get_json()
    return res.get_json()


@pytest.fixture()
def form(client, member_headers):
    return _create(client, member_headers, organization_name="Photography Club")


class TestCreateAndGet:
    def test_create_draft(self, client, member_headers):
        data = _create(client, member_headers, organization_name="Film Society")
        assert data["status"] == "draft"
        assert data["owner_id"] == "member-1"
        assert data["organization_name"] == "Film Society"
        assert len(data["guest_list"]) == 1
        assert data["budget"] == {"total_expenditure": "0", "total_income": "0", "net_balance": "0"}
        assert data["available_transitions"] == ["save_draft", "submit"]

    def test_create_requires_user(self, client):
        res = client.post("/api/v1/forms", json={})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_body_must_be_object(self, client, member_headers):
        res = client.post("/api/v1/forms", json=["not", "an", "object"], headers=member_headers)
        assert res.status_code == 422

    def test_non_json_body_rejected(self, client, member_headers):
        res = client.post("/api/v1/forms", data="name=x", headers=member_headers,
                          content_type="application/x-www-form-urlencoded")
        assert res.status_code == 415
        assert client.get("/api/v1/forms", headers=member_headers).get_json()["total"] == 0

    def test_form_encoded_update_rejected(self, client, form, member_headers):
        res = client.put(f"/api/v1/forms/{form['id']}", data={"organization_name": "Renamed"},
                         headers=member_headers)
        assert res.status_code == 415
        data = client.get(f"/api/v1/forms/{form['id']}", headers=member_headers).get_json()
        assert data["organization_name"] == "Photography Club"

    def test_get(self, client, form, member_headers):
        res = client.get(f"/api/v1/forms/{form['id']}", headers=member_headers)
        assert res.status_code == 200
        assert res.get_json()["id"] == form["id"]

    def test_get_missing(self, client, member_headers):
        res = client.get("/api/v1/forms/does-not-exist", headers=member_headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_get_forbidden_for_other_member(self, client, form):
        res = client.get(f"/api/v1/forms/{form['id']}", headers={"X-User-Id": "member-2"})
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"


class TestList:
    def test_members_see_own_forms(self, client, form, member_headers, reviewer_headers):
        _create(client, {"X-User-Id": "member-2"}, organization_name="Other")
        own = client.get("/api/v1/forms", headers=member_headers).get_json()
        assert own["total"] == 1
        assert own["items"][0]["organization_name"] == "Photography Club"
        every = client.get("/api/v1/forms", headers=reviewer_headers).get_json()
        assert every["total"] == 2

    def test_pagination(self, client, member_headers):
        for i in range(3):
            _create(client, member_headers, organization_name=f"Club {i}")
        data = client.get("/api/v1/forms?limit=2", headers=member_headers).get_json()
        assert data["total"] == 3
        assert len(data["items"]) == 2

    def test_bad_status_filter(self, client, member_headers):
        res = client.get("/api/v1/forms?status=archived", headers=member_headers)
        assert res.status_code == 422


class TestSaveDraftAndRows:
    def test_put_saves(self, client, form, member_headers):
        res = client.put(f"/api/v1/forms/{form['id']}", json={
            "activity_concept": "Night photo walk",
            "budget_income": [{"description": "Sponsorship", "amount": 400}],
            "budget_expenditure": [{"description": "Prints", "amount": "150.5"}],
        }, headers=member_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["activity_concept"] == "Night photo walk"
        assert data["budget"]["net_balance"] == "249.5"

    def test_put_empty_section_rejected(self, client, form, member_headers):
        res = client.put(f"/api/v1/forms/{form['id']}", json={"task_team": []}, headers=member_headers)
        assert res.status_code == 422
        assert "task_team" in res.get_json()["details"]

    def test_put_overlong_header_rejected(self, client, form, member_headers):
        res = client.put(f"/api/v1/forms/{form['id']}", json={
            "organization_name": "P" * 300, "date_submission": "2026-03-15" * 4,
        }, headers=member_headers)
        assert res.status_code == 422
        assert set(res.get_json()["details"]) == {"organization_name", "date_submission"}

    def test_append_and_remove_row(self, client, form, member_headers):
        url = f"/api/v1/forms/{form['id']}/sections/proposed_venues/rows"
        res = client.post(url, json={"venue": "Gallery"}, headers=member_headers)
        assert res.status_code == 201
        body = res.get_json()
        assert body["row"]["venue"] == "Gallery"
        assert len(body["form"]["proposed_venues"]) == 2

        res = client.delete(f"{url}/0", headers=member_headers)
        assert res.status_code == 200
        assert [v["venue"] for v in res.get_json()["proposed_venues"]] == ["Gallery"]

    def test_remove_only_row_rejected(self, client, form, member_headers):
        res = client.delete(f"/api/v1/forms/{form['id']}/sections/guest_list/rows/0",
                            headers=member_headers)
        assert res.status_code == 422

    def test_remove_out_of_range(self, client, form, member_headers):
        res = client.delete(f"/api/v1/forms/{form['id']}/sections/guest_list/rows/5",
                            headers=member_headers)
        assert res.status_code == 422

    def test_unknown_section(self, client, form, member_headers):
        res = client.post(f"/api/v1/forms/{form['id']}/sections/sponsors/rows", json={},
                          headers=member_headers)
        assert res.status_code == 422

    def test_budget_endpoint(self, client, form, member_headers):
        client.put(f"/api/v1/forms/{form['id']}", json={
            "budget_expenditure": [{"description": "Frames", "amount": 1250}],
        }, headers=member_headers)
        data = client.get(f"/api/v1/forms/{form['id']}/budget", headers=member_headers).get_json()
        assert data["net_balance"] == "-1250"
        assert data["display"]["net_balance"] == "-$1,250.00"
        assert data["is_surplus"] is False

    def test_budget_endpoint_with_very_large_amounts(self, client, form, member_headers):
        client.put(f"/api/v1/forms/{form['id']}", json={
            "budget_income": [{"description": "Endowment", "amount": "123456789012345678901234567890"}],
        }, headers=member_headers)
        res = client.get(f"/api/v1/forms/{form['id']}/budget", headers=member_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["total_income"] == "123456789012345678901234567890"
        assert data["display"]["total_income"] == "$123,456,789,012,345,678,901,234,567,890.00"


class TestLifecycle:
    def test_submit(self, client, form, member_headers):
        data = _submit(client, member_headers, form["id"])
        assert data["status"] == "submitted"
        assert data["submitted_at"] is not None
        assert data["available_transitions"] == []

    def test_submit_incomplete(self, client, member_headers):
        form = _create(client, member_headers)
        res = client.post(f"/api/v1/forms/{form['id']}/submit", headers=member_headers)
        assert res.status_code == 422
        assert "organization_name" in res.get_json()["details"]

    def test_edit_after_submit_conflicts(self, client, form, member_headers):
        _submit(client, member_headers, form["id"])
        res = client.put(f"/api/v1/forms/{form['id']}", json={"evaluation": "x"}, headers=member_headers)
        assert res.status_code == 409
        assert res.get_json()["details"]["status"] == "submitted"

    def test_reviewer_cannot_submit(self, client, form, reviewer_headers):
        res = client.post(f"/api/v1/forms/{form['id']}/submit", headers=reviewer_headers)
        assert res.status_code == 403

    def test_approve(self, client, form, member_headers, reviewer_headers):
        _submit(client, member_headers, form["id"])
        res = client.post(f"/api/v1/forms/{form['id']}/decision", json={
            "decision": "Approve", "comments": "Great idea",
        }, headers=reviewer_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "approved"
        assert data["admin_decision"] == "approve"
        assert data["admin_comments"] == "Great idea"
        assert data["admin_decision_by"] == "admin-1"

    def test_decide_twice_conflicts(self, client, form, member_headers, reviewer_headers):
        _submit(client, member_headers, form["id"])
        url = f"/api/v1/forms/{form['id']}/decision"
        assert client.post(url, json={"decision": "reject"}, headers=reviewer_headers).status_code == 200
        res = client.post(url, json={"decision": "approve"}, headers=reviewer_headers)
        assert res.status_code == 409

    def test_member_cannot_decide(self, client, form, member_headers):
        _submit(client, member_headers, form["id"])
        res = client.post(f"/api/v1/forms/{form['id']}/decision", json={"decision": "approve"},
                          headers=member_headers)
        assert res.status_code == 403

    def test_unknown_decision(self, client, form, member_headers, reviewer_headers):
        _submit(client, member_headers, form["id"])
        res = client.post(f"/api/v1/forms/{form['id']}/decision", json={"decision": "maybe"},
                          headers=reviewer_headers)
        assert res.status_code == 422

    def test_unknown_decision_from_member_forbidden(self, client, form, member_headers):
        _submit(client, member_headers, form["id"])
        url = f"/api/v1/forms/{form['id']}/decision"
        assert client.post(url, json={"decision": "maybe"}, headers=member_headers).status_code == 403
        assert client.post(url, json={"decision": "maybe"}).status_code == 401

    def test_history(self, client, form, member_headers):
        _submit(client, member_headers, form["id"])
        items = client.get(f"/api/v1/forms/{form['id']}/history", headers=member_headers).get_json()["items"]
        assert [i["action"] for i in items] == ["planning_form.create", "planning_form.submit"]


class TestReport:
    def test_draft_report_conflicts(self, client, form, member_headers):
        res = client.get(f"/api/v1/forms/{form['id']}/report", headers=member_headers)
        assert res.status_code == 409

    def test_download(self, client, form, member_headers):
        _submit(client, member_headers, form["id"])
        res = client.get(f"/api/v1/forms/{form['id']}/report", headers=member_headers)
        assert res.status_code == 200
        assert res.mimetype == "application/pdf"
        assert res.data.startswith(b"%PDF")
        assert int(res.headers["X-Report-Pages"]) >= 1
        disposition = res.headers["Content-Disposition"]
        assert "attachment" in disposition
        assert "SGLD_Form_Photography_Club_" in disposition

    def test_report_requires_user(self, client, form, member_headers):
        _submit(client, member_headers, form["id"])
        res = client.get(f"/api/v1/forms/{form['id']}/report")
        assert res.status_code == 401


class TestHealth:
    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").get_json() == {"status": "ok"}

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        data = res.get_json()
        assert data["checks"]["database"]["status"] == "ok"
        assert "pillow" in data["checks"]["report"]

    def test_response_headers(self, client):
        res = client.get("/api/v1/health/ready")
        assert "X-Request-ID" in res.headers
        assert res.headers["X-Content-Type-Options"] == "nosniff"
