"""
Planning form blueprint — editor and lifecycle endpoints.

Endpoints:
    POST   /api/v1/forms                                       create draft
    GET    /api/v1/forms                                       list (own / all for reviewers)
    GET    /api/v1/forms/<id>                                  detail + budget + transitions
    PUT    /api/v1/forms/<id>                                  save as draft
    POST   /api/v1/forms/<id>/sections/<section>/rows          append row
    DELETE /api/v1/forms/<id>/sections/<section>/rows/<index>  remove row
    POST   /api/v1/forms/<id>/submit                           submit for review
    POST   /api/v1/forms/<id>/decision                         approve / reject
    GET    /api/v1/forms/<id>/budget                           budget totals
    GET    /api/v1/forms/<id>/history                          audit trail

The acting user comes from X-User-Id / X-User-Role. Service layer owns all
business logic and commits.
"""

import logging

from flask import Blueprint, jsonify, request

import sgld.services.form_service as fs
from sgld.blueprints import json_body, paginate_query, register_error_handlers
from sgld.domain.budget import budget_summary, format_amount
from sgld.domain.document import Document, row_to_dict

logger = logging.getLogger(__name__)

forms_bp = Blueprint("forms", __name__, url_prefix="/api/v1/forms")
register_error_handlers(forms_bp)


@forms_bp.route("", methods=["POST"])
def create_form():
    actor = fs.current_actor()
    doc = fs.create_form(actor, json_body())
    return jsonify(fs.form_payload(doc, actor)), 201


@forms_bp.route("", methods=["GET"])
def list_forms():
    actor = fs.current_actor()
    query = fs.visible_forms_query(actor, status=request.args.get("status"), search=request.args.get("q"))
    rows, total = paginate_query(query)
    items = []
    for row in rows:
        doc = Document.from_record(row.to_record())
        summary = budget_summary(doc)
        items.append({
            "id": doc.id,
            "owner_id": doc.owner_id,
            "organization_name": doc.organization_name,
            "date_submission": doc.date_submission,
            "status": doc.status,
            "created_at": doc.created_at.isoformat() if doc.created_at else None,
            "submitted_at": doc.submitted_at.isoformat() if doc.submitted_at else None,
            "net_balance": str(summary.net_balance),
        })
    return jsonify({"items": items, "total": total})


@forms_bp.route("/<form_id>", methods=["GET"])
def get_form(form_id):
    actor = fs.current_actor()
    return jsonify(fs.form_payload(fs.get_form(form_id, actor), actor))


@forms_bp.route("/<form_id>", methods=["PUT"])
def save_draft(form_id):
    actor = fs.current_actor()
    doc = fs.update_draft(form_id, actor, json_body())
    return jsonify(fs.form_payload(doc, actor))


@forms_bp.route("/<form_id>/sections/<section>/rows", methods=["POST"])
def append_row(form_id, section):
    actor = fs.current_actor()
    doc, row = fs.append_row(form_id, actor, section, json_body())
    return jsonify({"row": row_to_dict(row), "form": fs.form_payload(doc, actor)}), 201


@forms_bp.route("/<form_id>/sections/<section>/rows/<int:index>", methods=["DELETE"])
def remove_row(form_id, section, index):
    actor = fs.current_actor()
    doc = fs.remove_row_at(form_id, actor, section, index)
    return jsonify(fs.form_payload(doc, actor))


@forms_bp.route("/<form_id>/submit", methods=["POST"])
def submit_form(form_id):
    actor = fs.current_actor()
    doc = fs.submit_form(form_id, actor, json_body() or None)
    return jsonify(fs.form_payload(doc, actor))


@forms_bp.route("/<form_id>/decision", methods=["POST"])
def decide_form(form_id):
    actor = fs.current_actor()
    data = json_body()
    doc = fs.decide_form(
        form_id, actor,
        decision=(data.get("decision") or "").strip().lower(),
        comments=data.get("comments") or "",
        signature_url=data.get("signature_url"),
    )
    return jsonify(fs.form_payload(doc, actor))


@forms_bp.route("/<form_id>/budget", methods=["GET"])
def get_budget(form_id):
    doc = fs.get_form(form_id, fs.current_actor())
    summary = budget_summary(doc)
    return jsonify({
        **summary.to_dict(),
        "display": {
            "total_expenditure": format_amount(summary.total_expenditure),
            "total_income": format_amount(summary.total_income),
            "net_balance": format_amount(summary.net_balance),
        },
        "is_surplus": summary.is_surplus,
    })


@forms_bp.route("/<form_id>/history", methods=["GET"])
def get_history(form_id):
    return jsonify({"items": fs.form_history(form_id, fs.current_actor())})
