"""
Review blueprint — reviewer dashboard endpoints.

Endpoints:
    GET /api/v1/review/summary   status counts (total / pending / per status)
    GET /api/v1/review/export    register of non-draft forms (?format=xlsx|csv, ?status=, ?q=)
"""

import io
import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, jsonify, request, send_file

import sgld.services.form_service as fs
from sgld.blueprints import register_error_handlers
from sgld.services.export_service import export_forms_csv, export_forms_xlsx
from sgld.utils.errors import E, api_error

logger = logging.getLogger(__name__)

review_bp = Blueprint("review", __name__, url_prefix="/api/v1/review")
register_error_handlers(review_bp)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@review_bp.route("/summary", methods=["GET"])
def summary():
    return jsonify(fs.review_summary(fs.current_actor()))


@review_bp.route("/export", methods=["GET"])
def export_register():
    fmt = (request.args.get("format") or "xlsx").lower()
    if fmt not in ("xlsx", "csv"):
        return api_error(E.BAD_REQUEST, "format must be one of: xlsx, csv")

    docs = fs.review_register(fs.current_actor(), status=request.args.get("status"),
                              search=request.args.get("q"))
    date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")

    if fmt == "csv":
        return Response(
            export_forms_csv(docs),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=SGLD_Register_{date_str}.csv"},
        )
    return send_file(
        io.BytesIO(export_forms_xlsx(docs)),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"SGLD_Register_{date_str}.xlsx",
    )
