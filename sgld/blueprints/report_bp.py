"""
Report blueprint — PDF download of a planning form.

Endpoints:
    GET /api/v1/forms/<id>/report   paginated A4 PDF (submitted / approved / rejected only)
"""

import io
import logging

from flask import Blueprint, send_file

import sgld.services.form_service as fs
from sgld.blueprints import register_error_handlers

logger = logging.getLogger(__name__)

report_bp = Blueprint("report", __name__, url_prefix="/api/v1/forms")
register_error_handlers(report_bp)


@report_bp.route("/<form_id>/report", methods=["GET"])
def download_report(form_id):
    report = fs.render_form_report(form_id, fs.current_actor())
    response = send_file(
        io.BytesIO(report.content),
        mimetype=report.media_type,
        as_attachment=True,
        download_name=report.filename,
    )
    response.headers["X-Report-Pages"] = str(report.page_count)
    return response
