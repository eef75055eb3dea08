"""
Planning form report — layout → raster → PDF.

Usage:
    from sgld.services.report import render_report

    report = render_report(doc, ReportSettings.from_config(app.config))
    report.content      # PDF bytes
    report.filename     # SGLD_Form_<org>_<YYYY-MM-DD>.pdf
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sgld.core.exceptions import RenderError
from sgld.services.report.layout import FixedWidthMeasurer, Layout, ReportSettings, compose
from sgld.services.report.pdf import assemble_pdf, report_filename
from sgld.services.report.raster import Band, PillowRasterizer, paginate

logger = logging.getLogger(__name__)

__all__ = [
    "Band",
    "FixedWidthMeasurer",
    "Layout",
    "PillowRasterizer",
    "RenderedReport",
    "ReportSettings",
    "assemble_pdf",
    "compose",
    "paginate",
    "render_report",
    "report_filename",
]

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class RenderedReport:
    content: bytes
    filename: str
    page_count: int
    media_type: str = PDF_MEDIA_TYPE


def render_report(doc, settings: ReportSettings | None = None,
                  generated_at: datetime | None = None,
                  rasterizer=None) -> RenderedReport:
    """Render ``doc`` to a paginated A4 PDF.

    Raises RenderError on any failure; no partial output is returned.
    """
    settings = settings or ReportSettings()
    generated_at = generated_at or datetime.now(timezone.utc)
    rasterizer = rasterizer or PillowRasterizer(settings)

    try:
        layout = compose(doc, rasterizer, settings, generated_at)
        pages = rasterizer.rasterize(layout)
        content = assemble_pdf(
            pages,
            title=f"{settings.subtitle}: {doc.organization_name or 'Untitled'}",
            author=settings.title,
        )
    except RenderError:
        raise
    except Exception as exc:
        logger.exception("Report rendering failed", extra={"form_id": doc.id})
        raise RenderError(f"Could not render report: {exc}") from exc

    logger.info(
        "Report rendered",
        extra={"form_id": doc.id, "event_type": "form.report", "page_count": len(pages)},
    )
    return RenderedReport(
        content=content,
        filename=report_filename(doc.organization_name, generated_at.date()),
        page_count=len(pages),
    )
