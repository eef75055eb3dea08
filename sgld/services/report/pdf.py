"""
PDF assembly for rendered report pages (reportlab).

Each PNG page band becomes one full-bleed A4 page. The canvas runs in
invariant mode so identical input produces byte-identical output.
"""

from __future__ import annotations

import io
import re
from datetime import date

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from sgld.core.exceptions import RenderError

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def report_filename(organization_name: str, today: date | None = None) -> str:
    """``SGLD_Form_<org with each non-alphanumeric char → "_">_<YYYY-MM-DD>.pdf``."""
    stem = _UNSAFE_CHARS.sub("_", organization_name or "")
    return f"SGLD_Form_{stem}_{(today or date.today()).isoformat()}.pdf"


def assemble_pdf(pages: list[bytes], *, title: str | None = None, author: str | None = None) -> bytes:
    """Write one A4 page per PNG band and return the PDF bytes."""
    if not pages:
        raise RenderError("Cannot assemble a PDF without pages")

    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=A4, invariant=1)
    if title:
        pdf.setTitle(title)
    if author:
        pdf.setAuthor(author)
    pdf.setCreator("SGLD Project Planning")

    page_w, page_h = A4
    for png in pages:
        pdf.drawImage(ImageReader(io.BytesIO(png)), 0, 0, width=page_w, height=page_h)
        pdf.showPage()
    pdf.save()
    return buf.getvalue()
