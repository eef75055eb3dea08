"""
Rasterization and pagination for planning-form reports (Pillow).

The whole Layout is drawn once onto a single tall bitmap at ``scale``
pixels per layout unit, then cut into page-sized bands. The last band is
padded with white so every page image has the same A4 proportions.

Usage:
    rasterizer = PillowRasterizer(settings)
    layout = compose(doc, rasterizer, settings)
    pages = rasterizer.rasterize(layout)   # list of PNG bytes, top to bottom
"""

from __future__ import annotations

import io
import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

from sgld.core.exceptions import RenderError
from sgld.services.report.layout import Layout, Line, Rect, ReportSettings, Text

logger = logging.getLogger(__name__)

BACKGROUND = "white"


@dataclass(frozen=True)
class Band:
    index: int
    top: float
    bottom: float


def paginate(total_height: float, page_height: float) -> list[Band]:
    """Split ``total_height`` into ``ceil(total_height / page_height)`` bands, at least one."""
    if page_height <= 0:
        raise RenderError(f"Page height must be positive, got {page_height}")
    count = max(1, math.ceil(max(total_height, 0) / page_height))
    return [Band(i, i * page_height, (i + 1) * page_height) for i in range(count)]


class PillowRasterizer:
    """Draws Layout primitives with Pillow; also serves as the layout's text measurer."""

    def __init__(self, settings: ReportSettings | None = None):
        self.settings = settings or ReportSettings()
        self._fonts: dict[int, ImageFont.FreeTypeFont] = {}

    # ── Fonts ────────────────────────────────────────────────────────────

    def _font(self, size: float):
        px = max(1, round(size * self.settings.scale))
        font = self._fonts.get(px)
        if font is None:
            try:
                if self.settings.font_path:
                    font = ImageFont.truetype(self.settings.font_path, px)
                else:
                    font = ImageFont.load_default(size=px)
            except OSError as exc:
                raise RenderError(f"Could not load report font: {exc}") from exc
            self._fonts[px] = font
        return font

    @property
    def _stroke(self) -> int:
        return max(1, self.settings.scale // 2)

    def measure(self, text: str, size: float, bold: bool = False) -> float:
        width = self._font(size).getlength(text)
        if bold and text:
            width += 2 * self._stroke
        return width / self.settings.scale

    # ── Drawing ──────────────────────────────────────────────────────────

    @contextmanager
    def surface(self, width: float, height: float):
        """One white RGB bitmap for the whole canvas; closed on every exit path."""
        s = self.settings.scale
        image = Image.new("RGB", (max(1, math.ceil(width * s)), max(1, math.ceil(height * s))), BACKGROUND)
        try:
            yield image
        finally:
            image.close()

    def draw(self, image: Image.Image, layout: Layout) -> None:
        s = self.settings.scale
        canvas = ImageDraw.Draw(image)
        for p in layout.primitives():
            if isinstance(p, Rect):
                canvas.rectangle(
                    [p.x * s, p.y * s, (p.x + p.width) * s - 1, (p.y + p.height) * s - 1],
                    fill=p.fill, outline=p.outline, width=s if p.outline else 0,
                )
            elif isinstance(p, Line):
                canvas.line(
                    [(p.x1 * s, p.y1 * s), (p.x2 * s, p.y2 * s)],
                    fill=p.color, width=max(1, round(p.width * s)),
                )
            elif isinstance(p, Text):
                canvas.text(
                    (p.x * s, p.y * s), p.text, font=self._font(p.size), fill=p.color,
                    stroke_width=self._stroke if p.bold else 0, stroke_fill=p.color,
                )

    def _page(self, image: Image.Image, band: Band) -> bytes:
        s = self.settings.scale
        top = round(band.top * s)
        bottom = min(round(band.bottom * s), image.height)
        page_px = round((band.bottom - band.top) * s)
        page = Image.new("RGB", (image.width, page_px), BACKGROUND)
        try:
            if bottom > top:
                with image.crop((0, top, image.width, bottom)) as strip:
                    page.paste(strip, (0, 0))
            buf = io.BytesIO()
            page.save(buf, format="PNG")
            return buf.getvalue()
        finally:
            page.close()

    def rasterize(self, layout: Layout) -> list[bytes]:
        """Render ``layout`` and return one PNG per page band, top to bottom."""
        bands = paginate(layout.height, self.settings.page_height)
        with self.surface(layout.width, layout.height) as image:
            self.draw(image, layout)
            pages = [self._page(image, band) for band in bands]
        logger.debug("Rasterized report: %d page(s), canvas %.0f units tall", len(pages), layout.height)
        return pages
