# fims/pdf.py
from __future__ import annotations

import io
import logging
from typing import Optional, Sequence

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from fims.sink import BLACK, RGB, Align, Font, PageSequence, Stroke

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = 210.0
PAGE_HEIGHT_MM = 297.0


class ReportLabMetrics:
    """TextMetrics for the standard PDF fonts the sink draws with."""

    def width(self, text: str, font: Font) -> float:
        return pdfmetrics.stringWidth(text, font.name, font.size) / mm

    def split(self, text: str, font: Font, max_width: float) -> list[str]:
        return simpleSplit(text, font.name, font.size, max_width * mm)


class ReportLabSink:
    """PageSink over a ReportLab canvas. Input is mm from the top-left corner."""

    def __init__(self, c: canvas.Canvas, page_height_mm: float = PAGE_HEIGHT_MM):
        self._c = c
        self._page_height = page_height_mm
        self._started = False

    def _y(self, y: float) -> float:
        return (self._page_height - y) * mm

    def _stroke(self, stroke: Stroke) -> None:
        r, g, b = stroke.color
        self._c.setStrokeColorRGB(r / 255, g / 255, b / 255)
        self._c.setLineWidth(stroke.width * mm)

    def _fill(self, color: RGB) -> None:
        r, g, b = color
        self._c.setFillColorRGB(r / 255, g / 255, b / 255)

    def new_page(self) -> None:
        if self._started:
            self._c.showPage()
        self._started = True

    def line(self, x1: float, y1: float, x2: float, y2: float, stroke: Stroke = Stroke()) -> None:
        self._stroke(stroke)
        self._c.line(x1 * mm, self._y(y1), x2 * mm, self._y(y2))

    def rect(self, x, y, width, height, stroke: Optional[Stroke] = Stroke(), fill: Optional[RGB] = None) -> None:
        if stroke is not None:
            self._stroke(stroke)
        if fill is not None:
            self._fill(fill)
        self._c.rect(
            x * mm,
            self._y(y + height),
            width * mm,
            height * mm,
            stroke=1 if stroke is not None else 0,
            fill=1 if fill is not None else 0,
        )

    def circle(self, x: float, y: float, radius: float, fill: RGB = BLACK) -> None:
        self._fill(fill)
        self._c.circle(x * mm, self._y(y), radius * mm, stroke=0, fill=1)

    def path(
        self,
        points: Sequence[tuple[float, float]],
        fill: Optional[RGB] = None,
        fill_alpha: float = 1.0,
        stroke: Optional[Stroke] = None,
        closed: bool = True,
    ) -> None:
        if not points:
            return
        p = self._c.beginPath()
        (x0, y0), rest = points[0], points[1:]
        p.moveTo(x0 * mm, self._y(y0))
        for x, y in rest:
            p.lineTo(x * mm, self._y(y))
        if closed:
            p.close()

        self._c.saveState()
        if fill is not None:
            self._fill(fill)
            self._c.setFillAlpha(fill_alpha)
        if stroke is not None:
            self._stroke(stroke)
        self._c.drawPath(p, stroke=1 if stroke is not None else 0, fill=1 if fill is not None else 0)
        self._c.restoreState()

    def text(self, x: float, y: float, text: str, font: Font = Font(), align: Align = "left") -> None:
        self._c.setFont(font.name, font.size)
        self._fill(font.color)
        if align == "center":
            self._c.drawCentredString(x * mm, self._y(y), text)
        elif align == "right":
            self._c.drawRightString(x * mm, self._y(y), text)
        else:
            self._c.drawString(x * mm, self._y(y), text)

    def image(self, data: bytes, x: float, y: float, width: float, height: float) -> None:
        try:
            reader = ImageReader(io.BytesIO(data))
            self._c.drawImage(reader, x * mm, self._y(y + height), width * mm, height * mm, mask="auto")
        except Exception as e:
            # a broken image must not cost the whole document
            logger.warning("Skipping unreadable image at (%.1f, %.1f): %s", x, y, e)


def render_pdf(
    pages: PageSequence,
    *,
    title: str = "",
    subject: str = "",
    author: str = "",
    creator: str = "",
) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(PAGE_WIDTH_MM * mm, PAGE_HEIGHT_MM * mm))
    c.setTitle(title)
    c.setSubject(subject)
    c.setAuthor(author)
    c.setCreator(creator)

    pages.replay(ReportLabSink(c))
    c.save()
    return buffer.getvalue()
