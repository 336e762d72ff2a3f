"""
Page model and text flow for report PDFs.

Composition works against an explicit ``RenderContext``: an ordered list of
``Page`` objects plus a vertical cursor on the current page. Drawing only
records operations; ``render_pages`` turns them into PDF bytes with
ReportLab once composition is finished.

Geometry (PDF points, origin bottom-left):
  - US Letter, 612 x 792, 50 pt margin on every side
  - the running header (logo or brand text) sits top-right, above TOP_Y
  - a line whose baseline would start below BOTTOM_LIMIT moves to a new page
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Callable, Optional, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas as rl_canvas

from homefolio.services.fetcher import ImageAsset

PAGE_W, PAGE_H = letter
MARGIN = 50
CONTENT_W = PAGE_W - 2 * MARGIN
LEADING = 4
BOTTOM_LIMIT = MARGIN + 20
HEADER_BAND = 24
TOP_Y = PAGE_H - MARGIN - HEADER_BAND

LOGO_MAX_W = 120
LOGO_MAX_H = 32
BRAND_SIZE = 14

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

# ── Palette ──
NAVY = colors.Color(0.13, 0.27, 0.43)
INK = colors.Color(0.1, 0.1, 0.1)
SLATE = colors.Color(0.3, 0.3, 0.3)
GREY = colors.Color(0.4, 0.4, 0.4)
MUTED = colors.Color(0.5, 0.5, 0.5)
BADGE = colors.Color(0.85, 0.89, 0.93)

Measure = Callable[[str, str, float], float]


@dataclass(frozen=True)
class TextStyle:
    font: str = FONT
    size: float = 11
    color: colors.Color = INK
    max_width: Optional[float] = None
    indent: float = 0

    @property
    def width(self) -> float:
        return self.max_width or (CONTENT_W - self.indent)


BODY = TextStyle()
BODY_SOFT = TextStyle(color=SLATE)
HEADING = TextStyle(font=FONT_BOLD, size=13, color=NAVY)
TITLE = TextStyle(font=FONT_BOLD, size=20, color=NAVY)
ADDRESS = TextStyle(font=FONT_BOLD, size=14)
PRICE = TextStyle(font=FONT_BOLD, size=24, color=NAVY)
STATS = TextStyle(font=FONT_BOLD, size=12)
SMALL = TextStyle(size=10, color=GREY)
MARKER = TextStyle(font=FONT_BOLD, size=10, color=MUTED)
FOOTER = TextStyle(size=9, color=MUTED)


# ──────────────────────────────────────────────────────────────────
# DRAW OPERATIONS
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TextOp:
    text: str
    x: float
    y: float
    font: str
    size: float
    color: colors.Color


@dataclass(frozen=True)
class ImageOp:
    data: bytes
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CircleOp:
    x: float
    y: float
    radius: float
    color: colors.Color


DrawOp = Union[TextOp, ImageOp, CircleOp]


@dataclass
class Page:
    width: float = PAGE_W
    height: float = PAGE_H
    ops: list[DrawOp] = field(default_factory=list)
    imported: Any = None  # pypdf PageObject copied verbatim from an attachment

    @property
    def is_imported(self) -> bool:
        return self.imported is not None

    def text_lines(self) -> list[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


def running_header(
    logo: Optional[ImageAsset],
    brand_name: str = "HomeFolio",
    measure: Measure = stringWidth,
) -> DrawOp:
    """Top-right page mark: the logo when one was fetched, else the brand name."""
    if logo is not None:
        scale = min(LOGO_MAX_W / logo.width, LOGO_MAX_H / logo.height, 1)
        w, h = logo.width * scale, logo.height * scale
        return ImageOp(logo.data, PAGE_W - MARGIN - w, PAGE_H - MARGIN, w, h)
    width = measure(brand_name, FONT_BOLD, BRAND_SIZE)
    return TextOp(brand_name, PAGE_W - MARGIN - width, PAGE_H - MARGIN + 6,
                  FONT_BOLD, BRAND_SIZE, NAVY)


def wrap_words(text: str, font: str, size: float, max_width: float,
               measure: Measure = stringWidth) -> list[str]:
    """Greedy word wrap. Words are never split; an over-wide word gets its own line."""
    lines: list[str] = []
    line = ""
    for word in text.split():
        candidate = f"{line} {word}" if line else word
        if line and measure(candidate, font, size) > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines


# ──────────────────────────────────────────────────────────────────
# RENDER CONTEXT
# ──────────────────────────────────────────────────────────────────

class RenderContext:
    """Mutable page list + cursor for one report."""

    def __init__(
        self,
        logo: Optional[ImageAsset] = None,
        brand_name: str = "HomeFolio",
        measure: Measure = stringWidth,
    ):
        self.logo = logo
        self.brand_name = brand_name
        self.measure = measure
        self.pages: list[Page] = []
        self.page: Optional[Page] = None
        self.y: float = TOP_Y

    @property
    def remaining(self) -> float:
        """Vertical room left above the bottom limit on the current page."""
        if self.page is None:
            return 0.0
        return self.y - BOTTOM_LIMIT

    def new_page(self) -> Page:
        page = Page()
        page.ops.append(running_header(self.logo, self.brand_name, self.measure))
        self.pages.append(page)
        self.page = page
        self.y = TOP_Y
        return page

    def append_page(self, page: Page) -> None:
        """Add a finished page (attachment). Later drawing starts a fresh page."""
        self.pages.append(page)
        self.page = None

    def _line_slot(self) -> Page:
        if self.page is None or self.y < BOTTOM_LIMIT:
            self.new_page()
        return self.page

    def draw_text(self, text: str, style: TextStyle = BODY) -> None:
        for line in wrap_words(text or "", style.font, style.size, style.width, self.measure):
            page = self._line_slot()
            page.ops.append(TextOp(line, MARGIN + style.indent, self.y,
                                   style.font, style.size, style.color))
            self.y -= style.size + LEADING

    def text_height(self, text: str, style: TextStyle = BODY) -> float:
        lines = wrap_words(text or "", style.font, style.size, style.width, self.measure)
        return len(lines) * (style.size + LEADING)

    def add_space(self, height: float) -> None:
        self.y -= height

    def ensure_space(self, height: float) -> None:
        if self.page is None or self.remaining < height:
            self.new_page()

    def draw_key_value(
        self,
        label: str,
        value: str,
        label_width: float = 140,
        style: TextStyle = BODY,
        label_font: str = FONT_BOLD,
    ) -> None:
        """One details-table row: label column on the left, wrapped value beside it."""
        value_lines = wrap_words(value or "", style.font, style.size,
                                 CONTENT_W - label_width, self.measure) or [""]
        for i, line in enumerate(value_lines):
            page = self._line_slot()
            if i == 0:
                page.ops.append(TextOp(label, MARGIN, self.y, label_font, style.size, GREY))
            if line:
                page.ops.append(TextOp(line, MARGIN + label_width, self.y,
                                       style.font, style.size, style.color))
            self.y -= style.size + LEADING

    def draw_image(self, image: ImageAsset, max_w: float, max_h: float,
                   x: Optional[float] = None) -> tuple[float, float]:
        """Place *image* with its top at the cursor, scaled into max_w x max_h."""
        scale = min(max_w / image.width, max_h / image.height, 1)
        w, h = image.width * scale, image.height * scale
        self.ensure_space(h)
        self.page.ops.append(ImageOp(image.data, MARGIN if x is None else x, self.y - h, w, h))
        return w, h


# ──────────────────────────────────────────────────────────────────
# PDF OUTPUT
# ──────────────────────────────────────────────────────────────────

def render_pages(pages: list[Page], title: str = "") -> bytes:
    """Serialize drawn pages to a PDF. Imported pages are not accepted here."""
    buffer = BytesIO()
    c = rl_canvas.Canvas(buffer, pagesize=letter, invariant=1)
    if title:
        c.setTitle(title)
    for page in pages:
        if page.is_imported:
            raise ValueError("render_pages() only handles drawn pages")
        c.setPageSize((page.width, page.height))
        for op in page.ops:
            _draw_op(c, op)
        c.showPage()
    c.save()
    return buffer.getvalue()


def _draw_op(c, op: DrawOp) -> None:
    if isinstance(op, TextOp):
        c.setFont(op.font, op.size)
        c.setFillColor(op.color)
        c.drawString(op.x, op.y, op.text)
    elif isinstance(op, ImageOp):
        c.drawImage(ImageReader(BytesIO(op.data)), op.x, op.y,
                    width=op.width, height=op.height, mask="auto")
    elif isinstance(op, CircleOp):
        c.setFillColor(op.color)
        c.circle(op.x, op.y, op.radius, fill=1, stroke=0)
