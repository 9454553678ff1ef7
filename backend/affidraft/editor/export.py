"""
AffiDraft Editor: Canvas Export
================================

What:  Rasterizes canvas objects to a PNG with Pillow.
How:   Objects are painted bottom-first. Each object is drawn on its own
       transparent layer and alpha-composited onto the page, so rgba()
       colors and object opacity blend the way they do in the editor.
Who:   GET /api/affidavit-templates/{id}/export.png and EditorSession callers.

Supported colors:  #rgb, #rrggbb, #rrggbbaa, rgb(r,g,b), rgba(r,g,b,a), CSS names.
                   Anything else is skipped with a warning.

Image objects are rendered as an outlined frame with a cross; remote `src`
URLs are never fetched.

PDF export is declared but not implemented and raises FeatureNotAvailableError.
"""

import io
import logging
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from affidraft.config import settings
from affidraft.editor.objects import CanvasObjectBase, ObjectKind
from affidraft.exceptions import FeatureNotAvailableError

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

_RGB_FUNCTION = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)

# Tried in order; the first that loads wins
_FONT_CANDIDATES = {
    False: (
        "{family}.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
    ),
    True: (
        "{family} Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    ),
}

_DEFAULT_FONT_SIZE = 16
_IMAGE_FRAME_COLOR = "#999999"


def parse_color(value: Optional[str], opacity: float = 1.0) -> Optional[RGBA]:
    """
    CSS color string → RGBA tuple with opacity folded into alpha.
    Returns None for empty, transparent or unparseable colors.
    """
    if not value or value.strip().lower() == "transparent":
        return None
    text = value.strip()

    match = _RGB_FUNCTION.match(text)
    if match:
        red, green, blue = (min(255, int(float(part))) for part in match.groups()[:3])
        alpha = float(match.group(4)) if match.group(4) is not None else 1.0
    else:
        try:
            red, green, blue, alpha_byte = ImageColor.getcolor(text, "RGBA")
        except ValueError:
            logger.warning("Skipping unparseable color %r", value)
            return None
        alpha = alpha_byte / 255

    alpha = max(0.0, min(1.0, alpha)) * max(0.0, min(1.0, opacity))
    return red, green, blue, round(alpha * 255)


@lru_cache(maxsize=64)
def _load_font(family: str, size: int, bold: bool) -> ImageFont.ImageFont:
    for candidate in _FONT_CANDIDATES[bold]:
        try:
            return ImageFont.truetype(candidate.format(family=family), size)
        except OSError:
            continue
    logger.debug("No TrueType font found for %s; using Pillow's default", family)
    return ImageFont.load_default(size=size)


def _wrap_lines(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> List[str]:
    """Greedy word wrap at max_width, keeping explicit newlines."""
    lines: List[str] = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split(" "):
            candidate = word if not current else f"{current} {word}"
            if current and draw.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


def _stroke_width(obj: CanvasObjectBase) -> int:
    width = obj.style.stroke_width
    if width <= 0:
        return 0
    return max(1, round(width))


# ── Per-kind painters ─────────────────────────────────────────────────────


def _paint_box(draw: ImageDraw.ImageDraw, obj: CanvasObjectBase) -> None:
    geometry = obj.geometry
    box = [geometry.x, geometry.y, geometry.x + geometry.width, geometry.y + geometry.height]
    fill = parse_color(obj.style.fill, obj.style.opacity)
    outline = parse_color(obj.style.stroke, obj.style.opacity)
    width = _stroke_width(obj)
    draw.rectangle(box, fill=fill, outline=outline if width else None, width=width or 1)


def _paint_circle(draw: ImageDraw.ImageDraw, obj: CanvasObjectBase) -> None:
    geometry = obj.geometry
    diameter = geometry.radius * 2
    box = [geometry.x, geometry.y, geometry.x + diameter, geometry.y + diameter]
    fill = parse_color(obj.style.fill, obj.style.opacity)
    outline = parse_color(obj.style.stroke, obj.style.opacity)
    width = _stroke_width(obj)
    draw.ellipse(box, fill=fill, outline=outline if width else None, width=width or 1)


def _paint_line(draw: ImageDraw.ImageDraw, obj: CanvasObjectBase) -> None:
    geometry = obj.geometry
    color = parse_color(obj.style.stroke or obj.style.fill, obj.style.opacity)
    width = _stroke_width(obj)
    if color is None or not width:
        return
    draw.line(
        [(geometry.x, geometry.y), (geometry.end_x, geometry.end_y)],
        fill=color,
        width=width,
    )


def _paint_image(draw: ImageDraw.ImageDraw, obj: CanvasObjectBase) -> None:
    geometry = obj.geometry
    left, top = geometry.x, geometry.y
    right, bottom = left + geometry.width, top + geometry.height
    fill = parse_color(obj.style.fill, obj.style.opacity)
    frame = parse_color(obj.style.stroke or _IMAGE_FRAME_COLOR, obj.style.opacity)
    width = _stroke_width(obj) or 1
    draw.rectangle([left, top, right, bottom], fill=fill, outline=frame, width=width)
    draw.line([(left, top), (right, bottom)], fill=frame, width=1)
    draw.line([(left, bottom), (right, top)], fill=frame, width=1)


def _paint_text(draw: ImageDraw.ImageDraw, obj: CanvasObjectBase) -> None:
    geometry = obj.geometry
    style = obj.style
    background = parse_color(style.background_color, style.opacity)
    if background is not None:
        draw.rectangle(
            [geometry.x, geometry.y, geometry.x + geometry.width, geometry.y + geometry.height],
            fill=background,
        )

    color = parse_color(style.fill or "#000000", style.opacity)
    if color is None or not obj.text:
        return
    size = max(1, round(style.font_size or _DEFAULT_FONT_SIZE))
    bold = (style.font_weight or "").lower() in ("bold", "600", "700", "800", "900")
    font = _load_font(style.font_family or "Arial", size, bold)
    lines = _wrap_lines(draw, obj.text, font, max(geometry.width, 1))
    draw.multiline_text((geometry.x, geometry.y), "\n".join(lines), fill=color, font=font)


_PAINTERS = {
    ObjectKind.TEXT: _paint_text,
    ObjectKind.PLACEHOLDER_TEXT: _paint_text,
    ObjectKind.RECTANGLE: _paint_box,
    ObjectKind.CIRCLE: _paint_circle,
    ObjectKind.LINE: _paint_line,
    ObjectKind.IMAGE: _paint_image,
}


def render(
    objects: Iterable[CanvasObjectBase],
    width: Optional[int] = None,
    height: Optional[int] = None,
    background: Optional[str] = None,
) -> Image.Image:
    """Paints objects in z-order onto a new RGBA page image."""
    size = (width or settings.canvas_width, height or settings.canvas_height)
    page_color = parse_color(background or settings.canvas_background) or (255, 255, 255, 255)
    page = Image.new("RGBA", size, page_color)

    for obj in objects:
        layer = Image.new("RGBA", size, (0, 0, 0, 0))
        _PAINTERS[ObjectKind(obj.kind)](ImageDraw.Draw(layer), obj)
        page.alpha_composite(layer)

    return page


def export_png(
    objects: Iterable[CanvasObjectBase],
    width: Optional[int] = None,
    height: Optional[int] = None,
    background: Optional[str] = None,
) -> bytes:
    """PNG bytes of the rendered page."""
    page = render(objects, width=width, height=height, background=background)
    buffer = io.BytesIO()
    page.save(buffer, format="PNG")
    logger.debug("Exported PNG %dx%d (%d bytes)", page.width, page.height, buffer.tell())
    return buffer.getvalue()


def export_pdf(objects: Iterable[CanvasObjectBase], **kwargs) -> bytes:
    raise FeatureNotAvailableError("PDF export")
