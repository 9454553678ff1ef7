"""
AffiDraft Backend: PNG Export Unit Tests
=========================================

What we test:
    ✅ parse_color(): hex, rgb()/rgba(), names, transparent, garbage
    ✅ render(): page size, z-order, opacity blending, per-kind painting
    ✅ export_png(): valid PNG bytes
    ✅ export_pdf(): declared but unavailable
"""

import io
import logging

import pytest
from PIL import Image

from affidraft.editor.export import export_pdf, export_png, parse_color, render
from affidraft.editor.objects import (
    BoxGeometry,
    ImageObject,
    LineGeometry,
    LineObject,
    RectangleObject,
    Style,
    TextObject,
)
from affidraft.exceptions import FeatureNotAvailableError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def rectangle(object_id, fill, x=10, y=10, size=40, opacity=1.0):
    return RectangleObject(
        id=object_id,
        geometry=BoxGeometry(x=x, y=y, width=size, height=size),
        style=Style(fill=fill, stroke_width=0, opacity=opacity),
    )


class TestParseColor:

    def test_hex(self):
        assert parse_color("#ff0000") == (255, 0, 0, 255)
        assert parse_color("#0f0") == (0, 255, 0, 255)

    def test_rgba_function_with_fractional_alpha(self):
        assert parse_color("rgba(66,135,245,0.5)") == (66, 135, 245, 128)
        assert parse_color("rgb( 1, 2, 3 )") == (1, 2, 3, 255)

    def test_opacity_folds_into_alpha(self):
        assert parse_color("#000000", opacity=0.5) == (0, 0, 0, 128)

    def test_named_color(self):
        assert parse_color("white") == (255, 255, 255, 255)

    def test_empty_and_transparent(self):
        assert parse_color(None) is None
        assert parse_color("") is None
        assert parse_color("transparent") is None

    def test_garbage_is_skipped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="affidraft.editor.export"):
            assert parse_color("not-a-color") is None
        assert "not-a-color" in caplog.text


class TestRender:

    def test_default_page_size_and_background(self):
        page = render([])
        assert page.size == (816, 1056)
        assert page.getpixel((5, 5)) == (255, 255, 255, 255)

    def test_custom_size(self):
        assert render([], width=200, height=100).size == (200, 100)

    def test_rectangle_fill(self):
        page = render([rectangle("r", "#ff0000")], width=100, height=100)
        assert page.getpixel((30, 30)) == (255, 0, 0, 255)
        assert page.getpixel((80, 80)) == (255, 255, 255, 255)

    def test_opacity_blends_with_page(self):
        page = render([rectangle("r", "#000000", opacity=0.5)], width=100, height=100)
        red, green, blue, _ = page.getpixel((30, 30))
        assert 120 <= red <= 135
        assert red == green == blue

    def test_later_objects_paint_on_top(self):
        objects = [rectangle("bottom", "#ff0000"), rectangle("top", "#0000ff")]
        page = render(objects, width=100, height=100)
        assert page.getpixel((30, 30)) == (0, 0, 255, 255)

        page = render(list(reversed(objects)), width=100, height=100)
        assert page.getpixel((30, 30)) == (255, 0, 0, 255)

    def test_line(self):
        line = LineObject(
            id="l",
            geometry=LineGeometry(x=0, y=50, end_x=100, end_y=50),
            style=Style(stroke="#00ff00", stroke_width=4),
        )
        page = render([line], width=100, height=100)
        assert page.getpixel((50, 50)) == (0, 255, 0, 255)

    def test_image_renders_as_frame(self):
        image = ImageObject(
            id="i",
            geometry=BoxGeometry(x=10, y=10, width=50, height=50),
            src="https://example.invalid/seal.png",
        )
        page = render([image], width=100, height=100)
        assert page.getpixel((10, 30)) == (153, 153, 153, 255)
        assert page.getpixel((35, 35)) == (153, 153, 153, 255)

    def test_text_draws_ink(self):
        text = TextObject(
            id="t",
            geometry=BoxGeometry(x=0, y=0, width=200, height=40),
            text="AFFIDAVIT",
            style=Style(fill="#000000", font_size=24),
        )
        page = render([text], width=200, height=40).convert("L")
        assert page.getextrema()[0] < 128

    def test_tiny_font_size_still_renders(self):
        text = TextObject(
            id="t",
            geometry=BoxGeometry(x=0, y=0, width=100, height=20),
            text="hi",
            style=Style(fill="#000000", font_size=0.5),
        )
        page = render([text], width=100, height=20)
        assert page.size == (100, 20)
        assert export_png([text], width=100, height=20).startswith(PNG_SIGNATURE)


class TestExportFormats:

    def test_png_bytes(self):
        data = export_png([rectangle("r", "#ff0000")], width=120, height=80)
        assert data.startswith(PNG_SIGNATURE)
        with Image.open(io.BytesIO(data)) as image:
            assert image.size == (120, 80)

    def test_pdf_is_not_available(self):
        with pytest.raises(FeatureNotAvailableError) as exc_info:
            export_pdf([])
        assert exc_info.value.feature == "PDF export"
