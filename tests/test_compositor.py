"""Tests for mockup compositing.

Properties:
- Artwork pixels land only inside the (clamped) placement rectangle
- Output size and template pixels outside the rectangle are unchanged
- Aspect ratio is kept (transparent padding, never stretched)
- Same inputs -> byte-identical PNG
"""

from __future__ import annotations

import base64
import io

import pytest
from hypothesis import given, settings as hsettings
from hypothesis import strategies as st
from PIL import Image

from mockup_forge.compositor import (
    clamp_placement,
    compose,
    fit_within,
    load_artwork,
    load_template,
    render_mockup,
    render_mockup_b64,
)
from mockup_forge.errors import ArtworkImageError, TemplateError
from mockup_forge.models import Placement

WHITE = (255, 255, 255)
RED = (220, 20, 20, 255)


def _template(size=(200, 160)) -> Image.Image:
    return Image.new("RGB", size, WHITE)


def _artwork(size=(50, 50), color=RED) -> Image.Image:
    return Image.new("RGBA", size, color)


class TestClampPlacement:
    def test_inside_unchanged(self):
        p = Placement(top=10, left=20, width=30, height=40)
        assert clamp_placement(p, (200, 200)) == p

    def test_overflow_clipped(self):
        p = Placement(top=150, left=180, width=50, height=50)
        assert clamp_placement(p, (200, 160)) == Placement(top=150, left=180, width=20, height=10)

    def test_negative_origin_clipped(self):
        p = Placement(top=-10, left=-5, width=30, height=30)
        assert clamp_placement(p, (100, 100)) == Placement(top=0, left=0, width=25, height=20)

    def test_entirely_outside_is_empty(self):
        p = Placement(top=500, left=500, width=10, height=10)
        clamped = clamp_placement(p, (100, 100))
        assert clamped.width == 0 or clamped.height == 0


class TestFitWithin:
    def test_exact_canvas_size(self):
        canvas = fit_within(_artwork((300, 100)), 90, 90)
        assert canvas.size == (90, 90)
        assert canvas.mode == "RGBA"

    def test_aspect_ratio_kept_with_transparent_padding(self):
        canvas = fit_within(_artwork((300, 100)), 90, 90)
        # 300x100 scaled to 90x30, centred vertically
        assert canvas.getpixel((45, 0))[3] == 0
        assert canvas.getpixel((45, 89))[3] == 0
        assert canvas.getpixel((45, 45))[3] == 255

    def test_upscales_small_artwork(self):
        canvas = fit_within(_artwork((10, 10)), 80, 80)
        assert canvas.getpixel((0, 0))[3] == 255
        assert canvas.getpixel((79, 79))[3] == 255


class TestCompose:
    def test_artwork_inside_rectangle(self):
        result = compose(_artwork(), _template(), Placement(top=20, left=30, width=50, height=50))
        assert result.size == (200, 160)
        assert result.getpixel((55, 45))[:3] == RED[:3]
        assert result.getpixel((10, 10)) == WHITE
        assert result.getpixel((81, 45)) == WHITE

    def test_rgb_template_gives_rgb_output(self):
        result = compose(_artwork(), _template(), Placement(0, 0, 10, 10))
        assert result.mode == "RGB"

    def test_rgba_template_keeps_alpha(self):
        template = Image.new("RGBA", (100, 100), (0, 0, 0, 0))
        result = compose(_artwork(), template, Placement(0, 0, 10, 10))
        assert result.mode == "RGBA"

    def test_empty_rectangle_leaves_template(self):
        template = _template()
        result = compose(_artwork(), template, Placement(top=900, left=900, width=50, height=50))
        assert list(result.getdata()) == list(template.getdata())

    def test_transparent_artwork_pixels_show_template(self):
        art = Image.new("RGBA", (50, 50), (0, 0, 0, 0))
        result = compose(art, _template(), Placement(0, 0, 50, 50))
        assert result.getpixel((25, 25)) == WHITE

    @hsettings(max_examples=40, deadline=None)
    @given(
        top=st.integers(min_value=-50, max_value=200),
        left=st.integers(min_value=-50, max_value=250),
        width=st.integers(min_value=0, max_value=150),
        height=st.integers(min_value=0, max_value=150),
        art_w=st.integers(min_value=1, max_value=120),
        art_h=st.integers(min_value=1, max_value=120),
    )
    def test_never_draws_outside_rectangle(self, top, left, width, height, art_w, art_h):
        template = _template()
        placement = Placement(top=top, left=left, width=width, height=height)
        result = compose(_artwork((art_w, art_h)), template, placement)

        assert result.size == template.size
        rect = clamp_placement(placement, template.size)
        for x, y in [(0, 0), (199, 0), (0, 159), (199, 159), (100, 80)]:
            inside = rect.left <= x < rect.left + rect.width and rect.top <= y < rect.top + rect.height
            if not inside:
                assert result.getpixel((x, y)) == WHITE


class TestRender:
    def test_deterministic_png(self, tmp_path):
        path = tmp_path / "t.png"
        _template().save(path)
        art = _artwork((64, 48))
        placement = Placement(top=10, left=10, width=100, height=100)

        first = render_mockup(art, path, placement)
        second = render_mockup(art, path, placement)
        assert first == second
        assert Image.open(io.BytesIO(first)).size == (200, 160)

    def test_b64_matches_png(self, tmp_path):
        path = tmp_path / "t.png"
        _template().save(path)
        placement = Placement(0, 0, 20, 20)
        encoded = render_mockup_b64(_artwork(), path, placement)
        assert base64.b64decode(encoded) == render_mockup(_artwork(), path, placement)

    def test_missing_template_raises(self, tmp_path):
        with pytest.raises(TemplateError, match="not found"):
            render_mockup(_artwork(), tmp_path / "missing.png", Placement(0, 0, 10, 10))

    def test_unreadable_template_raises(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(TemplateError):
            load_template(path)

    def test_oversized_template_raises(self, tmp_path, monkeypatch):
        path = tmp_path / "huge.png"
        _template().save(path)
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        with pytest.raises(TemplateError, match="unreadable"):
            load_template(path)


class TestLoadArtwork:
    def test_decodes_png(self, make_png):
        image = load_artwork(make_png((12, 8)))
        assert image.size == (12, 8)

    def test_garbage_raises(self):
        with pytest.raises(ArtworkImageError):
            load_artwork(b"<html>not found</html>")
