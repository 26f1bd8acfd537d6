"""Mockup compositing: fit the artwork into a template's placement rectangle.

compose() is a pure function of (source, template, placement):

1. The rectangle is clamped to the template bounds (never reads or writes
   outside the template's pixels; an empty rectangle leaves the template as is)
2. The source is resized to fit inside the rectangle, aspect ratio kept,
   centred on a fully transparent canvas of exactly the rectangle's size
3. The canvas is alpha-composited (source-over) onto the template at
   (left, top) and the result flattened to a single image
"""

from __future__ import annotations

import base64
import io
import logging
from pathlib import Path

from PIL import Image

from mockup_forge.errors import ArtworkImageError, TemplateError
from mockup_forge.models import Placement

logger = logging.getLogger(__name__)

_ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}


def clamp_placement(placement: Placement, size: tuple[int, int]) -> Placement:
    """Intersect the placement rectangle with an image of ``size``."""
    width, height = size
    left = max(0, placement.left)
    top = max(0, placement.top)
    right = min(width, placement.left + placement.width)
    bottom = min(height, placement.top + placement.height)
    return Placement(
        top=top,
        left=left,
        width=max(0, right - left),
        height=max(0, bottom - top),
    )


def fit_within(source: Image.Image, width: int, height: int) -> Image.Image:
    """Resize ``source`` to fit ``width`` x ``height``, padded with transparency."""
    src_w, src_h = source.size
    scale = min(width / src_w, height / src_h)
    new_w = min(width, max(1, round(src_w * scale)))
    new_h = min(height, max(1, round(src_h * scale)))

    resized = source.convert("RGBA").resize((new_w, new_h), Image.Resampling.LANCZOS)
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    canvas.paste(resized, ((width - new_w) // 2, (height - new_h) // 2))
    return canvas


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in _ALPHA_MODES or "transparency" in image.info


def compose(
    source: Image.Image, template: Image.Image, placement: Placement
) -> Image.Image:
    """Overlay ``source`` onto ``template`` inside ``placement``."""
    base = template.convert("RGBA")
    rect = clamp_placement(placement, base.size)

    if rect.width > 0 and rect.height > 0:
        overlay = fit_within(source, rect.width, rect.height)
        base.alpha_composite(overlay, dest=(rect.left, rect.top))
    else:
        logger.warning(
            "Placement %s lies outside template %dx%d, artwork not placed",
            placement,
            *base.size,
        )

    if _has_alpha(template):
        return base
    return base.convert("RGB")


# ── Loading and encoding ─────────────────────────────────────────────────


def load_artwork(data: bytes) -> Image.Image:
    """Decode downloaded artwork bytes."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ArtworkImageError(f"Artwork image could not be decoded: {exc}") from exc
    return image


def load_template(path: Path) -> Image.Image:
    """Open a template image from disk."""
    try:
        with Image.open(path) as image:
            image.load()
            return image.copy()
    except FileNotFoundError as exc:
        raise TemplateError(f"Template not found: {path}") from exc
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise TemplateError(f"Template unreadable: {path} ({exc})") from exc


def to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def render_mockup(
    artwork: Image.Image, template_path: Path, placement: Placement
) -> bytes:
    """Compose ``artwork`` onto the template file and return PNG bytes."""
    template = load_template(template_path)
    return to_png(compose(artwork, template, placement))


def render_mockup_b64(
    artwork: Image.Image, template_path: Path, placement: Placement
) -> str:
    return base64.b64encode(render_mockup(artwork, template_path, placement)).decode("ascii")
