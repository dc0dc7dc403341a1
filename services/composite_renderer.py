"""Composite reading renderer.

Lays out the source portrait and both generated cards side by side on one
canvas, with a title above each panel and its wrapped caption below, and
encodes the result as PNG for download.

Public class: `CompositeRenderer`

Example:
    renderer = CompositeRenderer()
    png_bytes = renderer.render(source, primary, secondary, person_description=..., ...)
"""
from __future__ import annotations

import io
import logging
import os
import re
from typing import Callable, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from models.errors import CompositionError, MissingArtifactError
from models.reading_models import GeneratedArtifact, ImagePayload

LOGGER = logging.getLogger(__name__)

PADDING = 60
PANEL_WIDTH = 450
PANEL_HEIGHT = int(PANEL_WIDTH * 1.5)
GAP = 40
HEADER_HEIGHT = 50
TEXT_BLOCK_HEIGHT = 150
TITLE_OFFSET = 15
CAPTION_OFFSET = 40
CAPTION_MARGIN = 20
LINE_HEIGHT = 22

TITLE_FONT_SIZE = 32
CAPTION_FONT_SIZE = 16

BACKGROUND = (16, 15, 28)
TITLE_COLOR = (253, 230, 138)
CAPTION_COLOR = (203, 213, 225)

SOURCE_TITLE = "Source"

FONT_PATH = os.getenv("TAROT_FONT_PATH")


def card_filename(card_name: str) -> str:
    """Download name for a single card, e.g. ``The_High_Priestess-Card.png``."""
    return f"{_underscored(card_name)}-Card.png"


def composite_filename(primary_name: str) -> str:
    """Download name for the full reading, e.g. ``My-The_Star-Reading.png``."""
    return f"My-{_underscored(primary_name)}-Reading.png"


def _underscored(name: str) -> str:
    return re.sub(r"\s+", "_", name)


def cover_box(source_size: Tuple[int, int], target_size: Tuple[int, int]) -> Tuple[float, float, float, float]:
    """Return the centered crop of ``source_size`` that fills ``target_size``.

    The crop keeps the target aspect ratio, trimming the longer axis evenly on
    both sides, so scaling it to the target never stretches the image.
    """
    src_w, src_h = source_size
    target_w, target_h = target_size
    target_ratio = target_w / target_h
    if src_w / src_h > target_ratio:
        crop_w = src_h * target_ratio
        left = (src_w - crop_w) / 2
        return (left, 0.0, left + crop_w, float(src_h))
    crop_h = src_w / target_ratio
    top = (src_h - crop_h) / 2
    return (0.0, top, float(src_w), top + crop_h)


def wrap_lines(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """Greedily pack words into lines no wider than ``max_width``.

    Explicit newlines always start a new line. A single word wider than
    ``max_width`` is kept whole on its own line.

    Args:
        text: Caption text.
        max_width: Maximum rendered width of a line.
        measure: Returns the rendered width of a string.
    """
    words = text.replace("\n", " \n ").split(" ")
    lines: List[str] = []
    line = ""
    for word in words:
        if word == "\n":
            lines.append(line.strip())
            line = ""
            continue
        if not word:
            continue
        test_line = f"{line}{word} "
        if line.strip() and measure(test_line) > max_width:
            lines.append(line.strip())
            line = f"{word} "
        else:
            line = test_line
    lines.append(line.strip())
    return lines


def _load_font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    if FONT_PATH and os.path.exists(FONT_PATH):
        try:
            return ImageFont.truetype(FONT_PATH, size)
        except OSError:
            LOGGER.warning("Could not load font %s, falling back to the default font", FONT_PATH)
    return ImageFont.load_default(size=size)


def _decode(data: bytes, label: str) -> Image.Image:
    """Open image bytes as RGBA, raising CompositionError when they cannot be decoded."""
    if not data:
        raise CompositionError(f"{label} image is empty.")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise CompositionError(f"{label} image could not be decoded: {exc}") from exc


class CompositeRenderer:
    """Render the three-panel reading image.

    Args:
        background: RGB fill for the canvas and behind transparent images.
        font_loader: Returns a font for a pixel size. Defaults to `TAROT_FONT_PATH`
            when set, otherwise Pillow's bundled font.
    """

    def __init__(
        self,
        background: Tuple[int, int, int] = BACKGROUND,
        font_loader: Callable[[int], ImageFont.ImageFont | ImageFont.FreeTypeFont] = _load_font,
    ) -> None:
        self.background = background
        self.font_loader = font_loader

    @property
    def canvas_size(self) -> Tuple[int, int]:
        width = PANEL_WIDTH * 3 + GAP * 2 + PADDING * 2
        height = PADDING + HEADER_HEIGHT + PANEL_HEIGHT + TEXT_BLOCK_HEIGHT + PADDING
        return width, height

    def panel_x(self, index: int) -> int:
        return PADDING + index * (PANEL_WIDTH + GAP)

    def render(
        self,
        source: ImagePayload,
        primary: GeneratedArtifact,
        secondary: Optional[GeneratedArtifact],
        *,
        person_description: str,
        primary_name: str,
        primary_explanation: str,
        secondary_name: Optional[str],
        secondary_explanation: Optional[str],
    ) -> bytes:
        """Build the composite and return it as PNG bytes.

        Raises:
            MissingArtifactError: If the second card, its name, or its explanation is missing.
            CompositionError: If any of the three images cannot be decoded.
        """
        if secondary is None or not secondary_name or not secondary_explanation:
            raise MissingArtifactError("The composite needs both cards and their explanations.")

        # Decode everything up front so a bad image never yields a half-drawn canvas.
        images = [
            _decode(source.data, "Source"),
            _decode(primary.data, primary_name),
            _decode(secondary.data, secondary_name),
        ]
        titles = [SOURCE_TITLE, primary_name, secondary_name]
        captions = [person_description, primary_explanation, secondary_explanation]

        canvas = Image.new("RGB", self.canvas_size, self.background)
        draw = ImageDraw.Draw(canvas)
        title_font = self.font_loader(TITLE_FONT_SIZE)
        caption_font = self.font_loader(CAPTION_FONT_SIZE)

        title_y = PADDING + HEADER_HEIGHT - TITLE_OFFSET
        image_y = PADDING + HEADER_HEIGHT
        caption_y = image_y + PANEL_HEIGHT + CAPTION_OFFSET

        for index, (img, title, caption) in enumerate(zip(images, titles, captions)):
            x = self.panel_x(index)
            center_x = x + PANEL_WIDTH / 2
            draw.text((center_x, title_y), title, font=title_font, fill=TITLE_COLOR, anchor="ms")

            fitted = img.resize((PANEL_WIDTH, PANEL_HEIGHT), Image.LANCZOS, box=cover_box(img.size, (PANEL_WIDTH, PANEL_HEIGHT)))
            canvas.paste(fitted, (x, image_y), mask=fitted.split()[3])

            lines = wrap_lines(caption, PANEL_WIDTH - CAPTION_MARGIN, caption_font.getlength)
            for line_index, line in enumerate(lines):
                y = caption_y + line_index * LINE_HEIGHT
                draw.text((center_x, y), line, font=caption_font, fill=CAPTION_COLOR, anchor="ms")

        out_io = io.BytesIO()
        canvas.save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()
