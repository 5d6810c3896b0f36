# sdt_core/render.py
"""JPEG rendering of a finished test result.

Layout: a centred title, then one centred line per group score followed by
the total, the indication text and the test id. Lines that would overflow the
maximum width are word-wrapped; the canvas is sized to the widest line.
"""
from __future__ import annotations

import io
import logging
import math
from typing import List, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from . import config
from .types import GroupScore, RenderedImage


log = logging.getLogger(__name__)

JPEG_CONTENT_TYPE = "image/jpeg"


def _px(points: float) -> float:
    return points * config.RENDER_DPI / 72.0


def load_font(path: Optional[str], points: float) -> ImageFont.ImageFont:
    size = _px(points)
    if path:
        return ImageFont.truetype(path, size=round(size))
    return ImageFont.load_default(size=size)


def word_wrap(text: str, max_chars: Optional[int] = None) -> List[str]:
    """Split ``text`` on whitespace into chunks of roughly ``max_chars``.

    Words are never broken; a chunk is closed once it reaches the limit.
    """

    limit = max_chars or config.OPTIMUM_TEXT_LENGTH
    words = text.split()
    if not words:
        return [text]

    lines: List[str] = []
    current = ""
    for word in words:
        current = f"{current} {word}" if current else word
        if len(current) >= limit:
            lines.append(current)
            current = ""
    if current:
        lines.append(current)
    return lines


def result_lines(
    group_scores: Sequence[GroupScore],
    total: int,
    indication_text: str,
    test_id: str,
    font: ImageFont.ImageFont,
) -> List[str]:
    raw = [f"{g.group_name}: {g.score}" for g in group_scores]
    raw.append(f"Total: {total}")
    raw.append(f"Indication: {indication_text}")
    raw.append(f"Test ID: {test_id}")

    lines: List[str] = []
    for line in raw:
        too_wide = math.ceil(font.getlength(line)) >= config.MAX_IMAGE_WIDTH
        if too_wide or len(line) >= config.OPTIMUM_TEXT_LENGTH:
            lines.extend(word_wrap(line))
        else:
            lines.append(line)
    return lines


def _canvas_width(title: str, lines: Sequence[str], title_font, text_font) -> int:
    widest = title_font.getlength(title)
    for line in lines:
        widest = max(widest, text_font.getlength(line))
    widest = math.ceil(widest)
    if widest >= config.MAX_IMAGE_WIDTH:
        return config.MAX_IMAGE_WIDTH
    return widest + 5 * widest // 100


def _canvas_height(n_lines: int) -> int:
    text_px = _px(config.TEXT_SIZE_PT)
    title_step = math.ceil(_px(config.TITLE_SIZE_PT) * config.LINE_SPACING)
    line_step = math.ceil(text_px * config.LINE_SPACING)
    return config.TOP_MARGIN_PX + math.ceil(text_px) + title_step + line_step * n_lines


def render_jpeg(
    title: str,
    group_scores: Sequence[GroupScore],
    total: int,
    indication_text: str,
    test_id: str,
    font: Optional[str] = None,
) -> RenderedImage:
    """Draw the result card and encode it as JPEG.

    Encoding failures are logged and yield an image with empty ``data``;
    a missing or unreadable font file raises OSError to the caller.
    """

    title_font = load_font(font, config.TITLE_SIZE_PT)
    text_font = load_font(font, config.TEXT_SIZE_PT)

    lines = result_lines(group_scores, total, indication_text, test_id, text_font)
    width = _canvas_width(title, lines, title_font, text_font)
    height = _canvas_height(len(lines))

    img = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(img)

    title_y = config.TOP_MARGIN_PX + math.ceil(_px(config.TITLE_SIZE_PT))
    draw.text(((width - title_font.getlength(title)) / 2, title_y), title, fill="black", font=title_font, anchor="ls")

    y = config.TOP_MARGIN_PX + math.ceil(_px(config.TEXT_SIZE_PT))
    y += math.ceil(_px(config.TITLE_SIZE_PT) * config.LINE_SPACING)
    step = math.ceil(_px(config.TEXT_SIZE_PT) * config.LINE_SPACING)
    for line in lines:
        x = math.ceil((width - text_font.getlength(line)) / 2)
        draw.text((x, y), line, fill="black", font=text_font, anchor="ls")
        y += step

    buf = io.BytesIO()
    try:
        img.save(buf, format="JPEG")
    except (OSError, ValueError):
        log.exception("failed to encode result image for test %s", test_id)
        return RenderedImage(content_type=JPEG_CONTENT_TYPE)
    return RenderedImage(content_type=JPEG_CONTENT_TYPE, data=buf.getvalue())
