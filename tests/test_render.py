from __future__ import annotations

import io
import math

from PIL import Image

from sdt_core import config, render
from sdt_core.types import GroupScore


def _scores(n: int = 3) -> list[GroupScore]:
    return [GroupScore(f"Group {i}", i + 1) for i in range(n)]


def test_render_is_decodable_jpeg():
    img = render.render_jpeg("ATEC Score Result", _scores(), 6, "no indication", "t-1")
    assert img.content_type == "image/jpeg"
    decoded = Image.open(io.BytesIO(img.data))
    assert decoded.format == "JPEG"
    assert decoded.width <= config.MAX_IMAGE_WIDTH


def test_height_grows_with_lines():
    small = Image.open(io.BytesIO(render.render_jpeg("T", _scores(1), 1, "x", "t").data))
    large = Image.open(io.BytesIO(render.render_jpeg("T", _scores(6), 21, "x", "t").data))
    step = math.ceil(config.TEXT_SIZE_PT * config.RENDER_DPI / 72 * config.LINE_SPACING)
    assert large.height - small.height == 5 * step


def test_long_indication_is_wrapped():
    font = render.load_font(None, config.TEXT_SIZE_PT)
    long_text = " ".join(["indication"] * 30)
    lines = render.result_lines(_scores(), 6, long_text, "t-1", font)
    assert lines[:4] == ["Group 0: 1", "Group 1: 2", "Group 2: 3", "Total: 6"]
    assert lines[-1] == "Test ID: t-1"
    wrapped = lines[4:-1]
    assert len(wrapped) > 1
    assert " ".join(wrapped) == f"Indication: {long_text}"


def test_width_is_capped():
    wide_id = "W" * 120
    img = Image.open(io.BytesIO(render.render_jpeg("T", _scores(), 6, "x", wide_id).data))
    assert img.width == config.MAX_IMAGE_WIDTH


def test_word_wrap_never_splits_words():
    assert render.word_wrap("aaa bbb ccc ddd", max_chars=7) == ["aaa bbb", "ccc ddd"]
    assert render.word_wrap("superlongword tail", max_chars=5) == ["superlongword", "tail"]
    assert render.word_wrap("   ") == ["   "]


def test_short_canvas_is_widest_line_plus_margin():
    title_font = render.load_font(None, config.TITLE_SIZE_PT)
    text_font = render.load_font(None, config.TEXT_SIZE_PT)
    lines = ["Total: 1"]
    widest = math.ceil(max(title_font.getlength("Result"), text_font.getlength("Total: 1")))
    assert render._canvas_width("Result", lines, title_font, text_font) == widest + 5 * widest // 100


def test_encode_failure_yields_empty_image(monkeypatch):
    def broken_save(self, fp, format=None, **params):
        raise OSError("encoder missing")

    monkeypatch.setattr(Image.Image, "save", broken_save)
    img = render.render_jpeg("T", _scores(), 6, "x", "t-1")
    assert img.content_type == "image/jpeg"
    assert img.data == b""
