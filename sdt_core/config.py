# sdt_core/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str | None) -> str | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


DEFAULT_DURATION_MINUTES: int = 60

TEMPLATE_NAME_MAX: int = 255
MIN_QUESTION_COUNT: int = 1
MIN_ANSWER_OPTION_COUNT: int = 2

HISTORY_LIMIT_MAX: int = 100

# result image layout
MAX_IMAGE_WIDTH: int = 1080
# chars that fit on MAX_IMAGE_WIDTH at text size, minus a margin to the border
OPTIMUM_TEXT_LENGTH: int = 65
RENDER_DPI: float = 208.0
TEXT_SIZE_PT: float = 12.0
TITLE_SIZE_PT: float = 18.0
LINE_SPACING: float = 1.5
TOP_MARGIN_PX: int = 10
RESULT_TITLE: str = "ATEC Score Result"
FONT_PATH: str | None = None

DATA_DIR: str = "data"
LOG_LEVEL: str = "INFO"

# // env overrides for ops; defaults stay conservative.
DEFAULT_DURATION_MINUTES = _env_int("SDT_DEFAULT_DURATION_MINUTES", DEFAULT_DURATION_MINUTES)
HISTORY_LIMIT_MAX = _env_int("SDT_HISTORY_LIMIT_MAX", HISTORY_LIMIT_MAX)
MAX_IMAGE_WIDTH = _env_int("SDT_MAX_IMAGE_WIDTH", MAX_IMAGE_WIDTH)
OPTIMUM_TEXT_LENGTH = _env_int("SDT_OPTIMUM_TEXT_LENGTH", OPTIMUM_TEXT_LENGTH)
RESULT_TITLE = _env_str("SDT_RESULT_TITLE", RESULT_TITLE) or RESULT_TITLE
FONT_PATH = _env_str("SDT_FONT_PATH", FONT_PATH)
DATA_DIR = _env_str("SDT_DATA_DIR", DATA_DIR) or DATA_DIR
LOG_LEVEL = (_env_str("SDT_LOG_LEVEL", LOG_LEVEL) or LOG_LEVEL).upper()
