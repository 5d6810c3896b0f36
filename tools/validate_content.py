"""Validate template and package JSON documents before uploading them.

    python -m tools.validate_content templates/atec.json packages/*.json
    python -m tools.validate_content --full templates/atec.json

Exit status: 0 when every file is valid, 1 when any file fails validation,
2 when a file can't be read.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sdt_core import codec, config
from sdt_core.errors import ValidationError
from sdt_core.validators import ContentValidator

log = logging.getLogger("tools.validate_content")

PACKAGE_KEYS = ("packageName", "templateID")


def detect_kind(doc: dict) -> str:
    return "package" if any(k in doc for k in PACKAGE_KEYS) else "template"


def check_file(path: Path, kind: str, full: bool, validator: ContentValidator) -> Optional[ValidationError]:
    """Return the first validation error in ``path``, or None when it is valid."""

    doc = json.loads(path.read_text(encoding="utf-8"))
    if kind == "auto":
        kind = detect_kind(doc)

    try:
        if kind == "package":
            validator.validate_package(codec.package_from_json(doc))
            return None
        template = codec.template_from_json(doc)
        if full:
            validator.validate_threshold(template)
        else:
            validator.validate_template(template)
    except ValidationError as err:
        return err
    return None


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Validate sd template/package JSON files.")
    ap.add_argument("files", nargs="+", type=Path)
    ap.add_argument("--kind", choices=["auto", "template", "package"], default="auto")
    ap.add_argument("--full", action="store_true", help="also check the template indication threshold bounds")
    a = ap.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(message)s")
    validator = ContentValidator()

    status = 0
    for path in a.files:
        try:
            err = check_file(path, a.kind, a.full, validator)
        except (OSError, json.JSONDecodeError) as exc:
            log.error("%s: can't read file: %s", path, exc)
            status = 2
            continue
        if err is None:
            print(f"{path}: ok")
            continue
        where = f" at {err.path}" if err.path else ""
        print(f"{path}: {err.kind.value}{where}: {err.message}")
        status = max(status, 1)
    return status


if __name__ == "__main__":
    sys.exit(main())
