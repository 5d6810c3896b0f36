from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import timedelta
from typing import List, Optional

from sdt_core import config
from sdt_core.errors import SDTError
from sdt_core.lifecycle import TestLifecycle
from sdt_core.storage import JsonStore
from sdt_core.tokens import SubmitKeyCryptor
from sdt_core.types import AnswerSet, PackageSelector, SubmittedAnswer, SubmittedGroup, TestQuestion


def ask(question: TestQuestion) -> str:
    print(question.question)
    for i, opt in enumerate(question.answers):
        print(f"  [{i}] {opt}")
    while True:
        v = input("Your choice (index): ").strip()
        if v.isdigit() and int(v) < len(question.answers):
            return question.answers[int(v)]
        print("Enter a number index.")


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Take a speech delay test from the console.")
    ap.add_argument("--data-dir", default=config.DATA_DIR)
    ap.add_argument("--package-id")
    ap.add_argument("--user-id")
    ap.add_argument("--minutes", type=int, default=config.DEFAULT_DURATION_MINUTES)
    ap.add_argument("--title", default=config.RESULT_TITLE)
    ap.add_argument("--out", default="reports")
    a = ap.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(message)s")

    store = JsonStore(a.data_dir)
    lifecycle = TestLifecycle(store.packages, store.tests, store, SubmitKeyCryptor())

    try:
        started = lifecycle.initiate(
            PackageSelector(package_id=a.package_id, user_id=a.user_id), timedelta(minutes=a.minutes)
        )
        print(f"{started.package_name}: test {started.test.id}, open until {started.test.open_until:%H:%M} UTC")

        groups: List[SubmittedGroup] = []
        for group_name, questions in started.questions.items():
            print(f"\n--- {group_name} ---")
            answers = [SubmittedAnswer(question=q.question, answer=ask(q)) for q in questions]
            groups.append(SubmittedGroup(group_name=group_name, answers=answers))

        result = lifecycle.submit(started.test.id, started.submit_key, AnswerSet(groups=groups))
        image = lifecycle.render_result(started.test.id, title=a.title)
    except KeyboardInterrupt:
        print("\nStopped by user.")
        return 130
    except SDTError as err:
        print(f"error ({err.kind.value}): {err.message}")
        return 1

    for g in result.groups:
        print(f"{g.group_name}: {g.score}")
    print(f"Total: {result.total}")

    os.makedirs(a.out, exist_ok=True)
    path = os.path.join(a.out, f"result_{started.test.id}.jpg")
    with open(path, "wb") as fh:
        fh.write(image.data)
    print(f"Done. Result image saved to: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
