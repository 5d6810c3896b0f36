from __future__ import annotations

import dataclasses
import random
from datetime import datetime, timedelta, timezone

import pytest

from sdt_core.catalog import Catalog
from sdt_core.lifecycle import TestLifecycle
from sdt_core.storage import JsonStore
from sdt_core.tokens import SubmitKeyCryptor
from sdt_core.types import (
    AnswerOption,
    AnswerSet,
    Package,
    PackageRecord,
    Question,
    SubGroup,
    SubGroupSchema,
    SubmittedAnswer,
    SubmittedGroup,
    Template,
)
from sdt_core.validators import ContentValidator

GROUPS = ("Language", "Social", "Sensory")
START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def build_synthetic_template(
    *,
    groups: tuple[str, ...] = GROUPS,
    question_count: int = 2,
    answer_option_count: int = 3,
    threshold: int = 10,
) -> Template:
    """Template whose points range over [len(groups), sum(q * a)]."""

    return Template(
        name="ATEC screening",
        indication_threshold=threshold,
        positive_text="no indication of speech delay",
        negative_text="indication of speech delay, consult a therapist",
        sub_groups=[SubGroupSchema(g, question_count, answer_option_count) for g in groups],
    )


def build_synthetic_package(
    *,
    template_id: str = "tmpl-1",
    groups: tuple[str, ...] = GROUPS,
    questions_per_group: int = 2,
    values: tuple[int, ...] = (1, 2, 3),
) -> Package:
    """Answers are labelled A, B, C... and carry ``values`` in order."""

    labels = [chr(ord("A") + i) for i in range(len(values))]
    return Package(
        name="ATEC package 1",
        template_id=template_id,
        sub_groups=[
            SubGroup(
                name=g,
                questions=[
                    Question(
                        text=f"{g} question #{i}",
                        answers=[AnswerOption(text=lbl, value=v) for lbl, v in zip(labels, values)],
                    )
                    for i in range(questions_per_group)
                ],
            )
            for g in groups
        ],
    )


def answer_all(package: Package, choice: str = "A") -> AnswerSet:
    """Answer every question of ``package`` with the option labelled ``choice``."""

    return AnswerSet(
        groups=[
            SubmittedGroup(
                group_name=g.name,
                answers=[SubmittedAnswer(question=q.text, answer=choice) for q in g.questions],
            )
            for g in package.sub_groups
        ]
    )


class FrozenClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw) -> None:
        self.now += timedelta(**kw)


def seed_active_package(catalog: Catalog, template: Template | None = None, package: Package | None = None) -> PackageRecord:
    tmpl = catalog.create_template(template or build_synthetic_template(), created_by="admin")
    catalog.change_template_active_status(tmpl.id, True)
    package = dataclasses.replace(package, template_id=tmpl.id) if package else build_synthetic_package(template_id=tmpl.id)
    pack = catalog.create_package(package, created_by="admin")
    return catalog.change_package_active_status(pack.id, True)


@pytest.fixture
def validator() -> ContentValidator:
    return ContentValidator()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path, rng=random.Random(7))


@pytest.fixture
def catalog(store, validator, clock) -> Catalog:
    return Catalog(store.templates, store.packages, validator, clock=clock)


@pytest.fixture
def lifecycle(store, clock) -> TestLifecycle:
    return TestLifecycle(store.packages, store.tests, store, SubmitKeyCryptor(), clock=clock)


@pytest.fixture
def active_package(catalog) -> PackageRecord:
    return seed_active_package(catalog)
