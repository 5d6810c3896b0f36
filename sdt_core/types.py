# sdt_core/types.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass
class SubGroupSchema:
    name: str
    question_count: int
    answer_option_count: int


@dataclass
class Template:
    name: str
    indication_threshold: int
    positive_text: str
    negative_text: str
    sub_groups: List[SubGroupSchema] = field(default_factory=list)

    @property
    def min_point(self) -> int:
        # every group scores at least 1 point: each answer value is >= 1
        return len(self.sub_groups)

    @property
    def max_point(self) -> int:
        return sum(g.question_count * g.answer_option_count for g in self.sub_groups)


@dataclass
class TemplateRecord:
    id: str
    template: Template
    created_by: Optional[str] = None
    is_active: bool = False
    is_locked: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass
class AnswerOption:
    text: str
    value: int


@dataclass
class Question:
    text: str
    answers: List[AnswerOption] = field(default_factory=list)


@dataclass
class SubGroup:
    name: str
    questions: List[Question] = field(default_factory=list)


@dataclass
class Package:
    name: str
    template_id: str
    sub_groups: List[SubGroup] = field(default_factory=list)


@dataclass
class PackageRecord:
    id: str
    package: Package
    created_by: Optional[str] = None
    is_active: bool = False
    is_locked: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def template_id(self) -> str:
        return self.package.template_id


@dataclass
class SubmittedAnswer:
    question: str
    answer: str


@dataclass
class SubmittedGroup:
    group_name: str
    answers: List[SubmittedAnswer] = field(default_factory=list)


@dataclass
class AnswerSet:
    groups: List[SubmittedGroup] = field(default_factory=list)


@dataclass(frozen=True)
class GroupScore:
    group_name: str
    score: int


@dataclass
class GradedResult:
    groups: List[GroupScore] = field(default_factory=list)
    total: int = 0


@dataclass
class Test:
    __test__ = False  # not a pytest class

    id: str
    package_id: str
    open_until: datetime
    submit_key: str
    user_id: Optional[str] = None
    answer: Optional[AnswerSet] = None
    result: Optional[GradedResult] = None
    finished_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None


@dataclass
class TestQuestion:
    __test__ = False

    question: str
    answers: List[str] = field(default_factory=list)


@dataclass
class InitiatedTest:
    test: Test
    submit_key: str
    package_name: str
    questions: Dict[str, List[TestQuestion]] = field(default_factory=dict)


@dataclass(frozen=True)
class PackageSelector:
    package_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class RenderedImage:
    content_type: str
    data: bytes = b""


def question_sheet(package: Package) -> Dict[str, List[TestQuestion]]:
    """Package content as shown to the test taker: answer values stay hidden."""

    return {
        g.name: [TestQuestion(question=q.text, answers=[a.text for a in q.answers]) for q in g.questions]
        for g in package.sub_groups
    }


@dataclass(frozen=True)
class StatisticEntry:
    test_id: str
    package_id: str
    package_name: str
    total: int
    finished_at: datetime


@dataclass
class TemplateStatistic:
    """One user's finished tests on packages built from a single template."""

    template_id: str
    template_name: str
    indication_threshold: int
    positive_text: str
    negative_text: str
    entries: List[StatisticEntry] = field(default_factory=list)
