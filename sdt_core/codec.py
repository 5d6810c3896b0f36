# sdt_core/codec.py
"""JSON boundary for templates, packages, answers, results and stored records.

Wire documents use the camelCase field names of the public API. Parsing only
checks shape and types; content rules (required text, counts, unique values)
belong to ``ContentValidator``, so missing strings and lists default to empty
and are reported there with a precise path.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic import ValidationError as PydanticValidationError

from .errors import ErrorKind, ValidationError
from .types import (
    AnswerOption,
    AnswerSet,
    GradedResult,
    GroupScore,
    InitiatedTest,
    Package,
    PackageRecord,
    Question,
    SubGroup,
    SubGroupSchema,
    SubmittedAnswer,
    SubmittedGroup,
    Template,
    TemplateRecord,
    TemplateStatistic,
    Test,
)


Raw = Union[str, bytes, Dict[str, Any]]
M = TypeVar("M", bound=BaseModel)


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---- Template ----
class SubGroupSchemaModel(_Wire):
    name: str = ""
    question_count: StrictInt = Field(0, alias="questionCount")
    answer_option_count: StrictInt = Field(0, alias="answerOptionCount")


class TemplateModel(_Wire):
    name: str = ""
    indication_threshold: StrictInt = Field(0, alias="indicationThreshold")
    positive_text: str = Field("", alias="positiveIndicationText")
    negative_text: str = Field("", alias="negativeIndicationText")
    sub_groups: List[SubGroupSchemaModel] = Field(default_factory=list, alias="subGroupDetails")


# ---- Package ----
class AnswerOptionModel(_Wire):
    text: str = ""
    value: StrictInt = 0


class QuestionModel(_Wire):
    question: str = ""
    answers: List[AnswerOptionModel] = Field(default_factory=list, alias="answerAndValue")


class SubGroupModel(_Wire):
    name: str = ""
    questions: List[QuestionModel] = Field(default_factory=list, alias="questionAndAnswerLists")


class PackageModel(_Wire):
    name: str = Field("", alias="packageName")
    template_id: str = Field("", alias="templateID")
    sub_groups: List[SubGroupModel] = Field(default_factory=list, alias="subGroupDetails")


# ---- Answers and results ----
class SubmittedAnswerModel(_Wire):
    question: str = ""
    answer: str = ""


class SubmittedGroupModel(_Wire):
    group_name: str = Field("", alias="groupName")
    answers: List[SubmittedAnswerModel] = Field(default_factory=list)


class AnswerSetModel(_Wire):
    groups: List[SubmittedGroupModel] = Field(default_factory=list, alias="testAnswers")


class GroupScoreModel(_Wire):
    group_name: str = Field(alias="groupName")
    score: StrictInt = Field(alias="result")


class GradedResultModel(_Wire):
    groups: List[GroupScoreModel] = Field(default_factory=list, alias="result")
    total: StrictInt = 0


class SubmissionModel(_Wire):
    test_id: str = Field(alias="testID")
    submit_key: str = Field(alias="submitKey")
    answers: AnswerSetModel


# ---- Stored records ----
class TemplateRecordModel(_Wire):
    id: str
    created_by: Optional[str] = Field(None, alias="createdBy")
    template: TemplateModel
    is_active: bool = Field(False, alias="isActive")
    is_locked: bool = Field(False, alias="isLocked")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    deleted_at: Optional[datetime] = Field(None, alias="deletedAt")


class PackageRecordModel(_Wire):
    id: str
    created_by: Optional[str] = Field(None, alias="createdBy")
    package: PackageModel
    is_active: bool = Field(False, alias="isActive")
    is_locked: bool = Field(False, alias="isLocked")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    deleted_at: Optional[datetime] = Field(None, alias="deletedAt")


class SDTestModel(_Wire):
    id: str
    package_id: str = Field(alias="packageID")
    user_id: Optional[str] = Field(None, alias="userID")
    answer: Optional[AnswerSetModel] = None
    result: Optional[GradedResultModel] = None
    open_until: datetime = Field(alias="openUntil")
    finished_at: Optional[datetime] = Field(None, alias="finishedAt")
    submit_key: str = Field(alias="submitKey")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class StatisticEntryModel(_Wire):
    test_id: str = Field(alias="testResultID")
    package_id: str = Field(alias="packageID")
    package_name: str = Field(alias="packageName")
    total: StrictInt = Field(alias="resultPoint")
    finished_at: datetime = Field(alias="testFinishedAt")


class TemplateStatisticModel(_Wire):
    template_id: str = Field(alias="templateID")
    template_name: str = Field(alias="templateName")
    indication_threshold: StrictInt = Field(alias="indicationThreshold")
    positive_text: str = Field(alias="positiveIndicationText")
    negative_text: str = Field(alias="negativeIndicationText")
    entries: List[StatisticEntryModel] = Field(default_factory=list, alias="stats")


def _parse(model: Type[M], data: Raw) -> M:
    try:
        if isinstance(data, (str, bytes)):
            return model.model_validate_json(data)
        return model.model_validate(data)
    except PydanticValidationError as err:
        first = err.errors()[0] if err.errors() else {}
        path = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(
            ErrorKind.INVALID_PAYLOAD,
            f"malformed {model.__name__.replace('Model', '').lower()} payload: {first.get('msg', str(err))}",
            path=path,
        ) from err


def _dump(m: BaseModel) -> Dict[str, Any]:
    return m.model_dump(mode="json", by_alias=True)


def dumps(doc: Dict[str, Any]) -> str:
    return json.dumps(doc, indent=2, ensure_ascii=False)


# ---- Template ----
def _template(m: TemplateModel) -> Template:
    return Template(
        name=m.name,
        indication_threshold=m.indication_threshold,
        positive_text=m.positive_text,
        negative_text=m.negative_text,
        sub_groups=[SubGroupSchema(g.name, g.question_count, g.answer_option_count) for g in m.sub_groups],
    )


def _template_model(t: Template) -> TemplateModel:
    return TemplateModel(
        name=t.name,
        indication_threshold=t.indication_threshold,
        positive_text=t.positive_text,
        negative_text=t.negative_text,
        sub_groups=[
            SubGroupSchemaModel(
                name=g.name, question_count=g.question_count, answer_option_count=g.answer_option_count
            )
            for g in t.sub_groups
        ],
    )


def template_from_json(data: Raw) -> Template:
    return _template(_parse(TemplateModel, data))


def template_to_json(t: Template) -> Dict[str, Any]:
    return _dump(_template_model(t))


# ---- Package ----
def _package(m: PackageModel) -> Package:
    return Package(
        name=m.name,
        template_id=m.template_id,
        sub_groups=[
            SubGroup(
                name=g.name,
                questions=[
                    Question(text=q.question, answers=[AnswerOption(a.text, a.value) for a in q.answers])
                    for q in g.questions
                ],
            )
            for g in m.sub_groups
        ],
    )


def _package_model(p: Package) -> PackageModel:
    return PackageModel(
        name=p.name,
        template_id=p.template_id,
        sub_groups=[
            SubGroupModel(
                name=g.name,
                questions=[
                    QuestionModel(
                        question=q.text,
                        answers=[AnswerOptionModel(text=a.text, value=a.value) for a in q.answers],
                    )
                    for q in g.questions
                ],
            )
            for g in p.sub_groups
        ],
    )


def package_from_json(data: Raw) -> Package:
    return _package(_parse(PackageModel, data))


def package_to_json(p: Package) -> Dict[str, Any]:
    return _dump(_package_model(p))


# ---- Answers ----
def _answers(m: AnswerSetModel) -> AnswerSet:
    return AnswerSet(
        groups=[
            SubmittedGroup(
                group_name=g.group_name,
                answers=[SubmittedAnswer(question=a.question, answer=a.answer) for a in g.answers],
            )
            for g in m.groups
        ]
    )


def _answers_model(a: AnswerSet) -> AnswerSetModel:
    return AnswerSetModel(
        groups=[
            SubmittedGroupModel(
                group_name=g.group_name,
                answers=[SubmittedAnswerModel(question=x.question, answer=x.answer) for x in g.answers],
            )
            for g in a.groups
        ]
    )


def answers_from_json(data: Raw) -> AnswerSet:
    return _answers(_parse(AnswerSetModel, data))


def answers_to_json(a: AnswerSet) -> Dict[str, Any]:
    return _dump(_answers_model(a))


def submission_from_json(data: Raw):
    """Return ``(test_id, submit_key, answers)`` from a submit request body."""

    m = _parse(SubmissionModel, data)
    return m.test_id, m.submit_key, _answers(m.answers)


# ---- Results ----
def _result(m: GradedResultModel) -> GradedResult:
    return GradedResult(groups=[GroupScore(g.group_name, g.score) for g in m.groups], total=m.total)


def _result_model(r: GradedResult) -> GradedResultModel:
    return GradedResultModel(
        groups=[GroupScoreModel(group_name=g.group_name, score=g.score) for g in r.groups],
        total=r.total,
    )


def result_from_json(data: Raw) -> GradedResult:
    return _result(_parse(GradedResultModel, data))


def result_to_json(r: GradedResult) -> Dict[str, Any]:
    return _dump(_result_model(r))


# ---- Records ----
def template_record_from_json(data: Raw) -> TemplateRecord:
    m = _parse(TemplateRecordModel, data)
    return TemplateRecord(
        id=m.id,
        template=_template(m.template),
        created_by=m.created_by,
        is_active=m.is_active,
        is_locked=m.is_locked,
        created_at=m.created_at,
        updated_at=m.updated_at,
        deleted_at=m.deleted_at,
    )


def template_record_to_json(r: TemplateRecord) -> Dict[str, Any]:
    return _dump(
        TemplateRecordModel(
            id=r.id,
            created_by=r.created_by,
            template=_template_model(r.template),
            is_active=r.is_active,
            is_locked=r.is_locked,
            created_at=r.created_at,
            updated_at=r.updated_at,
            deleted_at=r.deleted_at,
        )
    )


def package_record_from_json(data: Raw) -> PackageRecord:
    m = _parse(PackageRecordModel, data)
    return PackageRecord(
        id=m.id,
        package=_package(m.package),
        created_by=m.created_by,
        is_active=m.is_active,
        is_locked=m.is_locked,
        created_at=m.created_at,
        updated_at=m.updated_at,
        deleted_at=m.deleted_at,
    )


def package_record_to_json(r: PackageRecord) -> Dict[str, Any]:
    return _dump(
        PackageRecordModel(
            id=r.id,
            created_by=r.created_by,
            package=_package_model(r.package),
            is_active=r.is_active,
            is_locked=r.is_locked,
            created_at=r.created_at,
            updated_at=r.updated_at,
            deleted_at=r.deleted_at,
        )
    )


def sd_test_from_json(data: Raw) -> Test:
    m = _parse(SDTestModel, data)
    return Test(
        id=m.id,
        package_id=m.package_id,
        user_id=m.user_id,
        answer=_answers(m.answer) if m.answer is not None else None,
        result=_result(m.result) if m.result is not None else None,
        open_until=m.open_until,
        finished_at=m.finished_at,
        submit_key=m.submit_key,
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


def sd_test_to_json(t: Test) -> Dict[str, Any]:
    return _dump(
        SDTestModel(
            id=t.id,
            package_id=t.package_id,
            user_id=t.user_id,
            answer=_answers_model(t.answer) if t.answer is not None else None,
            result=_result_model(t.result) if t.result is not None else None,
            open_until=t.open_until,
            finished_at=t.finished_at,
            submit_key=t.submit_key,
            created_at=t.created_at,
            updated_at=t.updated_at,
        )
    )


def initiated_test_to_json(it: InitiatedTest) -> Dict[str, Any]:
    """Response document for a freshly initiated test; the only place the plain key appears."""

    t = it.test
    return {
        "id": t.id,
        "packageID": t.package_id,
        "packageName": it.package_name,
        "userID": t.user_id,
        "openUntil": t.open_until.isoformat(),
        "submitKey": it.submit_key,
        "createdAt": t.created_at.isoformat() if t.created_at else None,
        "updatedAt": t.updated_at.isoformat() if t.updated_at else None,
        "testQuestion": {
            group: [{"question": q.question, "answers": list(q.answers)} for q in questions]
            for group, questions in it.questions.items()
        },
    }


def statistics_to_json(stats: List[TemplateStatistic]) -> List[Dict[str, Any]]:
    return [
        _dump(
            TemplateStatisticModel(
                template_id=s.template_id,
                template_name=s.template_name,
                indication_threshold=s.indication_threshold,
                positive_text=s.positive_text,
                negative_text=s.negative_text,
                entries=[
                    StatisticEntryModel(
                        test_id=e.test_id,
                        package_id=e.package_id,
                        package_name=e.package_name,
                        total=e.total,
                        finished_at=e.finished_at,
                    )
                    for e in s.entries
                ],
            )
        )
        for s in stats
    ]
