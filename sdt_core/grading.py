# sdt_core/grading.py
"""Grade a submitted answer set against the package it was taken from.

Checks run in a fixed order so that any malformed submission always yields the
same error: presence checks follow package order, membership checks follow
submission order, and a group sent twice is only reported once every
submitted group is known. A question answered more than once scores every
answer it was given. Grading is all-or-nothing.
"""
from __future__ import annotations
from typing import Dict, List

from .errors import ErrorKind, GradingError
from .types import AnswerSet, GradedResult, GroupScore, Package, Question, SubGroup, SubmittedGroup


def _submitted_by_name(answers: AnswerSet, package: Package) -> Dict[str, SubmittedGroup]:
    if not answers.groups:
        raise GradingError(ErrorKind.EMPTY_SUBMISSION, "", "no answer groups were submitted")

    submitted_names = {g.group_name for g in answers.groups}
    for g in package.sub_groups:
        if g.name not in submitted_names:
            raise GradingError(ErrorKind.GROUP_MISSING, g.name, f"group {g.name} is not found on answers list")

    known = {g.name for g in package.sub_groups}
    for sg in answers.groups:
        if sg.group_name not in known:
            raise GradingError(
                ErrorKind.UNKNOWN_GROUP, sg.group_name, f"unknown group: {sg.group_name} is not required on package"
            )

    by_name: Dict[str, SubmittedGroup] = {}
    for sg in answers.groups:
        if sg.group_name in by_name:
            raise GradingError(
                ErrorKind.DUPLICATE_GROUP, sg.group_name, f"group {sg.group_name} was submitted more than once"
            )
        by_name[sg.group_name] = sg
    return by_name


def _grade_group(group: SubGroup, submitted: SubmittedGroup) -> int:
    answered = {a.question for a in submitted.answers}
    for q in group.questions:
        if q.text not in answered:
            raise GradingError(ErrorKind.QUESTION_UNANSWERED, q.text, f"question {q.text} is still not answered")

    questions: Dict[str, Question] = {q.text: q for q in group.questions}
    score = 0
    for a in submitted.answers:
        q = questions.get(a.question)
        if q is None:
            raise GradingError(ErrorKind.UNKNOWN_QUESTION, a.question, f"question {a.question} is not found on package")
        option = next((o for o in q.answers if o.text == a.answer), None)
        if option is None:
            raise GradingError(ErrorKind.UNKNOWN_ANSWER, a.answer, f"answer {a.answer} is not found on package")
        score += option.value
    return score


def grade(answers: AnswerSet, package: Package) -> GradedResult:
    """Return per-group scores in package order and their total.

    Raises GradingError (kind names the first violation found) when the
    submission does not match the package.
    """

    by_name = _submitted_by_name(answers, package)
    scores: List[GroupScore] = []
    for g in package.sub_groups:
        scores.append(GroupScore(group_name=g.name, score=_grade_group(g, by_name[g.name])))
    return GradedResult(groups=scores, total=sum(s.score for s in scores))
