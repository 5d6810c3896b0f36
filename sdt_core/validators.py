# sdt_core/validators.py
from __future__ import annotations
from typing import List

from . import config
from .errors import ErrorKind, ValidationError
from .types import Package, Template


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ContentValidator:
    """Stateless checks for templates and packages.

    Construct one and hand it to whatever needs it (catalog, tools);
    it holds no state, so a single instance can be shared freely.
    """

    def validate_template(self, t: Template) -> None:
        if _blank(t.name):
            raise ValidationError(ErrorKind.INVALID_TEMPLATE, "template name is required", path="name")
        if len(t.name) > config.TEMPLATE_NAME_MAX:
            raise ValidationError(
                ErrorKind.INVALID_TEMPLATE,
                f"template name must be at most {config.TEMPLATE_NAME_MAX} characters",
                path="name",
            )
        if not _is_int(t.indication_threshold) or t.indication_threshold == 0:
            raise ValidationError(
                ErrorKind.INVALID_TEMPLATE, "indication threshold is required", path="indication_threshold"
            )
        if _blank(t.positive_text):
            raise ValidationError(ErrorKind.INVALID_TEMPLATE, "positive indication text is required", path="positive_text")
        if _blank(t.negative_text):
            raise ValidationError(ErrorKind.INVALID_TEMPLATE, "negative indication text is required", path="negative_text")
        if not t.sub_groups:
            raise ValidationError(ErrorKind.INVALID_TEMPLATE, "at least one sub group is required", path="sub_groups")

        for i, g in enumerate(t.sub_groups):
            path = f"sub_groups[{i}]"
            if _blank(g.name):
                raise ValidationError(ErrorKind.INVALID_TEMPLATE, "sub group name is required", path=f"{path}.name")
            if not _is_int(g.question_count) or g.question_count < config.MIN_QUESTION_COUNT:
                raise ValidationError(
                    ErrorKind.INVALID_TEMPLATE,
                    f"sub group {g.name!r} must have at least {config.MIN_QUESTION_COUNT} question",
                    path=f"{path}.question_count",
                )
            if not _is_int(g.answer_option_count) or g.answer_option_count < config.MIN_ANSWER_OPTION_COUNT:
                raise ValidationError(
                    ErrorKind.INVALID_TEMPLATE,
                    f"sub group {g.name!r} must have at least {config.MIN_ANSWER_OPTION_COUNT} answer options",
                    path=f"{path}.answer_option_count",
                )

    def validate_threshold(self, t: Template) -> None:
        """Full validation, required before a template may be activated."""

        self.validate_template(t)
        lo, hi = t.min_point, t.max_point
        if not lo <= t.indication_threshold <= hi:
            raise ValidationError(
                ErrorKind.INVALID_TEMPLATE,
                f"indication threshold {t.indication_threshold} must be within [{lo}, {hi}]",
                path="indication_threshold",
            )

    def validate_package(self, p: Package) -> None:
        """Partial validation: shape only, no comparison with the template's counts."""

        if _blank(p.name):
            raise ValidationError(ErrorKind.INVALID_PACKAGE, "package name is required", path="name")
        if _blank(p.template_id):
            raise ValidationError(ErrorKind.INVALID_PACKAGE, "template id is required", path="template_id")
        if not p.sub_groups:
            raise ValidationError(ErrorKind.INVALID_PACKAGE, "at least one sub group is required", path="sub_groups")

        seen: List[str] = []
        for i, g in enumerate(p.sub_groups):
            path = f"sub_groups[{i}]"
            if _blank(g.name):
                raise ValidationError(ErrorKind.INVALID_PACKAGE, "sub group name is required", path=f"{path}.name")
            if g.name in seen:
                raise ValidationError(
                    ErrorKind.INVALID_PACKAGE, f"duplicate sub group name {g.name!r}", path=f"{path}.name"
                )
            seen.append(g.name)
            if not g.questions:
                raise ValidationError(
                    ErrorKind.INVALID_PACKAGE,
                    f"sub group {g.name!r} needs at least one question",
                    path=f"{path}.questions",
                )
            for j, q in enumerate(g.questions):
                self._validate_question(q, f"{path}.questions[{j}]")

    def _validate_question(self, q, path: str) -> None:
        if _blank(q.text):
            raise ValidationError(ErrorKind.INVALID_PACKAGE, "question text is required", path=f"{path}.text")
        if not q.answers:
            raise ValidationError(
                ErrorKind.INVALID_PACKAGE, f"question {q.text!r} needs at least one answer", path=f"{path}.answers"
            )
        values: set[int] = set()
        for k, a in enumerate(q.answers):
            apath = f"{path}.answers[{k}]"
            if _blank(a.text):
                raise ValidationError(ErrorKind.INVALID_PACKAGE, "answer text is required", path=f"{apath}.text")
            if not _is_int(a.value) or a.value < 1:
                raise ValidationError(
                    ErrorKind.INVALID_PACKAGE,
                    f"answer value must be a positive integer, got {a.value!r}",
                    path=f"{apath}.value",
                )
            if a.value in values:
                raise ValidationError(
                    ErrorKind.INVALID_PACKAGE,
                    f"answer value {a.value} is used twice in question {q.text!r}",
                    path=f"{apath}.value",
                )
            values.add(a.value)

    def validate_package_full(self, p: Package, t: Template) -> None:
        """Activation check: the package must fill in exactly what the template describes.

        Every sub group must exist on both sides, each group must hold the
        template's question count, and every question must offer exactly
        ``answer_option_count`` answers valued 1..answer_option_count.
        """

        self.validate_package(p)
        self.validate_threshold(t)

        schema = {g.name: g for g in t.sub_groups}
        names = {g.name for g in p.sub_groups}
        for i, g in enumerate(p.sub_groups):
            if g.name not in schema:
                raise ValidationError(
                    ErrorKind.INVALID_PACKAGE,
                    f"sub group {g.name!r} is not present on the template",
                    path=f"sub_groups[{i}].name",
                )
        for g in t.sub_groups:
            if g.name not in names:
                raise ValidationError(
                    ErrorKind.INVALID_PACKAGE, f"template sub group {g.name!r} is missing from the package", path="sub_groups"
                )

        for i, g in enumerate(p.sub_groups):
            want = schema[g.name]
            path = f"sub_groups[{i}]"
            if len(g.questions) != want.question_count:
                raise ValidationError(
                    ErrorKind.INVALID_PACKAGE,
                    f"group {g.name} expects {want.question_count} questions, got {len(g.questions)}",
                    path=f"{path}.questions",
                )
            for j, q in enumerate(g.questions):
                qpath = f"{path}.questions[{j}]"
                if len(q.answers) != want.answer_option_count:
                    raise ValidationError(
                        ErrorKind.INVALID_PACKAGE,
                        f"group {g.name} expects {want.answer_option_count} answers per question, got {len(q.answers)}",
                        path=f"{qpath}.answers",
                    )
                for k, a in enumerate(q.answers):
                    if a.value > want.answer_option_count:
                        raise ValidationError(
                            ErrorKind.INVALID_PACKAGE,
                            f"answer value {a.value} is outside 1 - {want.answer_option_count} on group {g.name}",
                            path=f"{qpath}.answers[{k}].value",
                        )
