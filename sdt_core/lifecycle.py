# sdt_core/lifecycle.py
from __future__ import annotations

import hmac
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from . import config
from .errors import (
    ErrorKind,
    GradingError,
    InternalError,
    NotFoundError,
    RecordNotFound,
    SDTError,
    StateViolation,
    ValidationError,
)
from .grading import grade
from .ports import PackageRepository, SecureTokenService, TestRepository, TransactionManager
from .render import render_jpeg
from .types import (
    AnswerSet,
    GradedResult,
    InitiatedTest,
    Package,
    PackageRecord,
    PackageSelector,
    RenderedImage,
    StatisticEntry,
    Template,
    TemplateStatistic,
    Test,
    question_sheet,
)


log = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_accepting_answers(test: Test, now: datetime) -> None:
    """Raise StateViolation unless the test can still take its one submission."""

    if now > test.open_until:
        raise StateViolation(ErrorKind.TEST_EXPIRED, "the test is already expired")
    if test.finished_at is not None:
        raise StateViolation(ErrorKind.ALREADY_ANSWERED, "the test is already answered")


def finalize_submission(
    test: Test,
    submit_key: str,
    answers: AnswerSet,
    package: Package,
    now: datetime,
    tokens: SecureTokenService,
) -> GradedResult:
    """Check, grade and record one submission on ``test``.

    The test is only modified once every check has passed, so a rejected
    submission leaves ``answer``/``result``/``finished_at`` as they were.
    """

    is_accepting_answers(test, now)

    if not hmac.compare_digest(tokens.reverse_secure_token(submit_key or ""), test.submit_key):
        raise StateViolation(ErrorKind.INVALID_SUBMIT_KEY, "invalid submit key")

    try:
        result = grade(answers, package)
    except GradingError as err:
        raise ValidationError(
            ErrorKind.INVALID_ANSWERS, f"test answer are invalid. details: {err.message}"
        ) from err

    test.answer = answers
    test.result = result
    test.finished_at = now
    test.updated_at = now
    return result


def indication_text(template: Template, total: int) -> str:
    if total < template.indication_threshold:
        return template.positive_text
    return template.negative_text


class TestLifecycle:
    """Creates tests from packages, accepts their single submission and renders results.

    Storage, token generation and the clock are collaborators; every multi-step
    write runs inside ``transactions.transaction()``.
    """

    __test__ = False

    def __init__(
        self,
        packages: PackageRepository,
        tests: TestRepository,
        transactions: TransactionManager,
        tokens: SecureTokenService,
        clock: Callable[[], datetime] = utcnow,
        font: Optional[str] = None,
    ):
        self.packages = packages
        self.tests = tests
        self.transactions = transactions
        self.tokens = tokens
        self.clock = clock
        self.font = font if font is not None else config.FONT_PATH

    # ---- initiate ----
    def initiate(self, selector: PackageSelector = PackageSelector(), duration: Optional[timedelta] = None) -> InitiatedTest:
        if not duration:
            duration = timedelta(minutes=config.DEFAULT_DURATION_MINUTES)
        if duration < timedelta(0):
            raise ValidationError(ErrorKind.INVALID_PAYLOAD, "test duration must be positive", path="duration")

        pack = self._resolve_package(selector)
        if not pack.is_active:
            log.info("refusing to initiate test on inactive package %s", pack.id)
            raise StateViolation(ErrorKind.PACKAGE_INACTIVE, "sd package is not active")

        try:
            with self.transactions.transaction() as tx:
                if not pack.is_locked and self.packages.lock(pack.id, tx):
                    log.info("package %s locked by its first test", pack.id)

                plain, encrypted = self.tokens.create_secure_token()
                now = self.clock()
                test = Test(
                    id=str(uuid.uuid4()),
                    package_id=pack.id,
                    user_id=selector.user_id,
                    open_until=now + duration,
                    submit_key=encrypted,
                    created_at=now,
                    updated_at=now,
                )
                self.tests.create(test, tx)
        except SDTError:
            raise
        except Exception as err:
            log.exception("failed to initiate test on package %s", pack.id)
            raise InternalError("failed to create sd test") from err

        return InitiatedTest(
            test=test,
            submit_key=plain,
            package_name=pack.name,
            questions=question_sheet(pack.package),
        )

    def _resolve_package(self, selector: PackageSelector) -> PackageRecord:
        try:
            if selector.package_id:
                return self.packages.find_by_id(selector.package_id)
            if not selector.user_id:
                return self.packages.find_random_active()
            package_id = self.packages.find_least_used_for_user(selector.user_id)
            return self.packages.find_by_id(package_id)
        except RecordNotFound as err:
            raise NotFoundError("no package found", resource="package", resource_id=selector.package_id) from err
        except Exception as err:
            log.exception("failed to fetch sd package for selector %r", selector)
            raise InternalError("failed to fetch sd package") from err

    # ---- submit ----
    def submit(self, test_id: str, submit_key: str, answers: AnswerSet) -> GradedResult:
        """Grade and store the one allowed submission of a test.

        The test is re-read inside the transaction, so of two racing
        submissions only the first succeeds; the second sees ALREADY_ANSWERED.
        """

        try:
            with self.transactions.transaction() as tx:
                test = self._find_test(test_id, tx)
                try:
                    pack = self.packages.find_by_id(test.package_id, tx=tx)
                except RecordNotFound as err:
                    raise NotFoundError(
                        "sd package not found", resource="package", resource_id=test.package_id
                    ) from err
                result = finalize_submission(test, submit_key, answers, pack.package, self.clock(), self.tokens)
                self.tests.update(test, tx)
        except SDTError as err:
            log.info("submission rejected for test %s: %s", test_id, err.kind.value)
            raise
        except Exception as err:
            log.exception("failed to save result of test %s", test_id)
            raise InternalError("failed to save test result") from err

        return result

    # ---- results ----
    def render_result(self, test_id: str, title: Optional[str] = None) -> RenderedImage:
        test = self._find_test(test_id)
        if test.finished_at is None or test.result is None:
            raise StateViolation(ErrorKind.TEST_NOT_FINISHED, "sd test is still not answered yet")

        try:
            record = self.packages.find_template_for_package(test.package_id)
        except RecordNotFound as err:
            raise NotFoundError("sd test template not found", resource="template") from err
        except Exception as err:
            log.exception("failed to find template of package %s", test.package_id)
            raise InternalError("failed to find sd test template") from err

        result = test.result
        return render_jpeg(
            title or config.RESULT_TITLE,
            result.groups,
            result.total,
            indication_text(record.template, result.total),
            test.id,
            font=self.font,
        )

    def histories(
        self,
        user_id: Optional[str] = None,
        package_id: Optional[str] = None,
        include_unfinished: bool = False,
        limit: int = config.HISTORY_LIMIT_MAX,
        offset: int = 0,
    ) -> List[Test]:
        if limit <= 0 or limit > config.HISTORY_LIMIT_MAX:
            limit = config.HISTORY_LIMIT_MAX
        offset = max(0, offset)
        try:
            return self.tests.search(
                user_id=user_id,
                package_id=package_id,
                include_unfinished=include_unfinished,
                limit=limit,
                offset=offset,
            )
        except Exception as err:
            log.exception("failed to search sd test histories")
            raise InternalError("failed to search sd test histories") from err

    def statistic(self, user_id: str) -> List[TemplateStatistic]:
        """Finished tests of one user, grouped by the template behind each package.

        Entries run oldest first and templates appear in the order of their
        earliest finished test.
        """

        if not user_id:
            raise ValidationError(ErrorKind.INVALID_PAYLOAD, "user id is required", path="user_id")

        try:
            tests = self.tests.search(user_id=user_id, include_unfinished=False, limit=None)
            tests.sort(key=lambda t: t.finished_at)

            stats: Dict[str, TemplateStatistic] = {}
            packs: Dict[str, PackageRecord] = {}
            for t in tests:
                if t.package_id not in packs:
                    packs[t.package_id] = self.packages.find_by_id(t.package_id, include_deleted=True)
                    record = self.packages.find_template_for_package(t.package_id)
                    if record.id not in stats:
                        stats[record.id] = TemplateStatistic(
                            template_id=record.id,
                            template_name=record.template.name,
                            indication_threshold=record.template.indication_threshold,
                            positive_text=record.template.positive_text,
                            negative_text=record.template.negative_text,
                        )
                pack = packs[t.package_id]
                stats[pack.template_id].entries.append(
                    StatisticEntry(
                        test_id=t.id,
                        package_id=pack.id,
                        package_name=pack.name,
                        total=t.result.total if t.result else 0,
                        finished_at=t.finished_at,
                    )
                )
        except Exception as err:
            log.exception("failed to get sd test statistic of user %s", user_id)
            raise InternalError("failed to get sd test statistic") from err

        if not stats:
            raise NotFoundError("no statistic found for this user", resource="test")
        return list(stats.values())

    def _find_test(self, test_id: str, tx=None) -> Test:
        try:
            return self.tests.find_by_id(test_id, tx=tx)
        except RecordNotFound as err:
            raise NotFoundError("sd test not found", resource="test", resource_id=test_id) from err
