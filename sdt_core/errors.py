# sdt_core/errors.py
"""Error taxonomy for template/package validation, grading and the test lifecycle.

Every failure the core surfaces is an ``SDTError`` carrying a closed
``ErrorKind``. Callers dispatch on ``err.kind`` (or ``err.category`` for the
coarse split between caller input, missing resources, state conflicts and
internal failures) instead of comparing sentinel values.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class ErrorKind(str, Enum):
    # validation
    INVALID_TEMPLATE = "invalid_template"
    INVALID_PACKAGE = "invalid_package"
    INVALID_ANSWERS = "invalid_answers"
    INVALID_PAYLOAD = "invalid_payload"
    EMPTY_SUBMISSION = "empty_submission"
    GROUP_MISSING = "group_missing"
    UNKNOWN_GROUP = "unknown_group"
    DUPLICATE_GROUP = "duplicate_group"
    QUESTION_UNANSWERED = "question_unanswered"
    UNKNOWN_QUESTION = "unknown_question"
    UNKNOWN_ANSWER = "unknown_answer"
    # not found
    NOT_FOUND = "not_found"
    # conflict / state violation
    PACKAGE_INACTIVE = "package_inactive"
    PACKAGE_LOCKED = "package_locked"
    PACKAGE_ACTIVE = "package_active"
    TEMPLATE_INACTIVE = "template_inactive"
    TEMPLATE_LOCKED = "template_locked"
    TEMPLATE_CANT_BE_ACTIVATED = "template_cant_be_activated"
    PACKAGE_CANT_BE_ACTIVATED = "package_cant_be_activated"
    TEST_EXPIRED = "test_expired"
    ALREADY_ANSWERED = "already_answered"
    INVALID_SUBMIT_KEY = "invalid_submit_key"
    TEST_NOT_FINISHED = "test_not_finished"
    # internal
    INTERNAL = "internal"


class SDTError(Exception):
    """Base class; ``message`` is safe to show to the caller."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.message!r})"


class ValidationError(SDTError):
    """Caller input has the wrong shape. Never retried."""

    category = ErrorCategory.VALIDATION

    def __init__(self, kind: ErrorKind, message: str, path: str = ""):
        super().__init__(kind, message)
        self.path = path


class GradingError(ValidationError):
    """A submitted answer set does not match the package it is graded against.

    ``subject`` names the offending group, question or answer text.
    """

    def __init__(self, kind: ErrorKind, subject: str, message: str):
        super().__init__(kind, message)
        self.subject = subject


class NotFoundError(SDTError):
    category = ErrorCategory.NOT_FOUND

    def __init__(self, message: str, resource: str = "", resource_id: Optional[str] = None):
        super().__init__(ErrorKind.NOT_FOUND, message)
        self.resource = resource
        self.resource_id = resource_id


class StateViolation(SDTError):
    category = ErrorCategory.CONFLICT


class InternalError(SDTError):
    category = ErrorCategory.INTERNAL

    def __init__(self, message: str):
        super().__init__(ErrorKind.INTERNAL, message)


class RecordNotFound(LookupError):
    """Raised by repositories when a lookup matches nothing."""
