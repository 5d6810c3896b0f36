# sdt_core/ports.py
"""Interfaces the core needs from its collaborators.

Repositories raise ``RecordNotFound`` for empty lookups; anything else they
raise is treated as an internal failure. Methods taking ``tx`` run inside the
scope opened by ``TransactionManager.transaction()``.
"""
from __future__ import annotations

from typing import Any, ContextManager, List, Optional, Protocol, Tuple

from .types import PackageRecord, TemplateRecord, Test


class TransactionManager(Protocol):
    def transaction(self) -> ContextManager[Any]:
        """Commit on normal exit, roll back when the block raises."""
        ...


class TemplateRepository(Protocol):
    def create(self, record: TemplateRecord, tx: Any = None) -> None: ...

    def find_by_id(self, template_id: str, include_deleted: bool = False, tx: Any = None) -> TemplateRecord: ...

    def update(self, record: TemplateRecord, tx: Any = None) -> None: ...


class PackageRepository(Protocol):
    def create(self, record: PackageRecord, tx: Any = None) -> None: ...

    def find_by_id(self, package_id: str, include_deleted: bool = False, tx: Any = None) -> PackageRecord: ...

    def find_random_active(self, tx: Any = None) -> PackageRecord: ...

    def find_least_used_for_user(self, user_id: str, tx: Any = None) -> str:
        """Return the id of the active package this user has taken least often."""
        ...

    def find_template_for_package(self, package_id: str, tx: Any = None) -> TemplateRecord:
        """Template the package was built from, even when either one is soft-deleted."""
        ...

    def lock(self, package_id: str, tx: Any = None) -> bool:
        """Mark the package locked if it is not yet; report whether it flipped."""
        ...

    def update(self, record: PackageRecord, tx: Any = None) -> None: ...


class TestRepository(Protocol):
    __test__ = False

    def create(self, test: Test, tx: Any = None) -> None: ...

    def find_by_id(self, test_id: str, tx: Any = None) -> Test: ...

    def update(self, test: Test, tx: Any = None) -> None: ...

    def search(
        self,
        user_id: Optional[str] = None,
        package_id: Optional[str] = None,
        include_unfinished: bool = False,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Test]:
        """Newest first; ``limit=None`` returns every match."""
        ...


class SecureTokenService(Protocol):
    def create_secure_token(self) -> Tuple[str, str]: ...

    def reverse_secure_token(self, plain: str) -> str: ...
