# sdt_core/catalog.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from .errors import ErrorKind, InternalError, NotFoundError, RecordNotFound, StateViolation, ValidationError
from .lifecycle import utcnow
from .ports import PackageRepository, TemplateRepository
from .types import Package, PackageRecord, Template, TemplateRecord
from .validators import ContentValidator


log = logging.getLogger(__name__)


class Catalog:
    """Administrator operations on templates and packages.

    Templates and packages are created inactive. A template must pass the
    threshold bounds check before it can be activated; a package can only be
    created from, or activated on top of, an active template, and activation
    also requires the package to match that template's groups and counts.
    Locked records can be neither edited nor deleted. Deletion is soft and
    can be undone.
    """

    def __init__(
        self,
        templates: TemplateRepository,
        packages: PackageRepository,
        validator: ContentValidator,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.templates = templates
        self.packages = packages
        self.validator = validator
        self.clock = clock

    # ---- templates ----
    def create_template(self, template: Template, created_by: Optional[str] = None) -> TemplateRecord:
        self.validator.validate_template(template)

        now = self.clock()
        record = TemplateRecord(
            id=str(uuid.uuid4()),
            template=template,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        try:
            self.templates.create(record)
        except Exception as err:
            log.exception("failed to create sd template %r", template.name)
            raise InternalError("failed to create sd template") from err
        return record

    def find_template(self, template_id: str, include_deleted: bool = False) -> TemplateRecord:
        try:
            return self.templates.find_by_id(template_id, include_deleted=include_deleted)
        except RecordNotFound as err:
            raise NotFoundError("sd template not found", resource="template", resource_id=template_id) from err
        except Exception as err:
            log.exception("failed to find sd template %s", template_id)
            raise InternalError("failed to find sd template") from err

    def update_template(self, template_id: str, template: Template) -> TemplateRecord:
        self.validator.validate_template(template)

        record = self.find_template(template_id)
        if record.is_locked:
            raise StateViolation(ErrorKind.TEMPLATE_LOCKED, "sd template is already locked")

        record.template = template
        record.updated_at = self.clock()
        self._save_template(record)
        return record

    def change_template_active_status(self, template_id: str, is_active: bool) -> TemplateRecord:
        record = self.find_template(template_id)
        if record.is_active == is_active:
            return record

        if is_active:
            try:
                self.validator.validate_threshold(record.template)
            except ValidationError as err:
                raise StateViolation(
                    ErrorKind.TEMPLATE_CANT_BE_ACTIVATED,
                    f"sd template can't be activated because: {err.message}",
                ) from err

        record.is_active = is_active
        record.updated_at = self.clock()
        self._save_template(record)
        log.info("sd template %s active=%s", template_id, is_active)
        return record

    def delete_template(self, template_id: str) -> TemplateRecord:
        record = self.find_template(template_id)
        if record.is_locked:
            raise StateViolation(ErrorKind.TEMPLATE_LOCKED, "sd template is already locked")

        record.deleted_at = record.updated_at = self.clock()
        self._save_template(record)
        log.info("sd template %s deleted", template_id)
        return record

    def undo_delete_template(self, template_id: str) -> TemplateRecord:
        record = self.find_template(template_id, include_deleted=True)
        if record.is_locked:
            raise StateViolation(ErrorKind.TEMPLATE_LOCKED, "sd template is locked")
        if record.deleted_at is None:
            return record

        record.deleted_at = None
        record.updated_at = self.clock()
        self._save_template(record)
        log.info("sd template %s restored", template_id)
        return record

    def _save_template(self, record: TemplateRecord) -> None:
        try:
            self.templates.update(record)
        except Exception as err:
            log.exception("failed to update sd template %s", record.id)
            raise InternalError("failed to update sd template") from err

    # ---- packages ----
    def create_package(self, package: Package, created_by: Optional[str] = None) -> PackageRecord:
        self.validator.validate_package(package)
        self._require_active_template(package.template_id)

        now = self.clock()
        record = PackageRecord(
            id=str(uuid.uuid4()),
            package=package,
            created_by=created_by,
            is_active=False,
            is_locked=False,
            created_at=now,
            updated_at=now,
        )
        try:
            self.packages.create(record)
        except Exception as err:
            log.exception("failed to create sd package %r", package.name)
            raise InternalError("failed to create sd package") from err
        return record

    def find_package(self, package_id: str, include_deleted: bool = False) -> PackageRecord:
        try:
            return self.packages.find_by_id(package_id, include_deleted=include_deleted)
        except RecordNotFound as err:
            raise NotFoundError("sd package not found", resource="package", resource_id=package_id) from err
        except Exception as err:
            log.exception("failed to find sd package %s", package_id)
            raise InternalError("failed to find sd package") from err

    def update_package(self, package_id: str, package: Package) -> PackageRecord:
        self.validator.validate_package(package)
        self._require_active_template(package.template_id)

        record = self.find_package(package_id)
        if record.is_locked:
            raise StateViolation(ErrorKind.PACKAGE_LOCKED, "sd package is already locked")
        if record.is_active:
            raise StateViolation(ErrorKind.PACKAGE_ACTIVE, "deactivate the sd package before updating it")

        record.package = package
        record.updated_at = self.clock()
        self._save_package(record)
        return record

    def change_package_active_status(self, package_id: str, is_active: bool) -> PackageRecord:
        record = self.find_package(package_id)
        if record.is_active == is_active:
            return record

        if is_active:
            template = self._require_active_template(record.template_id)
            try:
                self.validator.validate_package_full(record.package, template.template)
            except ValidationError as err:
                raise StateViolation(
                    ErrorKind.PACKAGE_CANT_BE_ACTIVATED,
                    f"sd package can't be activated because: {err.message}",
                ) from err

        record.is_active = is_active
        record.updated_at = self.clock()
        self._save_package(record)
        log.info("sd package %s active=%s", package_id, is_active)
        return record

    def delete_package(self, package_id: str) -> PackageRecord:
        record = self.find_package(package_id)
        if record.is_locked:
            raise StateViolation(ErrorKind.PACKAGE_LOCKED, "sd package is already locked")

        record.deleted_at = record.updated_at = self.clock()
        self._save_package(record)
        log.info("sd package %s deleted", package_id)
        return record

    def undo_delete_package(self, package_id: str) -> PackageRecord:
        record = self.find_package(package_id, include_deleted=True)
        if record.is_locked:
            raise StateViolation(ErrorKind.PACKAGE_LOCKED, "sd package is locked")
        if record.deleted_at is None:
            return record

        record.deleted_at = None
        record.updated_at = self.clock()
        self._save_package(record)
        log.info("sd package %s restored", package_id)
        return record

    def _save_package(self, record: PackageRecord) -> None:
        try:
            self.packages.update(record)
        except Exception as err:
            log.exception("failed to update sd package %s", record.id)
            raise InternalError("failed to update sd package") from err

    def _require_active_template(self, template_id: str) -> TemplateRecord:
        template = self.find_template(template_id)
        if not template.is_active or template.deleted_at is not None:
            raise StateViolation(ErrorKind.TEMPLATE_INACTIVE, "sd template is not active or already deleted")
        return template
