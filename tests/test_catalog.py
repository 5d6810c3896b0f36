from __future__ import annotations

import dataclasses

import pytest

from sdt_core.errors import ErrorKind, NotFoundError, StateViolation, ValidationError
from sdt_core.types import PackageSelector
from tests.conftest import build_synthetic_package, build_synthetic_template


def test_template_created_inactive(catalog, store):
    rec = catalog.create_template(build_synthetic_template(), created_by="admin")
    assert not rec.is_active and not rec.is_locked
    assert store.templates.find_by_id(rec.id).template == build_synthetic_template()


def test_invalid_template_is_not_stored(catalog, store):
    with pytest.raises(ValidationError):
        catalog.create_template(dataclasses.replace(build_synthetic_template(), name=""))
    assert store.collection("templates") == {}


def test_template_activation_requires_threshold_in_bounds(catalog):
    rec = catalog.create_template(build_synthetic_template(threshold=40))
    with pytest.raises(StateViolation) as exc:
        catalog.change_template_active_status(rec.id, True)
    assert exc.value.kind is ErrorKind.TEMPLATE_CANT_BE_ACTIVATED
    assert isinstance(exc.value.__cause__, ValidationError)

    catalog.update_template(rec.id, build_synthetic_template(threshold=12))
    assert catalog.change_template_active_status(rec.id, True).is_active
    assert not catalog.change_template_active_status(rec.id, False).is_active


def test_locked_template_cannot_be_updated(catalog, store):
    rec = catalog.create_template(build_synthetic_template())
    rec.is_locked = True
    store.templates.update(rec)
    with pytest.raises(StateViolation) as exc:
        catalog.update_template(rec.id, build_synthetic_template(threshold=5))
    assert exc.value.kind is ErrorKind.TEMPLATE_LOCKED


def test_unknown_template(catalog):
    with pytest.raises(NotFoundError):
        catalog.change_template_active_status("missing", True)


def test_package_needs_active_template(catalog):
    tmpl = catalog.create_template(build_synthetic_template())
    with pytest.raises(StateViolation) as exc:
        catalog.create_package(build_synthetic_package(template_id=tmpl.id))
    assert exc.value.kind is ErrorKind.TEMPLATE_INACTIVE

    catalog.change_template_active_status(tmpl.id, True)
    pack = catalog.create_package(build_synthetic_package(template_id=tmpl.id))
    assert not pack.is_active and not pack.is_locked


def test_package_activation_follows_template(catalog):
    tmpl = catalog.create_template(build_synthetic_template())
    catalog.change_template_active_status(tmpl.id, True)
    pack = catalog.create_package(build_synthetic_package(template_id=tmpl.id))

    catalog.change_template_active_status(tmpl.id, False)
    with pytest.raises(StateViolation) as exc:
        catalog.change_package_active_status(pack.id, True)
    assert exc.value.kind is ErrorKind.TEMPLATE_INACTIVE

    catalog.change_template_active_status(tmpl.id, True)
    assert catalog.change_package_active_status(pack.id, True).is_active


def test_active_or_locked_package_cannot_be_updated(catalog, lifecycle, active_package):
    edited = dataclasses.replace(active_package.package, name="renamed")
    with pytest.raises(StateViolation) as exc:
        catalog.update_package(active_package.id, edited)
    assert exc.value.kind is ErrorKind.PACKAGE_ACTIVE

    lifecycle.initiate(PackageSelector(package_id=active_package.id))
    catalog.change_package_active_status(active_package.id, False)
    with pytest.raises(StateViolation) as exc:
        catalog.update_package(active_package.id, edited)
    assert exc.value.kind is ErrorKind.PACKAGE_LOCKED


def test_update_inactive_unlocked_package(catalog, active_package):
    catalog.change_package_active_status(active_package.id, False)
    edited = dataclasses.replace(active_package.package, name="renamed")
    assert catalog.update_package(active_package.id, edited).name == "renamed"
    assert catalog.find_package(active_package.id).name == "renamed"


def test_invalid_package_is_rejected_before_lookup(catalog):
    with pytest.raises(ValidationError) as exc:
        catalog.create_package(build_synthetic_package(template_id="missing", values=(1, 1, 2)))
    assert exc.value.kind is ErrorKind.INVALID_PACKAGE


def test_package_activation_requires_template_match(catalog):
    tmpl = catalog.create_template(build_synthetic_template())
    catalog.change_template_active_status(tmpl.id, True)
    pack = catalog.create_package(build_synthetic_package(template_id=tmpl.id, questions_per_group=1))

    with pytest.raises(StateViolation) as exc:
        catalog.change_package_active_status(pack.id, True)
    assert exc.value.kind is ErrorKind.PACKAGE_CANT_BE_ACTIVATED
    assert exc.value.__cause__.path == "sub_groups[0].questions"
    assert not catalog.find_package(pack.id).is_active

    catalog.update_package(pack.id, build_synthetic_package(template_id=tmpl.id))
    assert catalog.change_package_active_status(pack.id, True).is_active


def test_package_missing_a_template_group_cannot_be_activated(catalog):
    tmpl = catalog.create_template(build_synthetic_template())
    catalog.change_template_active_status(tmpl.id, True)
    pack = catalog.create_package(build_synthetic_package(template_id=tmpl.id, groups=("Language", "Social")))
    with pytest.raises(StateViolation) as exc:
        catalog.change_package_active_status(pack.id, True)
    assert exc.value.kind is ErrorKind.PACKAGE_CANT_BE_ACTIVATED


def test_deactivation_skips_template_match(catalog, store, active_package):
    rec = store.packages.find_by_id(active_package.id)
    rec.package.sub_groups.pop()
    store.packages.update(rec)
    assert not catalog.change_package_active_status(active_package.id, False).is_active


def test_delete_and_restore_template(catalog, clock):
    rec = catalog.create_template(build_synthetic_template())
    clock.advance(minutes=5)

    deleted = catalog.delete_template(rec.id)
    assert deleted.deleted_at == clock()
    with pytest.raises(NotFoundError):
        catalog.find_template(rec.id)
    assert catalog.find_template(rec.id, include_deleted=True).deleted_at == clock()

    restored = catalog.undo_delete_template(rec.id)
    assert restored.deleted_at is None
    assert catalog.find_template(rec.id).template == build_synthetic_template()
    # restoring a live record is a no-op
    assert catalog.undo_delete_template(rec.id).deleted_at is None


def test_locked_template_cannot_be_deleted_or_restored(catalog, store):
    rec = catalog.create_template(build_synthetic_template())
    catalog.delete_template(rec.id)
    rec = store.templates.find_by_id(rec.id, include_deleted=True)
    rec.is_locked = True
    store.templates.update(rec)

    with pytest.raises(StateViolation) as exc:
        catalog.undo_delete_template(rec.id)
    assert exc.value.kind is ErrorKind.TEMPLATE_LOCKED

    live = catalog.create_template(build_synthetic_template())
    live.is_locked = True
    store.templates.update(live)
    with pytest.raises(StateViolation) as exc:
        catalog.delete_template(live.id)
    assert exc.value.kind is ErrorKind.TEMPLATE_LOCKED


def test_deleted_template_blocks_new_packages(catalog):
    tmpl = catalog.create_template(build_synthetic_template())
    catalog.change_template_active_status(tmpl.id, True)
    catalog.delete_template(tmpl.id)
    with pytest.raises(NotFoundError):
        catalog.create_package(build_synthetic_package(template_id=tmpl.id))


def test_delete_and_restore_package(catalog, store, lifecycle, active_package):
    catalog.delete_package(active_package.id)
    with pytest.raises(NotFoundError):
        catalog.find_package(active_package.id)
    # a deleted package is never handed out
    with pytest.raises(NotFoundError):
        lifecycle.initiate()

    assert catalog.undo_delete_package(active_package.id).deleted_at is None
    assert lifecycle.initiate().test.package_id == active_package.id


def test_locked_package_cannot_be_deleted(catalog, lifecycle, active_package):
    lifecycle.initiate(PackageSelector(package_id=active_package.id))
    with pytest.raises(StateViolation) as exc:
        catalog.delete_package(active_package.id)
    assert exc.value.kind is ErrorKind.PACKAGE_LOCKED
    assert catalog.find_package(active_package.id).deleted_at is None


def test_delete_unknown_records(catalog):
    with pytest.raises(NotFoundError):
        catalog.delete_template("missing")
    with pytest.raises(NotFoundError):
        catalog.undo_delete_package("missing")
