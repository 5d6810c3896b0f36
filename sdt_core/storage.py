# sdt_core/storage.py
"""JSON-file persistence for templates, packages and tests.

A reference adapter for tools and tests: every collection lives in one JSON
document under ``DATA_DIR`` and is rewritten atomically on commit. A
production deployment should swap this module for a database-backed
implementation of the repository interfaces in ``sdt_core.ports``.
"""

from __future__ import annotations

import copy
import json
import logging
import random
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from . import codec, config
from .errors import RecordNotFound
from .lifecycle import utcnow
from .types import PackageRecord, TemplateRecord, Test


log = logging.getLogger(__name__)

COLLECTIONS = ("templates", "packages", "tests")


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, docs: Dict[str, Any]) -> None:
    # staged beside the target, then swapped in atomically
    staged = path.parent / f".{path.name}.partial"
    with staged.open("w", encoding="utf-8") as fh:
        json.dump(docs, fh, indent=2, sort_keys=True, ensure_ascii=False)
        fh.write("\n")
    staged.replace(path)


class JsonStore:
    """Holds the three collections in memory and flushes them on commit.

    ``transaction()`` serialises writers with a re-entrant lock; when the block
    raises, the in-memory state is restored from the snapshot taken on entry
    and nothing is written to disk.
    """

    def __init__(self, root: Union[str, Path, None] = None, rng: Optional[random.Random] = None):
        self.root = Path(root or config.DATA_DIR).resolve()
        self.rng = rng or random.Random()
        self._lock = threading.RLock()
        self._depth = 0
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {
            name: _read_json(self._path(name), {}) for name in COLLECTIONS
        }
        self.templates = TemplateStore(self)
        self.packages = PackageStore(self)
        self.tests = TestStore(self)

    def _path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    @contextmanager
    def transaction(self) -> Iterator["JsonStore"]:
        with self._lock:
            snapshot = copy.deepcopy(self._data)
            self._depth += 1
            try:
                yield self
                if self._depth == 1:
                    self._flush()
            except BaseException:
                self._data = snapshot
                log.debug("transaction rolled back")
                raise
            finally:
                self._depth -= 1

    @contextmanager
    def reading(self) -> Iterator["JsonStore"]:
        with self._lock:
            yield self

    def _flush(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        for name in COLLECTIONS:
            _write_json(self._path(name), self._data[name])

    def collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._data[name]


class TemplateStore:
    def __init__(self, store: JsonStore):
        self.store = store

    def create(self, record: TemplateRecord, tx: Any = None) -> None:
        with self.store.transaction():
            self.store.collection("templates")[record.id] = codec.template_record_to_json(record)

    def find_by_id(self, template_id: str, include_deleted: bool = False, tx: Any = None) -> TemplateRecord:
        with self.store.reading():
            doc = self.store.collection("templates").get(template_id)
        if doc is None or (doc.get("deletedAt") and not include_deleted):
            raise RecordNotFound(template_id)
        return codec.template_record_from_json(doc)

    def update(self, record: TemplateRecord, tx: Any = None) -> None:
        with self.store.transaction():
            docs = self.store.collection("templates")
            if record.id not in docs:
                raise RecordNotFound(record.id)
            docs[record.id] = codec.template_record_to_json(record)


class PackageStore:
    def __init__(self, store: JsonStore):
        self.store = store

    def _active_ids(self) -> List[str]:
        return [
            pid
            for pid, doc in self.store.collection("packages").items()
            if doc.get("isActive") and not doc.get("deletedAt")
        ]

    def create(self, record: PackageRecord, tx: Any = None) -> None:
        with self.store.transaction():
            self.store.collection("packages")[record.id] = codec.package_record_to_json(record)

    def find_by_id(self, package_id: str, include_deleted: bool = False, tx: Any = None) -> PackageRecord:
        with self.store.reading():
            doc = self.store.collection("packages").get(package_id)
        if doc is None or (doc.get("deletedAt") and not include_deleted):
            raise RecordNotFound(package_id)
        return codec.package_record_from_json(doc)

    def find_random_active(self, tx: Any = None) -> PackageRecord:
        with self.store.reading():
            ids = sorted(self._active_ids())
            if not ids:
                raise RecordNotFound("no active package")
            return self.find_by_id(self.store.rng.choice(ids))

    def find_least_used_for_user(self, user_id: str, tx: Any = None) -> str:
        with self.store.reading():
            active = self._active_ids()
            if not active:
                raise RecordNotFound("no active package")

            counts = {pid: 0 for pid in active}
            for doc in self.store.collection("tests").values():
                if doc.get("userID") == user_id and doc.get("packageID") in counts:
                    counts[doc["packageID"]] += 1
        # ties go to the package stored first
        return min(active, key=lambda pid: counts[pid])

    def find_template_for_package(self, package_id: str, tx: Any = None) -> TemplateRecord:
        pack = self.find_by_id(package_id, include_deleted=True)
        return self.store.templates.find_by_id(pack.template_id, include_deleted=True)

    def lock(self, package_id: str, tx: Any = None) -> bool:
        with self.store.transaction():
            doc = self.store.collection("packages").get(package_id)
            if doc is None:
                raise RecordNotFound(package_id)
            if doc.get("isLocked"):
                return False
            doc["isLocked"] = True
            doc["updatedAt"] = utcnow().isoformat()
            return True

    def update(self, record: PackageRecord, tx: Any = None) -> None:
        with self.store.transaction():
            docs = self.store.collection("packages")
            if record.id not in docs:
                raise RecordNotFound(record.id)
            docs[record.id] = codec.package_record_to_json(record)


class TestStore:
    __test__ = False

    def __init__(self, store: JsonStore):
        self.store = store

    def create(self, test: Test, tx: Any = None) -> None:
        with self.store.transaction():
            self.store.collection("tests")[test.id] = codec.sd_test_to_json(test)

    def find_by_id(self, test_id: str, tx: Any = None) -> Test:
        with self.store.reading():
            doc = self.store.collection("tests").get(test_id)
        if doc is None:
            raise RecordNotFound(test_id)
        return codec.sd_test_from_json(doc)

    def update(self, test: Test, tx: Any = None) -> None:
        with self.store.transaction():
            docs = self.store.collection("tests")
            if test.id not in docs:
                raise RecordNotFound(test.id)
            docs[test.id] = codec.sd_test_to_json(test)

    def search(
        self,
        user_id: Optional[str] = None,
        package_id: Optional[str] = None,
        include_unfinished: bool = False,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Test]:
        with self.store.reading():
            docs = list(self.store.collection("tests").values())

        out = [
            d
            for d in docs
            if (user_id is None or d.get("userID") == user_id)
            and (package_id is None or d.get("packageID") == package_id)
            and (include_unfinished or d.get("finishedAt"))
        ]
        tests = [codec.sd_test_from_json(d) for d in out]
        tests.sort(key=lambda t: t.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        if limit is None:
            return tests[offset:]
        return tests[offset : offset + limit]
