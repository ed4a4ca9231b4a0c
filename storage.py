from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Sequence

from sqlalchemy.orm import Session, sessionmaker

from errors import StoreIntegrityError
from models import StorageEntry
from records import Application, Student, Task

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "students": "offerflow_students",
    "applications": "offerflow_applications",
    "tasks": "offerflow_tasks",
}

_RECORD_TYPES: dict[str, Callable[[dict[str, Any]], Any]] = {
    "students": Student.from_dict,
    "applications": Application.from_dict,
    "tasks": Task.from_dict,
}


class MemoryBlobStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.blobs: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.blobs.get(key)

    def set(self, key: str, value: str) -> None:
        self.blobs[key] = value


class SqlBlobStore:
    """Key-value substrate backed by the ``storage_entries`` table.

    Every ``set`` runs in its own session and commits immediately, so a save of
    three collections is three independent writes (last writer wins).
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session: Session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, key: str) -> str | None:
        with self._session() as session:
            entry = session.get(StorageEntry, key)
            return entry.payload if entry else None

    def set(self, key: str, value: str) -> None:
        with self._session() as session:
            entry = session.get(StorageEntry, key)
            if entry is None:
                session.add(StorageEntry(key=key, payload=value))
            else:
                entry.payload = value


class EntityStore:
    """Whole-collection load/save of students, applications and tasks.

    There is no locking: two actors running load-modify-save concurrently can
    lose each other's writes.
    """

    def __init__(self, substrate: Any) -> None:
        self.substrate = substrate

    def load_all(self, collection: str) -> list[Any]:
        key = STORAGE_KEYS[collection]
        raw = self.substrate.get(key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise self._integrity_error(key, f"invalid JSON ({exc.msg})") from exc
        if not isinstance(items, list):
            raise self._integrity_error(key, f"expected a JSON array, got {type(items).__name__}")

        factory = _RECORD_TYPES[collection]
        records = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise self._integrity_error(key, f"item {index} is not an object")
            try:
                records.append(factory(item))
            except (KeyError, TypeError, ValueError) as exc:
                raise self._integrity_error(key, f"item {index} is malformed ({exc})") from exc
        return records

    def save_all(self, collection: str, records: Sequence[Any]) -> None:
        key = STORAGE_KEYS[collection]
        payload = json.dumps([record.to_dict() for record in records], ensure_ascii=False)
        self.substrate.set(key, payload)

    def load_students(self) -> list[Student]:
        return self.load_all("students")

    def save_students(self, students: Sequence[Student]) -> None:
        self.save_all("students", students)

    def load_applications(self) -> list[Application]:
        return self.load_all("applications")

    def save_applications(self, applications: Sequence[Application]) -> None:
        self.save_all("applications", applications)

    def load_tasks(self) -> list[Task]:
        return self.load_all("tasks")

    def save_tasks(self, tasks: Sequence[Task]) -> None:
        self.save_all("tasks", tasks)

    @staticmethod
    def _integrity_error(key: str, reason: str) -> StoreIntegrityError:
        logger.error("Collection %s failed to load: %s", key, reason)
        return StoreIntegrityError(key, reason)
