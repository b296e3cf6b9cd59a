"""In-memory collections backed by the document store.

A repository loads its collection once, serves reads from memory, and writes
the whole collection back on ``save``. Records that fail schema validation
on load are skipped (and logged) instead of being coerced.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from . import storage as st
from .errors import NotFoundError, PersistenceError, RecordValidationError, ValidationError
from .models import Activity, Category, Subtask, Task, User
from .schemas import parse_activity, parse_category, parse_subtask, parse_task, parse_user
from .storage import StorageService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordRepository(Generic[T]):
    collection: str = ""
    label: str = "Record"
    parse: Callable[[dict], T]

    def __init__(self, storage: StorageService):
        self.storage = storage
        self._items: List[T] = []
        self.rejected: List[str] = []

    # ---------------- persistence ----------------

    def load(self) -> int:
        """(Re)load from storage. Returns the number of records kept."""
        items: List[T] = []
        rejected: List[str] = []
        seen = set()
        for raw in self.storage.load(self.collection):
            try:
                item = type(self).parse(raw)
            except RecordValidationError as exc:
                logger.warning("Skipping stored %s record: %s", self.collection, exc)
                rejected.append(str(exc.record_id))
                continue
            if item.id in seen:
                logger.warning("Skipping duplicate %s record %s", self.collection, item.id)
                rejected.append(item.id)
                continue
            seen.add(item.id)
            items.append(item)
        self._items = items
        self.rejected = rejected
        return len(items)

    def save(self) -> bool:
        return self.storage.save(self.collection, [item.to_record() for item in self._items])

    def commit(self, record: object = None) -> None:
        """Save, raising PersistenceError (memory already updated) on failure."""
        if not self.save():
            raise PersistenceError(self.collection, record)

    # ---------------- reads ----------------

    def all(self) -> List[T]:
        return list(self._items)

    def get(self, record_id: Optional[str]) -> Optional[T]:
        if not record_id:
            return None
        return next((item for item in self._items if item.id == record_id), None)

    def require(self, record_id: str) -> T:
        item = self.get(record_id)
        if item is None:
            raise NotFoundError(f"{self.label} not found: {record_id}")
        return item

    def __len__(self) -> int:
        return len(self._items)

    # ---------------- in-memory mutations ----------------

    def add(self, record: T) -> T:
        if self.get(record.id) is not None:
            raise ValidationError(f"{self.label} with ID {record.id} already exists")
        self._items.append(record)
        return record

    def replace(self, record: T) -> T:
        for index, item in enumerate(self._items):
            if item.id == record.id:
                self._items[index] = record
                return record
        raise NotFoundError(f"{self.label} not found: {record.id}")

    def remove(self, record_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != record_id]
        return len(self._items) < before

    def remove_where(self, predicate: Callable[[T], bool]) -> int:
        before = len(self._items)
        self._items = [item for item in self._items if not predicate(item)]
        return before - len(self._items)

    def reset(self, records: Iterable[T]) -> None:
        self._items = list(records)


class TaskRepository(RecordRepository[Task]):
    collection = st.TASKS
    label = "Task"
    parse = staticmethod(parse_task)


class UserRepository(RecordRepository[User]):
    collection = st.USERS
    label = "User"
    parse = staticmethod(parse_user)

    def clients(self) -> List[User]:
        return [u for u in self._items if u.is_client]

    def admins(self) -> List[User]:
        return [u for u in self._items if u.is_admin]

    def search(self, query: str) -> List[User]:
        q = query.lower()
        return [u for u in self._items if q in u.name.lower()]


class CategoryRepository(RecordRepository[Category]):
    collection = st.CATEGORIES
    label = "Category"
    parse = staticmethod(parse_category)


class SubtaskRepository(RecordRepository[Subtask]):
    collection = st.SUBTASKS
    label = "Subtask"
    parse = staticmethod(parse_subtask)

    def for_task(self, task_id: str) -> List[Subtask]:
        return [s for s in self._items if s.parent_task_id == task_id]


class ActivityLog(RecordRepository[Activity]):
    collection = st.ACTIVITIES
    label = "Activity"
    parse = staticmethod(parse_activity)

    @staticmethod
    def _newest_first(items: Iterable[Activity]) -> List[Activity]:
        return sorted(items, key=lambda a: a.timestamp, reverse=True)

    def for_task(self, task_id: str) -> List[Activity]:
        return self._newest_first(a for a in self._items if a.task_id == task_id)

    def for_user(self, user_id: str) -> List[Activity]:
        return self._newest_first(a for a in self._items if a.user_id == user_id)

    def between(self, start: datetime, end: datetime) -> List[Activity]:
        return [a for a in self._items if start <= a.timestamp <= end]

    def recent(self, count: int = 10) -> List[Activity]:
        return self._newest_first(self._items)[:count]
