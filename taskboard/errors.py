"""Exceptions raised by the taskboard package.

All of them are recoverable: pages catch them and show a message instead of
crashing the session.
"""
from __future__ import annotations

from typing import Any, Optional


class TaskboardError(Exception):
    """Base class for all taskboard errors."""


class ValidationError(TaskboardError):
    """Input rejected before any state change (e.g. empty title)."""


class RecordValidationError(ValidationError):
    """A stored or incoming record does not match its schema."""

    def __init__(self, message: str, *, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class NotFoundError(TaskboardError):
    """The referenced record does not exist."""


class ScopeViolationError(TaskboardError):
    """The viewer tried to read or mutate a task outside their scope."""

    def __init__(self, task_id: str, viewer_id: Optional[str]):
        super().__init__(f"Task {task_id} is not assigned to {viewer_id or 'anonymous viewer'}")
        self.task_id = task_id
        self.viewer_id = viewer_id


class PersistenceError(TaskboardError):
    """The durable write failed after the in-memory state already changed.

    The in-memory collection stays as the source of truth for the session;
    ``record`` holds the result of the mutation that could not be saved.
    """

    def __init__(self, collection: str, record: Any = None):
        super().__init__(f"Could not save '{collection}'; changes may not survive a reload")
        self.collection = collection
        self.record = record
