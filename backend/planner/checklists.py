"""Checklist templates handed out to generated calendar activities.

Each activity name owns a queue of pending checklists. The queue is seeded once
per deployment from ``data/task_list.csv`` and then mutated in place: a lookup
returns the head of the queue and pops it, except that the last checklist is
never removed so later lookups keep receiving it.
"""

from __future__ import annotations

import csv
import io
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

from sqlalchemy import func, select

from .config import get_settings
from .db.models import ChecklistQueueModel
from .db.session import session_scope
from .study_plan import ChecklistItem

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_TASK_LIST = DATA_DIR / "task_list.csv"
TITLE_COLUMN = "Event Title"
CHECKLIST_COLUMN = "Checklist"
ITEM_SEPARATOR = "|"


def parse_task_list(content: str) -> Dict[str, List[List[ChecklistItem]]]:
    """Parse the tabular template source; one row is one checklist for a title."""
    mapping: Dict[str, List[List[ChecklistItem]]] = {}
    reader = csv.DictReader(io.StringIO(content))
    for line_number, row in enumerate(reader, start=2):
        title = (row.get(TITLE_COLUMN) or "").strip()
        raw_items = (row.get(CHECKLIST_COLUMN) or "").strip()
        if not title or not raw_items:
            logger.warning("Skipping incomplete task list row %s", line_number)
            continue
        items = [
            ChecklistItem(text=text.strip(), completed=False)
            for text in raw_items.split(ITEM_SEPARATOR)
            if text.strip()
        ]
        if items:
            mapping.setdefault(title, []).append(items)
    return mapping


class ChecklistResolver:
    """Keyed checklist queues persisted in ``checklist_queues``.

    Dequeues for the same activity name are serialized with a per-name lock in
    process and a row lock in the database. Locks exist only for names that own
    a queue row.
    """

    def __init__(self, task_list_path: Optional[Path] = None) -> None:
        self._task_list_path = task_list_path
        self._key_locks: Dict[str, threading.Lock] = {}
        self._queue_names: Set[str] = set()
        self._locks_guard = threading.Lock()
        self._seed_lock = threading.Lock()
        self._seeded = False

    def _lock_for(self, activity_name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._key_locks.get(activity_name)
            if lock is None:
                lock = self._key_locks[activity_name] = threading.Lock()
            return lock

    def _source_path(self) -> Path:
        if self._task_list_path is not None:
            return self._task_list_path
        configured = get_settings().task_list_path
        return Path(configured) if configured else DEFAULT_TASK_LIST

    def ensure_seeded(self) -> int:
        """Populate the queues from the template source if none exist yet."""
        with self._seed_lock:
            if self._seeded:
                return 0
            with session_scope() as session:
                existing = session.scalar(select(func.count()).select_from(ChecklistQueueModel)) or 0
                inserted = 0
                if existing == 0:
                    path = self._source_path()
                    mapping = parse_task_list(path.read_text(encoding="utf-8"))
                    for name, checklists in mapping.items():
                        session.add(
                            ChecklistQueueModel(
                                activity_name=name,
                                pending=[
                                    [item.model_dump(mode="json") for item in checklist]
                                    for checklist in checklists
                                ],
                            )
                        )
                    inserted = len(mapping)
                    logger.info("Seeded checklist queues for %s activities from %s", inserted, path)
                    session.flush()
                self._queue_names = set(session.scalars(select(ChecklistQueueModel.activity_name)))
            self._seeded = True
            return inserted

    def next_checklist(self, activity_name: str) -> List[ChecklistItem]:
        """Return the next pending checklist for ``activity_name`` and advance its queue."""
        self.ensure_seeded()
        if activity_name not in self._queue_names:
            return []
        with self._lock_for(activity_name):
            with session_scope() as session:
                stmt = (
                    select(ChecklistQueueModel)
                    .where(ChecklistQueueModel.activity_name == activity_name)
                    .with_for_update()
                )
                row = session.execute(stmt).scalar_one_or_none()
                if row is None or not row.pending:
                    return []
                pending = list(row.pending)
                current = pending[0]
                if len(pending) > 1:
                    row.pending = pending[1:]
                    row.updated_at = datetime.now(timezone.utc)
                return [ChecklistItem.model_validate(item) for item in current]

    def peek_checklist(self, activity_name: str) -> List[ChecklistItem]:
        self.ensure_seeded()
        with session_scope(commit=False) as session:
            row = session.get(ChecklistQueueModel, activity_name)
            if row is None or not row.pending:
                return []
            return [ChecklistItem.model_validate(item) for item in row.pending[0]]

    def pending_count(self, activity_name: str) -> int:
        self.ensure_seeded()
        with session_scope(commit=False) as session:
            row = session.get(ChecklistQueueModel, activity_name)
            return len(row.pending) if row is not None else 0


checklist_resolver = ChecklistResolver()

__all__ = [
    "ChecklistResolver",
    "DEFAULT_TASK_LIST",
    "checklist_resolver",
    "parse_task_list",
]
