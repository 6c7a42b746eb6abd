"""
tasks/store.py -- SQLAlchemy-backed persistence layer for tasks.

Uses SQLAlchemy Core (not ORM) so the dataclass in tasks/models.py remains
the authoritative domain representation.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. Route handlers never touch SQL directly.

Ownership scoping:
  Every method takes owner_id and puts it in the WHERE clause next to the
  task id. There is no "get by id" that ignores the owner. A task owned by
  someone else is therefore indistinguishable from a missing one: both come
  back as None and the route answers 404.

  Updates and deletes are one conditional statement with RETURNING, so the
  owner check and the write happen atomically at the storage layer.

Security: all queries use bound parameters. Sort columns come from the
_SORTABLE whitelist, never from raw user input.

Usage:
    store = TaskStore(engine)
    task_id = store.create_task(Task(description="Buy milk", owner_id=user.id))
    store.update_task(task_id, user.id, completed=True)
    store.list_tasks(user.id, completed=False, limit=10)
"""

import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from core.database import now_iso, tasks
from tasks.models import Task

_UPDATABLE_FIELDS = frozenset({"description", "completed"})

# Public sort key -> column. Only these may appear in ORDER BY.
_SORTABLE = {
    "created_at": tasks.c.created_at,
    "updated_at": tasks.c.updated_at,
    "description": tasks.c.description,
    "completed": tasks.c.completed,
}

SORTABLE_FIELDS = tuple(_SORTABLE)


class TaskStore:
    """Repository for Task entities, always scoped to an owner."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_task(self, task: Task) -> str:
        """Insert a task and return its generated id.

        Raises sqlalchemy.exc.IntegrityError if owner_id does not reference an
        existing user (foreign key).
        """
        task_id = uuid.uuid4().hex
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                tasks.insert().values(
                    id=task_id,
                    description=task.description.strip(),
                    completed=task.completed,
                    owner_id=task.owner_id,
                    created_at=now,
                    updated_at=now,
                )
            )
        return task_id

    def get_task(self, task_id: str, owner_id: str) -> Optional[Task]:
        """Return the task if it exists AND belongs to owner_id, else None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                tasks.select().where((tasks.c.id == task_id) & (tasks.c.owner_id == owner_id))
            ).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(
        self,
        owner_id: str,
        completed: Optional[bool] = None,
        limit: Optional[int] = None,
        skip: int = 0,
        sort_by: str = "created_at",
        descending: bool = False,
    ) -> list[Task]:
        """Return owner_id's tasks, optionally filtered, sorted and paginated.

        Raises ValueError for a sort_by outside SORTABLE_FIELDS.
        """
        column = _SORTABLE.get(sort_by)
        if column is None:
            raise ValueError(f"Cannot sort by {sort_by!r}")
        query = tasks.select().where(tasks.c.owner_id == owner_id)
        if completed is not None:
            query = query.where(tasks.c.completed == completed)
        query = query.order_by(column.desc() if descending else column.asc(), tasks.c.id)
        if limit is not None:
            query = query.limit(limit)
        if skip:
            query = query.offset(skip)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self, task_id: str, owner_id: str, /, **fields) -> Optional[Task]:
        """Apply description/completed changes to an owned task.

        Returns the updated Task, or None if no task with that id belongs to
        owner_id. Any other field (owner_id included) raises ValueError.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {sorted(unknown)!r}")
        if "description" in fields:
            fields["description"] = fields["description"].strip()
        with self.engine.begin() as conn:
            row = conn.execute(
                tasks.update()
                .where((tasks.c.id == task_id) & (tasks.c.owner_id == owner_id))
                .values(updated_at=now_iso(), **fields)
                .returning(*tasks.c)
            ).fetchone()
        return _row_to_task(row) if row is not None else None

    def delete_task(self, task_id: str, owner_id: str) -> Optional[Task]:
        """Delete an owned task and return it, or None if not found / not owned."""
        with self.engine.begin() as conn:
            row = conn.execute(
                tasks.delete()
                .where((tasks.c.id == task_id) & (tasks.c.owner_id == owner_id))
                .returning(*tasks.c)
            ).fetchone()
        return _row_to_task(row) if row is not None else None

    def count_tasks(self, owner_id: str, completed: Optional[bool] = None) -> int:
        """Count owner_id's tasks, with the same completed filter as list_tasks()."""
        query = select(func.count()).select_from(tasks).where(tasks.c.owner_id == owner_id)
        if completed is not None:
            query = query.where(tasks.c.completed == completed)
        with self.engine.connect() as conn:
            total = conn.execute(query).scalar()
        return total or 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        description=row.description,
        completed=bool(row.completed),
        owner_id=row.owner_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
