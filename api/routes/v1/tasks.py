"""
api/routes/v1/tasks.py -- Task CRUD routes, always scoped to the caller.

Routes:
  POST   /tasks             -- create a task owned by the caller (201)
  GET    /tasks             -- list the caller's tasks
                               ?completed=true|false  filter
                               ?limit=N&skip=N        pagination
                               ?sort_by=field:asc|desc
                               X-Total-Count: matches before paging
  GET    /tasks/{task_id}   -- one task
  PATCH  /tasks/{task_id}   -- update description/completed
  DELETE /tasks/{task_id}   -- delete; returns the deleted task

Ownership: every handler passes ctx.user.id into TaskStore, which puts it in
the WHERE clause. Someone else's task and a missing task both return the
same 404, so task ids cannot be probed for existence.

Authentication runs as a dependency before any handler body, so an
unauthenticated request never reaches the store.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import TaskCreate, TaskResponse, TaskUpdate
from auth.dependencies import get_auth_context
from auth.models import AuthContext
from core.errors import AuthorizationError, InternalError, ValidationError
from tasks.models import Task
from tasks.store import SORTABLE_FIELDS, TaskStore

logger = logging.getLogger("taskmanager.tasks")

router = APIRouter()

_MAX_PAGE_SIZE = 100


def _task_not_found() -> AuthorizationError:
    # An owner-scoped miss covers both "absent" and "someone else's"; both render as 404.
    return AuthorizationError("Task not found.")


def _parse_sort(sort_by: Optional[str]) -> tuple[str, bool]:
    """Split "field:direction" into (field, descending). Defaults to created_at ascending."""
    if not sort_by:
        return "created_at", False
    field, _, direction = sort_by.partition(":")
    direction = direction or "asc"
    if field not in SORTABLE_FIELDS or direction not in ("asc", "desc"):
        raise ValidationError.for_field(
            "sort_by",
            f"Expected <field>:<asc|desc> with field one of: {', '.join(SORTABLE_FIELDS)}",
        )
    return field, direction == "desc"


# ---------------------------------------------------------------------------
# POST /tasks
# ---------------------------------------------------------------------------


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(
    request: Request,
    body: TaskCreate,
    ctx: AuthContext = Depends(get_auth_context),
) -> TaskResponse:
    task_store: TaskStore = request.app.state.task_store
    task_id = task_store.create_task(
        Task(description=body.description, completed=body.completed, owner_id=ctx.user.id)
    )
    created = task_store.get_task(task_id, ctx.user.id)
    if created is None:
        raise InternalError(f"Task {task_id} not readable after insert")
    logger.info("Task %s created by user %s", task_id, ctx.user.id)
    return TaskResponse.from_task(created)


# ---------------------------------------------------------------------------
# GET /tasks
# ---------------------------------------------------------------------------


@router.get("/tasks", response_model=list[TaskResponse])
def list_tasks(
    request: Request,
    response: Response,
    completed: Optional[bool] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=_MAX_PAGE_SIZE),
    skip: int = Query(default=0, ge=0),
    sort_by: Optional[str] = None,
    ctx: AuthContext = Depends(get_auth_context),
) -> list[TaskResponse]:
    """Return the caller's tasks. There is no parameter that widens the owner filter.

    X-Total-Count carries the number of matching tasks before limit/skip.
    """
    task_store: TaskStore = request.app.state.task_store
    field, descending = _parse_sort(sort_by)
    tasks = task_store.list_tasks(
        ctx.user.id,
        completed=completed,
        limit=limit,
        skip=skip,
        sort_by=field,
        descending=descending,
    )
    response.headers["X-Total-Count"] = str(task_store.count_tasks(ctx.user.id, completed=completed))
    return [TaskResponse.from_task(t) for t in tasks]


# ---------------------------------------------------------------------------
# /tasks/{task_id}
# ---------------------------------------------------------------------------


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(
    request: Request,
    task_id: str,
    ctx: AuthContext = Depends(get_auth_context),
) -> TaskResponse:
    task_store: TaskStore = request.app.state.task_store
    task = task_store.get_task(task_id, ctx.user.id)
    if task is None:
        raise _task_not_found()
    return TaskResponse.from_task(task)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    request: Request,
    task_id: str,
    body: TaskUpdate,
    ctx: AuthContext = Depends(get_auth_context),
) -> TaskResponse:
    """Apply a partial update. Unknown fields (owner included) are a 400."""
    task_store: TaskStore = request.app.state.task_store
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError(message="No fields to update.")
    task = task_store.update_task(task_id, ctx.user.id, **updates)
    if task is None:
        raise _task_not_found()
    return TaskResponse.from_task(task)


@router.delete("/tasks/{task_id}", response_model=TaskResponse)
def delete_task(
    request: Request,
    task_id: str,
    ctx: AuthContext = Depends(get_auth_context),
) -> TaskResponse:
    task_store: TaskStore = request.app.state.task_store
    task = task_store.delete_task(task_id, ctx.user.id)
    if task is None:
        raise _task_not_found()
    logger.info("Task %s deleted by user %s", task_id, ctx.user.id)
    return TaskResponse.from_task(task)
