"""
tasks/models.py -- Domain dataclass for the task list.

Pure data container with zero logic. Ownership scoping lives in
tasks/store.py, where every query carries the owner id.

Layer rule: no imports from api/ or auth/.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Task:
    """A single to-do item belonging to exactly one user.

    owner_id is set from the authenticated identity at creation and never
    changes afterwards -- TaskStore.update_task() does not accept it.

    id is None before the record is written to the database.
    """

    description: str
    owner_id: str
    completed: bool = False
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
