"""Derived, read-only projections of the task list"""
from enum import Enum
from typing import Iterable, List, Optional

from livelist.models.task import Task

UNASSIGNED_FILTER = "unassigned"
ALL_FILTER = "all"


class TaskOrder(str, Enum):
    DATE = "date"
    ASSIGNMENT = "assignment"


def _is_unassigned(task: Task) -> bool:
    return not task.assigned_to or task.assigned_to == "Unassigned"


def visible_tasks(
    tasks: Iterable[Task],
    assignee_filter: Optional[str] = ALL_FILTER,
    order: TaskOrder = TaskOrder.DATE,
) -> List[Task]:
    """
    Filter and order tasks for display.

    ``assignee_filter`` is "all", "unassigned" or a member's assignee value.
    DATE keeps the stored (newest first) order; ASSIGNMENT sorts by assignee
    with unassigned tasks last.
    """
    result = list(tasks)
    if assignee_filter and assignee_filter != ALL_FILTER:
        if assignee_filter == UNASSIGNED_FILTER:
            result = [t for t in result if _is_unassigned(t)]
        else:
            result = [t for t in result if t.assigned_to == assignee_filter]

    if order == TaskOrder.ASSIGNMENT:
        result.sort(key=lambda t: (_is_unassigned(t), (t.assigned_to or "").casefold()))
    return result
