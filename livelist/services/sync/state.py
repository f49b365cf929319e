"""Explicit client state container

session -> profile -> workspace -> {categories, tasks, members}

The active workspace view is owned by the change feed subscriber and the
optimistic mutation coordinator; everything else reads it through the
tuple-returning properties.
"""
import logging
from enum import Enum
from typing import Generic, Iterator, List, Optional, Tuple, TypeVar

from pydantic import BaseModel

from livelist.config import DEFAULT_WORKSPACE_NAME
from livelist.models.category import Category
from livelist.models.events import FeedTable
from livelist.models.profile import AuthenticatedUser, Member, Profile
from livelist.models.task import Task
from livelist.models.workspace import WorkspaceSummary

logger = logging.getLogger(__name__)

E = TypeVar('E', bound=BaseModel)


class SessionPhase(str, Enum):
    """Top-level session state"""
    SIGNED_OUT = "signed_out"
    NO_WORKSPACE = "no_workspace"
    WORKSPACE_ACTIVE = "workspace_active"


class EntityCollection(Generic[E]):
    """Ordered collection of records keyed by ``id``"""

    def __init__(self, items: Optional[List[E]] = None):
        self._items: List[E] = list(items or [])

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: object) -> bool:
        return self.index_of(entity_id) is not None

    def snapshot(self) -> Tuple[E, ...]:
        return tuple(self._items)

    def ids(self) -> List[str]:
        return [item.id for item in self._items]

    def index_of(self, entity_id) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == entity_id:
                return index
        return None

    def get(self, entity_id) -> Optional[E]:
        index = self.index_of(entity_id)
        return self._items[index] if index is not None else None

    def reset(self, items: List[E]) -> None:
        self._items = list(items)

    def prepend(self, item: E) -> None:
        """Insert at the front, or replace in place when the id is already present"""
        if not self.replace(item):
            self._items.insert(0, item)

    def replace(self, item: E) -> bool:
        """Replace the record with the same id, keeping its position"""
        index = self.index_of(item.id)
        if index is None:
            return False
        self._items[index] = item
        return True

    def insert_at(self, index: int, item: E) -> None:
        index = max(0, min(index, len(self._items)))
        self._items.insert(index, item)

    def remove(self, entity_id) -> Optional[Tuple[int, E]]:
        """Remove by id; returns (index, record) or None when already absent"""
        index = self.index_of(entity_id)
        if index is None:
            return None
        return index, self._items.pop(index)


class WorkspaceView:
    """In-memory view of the active workspace"""

    def __init__(
        self,
        workspace_id: str,
        generation: int,
        name: Optional[str] = None,
        invite_code: Optional[str] = None,
    ):
        self.workspace_id = workspace_id
        self.generation = generation
        self.name = name or DEFAULT_WORKSPACE_NAME
        self.invite_code = invite_code
        self.selected_category_id: Optional[str] = None
        self.categories_loaded = False
        self.category_collection: EntityCollection[Category] = EntityCollection()
        self.task_collection: EntityCollection[Task] = EntityCollection()
        self.member_collection: EntityCollection[Member] = EntityCollection()

    @property
    def categories(self) -> Tuple[Category, ...]:
        return self.category_collection.snapshot()

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return self.task_collection.snapshot()

    @property
    def members(self) -> Tuple[Member, ...]:
        return self.member_collection.snapshot()

    def collection(self, table: FeedTable) -> EntityCollection:
        if table == FeedTable.CATEGORIES:
            return self.category_collection
        return self.task_collection

    def category_for(self, task: Task) -> Optional[Category]:
        """Category of a task; None for uncategorised or not-yet-arrived categories"""
        if not task.category_id:
            return None
        return self.category_collection.get(task.category_id)

    def matches_filter(self, task: Task) -> bool:
        if task.workspace_id != self.workspace_id:
            return False
        return self.selected_category_id is None or task.category_id == self.selected_category_id


class SessionState:
    """Single source of truth for one signed-in client"""

    def __init__(self):
        self.phase = SessionPhase.SIGNED_OUT
        self.user: Optional[AuthenticatedUser] = None
        self.profile: Optional[Profile] = None
        self.known_workspaces: List[WorkspaceSummary] = []
        self.view: Optional[WorkspaceView] = None
        self.message: Optional[str] = None
        self.pending_invite_code: Optional[str] = None
        self._generation = 0

    @property
    def active_workspace_id(self) -> Optional[str]:
        return self.view.workspace_id if self.view else None

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, view: Optional[WorkspaceView]) -> bool:
        return view is not None and self.view is view

    def notify(self, message: Optional[str]) -> None:
        """Record the message shown to the user"""
        self.message = message

    def remember_workspace(self, workspace_id: str, name: str) -> None:
        for index, summary in enumerate(self.known_workspaces):
            if summary.id == workspace_id:
                self.known_workspaces[index] = WorkspaceSummary(id=workspace_id, name=name)
                return
        self.known_workspaces.append(WorkspaceSummary(id=workspace_id, name=name))

    def forget_workspace(self, workspace_id: str) -> None:
        self.known_workspaces = [w for w in self.known_workspaces if w.id != workspace_id]

    def clear(self) -> None:
        """Back to the signed-out state"""
        self.phase = SessionPhase.SIGNED_OUT
        self.user = None
        self.profile = None
        self.known_workspaces = []
        self.view = None
        self.pending_invite_code = None

