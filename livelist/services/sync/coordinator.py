"""Optimistic mutation coordinator

Every user mutation is applied to the active view first, then written
remotely. Success keeps the optimistic state; failure rolls back and raises
``RemoteWriteError``.

In-flight writes are keyed by (table, entity id, field). Each key keeps the
last value the server confirmed and the token of the newest write. A failed
write only rolls back if it is still the newest one for its key, and then
restores the last confirmed value, so overlapping edits converge on the
most recently confirmed state.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Tuple

from pydantic import BaseModel

from livelist.errors import RemoteWriteError, ValidationError
from livelist.models.category import Category, CategoryCreate
from livelist.models.events import FeedTable
from livelist.models.profile import Member, ProfileUpdate
from livelist.models.task import Task, TaskCreate, TaskUpdate
from livelist.models.workspace import WorkspaceUpdate
from livelist.services.members.display import assignee_value_for_member
from livelist.services.preferences import LocalPreferences

from .change_feed import ChangeFeedSubscriber
from .loader import WorkspaceLoader
from .state import SessionState, WorkspaceView

logger = logging.getLogger(__name__)

# Pseudo tables for state that is not delivered by the change feed
WORKSPACES = "workspaces"
PROFILES = "profiles"

PendingKey = Tuple[str, str, str]


@dataclass
class _PendingField:
    token: int
    confirmed: Any


class OptimisticMutationCoordinator:
    """Applies local mutations immediately and reconciles them with the store"""

    def __init__(
        self,
        state: SessionState,
        repos,
        subscriber: ChangeFeedSubscriber,
        loader: WorkspaceLoader,
        preferences: Optional[LocalPreferences] = None,
    ):
        self.state = state
        self.repos = repos
        self.subscriber = subscriber
        self.loader = loader
        self.preferences = preferences
        self._pending: Dict[PendingKey, _PendingField] = {}
        self._pending_deletes: Set[Tuple[str, str]] = set()
        self._token = 0
        self._background: Set[asyncio.Task] = set()

        subscriber.reconciler = self
        subscriber.on_selected_category_removed = self._schedule_task_reload

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget in-flight state; called on workspace teardown"""
        self._pending.clear()
        self._pending_deletes.clear()
        for task in self._background:
            task.cancel()
        self._background.clear()

    def has_pending(self, table, entity_id: str) -> bool:
        table = getattr(table, "value", table)
        return (table, entity_id) in self._pending_deletes or any(
            key[0] == table and key[1] == entity_id for key in self._pending
        )

    def _next_token(self) -> int:
        self._token += 1
        return self._token

    def _require_view(self) -> WorkspaceView:
        view = self.state.view
        if view is None:
            raise ValidationError("No active workspace")
        return view

    def _failure(self, label: str, error: Exception) -> RemoteWriteError:
        message = f"Unable to {label}: {error}"
        logger.error(message)
        self.state.notify(message)
        return RemoteWriteError(message, cause=error)

    async def _mutate_field(
        self,
        view: WorkspaceView,
        key: PendingKey,
        read: Callable[[], Any],
        write: Callable[[Any], None],
        value: Any,
        remote: Callable[[], Awaitable[Any]],
        label: str,
    ) -> None:
        """Run one optimistic single-field write"""
        pending = self._pending.get(key)
        if pending is None:
            pending = _PendingField(token=0, confirmed=read())
            self._pending[key] = pending
        token = self._next_token()
        pending.token = token
        write(value)

        try:
            await remote()
        except Exception as e:
            self._rollback_field(view, key, token, write)
            raise self._failure(label, e)

        current = self._pending.get(key)
        if current is None:
            return
        current.confirmed = value
        if current.token == token:
            del self._pending[key]

    def _rollback_field(self, view: WorkspaceView, key: PendingKey, token: int, write: Callable[[Any], None]) -> None:
        pending = self._pending.get(key)
        if pending is None or pending.token != token:
            logger.info(f"Discarding stale rollback for {key[0]} {key[1]}.{key[2]}")
            return
        del self._pending[key]
        if not self.state.is_current(view):
            return
        write(pending.confirmed)

    def _entity_accessors(self, view: WorkspaceView, table: FeedTable, entity_id: str, field: str):
        collection = view.collection(table)

        def read():
            entity = collection.get(entity_id)
            return getattr(entity, field) if entity is not None else None

        def write(value):
            entity = collection.get(entity_id)
            if entity is not None:
                collection.replace(entity.model_copy(update={field: value}))

        return read, write

    def reconcile_incoming(self, table: FeedTable, record: BaseModel) -> Optional[BaseModel]:
        """
        Merge a feed record with local in-flight writes.

        Records for entities with an in-flight delete are ignored. Fields
        with in-flight writes keep their optimistic value while the feed
        value becomes the new confirmed value.
        """
        if (table.value, record.id) in self._pending_deletes:
            return None

        view = self.state.view
        local = view.collection(table).get(record.id) if view else None
        overrides = {}
        for (key_table, entity_id, field), pending in self._pending.items():
            if key_table != table.value or entity_id != record.id:
                continue
            pending.confirmed = getattr(record, field)
            if local is not None:
                overrides[field] = getattr(local, field)
        if overrides:
            record = record.model_copy(update=overrides)
        return record

    def _schedule_task_reload(self, view: WorkspaceView) -> None:
        task = asyncio.create_task(self.loader.load_tasks(view))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def create_task(self, title: str, category_id: Optional[str] = None) -> Task:
        """Create a task in the selected (or given) category"""
        view = self._require_view()
        profile = self.state.profile
        trimmed = title.strip()
        if not trimmed:
            raise ValidationError("Task title cannot be empty")
        if profile is None:
            raise ValidationError("Sign in to add tasks")

        category_id = category_id or view.selected_category_id
        if category_id is not None and category_id not in view.category_collection:
            raise ValidationError("Board not found")
        task = Task(
            id=str(uuid.uuid4()),
            title=trimmed,
            is_completed=False,
            assigned_to=None,
            workspace_id=view.workspace_id,
            category_id=category_id,
            user_email=profile.email,
            created_at=datetime.now(timezone.utc),
        )
        if view.matches_filter(task):
            view.task_collection.prepend(task)

        try:
            created = await self.repos.tasks.create(TaskCreate(**task.model_dump(exclude={"created_at"})))
        except Exception as e:
            if self.state.is_current(view):
                view.task_collection.remove(task.id)
            raise self._failure("add task", e)

        if self.state.is_current(view) and not self.has_pending(FeedTable.TASKS, task.id):
            view.task_collection.replace(created)
        logger.info(f"Created task {task.id} in workspace {view.workspace_id}")
        return created

    async def toggle_task(self, task_id: str) -> None:
        view = self._require_view()
        task = view.task_collection.get(task_id)
        if task is None:
            raise ValidationError("Task not found")
        value = not task.is_completed
        read, write = self._entity_accessors(view, FeedTable.TASKS, task_id, "is_completed")
        await self._mutate_field(
            view,
            (FeedTable.TASKS.value, task_id, "is_completed"),
            read,
            write,
            value,
            lambda: self.repos.tasks.update(task_id, TaskUpdate(is_completed=value)),
            "update task",
        )

    async def edit_task_title(self, task_id: str, title: str) -> None:
        view = self._require_view()
        trimmed = title.strip()
        if not trimmed:
            raise ValidationError("Task title cannot be empty")
        if view.task_collection.get(task_id) is None:
            raise ValidationError("Task not found")
        read, write = self._entity_accessors(view, FeedTable.TASKS, task_id, "title")
        await self._mutate_field(
            view,
            (FeedTable.TASKS.value, task_id, "title"),
            read,
            write,
            trimmed,
            lambda: self.repos.tasks.update(task_id, TaskUpdate(title=trimmed)),
            "update task",
        )

    async def assign_task(self, task_id: str, member: Optional[Member]) -> None:
        """Assign a task to a member, or unassign it with ``None``"""
        view = self._require_view()
        if view.task_collection.get(task_id) is None:
            raise ValidationError("Task not found")
        value = assignee_value_for_member(member) if member is not None else None
        read, write = self._entity_accessors(view, FeedTable.TASKS, task_id, "assigned_to")
        await self._mutate_field(
            view,
            (FeedTable.TASKS.value, task_id, "assigned_to"),
            read,
            write,
            value,
            lambda: self.repos.tasks.update(task_id, TaskUpdate(assigned_to=value)),
            "assign task",
        )

    async def delete_task(self, task_id: str) -> None:
        """Delete a task; on failure it is reinserted at its prior position"""
        view = self._require_view()
        removed = view.task_collection.remove(task_id)
        if removed is None:
            return
        index, task = removed
        key = (FeedTable.TASKS.value, task_id)
        self._pending_deletes.add(key)
        in_flight = {k[2]: pending for k, pending in self._pending.items() if k[:2] == key}

        try:
            await self.repos.tasks.delete(task_id)
        except Exception as e:
            self._pending_deletes.discard(key)
            if self.state.is_current(view) and task_id not in view.task_collection:
                # field writes that settled while the task was out of the view
                settled = {
                    field: pending.confirmed
                    for field, pending in in_flight.items()
                    if self._pending.get(key + (field,)) is not pending
                }
                view.task_collection.insert_at(index, task.model_copy(update=settled) if settled else task)
            raise self._failure("delete task", e)

        self._pending_deletes.discard(key)
        for pending_key in [k for k in self._pending if k[:2] == key]:
            del self._pending[pending_key]
        await self.subscriber.broadcast_task_deleted(task_id)
        logger.info(f"Deleted task {task_id}")

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def select_category(self, category_id: Optional[str]) -> None:
        """Change the category filter, persist it and reload tasks"""
        view = self._require_view()
        if category_id is not None and category_id not in view.category_collection:
            raise ValidationError("Board not found")
        if view.selected_category_id == category_id:
            return
        view.selected_category_id = category_id
        if category_id and self.preferences is not None:
            self.preferences.set_last_category(view.workspace_id, category_id)
        await self.loader.load_tasks(view)

    async def create_category(self, name: str) -> Category:
        """Create a category and select it"""
        view = self._require_view()
        trimmed = name.strip()
        if not trimmed:
            raise ValidationError("Board name cannot be empty")

        category = Category(
            id=str(uuid.uuid4()),
            name=trimmed,
            workspace_id=view.workspace_id,
            created_at=datetime.now(timezone.utc),
        )
        view.category_collection.prepend(category)

        try:
            created = await self.repos.categories.create(
                CategoryCreate(id=category.id, name=trimmed, workspace_id=view.workspace_id)
            )
        except Exception as e:
            if self.state.is_current(view):
                view.category_collection.remove(category.id)
            raise self._failure("create list", e)

        if not self.state.is_current(view):
            return created
        view.category_collection.replace(created)
        await self.select_category(created.id)
        return created

    async def delete_category(self, category_id: str) -> None:
        """Delete a category; its tasks become uncategorised server-side"""
        view = self._require_view()
        removed = view.category_collection.remove(category_id)
        if removed is None:
            return
        index, category = removed
        was_selected = view.selected_category_id == category_id
        if was_selected:
            view.selected_category_id = None
        key = (FeedTable.CATEGORIES.value, category_id)
        self._pending_deletes.add(key)

        try:
            await self.repos.categories.delete(category_id)
        except Exception as e:
            self._pending_deletes.discard(key)
            if self.state.is_current(view) and category_id not in view.category_collection:
                view.category_collection.insert_at(index, category)
                if was_selected and view.selected_category_id is None:
                    view.selected_category_id = category_id
            raise self._failure("delete board", e)

        self._pending_deletes.discard(key)
        logger.info(f"Deleted category {category_id}")
        if was_selected and self.state.is_current(view):
            await self.loader.load_tasks(view)

    # ------------------------------------------------------------------
    # Workspace and profile
    # ------------------------------------------------------------------

    async def rename_workspace(self, name: str) -> None:
        view = self._require_view()
        trimmed = name.strip()
        if not trimmed:
            raise ValidationError("Workspace name cannot be empty")

        def write(value):
            view.name = value
            self.state.remember_workspace(view.workspace_id, value)

        await self._mutate_field(
            view,
            (WORKSPACES, view.workspace_id, "name"),
            lambda: view.name,
            write,
            trimmed,
            lambda: self.repos.workspaces.update(view.workspace_id, WorkspaceUpdate(name=trimmed)),
            "update workspace name",
        )

    async def update_own_color(self, member_id: str, color: str) -> None:
        """Set the explicit badge color of the signed-in member"""
        view = self._require_view()
        profile = self.state.profile
        if profile is None or member_id != profile.id:
            raise ValidationError("You can only change your own color")
        if view.member_collection.get(member_id) is None:
            raise ValidationError("Member not found")

        collection = view.member_collection

        def read():
            member = collection.get(member_id)
            return member.color if member else None

        def write(value):
            member = collection.get(member_id)
            if member is not None:
                collection.replace(member.model_copy(update={"color": value}))
            if self.state.profile is not None and self.state.profile.id == member_id:
                self.state.profile = self.state.profile.model_copy(update={"color": value})

        await self._mutate_field(
            view,
            (PROFILES, member_id, "color"),
            read,
            write,
            color,
            lambda: self.repos.profiles.update(member_id, ProfileUpdate(color=color)),
            "update color",
        )
