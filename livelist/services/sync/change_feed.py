"""Change feed subscriber

One mailbox per (workspace, table) subscription. Raw push payloads are
normalised into ``ChangeEvent`` and queued; a single consumer per mailbox
applies them to the active workspace view in arrival order. The advisory
``task-deleted`` broadcast is a second producer into the tasks mailbox, so
both delete paths share one idempotent removal.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from livelist.models.category import Category
from livelist.models.events import ChangeEvent, ChangeOperation, FeedTable
from livelist.models.task import Task

from .state import SessionState, WorkspaceView

logger = logging.getLogger(__name__)

TASK_DELETED_EVENT = "task-deleted"

_OPERATIONS = {
    "insert": ChangeOperation.INSERT,
    "update": ChangeOperation.UPDATE,
    "delete": ChangeOperation.DELETE,
}

_MODELS = {
    FeedTable.CATEGORIES: Category,
    FeedTable.TASKS: Task,
}


class FeedReconciler(Protocol):
    """Hook the mutation coordinator uses to merge feed records with in-flight edits"""

    def reconcile_incoming(self, table: FeedTable, record: BaseModel) -> Optional[BaseModel]:
        ...


def _deleted_id(body: Dict[str, Any]) -> Optional[str]:
    for key in ("old", "oldRecord", "old_record"):
        old = body.get(key)
        if not isinstance(old, dict):
            continue
        if old.get("id") is not None:
            return str(old["id"])
        record = old.get("record")
        if isinstance(record, dict) and record.get("id") is not None:
            return str(record["id"])
    return None


def normalize_event(raw: Any, table_hint: Optional[str] = None) -> Optional[ChangeEvent]:
    """
    Translate a raw postgres-changes payload into a ChangeEvent.

    Accepts the canonical shape (operation/table/new/old), the JS client
    shape (eventType/new/old/oldRecord) and the realtime-py shape
    (data.type/data.record/data.old_record). Returns None for anything
    that cannot be applied, including deletes without an id.
    """
    if not isinstance(raw, dict):
        logger.warning(f"Dropping non-dict feed payload: {raw!r}")
        return None

    body = raw["data"] if isinstance(raw.get("data"), dict) else raw

    op_raw = body.get("operation") or body.get("eventType") or body.get("type")
    operation = _OPERATIONS.get(str(op_raw).lower()) if op_raw else None
    if operation is None:
        logger.warning(f"Dropping feed payload with unknown operation: {op_raw!r}")
        return None

    try:
        table = FeedTable(body.get("table") or table_hint)
    except ValueError:
        logger.warning(f"Dropping feed payload for unwatched table: {body.get('table')!r}")
        return None

    if operation == ChangeOperation.DELETE:
        deleted_id = _deleted_id(body)
        if deleted_id is None:
            logger.warning(f"Dropping {table.value} delete without a record id")
            return None
        return ChangeEvent(operation=operation, table=table, old={"id": deleted_id})

    new = body.get("new") or body.get("record")
    if not isinstance(new, dict) or new.get("id") is None:
        logger.warning(f"Dropping {table.value} {operation.value} without a record")
        return None

    return ChangeEvent(operation=operation, table=table, new=new)


def normalize_broadcast_delete(raw: Any) -> Optional[ChangeEvent]:
    """Translate a ``task-deleted`` broadcast into a task delete event"""
    if not isinstance(raw, dict):
        return None
    payload = raw.get("payload") if isinstance(raw.get("payload"), dict) else raw
    task_id = payload.get("taskId")
    if not task_id:
        logger.warning("Dropping task-deleted broadcast without taskId")
        return None
    return ChangeEvent(
        operation=ChangeOperation.DELETE,
        table=FeedTable.TASKS,
        old={"id": str(task_id)},
    )


class FeedMailbox:
    """Queue plus single consumer for one subscription"""

    def __init__(
        self,
        table: FeedTable,
        workspace_id: str,
        generation: int,
        handler: Callable[["FeedMailbox", ChangeEvent], None],
    ):
        self.table = table
        self.workspace_id = workspace_id
        self.generation = generation
        self._handler = handler
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._run())

    def put(self, event: Optional[ChangeEvent]) -> None:
        """Producer entry point; safe to call from transport callbacks"""
        if event is None:
            return
        self._queue.put_nowait(event)

    async def drain(self) -> None:
        """Wait until every queued event has been handled"""
        await self._queue.join()

    async def close(self) -> None:
        if self._consumer is None:
            return
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._handler(self, event)
            except Exception:
                logger.exception(f"Failed to apply {self.table.value} event")
            finally:
                self._queue.task_done()


class ChangeFeedSubscriber:
    """Keeps the active workspace view in sync with the server change feed"""

    def __init__(self, transport, state: SessionState):
        self._transport = transport
        self._state = state
        self.reconciler: Optional[FeedReconciler] = None
        self.on_selected_category_removed: Optional[Callable[[WorkspaceView], None]] = None
        self._mailboxes: Dict[FeedTable, FeedMailbox] = {}
        self._channels: List[Any] = []
        self._broadcast_channel: Any = None
        self._held: Dict[FeedTable, List[ChangeEvent]] = {}
        self._load_tokens: Dict[FeedTable, int] = {}

    @property
    def is_active(self) -> bool:
        return bool(self._mailboxes)

    async def start(self, view: WorkspaceView) -> None:
        """Open one subscription per watched table plus the delete broadcast"""
        for table in (FeedTable.CATEGORIES, FeedTable.TASKS):
            mailbox = FeedMailbox(table, view.workspace_id, view.generation, self._handle)
            mailbox.start()
            self._mailboxes[table] = mailbox

        tasks_mailbox = self._mailboxes[FeedTable.TASKS]
        for table, mailbox in self._mailboxes.items():
            channel = await self._transport.subscribe_table(
                f"{table.value}-realtime:{view.workspace_id}:{view.generation}",
                table.value,
                view.workspace_id,
                lambda raw, mailbox=mailbox: mailbox.put(normalize_event(raw, mailbox.table.value)),
            )
            self._channels.append(channel)

        self._broadcast_channel = await self._transport.subscribe_broadcast(
            f"workspace:{view.workspace_id}:tasks",
            TASK_DELETED_EVENT,
            lambda raw: tasks_mailbox.put(normalize_broadcast_delete(raw)),
        )
        self._channels.append(self._broadcast_channel)
        logger.info(f"Change feed started for workspace {view.workspace_id} (generation {view.generation})")

    async def stop(self) -> None:
        """Unsubscribe every channel and discard queued events"""
        channels, self._channels = self._channels, []
        self._broadcast_channel = None
        for channel in channels:
            try:
                await self._transport.unsubscribe(channel)
            except Exception as e:
                logger.warning(f"Failed to remove realtime channel: {e}")

        mailboxes, self._mailboxes = self._mailboxes, {}
        for mailbox in mailboxes.values():
            await mailbox.close()

        # load tokens stay monotonic so a load started before teardown can
        # never release events held for the next workspace
        self._held.clear()
        if mailboxes:
            logger.info("Change feed stopped")

    async def drain(self) -> None:
        """Wait for every queued event to be applied"""
        for mailbox in list(self._mailboxes.values()):
            await mailbox.drain()

    async def broadcast_task_deleted(self, task_id: str) -> None:
        """Advisory fan-out of a confirmed delete; failures are only logged"""
        if self._broadcast_channel is None:
            return
        try:
            await self._transport.broadcast(self._broadcast_channel, TASK_DELETED_EVENT, {"taskId": task_id})
        except Exception as e:
            logger.warning(f"Failed to broadcast deletion of task {task_id}: {e}")

    # ------------------------------------------------------------------
    # Snapshot loading
    # ------------------------------------------------------------------

    def begin_load(self, table: FeedTable) -> int:
        """Hold incoming events for a table while its snapshot is loading"""
        token = self._load_tokens.get(table, 0) + 1
        self._load_tokens[table] = token
        self._held.setdefault(table, [])
        return token

    def is_latest_load(self, table: FeedTable, token: int) -> bool:
        return self._load_tokens.get(table) == token

    def finish_load(self, table: FeedTable, token: int) -> None:
        """Replay events held since ``begin_load`` unless a newer load is running"""
        if self._load_tokens.get(table) != token:
            return
        held = self._held.pop(table, [])
        view = self._state.view
        if view is None:
            return
        for event in held:
            self._apply_to_view(view, event)

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------

    def _handle(self, mailbox: FeedMailbox, event: ChangeEvent) -> None:
        self.apply(event, mailbox.workspace_id, mailbox.generation)

    def apply(self, event: ChangeEvent, workspace_id: str, generation: int) -> bool:
        """Apply one event scoped to a subscription; returns True if the view changed"""
        view = self._state.view
        if view is None or view.workspace_id != workspace_id or view.generation != generation:
            logger.warning(
                f"Discarding {event.table.value} {event.operation.value} "
                f"from inactive workspace {workspace_id}"
            )
            return False

        held = self._held.get(event.table)
        if held is not None:
            held.append(event)
            return False

        return self._apply_to_view(view, event)

    def _apply_to_view(self, view: WorkspaceView, event: ChangeEvent) -> bool:
        collection = view.collection(event.table)
        entity_id = event.entity_id

        if event.operation == ChangeOperation.DELETE:
            removed = collection.remove(entity_id)
            if removed and event.table == FeedTable.CATEGORIES:
                self._category_removed(view, entity_id)
            return removed is not None

        try:
            record = _MODELS[event.table](**event.new)
        except ModelValidationError as e:
            logger.warning(f"Dropping malformed {event.table.value} record {entity_id}: {e}")
            return False

        if record.workspace_id != view.workspace_id:
            if event.operation == ChangeOperation.UPDATE and collection.remove(entity_id):
                logger.info(f"{event.table.value} {entity_id} moved out of workspace {view.workspace_id}")
                return True
            return False

        if self.reconciler is not None:
            record = self.reconciler.reconcile_incoming(event.table, record)
            if record is None:
                return False

        visible = event.table == FeedTable.CATEGORIES or view.matches_filter(record)

        if event.operation == ChangeOperation.INSERT:
            if not visible:
                return False
            collection.prepend(record)
            return True

        if not visible:
            return collection.remove(entity_id) is not None
        return collection.replace(record)

    def _category_removed(self, view: WorkspaceView, category_id: str) -> None:
        if view.selected_category_id != category_id:
            return
        view.selected_category_id = None
        if self.on_selected_category_removed is not None:
            self.on_selected_category_removed(view)
