"""Client sync engine: state, change feed, optimistic mutations"""
from .change_feed import ChangeFeedSubscriber, FeedMailbox, normalize_broadcast_delete, normalize_event
from .coordinator import OptimisticMutationCoordinator
from .loader import WorkspaceLoader
from .state import EntityCollection, SessionPhase, SessionState, WorkspaceView
from .views import TaskOrder, visible_tasks

__all__ = [
    "ChangeFeedSubscriber",
    "FeedMailbox",
    "normalize_event",
    "normalize_broadcast_delete",
    "OptimisticMutationCoordinator",
    "WorkspaceLoader",
    "EntityCollection",
    "SessionPhase",
    "SessionState",
    "WorkspaceView",
    "TaskOrder",
    "visible_tasks",
]
