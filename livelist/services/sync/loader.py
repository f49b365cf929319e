"""Fresh loading of a workspace view"""
import logging
from typing import Optional

from livelist.models.events import FeedTable
from livelist.services.members.display import sort_members
from livelist.services.preferences import LocalPreferences

from .change_feed import ChangeFeedSubscriber
from .state import SessionState, WorkspaceView

logger = logging.getLogger(__name__)


class WorkspaceLoader:
    """Loads workspace, members, categories and tasks into a view

    Load failures are reported on the session state and never raised;
    the view simply stays empty for that collection.
    """

    def __init__(
        self,
        repos,
        subscriber: ChangeFeedSubscriber,
        state: SessionState,
        preferences: Optional[LocalPreferences] = None,
    ):
        self.repos = repos
        self.subscriber = subscriber
        self.state = state
        self.preferences = preferences

    async def load(self, view: WorkspaceView) -> None:
        """Full fresh load, in dependency order"""
        await self.load_workspace(view)
        await self.load_members(view)
        await self.load_categories(view)
        await self.load_tasks(view)

    async def load_workspace(self, view: WorkspaceView) -> bool:
        try:
            workspace = await self.repos.workspaces.find_by_id(view.workspace_id)
        except Exception as e:
            logger.error(f"Unable to load workspace {view.workspace_id}: {e}")
            self.state.notify(f"Unable to load workspace: {e}")
            return False

        if workspace is None or not self.state.is_current(view):
            return False

        view.name = workspace.name
        view.invite_code = workspace.invite_code
        self.state.remember_workspace(workspace.id, workspace.name)
        return True

    async def load_members(self, view: WorkspaceView) -> bool:
        try:
            memberships = await self.repos.workspace_members.find_by_workspace(view.workspace_id)
            members = await self.repos.profiles.find_members([m.profile_id for m in memberships])
        except Exception as e:
            logger.error(f"Unable to load members of {view.workspace_id}: {e}")
            self.state.notify(f"Unable to load members: {e}")
            return False

        if not self.state.is_current(view):
            return False

        view.member_collection.reset(sort_members(members))
        return True

    async def load_categories(self, view: WorkspaceView) -> bool:
        """Load categories and, on first load, restore the last selected one"""
        token = self.subscriber.begin_load(FeedTable.CATEGORIES)
        try:
            categories = await self.repos.categories.find_by_workspace(view.workspace_id)
        except Exception as e:
            logger.error(f"Unable to load categories of {view.workspace_id}: {e}")
            self.state.notify(f"Unable to load categories: {e}")
            return False
        else:
            if not self.state.is_current(view) or not self.subscriber.is_latest_load(FeedTable.CATEGORIES, token):
                return False
            view.category_collection.reset(categories)
            if not view.categories_loaded:
                view.categories_loaded = True
                self._restore_selection(view)
            return True
        finally:
            self.subscriber.finish_load(FeedTable.CATEGORIES, token)

    def _restore_selection(self, view: WorkspaceView) -> None:
        if self.preferences is None or view.selected_category_id:
            return
        stored = self.preferences.get_last_category(view.workspace_id)
        if stored and stored in view.category_collection:
            view.selected_category_id = stored
            logger.info(f"Restored category {stored} for workspace {view.workspace_id}")

    async def load_tasks(self, view: WorkspaceView) -> bool:
        """Load tasks for the view's current category filter"""
        category_id = view.selected_category_id
        token = self.subscriber.begin_load(FeedTable.TASKS)
        try:
            tasks = await self.repos.tasks.find_by_workspace(view.workspace_id, category_id)
        except Exception as e:
            logger.error(f"Unable to load tasks of {view.workspace_id}: {e}")
            self.state.notify(f"Unable to load tasks: {e}")
            return False
        else:
            if (
                not self.state.is_current(view)
                or view.selected_category_id != category_id
                or not self.subscriber.is_latest_load(FeedTable.TASKS, token)
            ):
                return False
            view.task_collection.reset(tasks)
            return True
        finally:
            self.subscriber.finish_load(FeedTable.TASKS, token)
