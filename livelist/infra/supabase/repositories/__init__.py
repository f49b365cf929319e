"""Repository factory and exports"""
from supabase import AsyncClient  # type: ignore
from .profiles import ProfileRepository
from .workspaces import WorkspaceRepository, WorkspaceMemberRepository
from .categories import CategoryRepository
from .tasks import TaskRepository


class RepositoryFactory:
    """Factory for creating repository instances"""

    def __init__(self, client: AsyncClient):
        self._client = client
        self._profiles: ProfileRepository = None
        self._workspaces: WorkspaceRepository = None
        self._workspace_members: WorkspaceMemberRepository = None
        self._categories: CategoryRepository = None
        self._tasks: TaskRepository = None

    @property
    def profiles(self) -> ProfileRepository:
        """Get profiles repository"""
        if self._profiles is None:
            self._profiles = ProfileRepository(self._client)
        return self._profiles

    @property
    def workspaces(self) -> WorkspaceRepository:
        """Get workspaces repository"""
        if self._workspaces is None:
            self._workspaces = WorkspaceRepository(self._client)
        return self._workspaces

    @property
    def workspace_members(self) -> WorkspaceMemberRepository:
        """Get workspace members repository"""
        if self._workspace_members is None:
            self._workspace_members = WorkspaceMemberRepository(self._client)
        return self._workspace_members

    @property
    def categories(self) -> CategoryRepository:
        """Get categories repository"""
        if self._categories is None:
            self._categories = CategoryRepository(self._client)
        return self._categories

    @property
    def tasks(self) -> TaskRepository:
        """Get task repository"""
        if self._tasks is None:
            self._tasks = TaskRepository(self._client)
        return self._tasks


__all__ = [
    'RepositoryFactory',
    'ProfileRepository',
    'WorkspaceRepository',
    'WorkspaceMemberRepository',
    'CategoryRepository',
    'TaskRepository',
]
