"""Domain models for the application"""
from .profile import Profile, ProfileCreate, ProfileUpdate, Member, AuthenticatedUser
from .workspace import (
    Workspace, WorkspaceCreate, WorkspaceUpdate, WorkspaceSummary,
    WorkspaceMember, WorkspaceMemberCreate,
)
from .category import Category, CategoryCreate, CategoryUpdate
from .task import Task, TaskCreate, TaskUpdate
from .events import ChangeEvent, ChangeOperation, FeedTable

__all__ = [
    'Profile', 'ProfileCreate', 'ProfileUpdate', 'Member', 'AuthenticatedUser',
    'Workspace', 'WorkspaceCreate', 'WorkspaceUpdate', 'WorkspaceSummary',
    'WorkspaceMember', 'WorkspaceMemberCreate',
    'Category', 'CategoryCreate', 'CategoryUpdate',
    'Task', 'TaskCreate', 'TaskUpdate',
    'ChangeEvent', 'ChangeOperation', 'FeedTable',
]
