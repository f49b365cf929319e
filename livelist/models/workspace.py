"""Workspace domain model"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from livelist.config import DEFAULT_WORKSPACE_NAME


class WorkspaceBase(BaseModel):
    """Base workspace fields"""
    name: str = DEFAULT_WORKSPACE_NAME


class WorkspaceCreate(WorkspaceBase):
    """Workspace creation model"""
    invite_code: str


class WorkspaceUpdate(BaseModel):
    """Workspace update model - only the name is mutable"""
    name: Optional[str] = None


class Workspace(WorkspaceBase):
    """Complete workspace model from database"""
    id: str
    invite_code: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkspaceSummary(BaseModel):
    """Entry of the known-workspaces list"""
    id: str
    name: str = DEFAULT_WORKSPACE_NAME


# Workspace Member Models
class WorkspaceMemberBase(BaseModel):
    """Base workspace member fields"""
    profile_id: str
    workspace_id: str


class WorkspaceMemberCreate(WorkspaceMemberBase):
    """Workspace member creation model"""
    pass


class WorkspaceMember(WorkspaceMemberBase):
    """Complete workspace member model from database"""
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
