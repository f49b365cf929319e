"""Task (checklist item) domain model"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class TaskBase(BaseModel):
    """Base task fields for creation"""
    title: str
    is_completed: bool = False
    assigned_to: Optional[str] = None  # member display value, None means unassigned
    workspace_id: str
    category_id: Optional[str] = None
    user_email: str


class TaskCreate(TaskBase):
    """Task creation model

    The id is generated client-side so the optimistic record and the
    feed's insert event share it.
    """
    id: str


class TaskUpdate(BaseModel):
    """Task update model - all fields optional"""
    title: Optional[str] = None
    is_completed: Optional[bool] = None
    assigned_to: Optional[str] = None
    category_id: Optional[str] = None


class Task(TaskBase):
    """Complete task model from database"""
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
