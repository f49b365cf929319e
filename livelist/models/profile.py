"""Profile domain model"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class ProfileBase(BaseModel):
    """Base profile fields"""
    email: str
    full_name: Optional[str] = None
    color: Optional[str] = None


class ProfileCreate(ProfileBase):
    """Profile creation model"""
    id: str  # auth identity id (UUID as string)


class ProfileUpdate(BaseModel):
    """Profile update model - all fields optional"""
    full_name: Optional[str] = None
    color: Optional[str] = None
    workspace_id: Optional[str] = None


class Profile(ProfileBase):
    """Complete profile model from database"""
    id: str
    workspace_id: Optional[str] = None  # active workspace pointer
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Member(BaseModel):
    """Read projection of a profile shown as a workspace member"""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    color: Optional[str] = None


class AuthenticatedUser(BaseModel):
    """Principal behind a verified credential"""
    id: str
    email: str
    full_name: Optional[str] = None
