"""Category (board) domain model"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CategoryBase(BaseModel):
    """Base category fields"""
    name: str
    workspace_id: str


class CategoryCreate(CategoryBase):
    """Category creation model"""
    id: Optional[str] = None


class CategoryUpdate(BaseModel):
    """Category update model"""
    name: Optional[str] = None


class Category(CategoryBase):
    """Complete category model from database"""
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
