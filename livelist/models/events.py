"""Change feed event models"""
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel


class ChangeOperation(str, Enum):
    """Post-commit operation reported by the change feed"""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class FeedTable(str, Enum):
    """Tables the client watches"""
    CATEGORIES = "categories"
    TASKS = "tasks"


class ChangeEvent(BaseModel):
    """Canonical {op, entity} shape of a feed event"""
    operation: ChangeOperation
    table: FeedTable
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    @property
    def entity_id(self) -> Optional[str]:
        record = self.old if self.operation == ChangeOperation.DELETE else self.new
        if not record:
            return None
        value = record.get("id")
        return str(value) if value is not None else None
