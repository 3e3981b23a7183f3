from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import ActivityType, EntityType


@dataclass(frozen=True)
class FieldChange:
    old: Any
    new: Any


@dataclass(frozen=True)
class ActivityEntry:
    """One audit trail row (``activity_log`` table)."""

    id: str
    activity_type: ActivityType
    entity_type: EntityType
    entity_id: str
    entity_name: Optional[str]
    description: str
    user_name: Optional[str]
    metadata: Optional[dict]
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "ActivityEntry":
        return cls(
            id=str(row["id"]),
            activity_type=ActivityType(row["activity_type"]),
            entity_type=EntityType(row["entity_type"]),
            entity_id=str(row["entity_id"]),
            entity_name=row.get("entity_name"),
            description=row.get("description") or "",
            user_name=row.get("user_name"),
            metadata=row.get("metadata"),
            created_at=row.get("created_at"),
        )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_type": self.activity_type.value,
            "entity_type": self.entity_type.value,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "description": self.description,
            "user_name": self.user_name,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
