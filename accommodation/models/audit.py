from beanie import Document
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import Field


class AuditLog(Document):
    action: str  # REQUEST_CREATED, RESERVATION_ASSIGNED, ...
    entity: str
    entity_id: str
    actor: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "audit_logs"
        indexes = [
            "entity_id",
            "action",
            "created_at",
        ]
