import logging
from typing import Any, Dict, Optional

from accommodation.models.audit import AuditLog

logger = logging.getLogger(__name__)


class AuditSink:
    """Append-only audit trail; a failed write is logged and never raised"""

    async def record(
        self,
        action: str,
        entity: str,
        entity_id: str,
        actor: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            await AuditLog(
                action=action,
                entity=entity,
                entity_id=entity_id,
                actor=actor,
                metadata=metadata or {},
            ).insert()
        except Exception:
            logger.exception("Failed to write audit entry %s for %s %s", action, entity, entity_id)


audit_sink = AuditSink()
