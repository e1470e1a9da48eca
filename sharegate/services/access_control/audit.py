"""
Audit Sink
Best-effort, append-only audit trail
"""

import uuid
from typing import Any, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharegate.core.logging import get_logger
from sharegate.db.models import AuditEvent
from sharegate.models.enums import AuditAction, ObjectType

logger = get_logger(__name__)


class AuditSink:
    """
    Writes audit events in their own session

    Callers record events after their primary transaction commits. A failed
    write is logged and dropped; it never reaches the caller.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def record(
        self,
        action: AuditAction,
        object_type: ObjectType,
        object_id: Union[uuid.UUID, str],
        actor_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Append one audit event

        Returns:
            True if the event was stored
        """
        try:
            async with self._session_maker() as session:
                session.add(
                    AuditEvent(
                        actor_id=actor_id,
                        action=action,
                        object_type=object_type,
                        object_id=str(object_id),
                        event_metadata=metadata or None,
                    )
                )
                await session.commit()
            return True
        except Exception as e:
            logger.error(
                f"Audit write failed for {action.value} on {object_type.value} {object_id}: {e}"
            )
            return False
