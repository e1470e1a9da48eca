"""
Shared lookups used by several services
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sharegate.core.exceptions import NotFoundException
from sharegate.db.models import Document, DocumentVersion


async def get_document(
    session: AsyncSession,
    document_id: uuid.UUID,
    include_deleted: bool = False,
    for_update: bool = False,
) -> Document:
    """Load a document or raise NotFoundException; for_update row-locks it until commit"""
    document = await session.get(
        Document, document_id, populate_existing=True, with_for_update=for_update or None
    )
    if document is None or (document.is_deleted and not include_deleted):
        raise NotFoundException("Document")
    return document


async def get_latest_version(
    session: AsyncSession,
    document_id: uuid.UUID,
) -> Optional[DocumentVersion]:
    result = await session.execute(
        select(DocumentVersion)
        .where(DocumentVersion.document_id == document_id)
        .order_by(DocumentVersion.version_num.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
