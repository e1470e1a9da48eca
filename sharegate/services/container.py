"""
Service Container
Wires the access-control and document services around one session factory
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharegate.core.config import settings
from sharegate.core.rate_limit import RateLimiter
from sharegate.services.access_control import (
    AccessEvaluator,
    AuditSink,
    GrantStore,
    RestrictedGate,
    ShareLinkEngine,
)
from sharegate.services.documents import DocumentService
from sharegate.storage.client import ObjectStorage
from sharegate.storage.transform import FileTransform


@dataclass
class Services:
    audit: AuditSink
    grants: GrantStore
    gate: RestrictedGate
    evaluator: AccessEvaluator
    links: ShareLinkEngine
    documents: DocumentService


def build_services(
    session_maker: async_sessionmaker[AsyncSession],
    storage: ObjectStorage,
    transform: Optional[FileTransform] = None,
    activation_limiter: Optional[RateLimiter] = None,
) -> Services:
    """Build one set of services; gate passes live as long as the returned object"""
    audit = AuditSink(session_maker)
    grants = GrantStore(session_maker, audit)
    gate = RestrictedGate(session_maker, audit)
    evaluator = AccessEvaluator(grants, gate)
    if activation_limiter is None:
        activation_limiter = RateLimiter(
            max_requests=settings.ACTIVATION_RATE_LIMIT_PER_MINUTE,
            window_seconds=60,
            name="share_link_activation",
        )
    links = ShareLinkEngine(session_maker, grants, evaluator, audit, limiter=activation_limiter)
    documents = DocumentService(
        session_maker,
        evaluator=evaluator,
        grants=grants,
        links=links,
        gate=gate,
        audit=audit,
        storage=storage,
        transform=transform,
    )
    return Services(
        audit=audit,
        grants=grants,
        gate=gate,
        evaluator=evaluator,
        links=links,
        documents=documents,
    )
