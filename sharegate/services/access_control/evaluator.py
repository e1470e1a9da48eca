"""
Access Evaluator
Single decision point for document capabilities
"""

import uuid
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from sharegate.core.exceptions import AuthorizationException, RestrictedGateRequiredException
from sharegate.core.logging import get_logger
from sharegate.db.models import Document
from sharegate.models.auth import Principal
from sharegate.models.enums import Action, Classification
from sharegate.models.permission import PermissionSet
from sharegate.services.access_control.classification import ClassificationPolicy
from sharegate.services.access_control.grants import GrantStore
from sharegate.services.access_control.restricted_gate import RestrictedGate

logger = get_logger(__name__)

# Deny reasons
DENY_DELETED = "deleted"
DENY_GATE = "restricted_gate_required"
DENY_RESTRICTED = "restricted_non_owner"
DENY_NO_GRANT = "no_active_grant"
DENY_CAPABILITY = "missing_capability"


class AccessEvaluator:
    """Combine ownership, grant state and classification policy"""

    CONTENT_ACTIONS = (Action.VIEW, Action.DOWNLOAD)

    def __init__(self, grants: GrantStore, gate: RestrictedGate):
        self._grants = grants
        self._gate = gate

    async def _decide(
        self,
        principal: Principal,
        document: Document,
        action: Action,
        session: Optional[AsyncSession] = None,
    ) -> Tuple[bool, Optional[str]]:
        if document.is_deleted:
            return False, DENY_DELETED

        if principal.id == document.owner_id:
            if (
                ClassificationPolicy.requires_secondary_auth(document.classification)
                and action in self.CONTENT_ACTIONS
            ):
                if not await self._gate.consume_pass(principal, document.id):
                    return False, DENY_GATE
            return True, None

        # Stale grants never open a restricted document
        if document.classification == Classification.RESTRICTED:
            return False, DENY_RESTRICTED

        grant = await self._grants.get_active(document.id, principal.id, session=session)
        if grant is None:
            return False, DENY_NO_GRANT

        if not getattr(grant, action.column):
            return False, DENY_CAPABILITY
        return True, None

    async def can_perform(
        self,
        principal: Principal,
        document: Document,
        action: Action,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """
        Answer whether principal may perform action on document

        For the owner of a restricted document, view and download consume
        the session's gate pass.
        """
        allowed, reason = await self._decide(principal, document, action, session)
        logger.debug(
            f"{principal.id} {'granted' if allowed else 'denied'} {action.value} "
            f"on {document.id}{'' if allowed else f' ({reason})'}"
        )
        return allowed

    async def require(
        self,
        principal: Principal,
        document: Document,
        action: Action,
        session: Optional[AsyncSession] = None,
    ) -> None:
        """
        Raises:
            RestrictedGateRequiredException: owner lacks a gate pass
            AuthorizationException: any other denial
        """
        allowed, reason = await self._decide(principal, document, action, session)
        if allowed:
            return
        logger.info(f"Denied {action.value} on document {document.id} to {principal.id}: {reason}")
        if reason == DENY_GATE:
            raise RestrictedGateRequiredException(details={"document_id": str(document.id)})
        raise AuthorizationException(
            message=f"Access denied: missing '{action.value}' permission",
            details={"document_id": str(document.id), "required_permission": action.value},
        )

    async def effective_permissions(
        self,
        principal: Principal,
        document: Document,
        session: Optional[AsyncSession] = None,
    ) -> PermissionSet:
        """Capabilities held, without touching gate passes"""
        if document.is_deleted:
            return PermissionSet.none()
        if principal.id == document.owner_id:
            return PermissionSet.full()
        if document.classification == Classification.RESTRICTED:
            return PermissionSet.none()
        grant = await self._grants.get_active(document.id, principal.id, session=session)
        if grant is None:
            return PermissionSet.none()
        return PermissionSet.from_row(grant)

    async def access_level(
        self,
        principal: Principal,
        document: Document,
        session: Optional[AsyncSession] = None,
    ) -> str:
        if not document.is_deleted and principal.id == document.owner_id:
            return "owner"
        permissions = await self.effective_permissions(principal, document, session)
        return permissions.access_level()

    async def grantable_permissions(
        self,
        grantor_id: uuid.UUID,
        document: Document,
        session: Optional[AsyncSession] = None,
    ) -> PermissionSet:
        """
        The most a grantor may hand on: everything for the owner, their own
        capabilities for a sharer, nothing if they may not share at all
        """
        if document.is_deleted or not ClassificationPolicy.default_shareable(document.classification):
            return PermissionSet.none()
        if grantor_id == document.owner_id:
            return PermissionSet.full()

        required = ClassificationPolicy.share_capability(document.classification)
        grant = await self._grants.get_active(document.id, grantor_id, session=session)
        if grant is None or required is None or not getattr(grant, required.column):
            return PermissionSet.none()
        return PermissionSet.from_row(grant)

    async def require_share(
        self,
        principal: Principal,
        document: Document,
        session: Optional[AsyncSession] = None,
    ) -> PermissionSet:
        """Raise unless principal may share; return what they may grant"""
        ClassificationPolicy.ensure_shareable(document.classification)
        grantable = await self.grantable_permissions(principal.id, document, session)
        if not grantable.any():
            raise AuthorizationException(
                message="Access denied: you cannot share this document",
                details={"document_id": str(document.id)},
            )
        return grantable
