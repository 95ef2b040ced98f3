"""Relationship-pair (innermost) lifecycle: invite, accept, archive."""

import logging
from uuid import UUID

from willing_tree.db.models import Innermost, InnermostStatus, User
from willing_tree.services.capability_gate import CapabilityGate
from willing_tree.services.entity_store import EntityStore
from willing_tree.workflow.errors import (
    InvalidPayload,
    NotAPartner,
    NotFound,
    RelationshipInactive,
    RelationshipLimitReached,
)
from willing_tree.workflow.phases import PartnerRole

logger = logging.getLogger(__name__)


def partner_role(innermost: Innermost, user_id: UUID) -> PartnerRole:
    """Which side of the pair the user is on. Raises NotAPartner otherwise."""
    if innermost.partner_a_id == user_id:
        return PartnerRole.A
    if innermost.partner_b_id is not None and innermost.partner_b_id == user_id:
        return PartnerRole.B
    raise NotAPartner("You are not a partner in this relationship")


async def load_partnership(
    store: EntityStore,
    innermost_id: UUID,
    user: User,
) -> tuple[Innermost, PartnerRole]:
    """Load an innermost and resolve the user's role in it."""
    innermost = await store.load_innermost(innermost_id)
    if innermost is None:
        raise NotFound("Relationship not found")
    return innermost, partner_role(innermost, user.id)


class InnermostService:
    """Creates and transitions relationship-pairs."""

    def __init__(self, store: EntityStore, gate: CapabilityGate):
        self.store = store
        self.gate = gate

    async def _check_capacity(self, user: User) -> None:
        limit = self.gate.max_active_relationships(user)
        active = await self.store.count_active_innermosts(user.id)
        if active >= limit:
            raise RelationshipLimitReached(limit)

    async def list_for_user(self, user: User) -> list[Innermost]:
        return await self.store.list_innermosts_for_user(user)

    async def invite(
        self,
        user: User,
        partner_email: str,
        message: str | None = None,
    ) -> Innermost:
        """
        Start a pending relationship with whoever owns partner_email.

        The inviter becomes partner A. Raises RelationshipLimitReached when
        the inviter's plan has no room for another active relationship.
        """
        email = partner_email.strip().lower()
        if user.email and email == user.email.lower():
            raise InvalidPayload("You cannot invite yourself")
        await self._check_capacity(user)

        innermost = Innermost(
            partner_a_id=user.id,
            partner_b_id=None,
            invite_email=email,
            invite_message=message,
            status=InnermostStatus.PENDING.value,
            current_week=0,
        )
        await self.store.save_innermost(innermost)
        await self.store.commit()
        logger.info("User %s invited %s (innermost_id=%s)", user.id, email, innermost.id)
        return innermost

    async def accept(self, innermost_id: UUID, user: User) -> Innermost:
        """Accept a pending invitation addressed to the user's email."""
        innermost = await self.store.load_innermost(innermost_id)
        if innermost is None:
            raise NotFound("Relationship not found")
        if innermost.status != InnermostStatus.PENDING.value:
            raise RelationshipInactive("This invitation is no longer pending")
        if (
            innermost.partner_a_id == user.id
            or not user.email
            or user.email.lower() != innermost.invite_email.lower()
        ):
            raise NotAPartner("This invitation is not addressed to you")
        await self._check_capacity(user)

        innermost.partner_b_id = user.id
        innermost.status = InnermostStatus.ACTIVE.value
        await self.store.save_innermost(innermost)
        await self.store.commit()
        logger.info("User %s accepted innermost_id=%s", user.id, innermost.id)
        return innermost

    async def archive(self, innermost_id: UUID, user: User) -> Innermost:
        """End the relationship. No further weeks can be started or played."""
        innermost, _ = await load_partnership(self.store, innermost_id, user)
        if innermost.status == InnermostStatus.ARCHIVED.value:
            return innermost

        innermost.status = InnermostStatus.ARCHIVED.value
        await self.store.save_innermost(innermost)
        await self.store.commit()
        logger.info("User %s archived innermost_id=%s", user.id, innermost.id)
        return innermost
