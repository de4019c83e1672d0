# foodshare/services/lifecycle.py
import logging
from typing import Callable

from foodshare.core.clock import utcnow
from foodshare.core.errors import AuthorizationError, NotFoundError
from foodshare.core.states import check_transition
from foodshare.schemas import Actor, Claimant, Donation, DonationDraft, DonationStatus, Role
from foodshare.services.notifications import EmailMessage, Outbox, donation_confirmation, pickup_instructions
from foodshare.services.validation import validate_draft

logger = logging.getLogger(__name__)

CREATOR_ROLES = (Role.DONOR, Role.ADMIN)


class DonationLifecycle:
    """
    Role-gated donation transitions. Every check runs before the write, and
    the write itself is conditional on the source status so a lost race
    comes back as ConflictError instead of overwriting.
    """

    def __init__(self, repo, outbox: Outbox, clock: Callable = utcnow):
        self.repo = repo
        self.outbox = outbox
        self.clock = clock

    async def create(self, actor: Actor, draft: DonationDraft) -> str:
        if actor.role not in CREATOR_ROLES:
            raise AuthorizationError("Only donors can post donations")
        content = validate_draft(draft, self.clock())
        donation_id = await self.repo.create(content, actor)
        logger.info("donation %s created by %s", donation_id, actor.id)
        self._notify(donation_confirmation(content, actor))
        return donation_id

    async def claim(self, actor: Actor, donation_id: str) -> Donation:
        donation = await self._get(donation_id)
        check_transition(donation, DonationStatus.CLAIMED, actor, self.clock())
        claimant = Claimant(
            id=actor.id,
            name=actor.name,
            email=actor.email,
            phone=actor.phone,
            organization_name=actor.organization_name,
        )
        claimed = await self.repo.claim(donation_id, claimant)
        logger.info("donation %s claimed by %s", donation_id, actor.id)
        self._notify(pickup_instructions(claimed, claimant))
        return claimed

    async def mark_picked_up(self, actor: Actor, donation_id: str) -> Donation:
        return await self._advance(actor, donation_id, DonationStatus.PICKED_UP)

    async def complete(self, actor: Actor, donation_id: str) -> Donation:
        return await self._advance(actor, donation_id, DonationStatus.COMPLETED)

    async def _advance(self, actor: Actor, donation_id: str, dst: DonationStatus) -> Donation:
        donation = await self._get(donation_id)
        check_transition(donation, dst, actor, self.clock())
        updated = await self.repo.update_status(donation_id, dst, expected=donation.status)
        logger.info("donation %s %s -> %s by %s", donation_id, donation.status.value, dst.value, actor.id)
        return updated

    async def _get(self, donation_id: str) -> Donation:
        donation = await self.repo.get(donation_id)
        if donation is None:
            raise NotFoundError("Donation not found")
        return donation

    def _notify(self, msg: EmailMessage) -> None:
        # the transition is already committed; a queueing problem is only logged
        try:
            self.outbox.enqueue(msg)
        except Exception:
            logger.exception("could not queue %s for %s", msg.kind, msg.to_email)
