# foodshare/services/notifications.py
"""
Outbound email for lifecycle events.

Lifecycle calls only ``Outbox.enqueue``; a background worker started in the
app lifespan hands each message to the sender once. Delivery problems are
logged and recorded on the outbox entry and never reach the caller.
"""
import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Deque, Optional

import httpx
from pydantic import BaseModel

from foodshare.core.clock import utcnow
from foodshare.core.config import Settings
from foodshare.core.errors import NotificationError
from foodshare.schemas import Actor, Claimant, Donation, DonationCreate

logger = logging.getLogger(__name__)


class EmailMessage(BaseModel):
    kind: str
    to_email: str
    to_name: str
    message: str


class OutboxEntry(BaseModel):
    message: EmailMessage
    status: str = "pending"
    created_at: datetime
    delivered_at: Optional[datetime] = None
    error: Optional[str] = None


# --------------------------
# Messages
# --------------------------
def donation_confirmation(content: DonationCreate, donor: Actor) -> EmailMessage:
    return EmailMessage(
        kind="donation.created",
        to_email=donor.email,
        to_name=donor.name,
        message=(
            f'Your food donation "{content.food_type}" has been successfully posted '
            "and is now available for pickup by NGOs and volunteers."
        ),
    )


def pickup_instructions(donation: Donation, claimant: Claimant) -> EmailMessage:
    return EmailMessage(
        kind="donation.claimed",
        to_email=claimant.email,
        to_name=claimant.name,
        message=(
            f'You have successfully claimed "{donation.food_type}". Please coordinate with '
            f"{donation.donor_name} for pickup at {donation.location.address}."
        ),
    )


def welcome(name: str, email: str) -> EmailMessage:
    return EmailMessage(
        kind="user.welcome",
        to_email=email,
        to_name=name,
        message=(
            "Welcome to FoodShare! Thank you for joining our mission to reduce food waste "
            "and help communities in need."
        ),
    )


# --------------------------
# Senders
# --------------------------
class EmailJSSender:
    """Posts to the EmailJS REST API with a single shared template."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = settings.emailjs_url
        self.service_id = settings.emailjs_service_id
        self.template_id = settings.emailjs_template_id
        self.public_key = settings.emailjs_public_key
        self.from_name = settings.email_from_name
        self.timeout = httpx.Timeout(settings.email_timeout_s, connect=5.0)
        self.transport = transport

    async def send(self, msg: EmailMessage) -> None:
        body = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": {
                "to_email": msg.to_email,
                "to_name": msg.to_name,
                "from_name": self.from_name,
                "message": msg.message,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(self.url, json=body)
        except httpx.HTTPError as ex:
            raise NotificationError(f"EmailJS unreachable: {ex}") from ex
        if not 200 <= r.status_code < 300:
            raise NotificationError(f"EmailJS returned {r.status_code}: {r.text[:200]}")


class LogSender:
    """Used when email is disabled; records what would have been sent."""

    async def send(self, msg: EmailMessage) -> None:
        logger.info("email disabled, not sending %s to %s", msg.kind, msg.to_email)


def build_sender(settings: Settings):
    if settings.email_enabled:
        return EmailJSSender(settings)
    return LogSender()


# --------------------------
# Outbox
# --------------------------
class Outbox:
    def __init__(self, sender, clock=utcnow, history: int = 1000):
        self.sender = sender
        self.clock = clock
        self.entries: Deque[OutboxEntry] = deque(maxlen=history)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def enqueue(self, msg: EmailMessage) -> OutboxEntry:
        entry = OutboxEntry(message=msg, created_at=self.clock())
        self.entries.append(entry)
        self._queue.put_nowait(entry)
        return entry

    async def deliver_one(self, entry: OutboxEntry) -> None:
        entry.status = "delivering"
        try:
            await self.sender.send(entry.message)
        except NotificationError as ex:
            entry.status, entry.error = "failed", ex.message
            logger.warning("notification %s to %s failed: %s", entry.message.kind, entry.message.to_email, ex.message)
            return
        except Exception as ex:
            entry.status, entry.error = "failed", repr(ex)
            logger.exception("notification %s to %s crashed", entry.message.kind, entry.message.to_email)
            return
        entry.status, entry.delivered_at = "delivered", self.clock()

    async def run(self) -> None:
        while True:
            entry = await self._queue.get()
            try:
                await self.deliver_one(entry)
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Deliver everything queued so far, in order, on the caller's task."""
        while not self._queue.empty():
            entry = self._queue.get_nowait()
            try:
                await self.deliver_one(entry)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        await self._queue.join()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def drain(self) -> None:
        """Wait until the running worker has handled everything queued."""
        await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()
