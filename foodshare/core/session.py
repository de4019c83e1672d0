# foodshare/core/session.py
import asyncio
import logging
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from foodshare.core.clock import utcnow
from foodshare.schemas import Actor

logger = logging.getLogger(__name__)

SessionEventType = Literal["signed-up", "signed-in", "signed-out"]


class SessionEvent(BaseModel):
    type: SessionEventType
    actor: Optional[Actor] = None
    at: datetime


class SessionChannel:
    """
    Fan-out of identity changes. Each subscriber gets its own queue and
    re-derives whatever it needs from the events; nothing here holds the
    "current user".
    """

    def __init__(self):
        self._subscribers: List[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        if q in self._subscribers:
            self._subscribers.remove(q)

    def publish(self, type_: SessionEventType, actor: Optional[Actor] = None) -> SessionEvent:
        evt = SessionEvent(type=type_, actor=actor, at=utcnow())
        for q in self._subscribers:
            q.put_nowait(evt)
        return evt


async def log_session_events(channel: SessionChannel) -> None:
    q = channel.subscribe()
    try:
        while True:
            evt = await q.get()
            who = evt.actor.email if evt.actor else "-"
            logger.info("session %s: %s", evt.type, who)
    finally:
        channel.unsubscribe(q)
