# foodshare/deps.py
from fastapi import Depends, Request

from foodshare.core.config import Settings
from foodshare.core.session import SessionChannel
from foodshare.services.lifecycle import DonationLifecycle
from foodshare.services.notifications import Outbox


def build_repo(settings: Settings, clock):
    if settings.use_mongo:
        from foodshare.core.db import get_db
        from foodshare.repos.mongo import MongoRepo
        return MongoRepo(get_db(), clock=clock)
    from foodshare.repos.inmemory import InMemoryRepo
    return InMemoryRepo(clock=clock)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repo(request: Request):
    return request.app.state.repo


def get_outbox(request: Request) -> Outbox:
    return request.app.state.outbox


def get_sessions(request: Request) -> SessionChannel:
    return request.app.state.sessions


def get_clock(request: Request):
    return request.app.state.clock


def get_lifecycle(repo=Depends(get_repo), outbox=Depends(get_outbox), clock=Depends(get_clock)) -> DonationLifecycle:
    return DonationLifecycle(repo, outbox, clock=clock)
