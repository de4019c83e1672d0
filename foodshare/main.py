# foodshare/main.py
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from foodshare.core.clock import utcnow
from foodshare.core.config import Settings, get_settings
from foodshare.core.errors import FoodShareError, ValidationError
from foodshare.core.session import SessionChannel, log_session_events
from foodshare.deps import build_repo
from foodshare.routers import auth, donations, stats
from foodshare.services.notifications import Outbox, build_sender

logger = logging.getLogger(__name__)


async def handle_domain_error(request: Request, exc: FoodShareError):
    body = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(settings: Settings | None = None, repo=None, sender=None, clock=utcnow) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.use_mongo and repo is None:
            from foodshare.core.db import ensure_indexes, get_client, get_db
            await ensure_indexes(get_db())
        app.state.outbox.start()
        listener = asyncio.create_task(log_session_events(app.state.sessions))
        yield
        listener.cancel()
        try:
            await listener
        except asyncio.CancelledError:
            pass
        await app.state.outbox.stop()
        if settings.use_mongo and repo is None:
            get_client().close()

    app = FastAPI(lifespan=lifespan, title="FoodShare API")
    app.state.settings = settings
    app.state.clock = clock
    app.state.repo = repo if repo is not None else build_repo(settings, clock)
    app.state.outbox = Outbox(sender if sender is not None else build_sender(settings), clock=clock)
    app.state.sessions = SessionChannel()

    app.add_exception_handler(FoodShareError, handle_domain_error)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)          # /auth
    app.include_router(donations.router)     # /api/donations
    app.include_router(stats.router)         # /api/stats

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
