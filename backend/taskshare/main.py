import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskshare.config import settings
from taskshare.database import create_all_tables
from taskshare.middleware.exceptions import register_exception_handlers
from taskshare.realtime.hub import Hub
from taskshare.routers import health, lists, notifications, realtime, tasks

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("taskshare")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the process-scoped hub on startup and close it on shutdown."""
    if settings.create_tables_on_startup:
        await create_all_tables()
    app.state.hub = Hub(send_timeout=settings.ws_send_timeout_seconds)
    logger.info("TaskShare started (environment=%s)", settings.environment)
    try:
        yield
    finally:
        await app.state.hub.close()


app = FastAPI(
    title="TaskShare",
    description="Shared lists and tasks with graduated permissions and live updates",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(realtime.router, tags=["realtime"])
app.include_router(lists.router, prefix="/api/lists", tags=["lists"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
