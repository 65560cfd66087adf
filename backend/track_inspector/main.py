"""FastAPI Application Entry Point."""
import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from track_inspector.api.endpoints import reports, seed, uploads, users
from track_inspector.api.handlers import RequestLimitMiddleware, register_exception_handlers
from track_inspector.core.config import settings
from track_inspector.core.enums import MediaBackend
from track_inspector.db.database import init_db, close_db
from track_inspector.services.media_gateway import close_media_gateway, get_media_gateway

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Startup and shutdown events."""
    await init_db()
    logger.info("Database tables initialized successfully")

    try:
        get_media_gateway()
    except ValueError as e:
        logger.warning(f"Media gateway not configured, uploads will fail: {e}")

    yield
    # Shutdown
    await close_media_gateway()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLimitMiddleware)

# CORS (outermost middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ─── Route Registration ───────────────────────────────────────
# Each router already defines its own prefix (e.g. /users, /reports)
# so we only add the API prefix here.
app.include_router(users.router,           prefix=settings.API_PREFIX, tags=["Users"])
app.include_router(reports.reports_router, prefix=settings.API_PREFIX, tags=["Reports"])
app.include_router(reports.defects_router, prefix=settings.API_PREFIX, tags=["Defects"])
app.include_router(uploads.router,         prefix=settings.API_PREFIX, tags=["Upload"])
app.include_router(seed.router,            prefix=settings.API_PREFIX, tags=["Seed"])


# ─── Local Media ─────────────────────────────────────────────
if settings.MEDIA_BACKEND == MediaBackend.LOCAL.value:
    os.makedirs(settings.LOCAL_MEDIA_PATH, exist_ok=True)
    app.mount("/media", StaticFiles(directory=settings.LOCAL_MEDIA_PATH), name="media")


@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.APP_VERSION}


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
