"""FastAPI dependencies wiring the stores to the database session and media gateway."""

import logging
from typing import Annotated, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from track_inspector.db.database import get_db
from track_inspector.services.media_gateway import MediaGateway, get_media_gateway
from track_inspector.services.report_store import ReportStore
from track_inspector.services.user_store import UserStore

logger = logging.getLogger(__name__)


DbSession = Annotated[AsyncSession, Depends(get_db)]
Media = Annotated[MediaGateway, Depends(get_media_gateway)]


def get_cleanup_media() -> Optional[MediaGateway]:
    """
    Media gateway for report cleanup, or None when the host is not configured.

    Report reads and writes must keep working without media credentials;
    only the image cleanup on delete is skipped.
    """
    try:
        return get_media_gateway()
    except ValueError as e:
        logger.warning(f"Media gateway unavailable, image cleanup disabled: {e}")
        return None


def report_store_dependency(noun: str):
    """Dependency factory: one Report store API, worded for the route family using it."""

    async def _store(
        db: DbSession,
        media: Annotated[Optional[MediaGateway], Depends(get_cleanup_media)],
    ) -> ReportStore:
        return ReportStore(db, media, noun=noun)

    return _store


async def get_user_store(db: DbSession) -> UserStore:
    return UserStore(db)


UserStoreDep = Annotated[UserStore, Depends(get_user_store)]
