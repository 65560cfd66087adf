"""Development endpoint that resets reports to a fixed sample set."""

from fastapi import APIRouter

from track_inspector.core.config import settings
from track_inspector.core.deps import DbSession
from track_inspector.core.exceptions import NotFoundError
from track_inspector.schemas.shared import MessageResponse
from track_inspector.services.seed import seed_sample_data

router = APIRouter(tags=["seed"])


@router.post("/seed", response_model=MessageResponse)
async def seed(db: DbSession):
    """
    Destructive: delete every report, insert the sample reports, and insert
    sample users when there are none.
    """
    if not settings.SEED_ENABLED:
        raise NotFoundError("Not found")

    await seed_sample_data(db)
    return MessageResponse(message="Sample data created successfully")
