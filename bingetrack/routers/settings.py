from fastapi import APIRouter
from pydantic import BaseModel, Field

from bingetrack.config import settings, save_settings

router = APIRouter()


class RuntimeSettings(BaseModel):
    stale_after_days: int = Field(..., ge=0)
    lenient_timestamps: bool
    prefetch_seasons: bool


def _current() -> dict:
    return {
        "stale_after_days": settings.stale_after_days,
        "lenient_timestamps": settings.lenient_timestamps,
        "prefetch_seasons": settings.prefetch_seasons,
        "default_region": settings.default_region
    }


@router.get("/settings")
async def get_settings():
    """Get the progression knobs currently in effect."""
    return _current()


@router.post("/settings")
async def update_settings(body: RuntimeSettings):
    """Save the progression knobs."""
    await save_settings(body.stale_after_days, body.lenient_timestamps, body.prefetch_seasons)
    return _current()


@router.get("/health")
async def health():
    return {"status": "ok"}
