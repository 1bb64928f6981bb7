"""
Channel API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..responses import api_response
from ..services.channel_service import ChannelService

router = APIRouter(prefix="/api/channels", tags=["channels"])


@router.get("/{username}/about")
async def get_channel_about(
    username: str,
    db: AsyncSession = Depends(get_db)
):
    """Public profile and totals for a channel."""
    service = ChannelService(db)
    about = await service.get_about(username)
    return api_response(200, about, "Channel details fetched successfully")
