"""
Subscription API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_current_user, get_page_params
from ..models import User
from ..responses import api_response
from ..services.mutation_guard import parse_id
from ..services.pagination import PageParams
from ..services.subscription_service import SubscriptionService

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.post("/channel/{channel_id}")
async def toggle_subscription(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Subscribe to or unsubscribe from a channel."""
    service = SubscriptionService(db)
    result = await service.toggle_subscription(current_user.id, parse_id(channel_id, "channel ID"))
    message = "Subscribed successfully" if result["Subscribed"] else "Unsubscribed successfully"
    return api_response(200, result, message)


@router.get("/channel/{channel_id}")
async def get_channel_subscribers(
    channel_id: str,
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Users subscribed to a channel."""
    service = SubscriptionService(db)
    result = await service.get_channel_subscribers(parse_id(channel_id, "channel ID"), params)
    return api_response(200, result, "Subscribers fetched successfully")


@router.get("/subscribed-channels")
async def get_subscribed_channels(
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Channels the current user subscribes to."""
    service = SubscriptionService(db)
    result = await service.get_subscribed_channels(current_user.id, params)
    return api_response(200, result, "Subscribed channels fetched successfully")
