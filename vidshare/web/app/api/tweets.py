"""
Tweet API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_current_user, get_page_params
from ..models import User
from ..responses import api_response
from ..schemas import TweetBody
from ..services.mutation_guard import parse_id
from ..services.pagination import PageParams
from ..services.tweet_service import TweetService

router = APIRouter(prefix="/api/tweets", tags=["tweets"])


@router.post("")
async def create_tweet(
    body: TweetBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = TweetService(db)
    tweet = await service.create_tweet(current_user.id, body.content)
    return api_response(201, tweet, "Tweet created successfully")


@router.get("/user/{user_id}")
async def get_user_tweets(
    user_id: str,
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """A user's tweets, newest first."""
    service = TweetService(db)
    result = await service.get_user_tweets(parse_id(user_id, "user ID"), current_user.id, params)
    return api_response(200, result, "User tweets fetched successfully")


@router.patch("/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    body: TweetBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = TweetService(db)
    tweet = await service.update_tweet(parse_id(tweet_id, "tweet ID"), current_user.id, body.content)
    return api_response(200, tweet, "Tweet updated successfully")


@router.delete("/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = TweetService(db)
    await service.delete_tweet(parse_id(tweet_id, "tweet ID"), current_user.id)
    return api_response(200, None, "Tweet deleted successfully")
