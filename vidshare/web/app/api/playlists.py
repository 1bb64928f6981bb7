"""
Playlist API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_current_user, get_page_params
from ..models import User
from ..responses import api_response
from ..schemas import PlaylistBody
from ..services.mutation_guard import parse_id
from ..services.pagination import PageParams
from ..services.playlist_service import PlaylistService

router = APIRouter(prefix="/api/playlists", tags=["playlists"])


@router.post("")
async def create_playlist(
    body: PlaylistBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PlaylistService(db)
    playlist = await service.create_playlist(current_user.id, body.name, body.description)
    return api_response(201, playlist, "Playlist created successfully")


@router.get("/user-playlists")
async def get_user_playlists(
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The current user's playlists, newest first."""
    service = PlaylistService(db)
    result = await service.get_user_playlists(current_user.id, params)
    return api_response(200, result, "Playlists fetched successfully")


@router.get("/{playlist_id}")
async def get_playlist(
    playlist_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PlaylistService(db)
    playlist = await service.get_playlist(parse_id(playlist_id, "playlist ID"))
    return api_response(200, playlist, "Playlist fetched successfully")


@router.patch("/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    body: PlaylistBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PlaylistService(db)
    playlist = await service.update_playlist(
        parse_id(playlist_id, "playlist ID"), current_user.id, body.name, body.description
    )
    return api_response(200, playlist, "Playlist updated successfully")


@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PlaylistService(db)
    await service.delete_playlist(parse_id(playlist_id, "playlist ID"), current_user.id)
    return api_response(200, None, "Playlist deleted successfully")


@router.patch("/{playlist_id}/videos/{video_id}")
async def add_video_to_playlist(
    playlist_id: str,
    video_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PlaylistService(db)
    playlist = await service.add_video(
        parse_id(playlist_id, "playlist ID"), parse_id(video_id, "video ID"), current_user.id
    )
    return api_response(200, playlist, "Video added to playlist successfully")


@router.delete("/{playlist_id}/videos/{video_id}")
async def remove_video_from_playlist(
    playlist_id: str,
    video_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PlaylistService(db)
    playlist = await service.remove_video(
        parse_id(playlist_id, "playlist ID"), parse_id(video_id, "video ID"), current_user.id
    )
    return api_response(200, playlist, "Video removed from playlist successfully")
