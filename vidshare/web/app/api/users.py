"""
Account API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_current_user, get_page_params, get_storage
from ..models import User
from ..responses import api_response
from ..schemas import AccountUpdate, PasswordChange, RefreshTokenRequest, UserLogin, UserRegistration, media_dict
from ..services.media_storage import MediaStorage
from ..services.pagination import PageParams
from ..services.user_service import UserService, serialize_user
from ..services.viewing_history_service import ViewingHistoryService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/register")
async def register_user(
    body: UserRegistration,
    db: AsyncSession = Depends(get_db)
):
    """Create an account from already-uploaded avatar and cover image references."""
    service = UserService(db)
    user = await service.register(
        username=body.username,
        email=body.email,
        full_name=body.fullName,
        password=body.password,
        avatar=media_dict(body.avatar),
        cover_image=media_dict(body.coverImage),
        bio=body.bio,
    )
    return api_response(201, user, "User registered successfully")


@router.post("/login")
async def login_user(
    body: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    service = UserService(db)
    result = await service.login(body.username or body.email, body.password)
    return api_response(200, result, "User logged in successfully")


@router.post("/logout")
async def logout_user(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = UserService(db)
    await service.logout(current_user)
    return api_response(200, None, "User logged out successfully")


@router.post("/refresh-token")
async def refresh_access_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    service = UserService(db)
    tokens = await service.refresh_session(body.refreshToken)
    return api_response(200, tokens, "Access token refreshed")


@router.post("/change-password")
async def change_password(
    body: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = UserService(db)
    await service.change_password(current_user, body.oldPassword, body.newPassword)
    return api_response(200, None, "Password changed successfully")


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return api_response(200, serialize_user(current_user), "Current user fetched successfully")


@router.post("/account-update")
async def update_account(
    body: AccountUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: MediaStorage = Depends(get_storage)
):
    service = UserService(db, storage)
    user = await service.update_account(
        current_user,
        full_name=body.fullName,
        email=body.email,
        bio=body.bio,
        avatar=media_dict(body.avatar),
        cover_image=media_dict(body.coverImage),
    )
    return api_response(200, user, "Account details updated successfully")


@router.post("/delete-account")
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: MediaStorage = Depends(get_storage)
):
    """Delete the account and everything it owns."""
    service = UserService(db, storage)
    await service.delete_account(current_user)
    return api_response(200, None, "Account deleted successfully")


@router.get("/watch-history")
async def get_watch_history(
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ViewingHistoryService(db)
    result = await service.get_watch_history(current_user.id, params)
    return api_response(200, result, "Watch history fetched successfully")
