"""
Password reset API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_mailer
from ..responses import api_response
from ..schemas import ForgotPasswordRequest, ResetPasswordRequest
from ..services.email_service import EmailSender
from ..services.password_reset_service import PasswordResetService

router = APIRouter(prefix="/api/password-reset", tags=["password_reset"])


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    mailer: EmailSender = Depends(get_mailer)
):
    """Mail a one-time password to the account's address."""
    service = PasswordResetService(db, mailer)
    await service.request_otp(body.email)
    return api_response(200, None, "OTP sent to registered email")


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    service = PasswordResetService(db)
    await service.reset_password(body.email, body.otp, body.newPassword)
    return api_response(200, None, "Password reset successful")
