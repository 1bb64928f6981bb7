"""
One-time-password based password reset.
"""
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import and_, delete, select

from ..config import get_settings
from ..errors import NotFoundError, ValidationError
from ..models import PasswordResetTicket, User, utcnow
from ..security import hash_password
from .base_service import BaseService
from .email_service import EmailSender
from .logging_service import get_logger
from .mutation_guard import check_password, normalize_email, require_fields

settings = get_settings()
logger = get_logger("password_reset")


def generate_otp() -> str:
    """Six-digit numeric code."""
    return f"{secrets.randbelow(10 ** 6):06d}"


class PasswordResetService(BaseService):

    def __init__(self, db, mailer: Optional[EmailSender] = None):
        super().__init__(db)
        self.mailer = mailer

    def _cutoff(self):
        return utcnow() - timedelta(seconds=settings.PASSWORD_RESET_OTP_TTL_SECONDS)

    async def _find_user(self, email: str) -> User:
        result = await self.db.execute(select(User).where(User.email == normalize_email(email.strip())))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def purge_expired(self) -> int:
        result = await self.db.execute(
            delete(PasswordResetTicket).where(PasswordResetTicket.created_at < self._cutoff())
        )
        await self.db.commit()
        return result.rowcount or 0

    async def request_otp(self, email: Optional[str]) -> str:
        """Issue a fresh OTP for the account and mail it. Earlier tickets are invalidated."""
        require_fields(email=email)
        await self.purge_expired()
        user = await self._find_user(email)

        otp = generate_otp()
        await self.db.execute(delete(PasswordResetTicket).where(PasswordResetTicket.user_id == user.id))
        self.db.add(PasswordResetTicket(user_id=user.id, otp=otp))
        await self.db.commit()

        minutes = settings.PASSWORD_RESET_OTP_TTL_SECONDS // 60
        if self.mailer is not None:
            await self.mailer.send(
                user.email,
                "Password Reset OTP",
                f"Your OTP for password reset is {otp}. It expires in {minutes} minutes.",
            )

        logger.event("password_reset_requested", user_id=user.id)
        return otp

    async def reset_password(self, email: Optional[str], otp: Optional[str], new_password: Optional[str]):
        require_fields(email=email, otp=otp, newPassword=new_password)
        check_password(new_password)
        user = await self._find_user(email)

        ticket = await self.db.scalar(
            select(PasswordResetTicket.id).where(and_(
                PasswordResetTicket.user_id == user.id,
                PasswordResetTicket.otp == otp.strip(),
                PasswordResetTicket.created_at >= self._cutoff(),
            ))
        )
        if ticket is None:
            raise ValidationError("Invalid or expired OTP")

        user.password_hash = hash_password(new_password)
        user.refresh_token_hash = None
        await self.db.execute(delete(PasswordResetTicket).where(PasswordResetTicket.user_id == user.id))
        await self.db.commit()

        logger.event("password_reset_completed", user_id=user.id)
