"""
Checks that run before any write, and the runner for multi-step deletes.
"""
import uuid
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..errors import FatalError, ForbiddenError, ValidationError
from .logging_service import get_logger

settings = get_settings()
logger = get_logger("guard")


def parse_id(value: Any, label: str = "id") -> uuid.UUID:
    """Turn an untrusted identifier into a UUID or fail with a validation error."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}")


def require_fields(**fields: Any):
    """Every keyword must be present and, for strings, non-blank."""
    missing = [
        name for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ValidationError(
            "All fields are required" if len(fields) > 1 else f"{missing[0]} is required",
            errors=[{"field": name, "message": "required"} for name in missing],
        )


def normalize_email(email: str) -> str:
    """Validated address, lowercased whole so lookups ignore case."""
    try:
        return validate_email(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValidationError("Invalid email format", errors=[{"field": "email", "message": "invalid"}])


def check_password(password: str):
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
            errors=[{"field": "password", "message": "too short"}],
        )


def check_length(value: str, column, label: str) -> str:
    """Reject text longer than the String column it is stored in."""
    limit = column.type.length
    if limit is not None and len(value) > limit:
        raise ValidationError(
            f"{label} must be at most {limit} characters",
            errors=[{"field": column.key, "message": "too long"}],
        )
    return value


def clean_content(content: Optional[str], label: str = "Content") -> str:
    """Trimmed, non-empty text no longer than the content ceiling."""
    text = (content or "").strip()
    if not text:
        raise ValidationError(f"{label} is required")
    if len(text) > settings.MAX_CONTENT_LENGTH:
        raise ValidationError(f"{label} must be at most {settings.MAX_CONTENT_LENGTH} characters")
    return text


def ensure_owner(owner_id: uuid.UUID, requester_id: uuid.UUID, action: str):
    if owner_id != requester_id:
        raise ForbiddenError(f"You are not authorized to {action}")


def ensure_not_self(subscriber_id: uuid.UUID, channel_id: uuid.UUID):
    if subscriber_id == channel_id:
        raise ValidationError("You cannot subscribe to yourself")


Step = Callable[[], Awaitable[Any]]


class CascadePlan:
    """Ordered clean-up steps run after a primary delete has been committed.

    Each step commits on its own. The first failing step stops the plan and
    raises ``FatalError`` listing what completed, what failed and what is
    still pending, so the remainder can be reconciled.
    """

    def __init__(self, db: AsyncSession, subject: str, subject_id: uuid.UUID):
        self.db = db
        self.subject = subject
        self.subject_id = subject_id
        self.steps: List[Tuple[str, Step]] = []

    def add(self, name: str, step: Step) -> "CascadePlan":
        self.steps.append((name, step))
        return self

    async def run(self) -> List[str]:
        completed: List[str] = []
        for index, (name, step) in enumerate(self.steps):
            try:
                await step()
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                pending = [pending_name for pending_name, _ in self.steps[index + 1:]]
                logger.error(
                    f"Cascade step '{name}' failed for {self.subject} {self.subject_id}",
                    exc_info=True,
                    extra={'subject': self.subject, 'subject_id': str(self.subject_id),
                           'completed': completed, 'pending': pending},
                )
                raise FatalError(
                    f"Failed to completely delete the {self.subject} and its resources",
                    errors=[{
                        "subject": self.subject,
                        "subjectId": str(self.subject_id),
                        "completed": list(completed),
                        "failed": name,
                        "pending": pending,
                    }],
                ) from e

            completed.append(name)
            logger.event("cascade_step", f"{self.subject} cascade: {name}",
                         subject=self.subject, subject_id=self.subject_id, step=name)
        return completed
