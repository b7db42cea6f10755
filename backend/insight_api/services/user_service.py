"""Password hashing and one-time reset codes."""

from __future__ import annotations

import logging
import secrets
import smtplib
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import HTTPException
from sqlalchemy.orm import Session

from insight_api.core.config import get_settings
from insight_api.models.course import User
from insight_api.services.email_service import send_password_reset_otp

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def _as_aware(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def start_password_reset(db: Session, email: str) -> None:
    """Store a fresh code and mail it. Unknown emails are a silent no-op."""
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if not user:
        logger.info("Password reset requested for unknown email")
        return

    minutes = get_settings().password_reset_otp_minutes
    otp = generate_otp()
    user.reset_otp = otp
    user.reset_otp_expires = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    user.reset_otp_attempts = 0
    db.commit()

    try:
        send_password_reset_otp(user.email, otp, minutes=minutes)
    except (smtplib.SMTPException, OSError):
        # The route answers as it does for an unknown email.
        logger.exception("Password reset email to %s failed", user.email)


def _clear_reset(user: User) -> None:
    user.reset_otp = None
    user.reset_otp_expires = None
    user.reset_otp_attempts = 0


def complete_password_reset(db: Session, email: str, otp: str, new_password: str) -> User:
    """Consume a reset code.

    Every wrong guess is counted; once ``password_reset_max_attempts`` is
    reached the code is discarded and a new one must be requested.
    """
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if not user or not user.reset_otp:
        raise HTTPException(400, "Invalid or expired code")

    if not user.reset_otp_expires or _as_aware(user.reset_otp_expires) < datetime.now(timezone.utc):
        _clear_reset(user)
        db.commit()
        raise HTTPException(400, "Invalid or expired code")

    if not secrets.compare_digest(user.reset_otp, otp):
        user.reset_otp_attempts = (user.reset_otp_attempts or 0) + 1
        if user.reset_otp_attempts >= get_settings().password_reset_max_attempts:
            logger.warning(
                "Password reset code for user %s discarded after %d wrong attempts",
                user.id,
                user.reset_otp_attempts,
            )
            _clear_reset(user)
        db.commit()
        raise HTTPException(400, "Invalid or expired code")

    user.password = hash_password(new_password)
    _clear_reset(user)
    user.is_verified = True
    db.commit()
    return user
