import logging
import time
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Header, HTTPException

from insight_api.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    id: str
    email: str


def _decode_options(settings):
    audience = (settings.jwt_audience or "").strip()
    decode_kwargs = {}
    options = {}
    if audience:
        decode_kwargs["audience"] = audience
        options["verify_aud"] = True
    else:
        options["verify_aud"] = False
    return decode_kwargs, options


def decode_token(token: str) -> CurrentUser:
    """Verify an HS256 bearer token and return the user it names."""
    settings = get_settings()
    if not settings.jwt_secret:
        raise HTTPException(401, "Token verification is not configured")

    decode_kwargs, options = _decode_options(settings)
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            options=options,
            **decode_kwargs,
        )
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise HTTPException(401, "Invalid token") from exc

    email = payload.get("email")
    if not email:
        raise HTTPException(401, "Token has no email claim")
    return CurrentUser(id=str(payload.get("sub") or payload.get("id") or ""), email=str(email).lower())


def create_token(user_id: str, email: str, *, expires_in_seconds: int = 7 * 24 * 3600) -> str:
    settings = get_settings()
    now = int(time.time())
    payload = {"sub": user_id, "email": email, "iat": now, "exp": now + expires_in_seconds}
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def get_optional_user(authorization: Optional[str] = Header(default=None)) -> Optional[CurrentUser]:
    """Bearer user when a token is sent; ``None`` for anonymous requests.

    An invalid token is still a 401: silently ignoring it would let a stale
    session write under the body-supplied email.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(401, "Invalid Authorization header")
    return decode_token(token.strip())
