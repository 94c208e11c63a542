"""Bearer token authentication.

Tokens are HS256 JWTs issued by the account service; the ``sub`` claim
carries the numeric user id. This module only verifies them.

Provides:
- get_user_id_from_request: verify the Authorization header
- require_auth / UserId: FastAPI dependency for authenticated routes
"""

from __future__ import annotations

from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request

from core.config import get_settings
from core.logger import bind_contextvars, get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)


def decode_token(token: str) -> dict:
    """Decode and verify a bearer token. Raises jwt.InvalidTokenError."""
    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )


def get_user_id_from_request(request: Request) -> int | None:
    """Authenticated user id, or None for a missing/invalid token."""
    authorization = request.headers.get("authorization")
    if not authorization or not authorization.startswith("Bearer "):
        return None

    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        set_wide_event_fields(auth_error="token_expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("auth.token.invalid", error=str(e))
        set_wide_event_fields(auth_error="token_invalid")
        return None

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        logger.debug("auth.token.invalid_sub", sub=payload.get("sub"))
        return None

    return user_id if user_id > 0 else None


def require_auth(request: Request) -> int:
    """Raises 401 if not authenticated. Sets request.state.user_id."""
    user_id = get_user_id_from_request(request)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    request.state.user_id = user_id
    set_wide_event_fields(user_id=user_id)
    bind_contextvars(user_id=user_id)
    return user_id


UserId = Annotated[int, Depends(require_auth)]
