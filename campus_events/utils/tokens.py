from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from campus_events.config import Settings
from campus_events.models.schemas import TokenPayload

ALGORITHM = "HS256"


def create_access_token(
    settings: Settings,
    user_id: str,
    email: str,
    role: str,
    college_id: Optional[str] = None,
) -> str:
    """Issue a signed bearer token valid for JWT_EXPIRY_DAYS"""
    issued_at = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(days=settings.jwt_expiry_days)).timestamp()),
    }
    if college_id:
        payload["collegeId"] = college_id
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> TokenPayload:
    """
    Verify signature and expiry, then validate the claims.

    Raises jwt.PyJWTError for a bad or expired token and
    pydantic.ValidationError for a payload of the wrong shape.
    """
    claims = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[ALGORITHM],
        options={"require": ["exp", "iat"]},
    )
    return TokenPayload.model_validate(claims)
