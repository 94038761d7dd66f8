"""
Per-route access gate.

A request passes through a fixed chain: credential, then platform, then role,
plus a college-ownership check on admin event mutations. Every stage
returns either its result or a GateRejection; ``require`` composes the
stages into a FastAPI dependency and raises the first rejection.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import jwt
from fastapi import Depends, Header
from pydantic import ValidationError as PayloadError

from campus_events.config import Settings, get_settings
from campus_events.core.errors import AuthenticationError, AuthorizationError, CampusError
from campus_events.utils.helpers import utcnow
from campus_events.utils.tokens import decode_access_token

logger = logging.getLogger(__name__)

ADMIN = "admin"
STUDENT = "student"
WEB = "web"
MOBILE = "mobile"


class GateFailure(str, enum.Enum):
    MISSING_CREDENTIAL = "MissingCredential"
    INVALID_CREDENTIAL = "InvalidCredential"
    ROLE_MISMATCH = "RoleMismatch"
    PLATFORM_MISMATCH = "PlatformMismatch"
    COLLEGE_MISMATCH = "CollegeMismatch"


@dataclass(frozen=True)
class GateRejection:
    failure: GateFailure
    message: str

    def to_error(self) -> CampusError:
        details = [{"reason": self.failure.value}]
        if self.failure in (GateFailure.MISSING_CREDENTIAL, GateFailure.INVALID_CREDENTIAL):
            return AuthenticationError(self.message, details)
        return AuthorizationError(self.message, details)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    role: str
    college_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


def resolve_identity(authorization: Optional[str], settings: Settings) -> Union[Identity, GateRejection]:
    if not authorization or not authorization.startswith("Bearer "):
        return GateRejection(GateFailure.MISSING_CREDENTIAL, "Missing or invalid authorization header")

    token = authorization[len("Bearer "):].strip()
    try:
        payload = decode_access_token(settings, token)
    except jwt.PyJWTError:
        return GateRejection(GateFailure.INVALID_CREDENTIAL, "Invalid or expired token")
    except PayloadError:
        return GateRejection(GateFailure.INVALID_CREDENTIAL, "Invalid token payload")

    return Identity(
        user_id=payload.user_id,
        email=payload.email,
        role=payload.role,
        college_id=payload.college_id,
    )


def check_platform(identity: Identity, platform: Optional[str]) -> Optional[GateRejection]:
    if identity.role == ADMIN and platform == MOBILE:
        return GateRejection(GateFailure.PLATFORM_MISMATCH, "Admin access is only allowed via web portal")
    if identity.role == STUDENT and platform == WEB:
        return GateRejection(GateFailure.PLATFORM_MISMATCH, "Student access is only allowed via mobile app")
    return None


def check_role(identity: Identity, role: Optional[str]) -> Optional[GateRejection]:
    if role and identity.role != role:
        return GateRejection(GateFailure.ROLE_MISMATCH, "Insufficient permissions")
    return None


def check_college(identity: Identity, college_id: Optional[str] = None) -> Optional[GateRejection]:
    """Admin must be bound to a college and, when given, to this one"""
    if not identity.college_id:
        return GateRejection(GateFailure.COLLEGE_MISMATCH, "College association required")
    if college_id is not None and identity.college_id != college_id:
        return GateRejection(GateFailure.COLLEGE_MISMATCH, "You can only manage events from your own college")
    return None


def require(role: Optional[str] = None, platform: Optional[str] = None):
    """Build a dependency that resolves the caller and runs the gate chain"""

    async def gate(
        authorization: Optional[str] = Header(None),
        settings: Settings = Depends(get_settings),
    ) -> Identity:
        resolved = resolve_identity(authorization, settings)
        if isinstance(resolved, GateRejection):
            raise resolved.to_error()

        for rejection in (check_platform(resolved, platform), check_role(resolved, role)):
            if rejection is not None:
                logger.info("Gate rejected %s (%s): %s", resolved.email, resolved.role, rejection.failure.value)
                raise rejection.to_error()

        return resolved

    return gate


def enforce_college(identity: Identity, college_id: Optional[str] = None) -> None:
    rejection = check_college(identity, college_id)
    if rejection is not None:
        logger.info("College gate rejected %s for college %s", identity.email, college_id)
        raise rejection.to_error()


admin_only = require(ADMIN, WEB)
student_only = require(STUDENT, MOBILE)
authenticated = require()


async def college_admin(identity: Identity = Depends(admin_only)) -> Identity:
    enforce_college(identity)
    return identity


def get_now() -> datetime:
    """Request time in naive UTC; overridden in tests to pin the calendar day"""
    return utcnow()


# Create dependencies that can be used in route signatures
admin_dependency = Depends(admin_only)
college_admin_dependency = Depends(college_admin)
student_dependency = Depends(student_only)
auth_dependency = Depends(authenticated)
