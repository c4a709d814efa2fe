"""Access token issuance and verification (HS256 JWT)."""

from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import Unauthorized


def issue_token(
    user_id: str,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    role: str = "customer",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Return a signed access token for ``user_id``."""
    settings = get_settings()
    expire = utc_now() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {"sub": user_id, "role": role, "exp": expire}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> AuthUser:
    """Decode ``token`` and return its principal, or raise ``Unauthorized``."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
        return AuthUser(**payload)
    except (JWTError, ValidationError):
        raise Unauthorized("Could not validate credentials")
