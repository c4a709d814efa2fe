from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from libs.auth.models import AuthUser
from libs.auth.tokens import verify_token
from libs.common.config import get_settings
from libs.common.errors import Forbidden, Unauthorized

security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthUser:
    """
    Validate the bearer token and return the authenticated user.
    """
    if token is None:
        raise Unauthorized("Not authenticated")

    user = verify_token(token.credentials)
    # Exposed for the per-user rate limit key
    request.state.user = user
    return user


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
) -> AuthUser:
    """
    Ensure the user carries the configured admin role.
    """
    if current_user.role != get_settings().ADMIN_ROLE:
        raise Forbidden("Admin privileges required")
    return current_user
