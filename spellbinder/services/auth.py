"""
Request authentication.

Every API request carries ``Authorization: Bearer <token>``. Tokens map to
user ids through the configured API keys; admin capability is granted per
user id. The check is always evaluated, there is no anonymous access.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from spellbinder.config import settings
from spellbinder.models.errors import UnauthenticatedError, UnauthorizedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller."""

    user_id: str
    is_admin: bool = False


def authenticate(token: str | None, api_keys: dict[str, str], admin_users: set[str]) -> Principal:
    """
    Resolve a bearer token to a principal.

    Raises:
        UnauthenticatedError: If the token is missing or unknown
    """
    if not token:
        raise UnauthenticatedError("Authentication required")

    for known_token, user_id in api_keys.items():
        if secrets.compare_digest(token.encode(), known_token.encode()):
            return Principal(user_id=user_id, is_admin=user_id in admin_users)

    logger.warning("Rejected request with unknown API token")
    raise UnauthenticatedError("Invalid API token")


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Dependency that authenticates the request."""
    token = credentials.credentials if credentials else None
    return authenticate(token, settings.api_keys, settings.admin_users)


async def require_admin(
    principal: Annotated[Principal, Depends(get_current_user)],
) -> Principal:
    """Dependency that additionally requires admin capability."""
    if not principal.is_admin:
        raise UnauthorizedError("Admin capability required")
    return principal


CurrentUser = Annotated[Principal, Depends(get_current_user)]
AdminUser = Annotated[Principal, Depends(require_admin)]
