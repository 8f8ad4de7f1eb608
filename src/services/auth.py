"""Caller identity - resolve a Supabase access token to a user ID."""

import logging
from typing import Optional
from src.services.supabase_client import SupabaseClient, has_role
from src.utils.errors import AuthenticationError, PermissionDeniedError
from src.utils.logging import mask_user_id

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an ``Authorization: Bearer <jwt>`` header."""
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    return token.strip()


async def authenticate(authorization: Optional[str]) -> str:
    """
    Verify the caller's access token with Supabase auth.

    Returns the user ID. The service role client bypasses row level
    security, so every service checks ownership itself using this ID.
    """
    token = extract_bearer_token(authorization)

    async with SupabaseClient() as client:
        try:
            response = client.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError("Invalid or expired token")

    user = getattr(response, "user", None) if response else None
    if user is None or not getattr(user, "id", None):
        raise AuthenticationError("Invalid or expired token")

    logger.debug("Authenticated caller", extra={"user_id": mask_user_id(user.id)})
    return user.id


async def require_role(user_id: str, role: str) -> None:
    """Raise PermissionDeniedError unless the user holds the role."""
    if not await has_role(user_id, role):
        raise PermissionDeniedError(f"Requires the {role} role")
