"""Error handling utilities."""

from typing import Optional


class MarketplaceError(Exception):
    """Base exception for the Tradepost backend."""
    status_code = 500

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ValidationFailedError(MarketplaceError):
    """Input failed validation."""
    status_code = 400

    def __init__(self, message: str = "", errors: Optional[dict] = None):
        super().__init__(message)
        self.errors = errors or {}


class AuthenticationError(MarketplaceError):
    """Missing or invalid bearer token."""
    status_code = 401


class PermissionDeniedError(MarketplaceError):
    """Caller is not allowed to perform the operation."""
    status_code = 403


class NotFoundError(MarketplaceError):
    """Row not found."""
    status_code = 404


class ConflictError(MarketplaceError):
    """Operation conflicts with existing data."""
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Deal/request is not in a state that allows the operation."""
    pass


class StaleStateError(ConflictError):
    """Row changed between read and conditional write."""
    pass


class SupabaseError(MarketplaceError):
    """Supabase operation error."""
    status_code = 502
