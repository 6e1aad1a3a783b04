"""
Marketplace error taxonomy
Every error carries the HTTP status it is rendered with by the API layer
"""

from typing import Optional


class MarketplaceError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    """Missing or malformed required fields"""
    status_code = 400


class AuthenticationError(MarketplaceError):
    """Invalid credentials or token"""
    status_code = 401


class QuotaExceeded(MarketplaceError):
    """Raised when a plan limit is reached"""
    status_code = 403

    def __init__(
        self,
        message: str,
        resource: str,
        plan_tier: str,
        limit: Optional[int] = None,
        current: Optional[int] = None
    ):
        self.resource = resource
        self.plan_tier = plan_tier
        self.limit = limit
        self.current = current
        super().__init__(message)


class NotFound(MarketplaceError):
    """Referenced boutique, user, conversation or product is absent"""
    status_code = 404


class Conflict(MarketplaceError):
    """Duplicate product name or account identifier"""
    status_code = 409


class StorageError(MarketplaceError):
    """Underlying persistence call failed"""
    status_code = 500
