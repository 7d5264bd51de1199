"""
Error taxonomy for the auction engine

Every error carries a stable ``kind`` (what the client switches on) and an
HTTP-equivalent ``status_code``. The API layer renders both; services only
raise.
"""


class AuctionEngineError(Exception):
    """Base exception for auction engine errors"""

    kind = "AuctionEngineError"
    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


# ============================================================================
# VALIDATION (400) - rejected before any transaction, never retried
# ============================================================================
class ValidationError(AuctionEngineError):
    kind = "ValidationError"
    status_code = 400


class InvalidAmountError(ValidationError):
    """Raised when a bid amount is not a positive, bounded money value"""
    kind = "InvalidAmount"


class InvalidDurationError(ValidationError):
    """Raised when an auction window is outside [5 minutes, 7 days]"""
    kind = "InvalidDuration"


class InvalidFieldsError(ValidationError):
    """Raised when auction fields are missing or malformed"""
    kind = "InvalidFields"


# ============================================================================
# AUTHORIZATION (403)
# ============================================================================
class AuthorizationError(AuctionEngineError):
    kind = "AuthorizationError"
    status_code = 403


class RoleForbiddenError(AuthorizationError):
    """Raised when the caller's role may not perform the operation"""
    kind = "RoleForbidden"


class SelfBidForbiddenError(AuthorizationError):
    """Raised when an auction creator bids on their own auction"""
    kind = "SelfBidForbidden"


class UnauthorizedError(AuthorizationError):
    """Raised when the caller does not own the auction or bid"""
    kind = "Unauthorized"


# ============================================================================
# NOT FOUND (404)
# ============================================================================
class NotFoundError(AuctionEngineError):
    kind = "NotFound"
    status_code = 404


class AuctionNotFoundError(NotFoundError):
    kind = "AuctionNotFound"


class BidNotFoundError(NotFoundError):
    kind = "BidNotFound"


class NotificationNotFoundError(NotFoundError):
    kind = "NotificationNotFound"


# ============================================================================
# STATE CONFLICT (409)
# ============================================================================
class StateConflictError(AuctionEngineError):
    kind = "StateConflict"
    status_code = 409


class AuctionNotActiveError(StateConflictError):
    """Raised when the auction is Completed or Cancelled"""
    kind = "AuctionNotActive"


class AuctionExpiredError(StateConflictError):
    """Raised when the auction window has elapsed but it is not closed yet"""
    kind = "AuctionExpired"


class CannotCancelWinningBidError(StateConflictError):
    """Raised when the leading bidder tries to withdraw the winning bid"""
    kind = "CannotCancelWinningBid"


# ============================================================================
# INFRASTRUCTURE (503)
# ============================================================================
class InfrastructureError(AuctionEngineError):
    kind = "Infrastructure"
    status_code = 503


class TransientConflictError(InfrastructureError):
    """Raised when a transaction kept conflicting after all retries"""
    kind = "TransientConflict"


class StoreUnavailableError(InfrastructureError):
    """Raised when the ledger store cannot be reached"""
    kind = "StoreUnavailable"
