"""
Domain error taxonomy - typed failures raised by the lending core.
Challenge: Keep services free of HTTP concerns; the API layer maps these to status codes.
"""


class LendHubError(Exception):
    """Base class for all lending-core errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LendHubError):
    """Item, transaction or user id does not resolve."""


class UnauthorizedError(LendHubError):
    """Actor lacks the required relationship (owner, holder, requestor)."""


class InvalidStateTransitionError(LendHubError):
    """Transaction is not in the source state the transition requires."""

    def __init__(self, message: str, current: str | None = None, target: str | None = None) -> None:
        super().__init__(message)
        self.current = current
        self.target = target


class CapacityExceededError(LendHubError):
    """Too many open transactions already exist for an item."""


class ValidationError(LendHubError):
    """Input violates a domain rule (e.g. empty category label, unknown exchange point)."""


class UninitializedLedgerError(LendHubError):
    """A user's category counters were never backfilled."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"Category ledger for user {user_id} is not initialized")
        self.user_id = user_id


class LedgerBusyError(LendHubError):
    """Another request is currently backfilling the same user's ledger."""


class PartialBatchFailureError(LendHubError):
    """A multi-chunk ledger write failed after some chunks were applied."""

    def __init__(self, message: str, committed: int, failed: int) -> None:
        super().__init__(message)
        self.committed = committed
        self.failed = failed


class ConflictError(LendHubError):
    """A unique resource already exists (e.g. a registered email)."""
