"""Domain exceptions.

Routers translate these into HTTP responses; services raise them and let the
caller decide. A duplicate event is an expected outcome of the dedup gate, so
it is only raised when the caller asks for it.
"""

from typing import Iterable, Optional


class ClarityError(Exception):
    """Base exception for ClarityTracking errors."""
    pass


class ConfigurationError(ClarityError, RuntimeError):
    """Environment configuration is missing or malformed."""

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        super().__init__(
            "Invalid or missing environment variables: " + ", ".join(self.fields)
        )


class UnauthorizedError(ClarityError):
    """No valid identity-provider session accompanied the request."""
    pass


class DuplicateEventError(ClarityError):
    """The (website_id, event_id) dedup key was already accepted."""

    def __init__(self, website_id: int, event_id: str, existing_id: Optional[int] = None):
        self.website_id = website_id
        self.event_id = event_id
        self.existing_id = existing_id
        super().__init__(f"Event {event_id!r} already recorded for website {website_id}")


class EventWriteError(ClarityError):
    """An event could not be persisted for a reason other than deduplication.

    Unlike a duplicate, this is retryable and should alert.
    """
    pass


class InvalidStatusTransition(ClarityError):
    """An event log status change that the processing lifecycle does not allow."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move event from {current!r} to {target!r}")


class CredentialError(ClarityError):
    """A platform credential is missing or could not be encrypted or decrypted."""
    pass
