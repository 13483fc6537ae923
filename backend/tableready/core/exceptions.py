"""Domain exceptions for the waitlist engine.

Every error carries an HTTP ``status_code`` and a machine-readable ``code``;
``main.py`` renders them through a single exception handler. Messages are
meant to be shown to the end user as-is.
"""

from typing import Any, Dict, Optional


class TableReadyError(Exception):
    """Base class for all domain errors."""

    status_code = 400
    code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(TableReadyError):
    """Bad or missing input (empty reason, non-positive party size...)."""

    code = "validation_error"


class NotFound(TableReadyError):
    """Unknown entry, venue or table."""

    status_code = 404
    code = "not_found"

    def __init__(self, kind: str, identifier: Any):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class InvalidTransition(TableReadyError):
    """The state machine rejects the requested move."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, entry_id: str, current: str, action: str):
        self.entry_id = entry_id
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} entry {entry_id} while it is {current}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["current_status"] = self.current
        return data


class ConcurrencyConflict(TableReadyError):
    """An optimistic update lost the race; the caller must re-read."""

    status_code = 409
    code = "concurrency_conflict"

    def __init__(self, message: str = "The entry was changed by someone else, please retry"):
        super().__init__(message)


class PolicyViolation(TableReadyError):
    """The request is well formed but venue policy forbids it."""

    status_code = 422
    code = "policy_violation"


class ExtensionLimitExceeded(PolicyViolation):
    """Raised when an ETA extension would exceed the venue maximum."""

    code = "extension_limit_exceeded"

    def __init__(self, max_minutes: int, used_minutes: int, requested_minutes: int):
        self.max_minutes = max_minutes
        self.used_minutes = used_minutes
        self.requested_minutes = requested_minutes
        self.remaining_minutes = max(0, max_minutes - used_minutes)
        if self.remaining_minutes > 0:
            message = (
                f"Maximum extension time is {max_minutes} minutes. "
                f"You can only add {self.remaining_minutes} more minutes."
            )
        else:
            message = f"Maximum extension time of {max_minutes} minutes has been reached."
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "max_minutes": self.max_minutes,
            "used_minutes": self.used_minutes,
            "remaining_minutes": self.remaining_minutes,
        })
        return data


class VenueClosed(PolicyViolation):
    """The venue is not accepting this operation type right now."""

    code = "venue_closed"

    def __init__(self, operation: str, message: str, next_opening: Optional[Dict[str, str]] = None):
        self.operation = operation
        self.next_opening = next_opening
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["operation"] = self.operation
        data["next_opening"] = self.next_opening
        return data


class DuplicateBooking(PolicyViolation):
    """The patron already holds an active reservation near the requested time."""

    code = "duplicate_booking"

    def __init__(self, existing_id: str):
        self.existing_id = existing_id
        super().__init__("You already have a reservation around this time")


class PartyTooLarge(PolicyViolation):
    """No combination of the venue's tables can ever seat the party."""

    code = "party_too_large"

    def __init__(self, party_size: int, total_capacity: int):
        self.party_size = party_size
        self.total_capacity = total_capacity
        super().__init__(
            f"Party of {party_size} exceeds the venue's total capacity of {total_capacity} seats"
        )


class NoTableConfiguration(TableReadyError):
    """The venue has no tables defined."""

    code = "no_table_configuration"

    def __init__(self, venue_id: Any = None):
        self.venue_id = venue_id
        super().__init__("No table configuration found")


class ResourceUnavailable(TableReadyError):
    """Soft condition: no data or no table. Callers fall back rather than fail."""

    status_code = 503
    code = "resource_unavailable"
