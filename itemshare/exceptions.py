"""
Domain errors raised by the services.

The HTTP layer maps each family onto a status code; nothing below it
catches or retries them.
"""


class ItemShareError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ItemShareError):
    """A referenced user, item, booking or request is absent or invisible."""


class SelfBookingError(NotFoundError):
    """An owner tried to book their own item."""


class ForbiddenError(ItemShareError):
    """The caller is known but may not act on the resource."""


class ItemAvailabilityError(ItemShareError):
    """A booking or comment rule was violated."""


class AlreadyDecidedError(ItemAvailabilityError):
    """The booking already left WAITING."""


class ValidationError(ItemShareError):
    """Malformed input that no schema check could catch."""


class UnknownStateError(ValidationError):
    def __init__(self, state: str):
        super().__init__(f"Unknown state: {state}")
        self.state = state
