"""
Exceptions raised by the email routing domain.

Validation errors are raised before any SES call is made. Provider errors
(botocore ClientError) are not wrapped and propagate as they are.
"""


class EmailRoutingError(Exception):
    """Base class for errors raised while routing a send request."""
    pass


class EmailValidationError(EmailRoutingError):
    """Raised when a send request is missing a required field."""
    pass


class MissingContentError(EmailValidationError):
    """Raised when an email has no usable content."""

    def __init__(self, message: str = "Content is required"):
        super().__init__(message)


class MissingDestinationError(EmailValidationError):
    """Raised when an email or bulk entry has no destination."""

    def __init__(self, message: str = "Destination is required"):
        super().__init__(message)


class DeadlineExceededError(EmailRoutingError):
    """Raised for batch entries skipped because the invocation ran out of time."""

    def __init__(self, remaining_ms: int):
        self.remaining_ms = remaining_ms
        super().__init__(
            f"Invocation deadline exceeded: {remaining_ms}ms remaining, entry not sent"
        )
