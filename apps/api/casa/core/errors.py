"""Domain error types.

None of these are fatal: denials and validation failures are rendered
back to the user, notification failures are logged.
"""

NOT_AUTHORIZED_NOTICE = "Sorry, you are not authorized to perform this action."


class AuthorizationDenied(Exception):
    """Actor lacks permission for the requested action on the target."""

    def __init__(self, message: str = NOT_AUTHORIZED_NOTICE, redirect_to: str = "/"):
        super().__init__(message)
        self.message = message
        self.redirect_to = redirect_to


class ValidationFailure(Exception):
    """Submitted attributes failed domain constraints. Carries field-level messages."""

    def __init__(self, errors: dict[str, list[str]]):
        super().__init__("; ".join(f"{k}: {', '.join(v)}" for k, v in errors.items()))
        self.errors = errors


class NotificationDispatchFailure(Exception):
    """Queueing or delivering a notification email failed."""
