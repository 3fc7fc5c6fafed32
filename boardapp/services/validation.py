"""Client-side validation errors, raised before any request is issued."""


class ValidationError(ValueError):
    """Raised when user input is rejected locally; the message is shown as-is."""


def require(condition: bool, message: str) -> None:
    """Raise :class:`ValidationError` with *message* unless *condition* holds."""
    if not condition:
        raise ValidationError(message)
