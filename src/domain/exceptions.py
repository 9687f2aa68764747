"""
Domain exceptions - Semantic error types for the registration workflow.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Adapters translate transport failures into these types; the session
controller catches them at each operation boundary.
"""

from collections.abc import Mapping


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class ValidationError(RegistrationError):
    """A required field is missing or malformed (local, pre-network)."""

    def __init__(self, message: str, field_errors: Mapping[str, str] | None = None) -> None:
        super().__init__(message)
        self.field_errors: dict[str, str] = dict(field_errors or {})


class ConflictError(RegistrationError):
    """Email address is already registered."""

    pass


class ExpiredSessionError(RegistrationError):
    """Verification attempted without a live verification session."""

    pass


class InvalidCodeError(RegistrationError):
    """Verification code does not match. The session stays valid."""

    pass


class FieldValidationError(RegistrationError):
    """Registration service rejected one or more fields."""

    def __init__(self, message: str, field_errors: Mapping[str, str]) -> None:
        super().__init__(message)
        self.field_errors: dict[str, str] = dict(field_errors)


class GeneralError(RegistrationError):
    """Any other service failure (network, timeout, server fault)."""

    pass


class InvalidTransitionError(RegistrationError):
    """Operation is not allowed in the current workflow state."""

    pass


class OperationInProgressError(RegistrationError):
    """The same operation is already in flight."""

    pass


class ConfirmationPendingError(RegistrationError):
    """The confirmation gate is open; only confirm or cancel are accepted."""

    pass
