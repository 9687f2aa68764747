"""
Domain layer - Pure workflow logic with zero framework imports.

This package contains the merchant registration workflow: the draft,
the per-step validation engine, the email verification subsystem, the
error attribution router and the session controller that ties them
together. It defines its own port interfaces for the services it
consumes, keeping infrastructure behind adapters.
"""

from .attribution import attribute
from .draft import Document, DocumentKind, DraftField, RegistrationDraft, Step
from .exceptions import (
    ConfirmationPendingError,
    ConflictError,
    ExpiredSessionError,
    FieldValidationError,
    GeneralError,
    InvalidCodeError,
    InvalidTransitionError,
    OperationInProgressError,
    RegistrationError,
    ValidationError,
)
from .ports import (
    AvailabilityResult,
    Bank,
    BankDirectory,
    BusinessCategory,
    BusinessCategoryCatalog,
    DraftSnapshotStore,
    IdentityVerificationService,
    RegistrationService,
    SubmissionReceipt,
)
from .registration import ConfirmationGate, Outcome, RegistrationSessionController
from .validation import validate
from .verification import VerificationStatus, VerificationSubsystem

__all__ = [
    "AvailabilityResult",
    "Bank",
    "BankDirectory",
    "BusinessCategory",
    "BusinessCategoryCatalog",
    "ConfirmationGate",
    "ConfirmationPendingError",
    "ConflictError",
    "Document",
    "DocumentKind",
    "DraftField",
    "DraftSnapshotStore",
    "ExpiredSessionError",
    "FieldValidationError",
    "GeneralError",
    "IdentityVerificationService",
    "InvalidCodeError",
    "InvalidTransitionError",
    "OperationInProgressError",
    "Outcome",
    "RegistrationDraft",
    "RegistrationError",
    "RegistrationService",
    "RegistrationSessionController",
    "Step",
    "SubmissionReceipt",
    "ValidationError",
    "VerificationStatus",
    "VerificationSubsystem",
    "attribute",
    "validate",
]
