"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from the surrounding services, together with the small value types
they exchange. Adapters implement these protocols structurally.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from .draft import RegistrationDraft


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of an email availability check."""

    available: bool
    message: str | None = None


@dataclass(frozen=True)
class Bank:
    """Settlement bank entry from the bank directory."""

    code: str
    name: str


@dataclass(frozen=True)
class BusinessCategory:
    """Business category as listed by the catalog."""

    id: int
    name: str


@dataclass(frozen=True)
class SubmissionReceipt:
    """Result of a successful registration submission."""

    account_id: str


class IdentityVerificationService(Protocol):
    """Port interface for email ownership verification."""

    async def check_email_availability(self, email: str) -> AvailabilityResult:
        """
        Check whether an email address can still be registered.

        Args:
            email: Normalized email address

        Returns:
            AvailabilityResult with available=False if already registered
        """
        ...

    async def send_verification_code(self, email: str) -> str:
        """
        Dispatch a one-time code to the email address.

        Args:
            email: Normalized email address

        Returns:
            Opaque verification session identifier

        Raises:
            GeneralError: If the code could not be dispatched
        """
        ...

    async def verify_code(self, email: str, code: str, verification_session_id: str) -> None:
        """
        Verify a one-time code against its verification session.

        Args:
            email: Normalized email address
            code: 5-digit code entered by the user
            verification_session_id: Identifier returned by send_verification_code

        Raises:
            InvalidCodeError: If the code does not match
            ExpiredSessionError: If the service no longer knows the session
            GeneralError: On transport or server failure
        """
        ...


class RegistrationService(Protocol):
    """Port interface for the irreversible account-creation call."""

    async def submit_registration(self, draft: RegistrationDraft) -> SubmissionReceipt:
        """
        Create the merchant account from a complete draft.

        Raises:
            FieldValidationError: If the service rejects individual fields
            ConflictError: If the email was registered in the meantime
            GeneralError: Any other failure
        """
        ...


class BankDirectory(Protocol):
    """Port interface for the static settlement bank lookup."""

    def search_banks(self, query: str) -> list[Bank]:
        """Return banks whose name contains the query (case-insensitive)."""
        ...

    def get_bank_by_code(self, code: str) -> Bank | None:
        """Return the bank with the given code, if any."""
        ...


class BusinessCategoryCatalog(Protocol):
    """Port interface for the business category list."""

    async def list_categories(self) -> list[BusinessCategory]:
        """Fetch the category list. Called once per session."""
        ...


class DraftSnapshotStore(Protocol):
    """Port interface for non-sensitive draft persistence."""

    def save(self, session_id: str, snapshot: dict[str, Any]) -> None:
        """Insert or replace the snapshot stored for a session."""
        ...

    def load(self, session_id: str) -> dict[str, Any] | None:
        """Return the stored snapshot, or None if there is none."""
        ...

    def delete(self, session_id: str) -> None:
        """Remove the snapshot stored for a session."""
        ...
