"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from typing import Any

from pydantic import BaseModel, Field

from src.domain.draft import DraftField, serialize_field_errors
from src.domain.registration import RegistrationSessionController


class DraftUpdateRequest(BaseModel):
    """Request model for free-text draft edits."""

    fields: dict[DraftField, str] = Field(
        ...,
        description="Field values keyed by wire name, e.g. {\"fullName\": \"Ada Obi\"}",
    )


class CategorySelectionRequest(BaseModel):
    """Request model for choosing a business category."""

    name: str = Field(..., description="Category name exactly as listed")


class BankSelectionRequest(BaseModel):
    """Request model for choosing a settlement bank from the directory."""

    code: str = Field(..., description="Bank code returned by the bank search")


class BankNameRequest(BaseModel):
    """Request model for provisional bank text."""

    text: str


class VerifyCodeRequest(BaseModel):
    """Request model for email verification."""

    code: str = Field(..., description="One-time code received by email")


class ConfirmRequest(BaseModel):
    """Request model for confirming the final submission."""

    token: str = Field(..., description="Token of the open confirmation")


class BankResponse(BaseModel):
    code: str
    name: str


class CategoryResponse(BaseModel):
    id: int
    name: str


class VerificationView(BaseModel):
    status: str
    email: str | None
    sending: bool
    verifying: bool


class ConfirmationView(BaseModel):
    token: str
    account_number: str
    bank_name: str
    warning: str


class SessionResponse(BaseModel):
    """Current state of a registration workflow."""

    session_id: str
    current_step: int
    submitted: bool
    completed_steps: list[int]
    errors: dict[str, str]
    general_error: str | None
    draft: dict[str, Any]
    verification: VerificationView
    confirmation: ConfirmationView | None
    account_id: str | None = None

    @classmethod
    def from_controller(
        cls, session_id: str, controller: RegistrationSessionController
    ) -> "SessionResponse":
        verification = controller.verification.state
        gate = controller.confirmation_gate
        receipt = controller.receipt
        return cls(
            session_id=session_id,
            current_step=int(controller.current_step),
            submitted=controller.is_submitted,
            completed_steps=sorted(int(step) for step in controller.completed_steps),
            errors=serialize_field_errors(controller.errors),
            general_error=controller.general_error,
            draft=controller.draft_snapshot(),
            verification=VerificationView(
                status=verification.status.value,
                email=verification.email,
                sending=verification.sending,
                verifying=verification.verifying,
            ),
            confirmation=ConfirmationView(
                token=gate.token,
                account_number=gate.account_number,
                bank_name=gate.bank_name,
                warning=gate.warning,
            )
            if gate is not None
            else None,
            account_id=receipt.account_id if receipt is not None else None,
        )


class ErrorDetail(BaseModel):
    """Failure detail for a rejected workflow operation."""

    message: str
    code: str
    current_step: int
    field_errors: dict[str, str] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: ErrorDetail | str
