"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Mocked identity verification and registration services
- A session controller wired to the static bank directory
- A workflow driver that walks a controller to a given step
"""

from unittest.mock import AsyncMock

import pytest

from src.adapters.static import DEFAULT_CATEGORIES, StaticBankDirectory
from src.domain.draft import Document, DocumentKind, DraftField, RegistrationDraft, Step
from src.domain.ports import AvailabilityResult, SubmissionReceipt
from src.domain.registration import RegistrationSessionController

VALID_EMAIL = "merchant@example.com"
VALID_PASSWORD = "Sup3r$ecret"
VALID_CODE = "12345"


@pytest.fixture
def identity_service() -> AsyncMock:
    """Identity service that accepts every email and code."""
    service = AsyncMock()
    service.check_email_availability.return_value = AvailabilityResult(available=True)
    service.send_verification_code.return_value = "session-1"
    service.verify_code.return_value = None
    return service


@pytest.fixture
def registration_service() -> AsyncMock:
    """Registration service that accepts every submission."""
    service = AsyncMock()
    service.submit_registration.return_value = SubmissionReceipt(account_id="acct-1")
    return service


@pytest.fixture
def controller(
    identity_service: AsyncMock, registration_service: AsyncMock
) -> RegistrationSessionController:
    return RegistrationSessionController(
        identity_service,
        registration_service,
        StaticBankDirectory(),
        DEFAULT_CATEGORIES,
    )


@pytest.fixture
def pdf_document() -> Document:
    return Document(filename="id.pdf", content_type="application/pdf", content=b"%PDF-1.4 test")


@pytest.fixture
def valid_draft(pdf_document: Document) -> RegistrationDraft:
    """A draft that passes every step's rules, submission rules included."""
    return RegistrationDraft(
        email_address=VALID_EMAIL,
        password=VALID_PASSWORD,
        confirm_password=VALID_PASSWORD,
        full_name="Ada Obi",
        business_name="Obi Stores",
        business_category="Electronics",
        business_category_id=2,
        phone_number="08012345678",
        account_number="0123456789",
        bank_name="Guaranty Trust Bank",
        settlement_bank_code="058",
        settlement_bank_name="Guaranty Trust Bank",
        store_name="Obi Gadgets",
        business_address="12 Marina Road, Lagos",
        business_reg_number="RC-1234567",
        tax_id_number="1234567890",
        id_document=pdf_document,
        business_reg_certificate=pdf_document,
    )


class WorkflowDriver:
    """Walks a controller through the happy path, asserting each step."""

    def __init__(self, controller: RegistrationSessionController, document: Document) -> None:
        self.controller = controller
        self.document = document

    def fill_credentials(self) -> None:
        self._edit(DraftField.EMAIL_ADDRESS, VALID_EMAIL)
        self._edit(DraftField.PASSWORD, VALID_PASSWORD)
        self._edit(DraftField.CONFIRM_PASSWORD, VALID_PASSWORD)

    def fill_business_profile(self) -> None:
        self._edit(DraftField.FULL_NAME, "Ada Obi")
        self._edit(DraftField.BUSINESS_NAME, "Obi Stores")
        self._edit(DraftField.PHONE_NUMBER, "08012345678")
        self._edit(DraftField.ACCOUNT_NUMBER, "0123456789")
        assert self.controller.select_business_category("Electronics").ok
        assert self.controller.select_bank("058").ok

    def fill_business_details(self) -> None:
        self._edit(DraftField.STORE_NAME, "Obi Gadgets")
        self._edit(DraftField.BUSINESS_ADDRESS, "12 Marina Road, Lagos")
        self._edit(DraftField.BUSINESS_REG_NUMBER, "RC-1234567")
        for kind in DocumentKind:
            assert self.controller.attach_document(kind, self.document).ok

    async def reach(self, step: Step) -> RegistrationSessionController:
        """Advance from a fresh controller until ``step`` is current."""
        self.fill_credentials()
        if step == Step.CREDENTIALS:
            return self.controller

        assert (await self.controller.advance()).ok
        if step == Step.VERIFICATION:
            return self.controller

        assert (await self.controller.verify_code(VALID_CODE)).ok
        assert (await self.controller.advance()).ok
        self.fill_business_profile()
        if step == Step.BUSINESS_PROFILE:
            return self.controller

        assert (await self.controller.advance()).ok
        self.fill_business_details()
        return self.controller

    def _edit(self, draft_field: DraftField, value: str) -> None:
        outcome = self.controller.edit_field(draft_field, value)
        assert outcome.ok, outcome.message


@pytest.fixture
def workflow(controller: RegistrationSessionController, pdf_document: Document) -> WorkflowDriver:
    return WorkflowDriver(controller, pdf_document)
