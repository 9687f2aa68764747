"""
Unit tests for API v1 routes.

Tests endpoint responses with mocked services behind a real session
registry and a mocked snapshot store.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.static import StaticBankDirectory, StaticBusinessCategoryCatalog
from src.api.sessions import SessionRegistry
from src.api.v1.routes import router
from src.config.settings import Settings
from src.domain.exceptions import FieldValidationError, GeneralError, InvalidCodeError
from src.domain.ports import AvailabilityResult

PDF = ("id.pdf", b"%PDF-1.4 test", "application/pdf")


@pytest.fixture
def snapshot_store() -> MagicMock:
    store = MagicMock()
    store.load.return_value = None
    return store


@pytest.fixture
def registry(
    identity_service: AsyncMock, registration_service: AsyncMock, snapshot_store: MagicMock
) -> SessionRegistry:
    return SessionRegistry(
        identity_service=identity_service,
        registration_service=registration_service,
        bank_directory=StaticBankDirectory(),
        category_catalog=StaticBusinessCategoryCatalog(),
        settings=Settings(persist_drafts=False),
        snapshot_store=snapshot_store,
    )


@pytest.fixture
def app(registry: SessionRegistry) -> FastAPI:
    """Create test FastAPI application."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/v1")
    test_app.state.sessions = registry
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


@pytest.fixture
def session_id(client: TestClient) -> str:
    response = client.post("/v1/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def fill_credentials(client: TestClient, session_id: str) -> None:
    response = client.patch(
        f"/v1/sessions/{session_id}/draft",
        json={
            "fields": {
                "emailAddress": "merchant@example.com",
                "password": "Sup3r$ecret",
                "confirmPassword": "Sup3r$ecret",
            }
        },
    )
    assert response.status_code == 200


def drive_to_final_step(client: TestClient, session_id: str) -> None:
    """Walk the API from step 1 to step 4 with valid data."""
    base = f"/v1/sessions/{session_id}"
    fill_credentials(client, session_id)
    assert client.post(f"{base}/advance").status_code == 200
    assert client.post(f"{base}/verification/verify", json={"code": "12345"}).status_code == 200
    assert client.post(f"{base}/advance").status_code == 200

    response = client.patch(
        f"{base}/draft",
        json={
            "fields": {
                "fullName": "Ada Obi",
                "businessName": "Obi Stores",
                "phoneNumber": "08012345678",
                "accountNumber": "0123456789",
            }
        },
    )
    assert response.status_code == 200
    assert client.put(f"{base}/category", json={"name": "Electronics"}).status_code == 200
    assert client.put(f"{base}/bank", json={"code": "058"}).status_code == 200
    assert client.post(f"{base}/advance").status_code == 200

    response = client.patch(
        f"{base}/draft",
        json={"fields": {"storeName": "Obi Gadgets", "businessAddress": "12 Marina Road"}},
    )
    assert response.status_code == 200
    for kind in ("idDocument", "businessRegCertificate"):
        response = client.put(f"{base}/documents/{kind}", files={"file": PDF})
        assert response.status_code == 200


class TestSessionEndpoints:
    """Tests for session lifecycle endpoints."""

    def test_start_session_returns_201(self, client: TestClient) -> None:
        """A new session starts on step 1 with an empty draft."""
        response = client.post("/v1/sessions")

        assert response.status_code == 201
        body = response.json()
        assert body["current_step"] == 1
        assert body["completed_steps"] == []
        assert body["submitted"] is False
        assert body["verification"]["status"] == "idle"
        assert body["confirmation"] is None
        assert "password" not in body["draft"]

    def test_start_session_persists_snapshot(
        self, client: TestClient, snapshot_store: MagicMock
    ) -> None:
        """Every change is saved without sensitive fields."""
        session_id = client.post("/v1/sessions").json()["session_id"]

        saved_id, snapshot = snapshot_store.save.call_args.args
        assert saved_id == session_id
        assert "password" not in snapshot

    def test_unknown_session_returns_404(self, client: TestClient) -> None:
        """Missing sessions are reported as not found."""
        response = client.get("/v1/sessions/unknown")

        assert response.status_code == 404
        assert response.json() == {"detail": "Registration session not found"}

    def test_abandon_session(
        self, client: TestClient, session_id: str, snapshot_store: MagicMock
    ) -> None:
        """Abandoning removes the session and its snapshot."""
        response = client.delete(f"/v1/sessions/{session_id}")

        assert response.status_code == 204
        snapshot_store.delete.assert_called_once_with(session_id)
        assert client.get(f"/v1/sessions/{session_id}").status_code == 404

    def test_resume_from_snapshot(self, client: TestClient, snapshot_store: MagicMock) -> None:
        """A session missing from memory is rebuilt at step 1 from its snapshot."""
        snapshot_store.load.return_value = {
            "emailAddress": "merchant@example.com",
            "storeName": "Obi Gadgets",
            "businessCategory": "Electronics",
            "businessCategoryId": 99,
        }

        response = client.get("/v1/sessions/resumed")

        assert response.status_code == 200
        body = response.json()
        assert body["current_step"] == 1
        assert body["draft"]["storeName"] == "Obi Gadgets"
        assert body["draft"]["businessCategoryId"] == 2


class TestDraftEndpoints:
    """Tests for draft edits."""

    def test_edit_fields(self, client: TestClient, session_id: str) -> None:
        """Free-text fields are updated."""
        response = client.patch(
            f"/v1/sessions/{session_id}/draft",
            json={"fields": {"fullName": "Ada Obi", "accountNumber": "0123-456"}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["draft"]["fullName"] == "Ada Obi"
        assert body["draft"]["accountNumber"] == "0123456"
        assert body["errors"] == {"accountNumber": "Account number must be exactly 10 digits"}

    def test_derived_field_rejected(self, client: TestClient, session_id: str) -> None:
        """Bank codes cannot be typed in."""
        response = client.patch(
            f"/v1/sessions/{session_id}/draft",
            json={"fields": {"settlementBank": "058"}},
        )

        assert response.status_code == 422

    def test_unknown_field_rejected(self, client: TestClient, session_id: str) -> None:
        """Only known wire names are accepted."""
        response = client.patch(
            f"/v1/sessions/{session_id}/draft",
            json={"fields": {"merchantTier": "gold"}},
        )

        assert response.status_code == 422

    def test_bank_name_returns_suggestions(self, client: TestClient, session_id: str) -> None:
        """Typing a bank name returns directory matches."""
        response = client.put(f"/v1/sessions/{session_id}/bank-name", json={"text": "zenith"})

        assert response.status_code == 200
        assert response.json() == [{"code": "057", "name": "Zenith Bank"}]

    def test_unknown_bank_code_returns_422(self, client: TestClient, session_id: str) -> None:
        """A code outside the directory is a validation error."""
        response = client.put(f"/v1/sessions/{session_id}/bank", json={"code": "999"})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "validation_error"
        assert detail["field_errors"] == {"bank": "Please select your bank from the list"}

    def test_upload_unsupported_document(self, client: TestClient, session_id: str) -> None:
        """Unsupported uploads are rejected on their slot."""
        response = client.put(
            f"/v1/sessions/{session_id}/documents/idDocument",
            files={"file": ("id.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 422
        assert "idDocument" in response.json()["detail"]["field_errors"]

    def test_unknown_document_kind_rejected(self, client: TestClient, session_id: str) -> None:
        """Only the two document slots exist."""
        response = client.put(
            f"/v1/sessions/{session_id}/documents/passport", files={"file": PDF}
        )

        assert response.status_code == 422


class TestWorkflowEndpoints:
    """Tests for step transitions and verification."""

    def test_advance_with_empty_draft_returns_422(
        self, client: TestClient, session_id: str
    ) -> None:
        """Step errors come back with the current step."""
        response = client.post(f"/v1/sessions/{session_id}/advance")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["current_step"] == 1
        assert set(detail["field_errors"]) == {"emailAddress", "password", "confirmPassword"}

    def test_advance_sends_code(self, client: TestClient, session_id: str) -> None:
        """Valid credentials move to verification with a code sent."""
        fill_credentials(client, session_id)

        response = client.post(f"/v1/sessions/{session_id}/advance")

        assert response.status_code == 200
        body = response.json()
        assert body["current_step"] == 2
        assert body["verification"]["status"] == "sent"

    def test_taken_email_returns_409(
        self, client: TestClient, session_id: str, identity_service: AsyncMock
    ) -> None:
        """An unavailable email is a conflict on the email field."""
        identity_service.check_email_availability.return_value = AvailabilityResult(
            available=False, message="Email already exists"
        )
        fill_credentials(client, session_id)

        response = client.post(f"/v1/sessions/{session_id}/advance")

        assert response.status_code == 409
        assert response.json()["detail"]["field_errors"] == {
            "emailAddress": "Email already exists"
        }

    def test_wrong_code_returns_400(
        self, client: TestClient, session_id: str, identity_service: AsyncMock
    ) -> None:
        """A wrong code is reported as invalid."""
        fill_credentials(client, session_id)
        client.post(f"/v1/sessions/{session_id}/advance")
        identity_service.verify_code.side_effect = InvalidCodeError("Invalid verification code")

        response = client.post(
            f"/v1/sessions/{session_id}/verification/verify", json={"code": "11111"}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_code"

    def test_verify_off_step_returns_409(self, client: TestClient, session_id: str) -> None:
        """After retreating to step 1 no code can be checked."""
        fill_credentials(client, session_id)
        client.post(f"/v1/sessions/{session_id}/advance")
        client.post(f"/v1/sessions/{session_id}/retreat")

        response = client.post(
            f"/v1/sessions/{session_id}/verification/verify", json={"code": "12345"}
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_transition"

    def test_resend_returns_state(self, client: TestClient, session_id: str) -> None:
        """Resend keeps the user on step 2."""
        fill_credentials(client, session_id)
        client.post(f"/v1/sessions/{session_id}/advance")

        response = client.post(f"/v1/sessions/{session_id}/verification/resend")

        assert response.status_code == 200
        assert response.json()["verification"]["status"] == "sent"


class TestSubmissionEndpoints:
    """Tests for submit, confirm and cancel."""

    def test_submit_opens_confirmation(
        self, client: TestClient, session_id: str, registration_service: AsyncMock
    ) -> None:
        """Submit answers with the confirmation to show."""
        drive_to_final_step(client, session_id)

        response = client.post(f"/v1/sessions/{session_id}/submit")

        assert response.status_code == 200
        confirmation = response.json()["confirmation"]
        assert confirmation["account_number"] == "0123456789"
        assert confirmation["bank_name"] == "Guaranty Trust Bank"
        assert "cannot be changed" in confirmation["warning"]
        registration_service.submit_registration.assert_not_awaited()

    def test_edit_while_confirming_returns_409(self, client: TestClient, session_id: str) -> None:
        """The open confirmation blocks other changes."""
        drive_to_final_step(client, session_id)
        client.post(f"/v1/sessions/{session_id}/submit")

        response = client.patch(
            f"/v1/sessions/{session_id}/draft", json={"fields": {"storeName": "Other"}}
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "confirmation_pending"

    def test_bank_name_while_confirming_returns_409(
        self, client: TestClient, session_id: str
    ) -> None:
        """Typing a bank name is refused like any other change."""
        drive_to_final_step(client, session_id)
        client.post(f"/v1/sessions/{session_id}/submit")

        response = client.put(f"/v1/sessions/{session_id}/bank-name", json={"text": "zenith"})

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "confirmation_pending"
        assert detail["current_step"] == 4
        state = client.get(f"/v1/sessions/{session_id}").json()
        assert state["confirmation"] is not None
        assert state["general_error"] == "Please confirm or cancel the pending submission"

    def test_cancel_closes_confirmation(self, client: TestClient, session_id: str) -> None:
        """Cancel returns to step 4 without submitting."""
        drive_to_final_step(client, session_id)
        client.post(f"/v1/sessions/{session_id}/submit")

        response = client.post(f"/v1/sessions/{session_id}/cancel")

        assert response.status_code == 200
        body = response.json()
        assert body["confirmation"] is None
        assert body["current_step"] == 4

    def test_confirm_creates_account_and_closes_session(
        self, client: TestClient, session_id: str, snapshot_store: MagicMock
    ) -> None:
        """A confirmed submission returns the account and ends the session."""
        drive_to_final_step(client, session_id)
        token = client.post(f"/v1/sessions/{session_id}/submit").json()["confirmation"]["token"]

        response = client.post(f"/v1/sessions/{session_id}/confirm", json={"token": token})

        assert response.status_code == 200
        body = response.json()
        assert body["submitted"] is True
        assert body["account_id"] == "acct-1"
        snapshot_store.delete.assert_called_once_with(session_id)
        assert client.get(f"/v1/sessions/{session_id}").status_code == 404

    def test_confirm_field_errors_rewind(
        self, client: TestClient, session_id: str, registration_service: AsyncMock
    ) -> None:
        """Field rejections come back with the rewound step."""
        registration_service.submit_registration.side_effect = FieldValidationError(
            "Validation failed", {"phoneNumber": "Phone number is in use"}
        )
        drive_to_final_step(client, session_id)
        token = client.post(f"/v1/sessions/{session_id}/submit").json()["confirmation"]["token"]

        response = client.post(f"/v1/sessions/{session_id}/confirm", json={"token": token})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "field_validation_error"
        assert detail["current_step"] == 3
        assert detail["field_errors"] == {"phoneNumber": "Phone number is in use"}

    def test_confirm_general_error_returns_502(
        self, client: TestClient, session_id: str, registration_service: AsyncMock
    ) -> None:
        """A backend failure keeps the session at step 4 with a new confirmation."""
        registration_service.submit_registration.side_effect = GeneralError("Service unavailable")
        drive_to_final_step(client, session_id)
        token = client.post(f"/v1/sessions/{session_id}/submit").json()["confirmation"]["token"]

        response = client.post(f"/v1/sessions/{session_id}/confirm", json={"token": token})

        assert response.status_code == 502
        assert response.json()["detail"]["message"] == "Service unavailable"
        state = client.get(f"/v1/sessions/{session_id}").json()
        assert state["current_step"] == 4
        assert state["confirmation"]["token"] != token


class TestLookupEndpoints:
    """Tests for bank and category lookups."""

    def test_search_banks(self, client: TestClient) -> None:
        """Banks are searched by name."""
        response = client.get("/v1/banks", params={"query": "guaranty"})

        assert response.status_code == 200
        assert response.json() == [{"code": "058", "name": "Guaranty Trust Bank"}]

    def test_list_categories(self, client: TestClient) -> None:
        """Categories are listed with their ids."""
        response = client.get("/v1/categories")

        assert response.status_code == 200
        assert {"id": 2, "name": "Electronics"} in response.json()
