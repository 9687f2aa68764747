"""
Backend identity verification adapter - Implements IdentityVerificationService.

Talks to the vendor API's email availability and one-time code endpoints.
"""

import logging

from src.domain.exceptions import ExpiredSessionError, GeneralError, InvalidCodeError
from src.domain.ports import AvailabilityResult

from .client import BackendClient, raise_for_failure

logger = logging.getLogger(__name__)

CHECK_EMAIL_PATH = "/vendor/check-email"
SEND_OTP_PATH = "/vendor/send-otp"
VERIFY_OTP_PATH = "/vendor/verify-otp"


class BackendIdentityVerificationService:
    """
    Implements IdentityVerificationService protocol over HTTP.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def check_email_availability(self, email: str) -> AvailabilityResult:
        response = await self._client.request(
            "GET", CHECK_EMAIL_PATH, params={"emailAddress": email}
        )
        if response.status_code == 409:
            return AvailabilityResult(available=False, message=response.message or None)
        raise_for_failure(response, "Unable to check email availability")

        data = response.data if isinstance(response.data, dict) else {}
        available = bool(data.get("available", False))
        return AvailabilityResult(available=available, message=response.message or None)

    async def send_verification_code(self, email: str) -> str:
        response = await self._client.request(
            "POST", SEND_OTP_PATH, json={"emailAddress": email}
        )
        raise_for_failure(response, "Failed to send verification code")

        data = response.data if isinstance(response.data, dict) else {}
        verification_id = data.get("verificationId")
        if not verification_id:
            logger.error("send-otp response carried no verificationId")
            raise GeneralError("Failed to send verification code")
        return str(verification_id)

    async def verify_code(self, email: str, code: str, verification_session_id: str) -> None:
        response = await self._client.request(
            "POST",
            VERIFY_OTP_PATH,
            json={
                "emailAddress": email,
                "otp": code,
                "verificationId": verification_session_id,
            },
        )
        if not response.failed:
            return

        if response.status_code == 410:
            raise ExpiredSessionError(
                response.message
                or "Verification session expired. Please resend the verification code."
            )
        if response.status_code < 500:
            raise InvalidCodeError(response.message or "Invalid verification code")
        raise GeneralError(response.message or "Failed to verify code")
