"""
Console identity verification adapter - Implements IdentityVerificationService.

This module provides an in-process implementation of the identity
verification port for development: codes are generated locally, only
their bcrypt hash is kept, and the plaintext code is logged to stdout
instead of being emailed.
"""

import logging
import secrets
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import bcrypt

from src.domain.exceptions import ExpiredSessionError, InvalidCodeError
from src.domain.ports import AvailabilityResult

logger = logging.getLogger(__name__)


@dataclass
class _PendingVerification:
    email: str
    code_hash: bytes
    expires_at: float
    attempts: int = 0


class ConsoleIdentityVerificationService:
    """
    Implements IdentityVerificationService protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints verification codes to stdout.
    """

    def __init__(
        self,
        registered_emails: set[str],
        *,
        code_length: int = 5,
        ttl_seconds: int = 600,
        max_attempts: int = 3,
        bcrypt_cost: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registered_emails = registered_emails
        self._code_length = code_length
        self._ttl_seconds = ttl_seconds
        self._max_attempts = max_attempts
        self._bcrypt_cost = bcrypt_cost
        self._clock = clock
        self._pending: dict[str, _PendingVerification] = {}

    async def check_email_availability(self, email: str) -> AvailabilityResult:
        if email.strip().lower() in self._registered_emails:
            return AvailabilityResult(available=False, message="Email already exists")
        return AvailabilityResult(available=True)

    async def send_verification_code(self, email: str) -> str:
        """
        Generate a code, keep its hash, and log the plaintext.

        A new code replaces every earlier code for the same email, and
        expired codes are dropped. The code is logged at INFO level to be
        visible in docker-compose logs.
        """
        self._prune(email)
        code = self._generate_code()
        session_id = uuid.uuid4().hex
        self._pending[session_id] = _PendingVerification(
            email=email,
            code_hash=bcrypt.hashpw(code.encode(), bcrypt.gensalt(rounds=self._bcrypt_cost)),
            expires_at=self._clock() + self._ttl_seconds,
        )
        logger.info("[VERIFICATION] Email: %s Code: %s", email, code)
        return session_id

    async def verify_code(self, email: str, code: str, verification_session_id: str) -> None:
        pending = self._pending.get(verification_session_id)
        if pending is None or pending.email != email:
            raise ExpiredSessionError(
                "Verification session expired. Please resend the verification code."
            )

        if self._clock() > pending.expires_at:
            del self._pending[verification_session_id]
            raise ExpiredSessionError("Verification code expired. Please resend the code.")

        if not bcrypt.checkpw(code.encode(), pending.code_hash):
            pending.attempts += 1
            if pending.attempts >= self._max_attempts:
                del self._pending[verification_session_id]
                raise ExpiredSessionError(
                    "Too many incorrect attempts. Please resend the verification code."
                )
            remaining = self._max_attempts - pending.attempts
            raise InvalidCodeError(f"Invalid verification code. {remaining} attempt(s) left.")

        del self._pending[verification_session_id]

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _prune(self, email: str) -> None:
        now = self._clock()
        stale = [
            session_id
            for session_id, pending in self._pending.items()
            if pending.email == email or now > pending.expires_at
        ]
        for session_id in stale:
            del self._pending[session_id]

    def _generate_code(self) -> str:
        """
        Generate a cryptographically secure numeric code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self._code_length))
