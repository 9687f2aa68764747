"""
Verification subsystem - Email ownership proof via one-time code.

State Machine
=============

    idle -> sending -> sent -> verifying -> verified
    sent -> sending       (resend: drops the previous code and session id;
                           needs an email that passed the availability check)
    verifying -> sent     (failed attempt: session id is kept)
    any -> idle           (reset, e.g. when leaving the verification step)

VERIFIED is terminal until the whole workflow restarts.

Ordering
========

Every send, resend and reset advances a generation counter. Each network
call remembers the generation it was issued under; when its response
arrives after the counter has moved on, the response is discarded. This
gives last-write-wins by generation rather than by arrival order, so a
slow response from a superseded send can never overwrite the session id
established by a later resend.
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum

from .draft import DraftField
from .exceptions import (
    ConflictError,
    ExpiredSessionError,
    InvalidTransitionError,
    OperationInProgressError,
    RegistrationError,
    ValidationError,
)
from .ports import IdentityVerificationService
from .validation import email_error, normalize_email

logger = logging.getLogger(__name__)

DEFAULT_CODE_LENGTH = 5


class VerificationStatus(str, Enum):
    """Observable states of the verification subsystem."""

    IDLE = "idle"
    SENDING = "sending"
    SENT = "sent"
    VERIFYING = "verifying"
    VERIFIED = "verified"


@dataclass
class VerificationState:
    """Mutable state behind the subsystem. Never assigned from outside."""

    email: str | None = None
    # Set once the email passed the availability check of the first send
    available: bool = False
    session_id: str | None = None
    code: str = ""
    verified: bool = False
    sending: bool = False
    verifying: bool = False
    generation: int = 0

    @property
    def status(self) -> VerificationStatus:
        if self.verified:
            return VerificationStatus.VERIFIED
        if self.verifying:
            return VerificationStatus.VERIFYING
        if self.sending:
            return VerificationStatus.SENDING
        if self.session_id is not None:
            return VerificationStatus.SENT
        return VerificationStatus.IDLE


class VerificationSubsystem:
    """
    Drives the send / resend / verify sub-protocol for one workflow.

    Mutated only through send_code(), resend(), verify_code() and reset().
    """

    def __init__(
        self, service: IdentityVerificationService, code_length: int = DEFAULT_CODE_LENGTH
    ) -> None:
        self._service = service
        self._code_length = code_length
        self._code_pattern = re.compile(rf"^\d{{{code_length}}}$")
        self._state = VerificationState()

    @property
    def state(self) -> VerificationState:
        """Read-only copy of the current state."""
        return replace(self._state)

    @property
    def status(self) -> VerificationStatus:
        return self._state.status

    @property
    def is_verified(self) -> bool:
        return self._state.verified

    async def send_code(self, email: str) -> VerificationStatus:
        """
        Check availability, then dispatch the first code for an email.

        The availability check always completes before the dispatch is
        issued and is not repeated by resend().

        Raises:
            ValidationError: Email is malformed
            ConflictError: Email is already registered
            OperationInProgressError: A send is already in flight
            InvalidTransitionError: Email is already verified
            GeneralError: Service failure
        """
        if self._state.verified:
            raise InvalidTransitionError("Email address is already verified")
        if self._state.sending:
            raise OperationInProgressError("A verification code is already being sent")

        message = email_error(email)
        if message:
            raise ValidationError(message, {DraftField.EMAIL_ADDRESS.value: message})

        normalized_email = normalize_email(email)
        generation = self._begin_send(normalized_email)
        self._state.available = False

        try:
            availability = await self._service.check_email_availability(normalized_email)
            if not self._is_current(generation):
                return self._discard(generation, "availability check")
            if not availability.available:
                raise ConflictError(availability.message or "Email already exists")
            self._state.available = True

            session_id = await self._service.send_verification_code(normalized_email)
        except RegistrationError:
            if not self._is_current(generation):
                return self._discard(generation, "failed send")
            self._state.sending = False
            raise

        return self._finish_send(generation, session_id)

    async def resend(self) -> VerificationStatus:
        """
        Dispatch a fresh code for the email of the first send.

        Only allowed once that email passed its availability check. Invalidates
        the previous code and session id immediately, even if the first
        dispatch is still waiting for its response.

        Raises:
            InvalidTransitionError: No available email yet, or already verified
            GeneralError: Service failure
        """
        if self._state.verified:
            raise InvalidTransitionError(
                "Email address is already verified; a new code cannot be requested"
            )
        email = self._state.email
        if email is None or not self._state.available:
            raise InvalidTransitionError("No verification code has been sent yet")

        generation = self._begin_send(email)

        try:
            session_id = await self._service.send_verification_code(email)
        except RegistrationError:
            if not self._is_current(generation):
                return self._discard(generation, "failed resend")
            self._state.sending = False
            raise

        return self._finish_send(generation, session_id)

    async def verify_code(self, code: str) -> VerificationStatus:
        """
        Verify the code entered by the user against the live session.

        A wrong code keeps the session, so the user may simply try again.

        Raises:
            ValidationError: Code is not exactly the expected number of digits
            ExpiredSessionError: No live session (caller must resend)
            InvalidCodeError: Code does not match
            OperationInProgressError: A send or verification is in flight
            InvalidTransitionError: Email is already verified
        """
        if self._state.verified:
            raise InvalidTransitionError("Email address is already verified")
        if self._state.verifying:
            raise OperationInProgressError("Verification is already in progress")

        code = code.strip()
        if not self._code_pattern.match(code):
            message = f"Verification code must be {self._code_length} digits"
            raise ValidationError(message)

        if self._state.sending:
            raise OperationInProgressError("A new verification code is being sent")

        email = self._state.email
        session_id = self._state.session_id
        if email is None or session_id is None:
            raise ExpiredSessionError(
                "Verification session expired. Please resend the verification code."
            )

        generation = self._state.generation
        self._state.code = code
        self._state.verifying = True

        try:
            await self._service.verify_code(email, code, session_id)
        except ExpiredSessionError:
            if not self._is_current(generation):
                return self._discard(generation, "failed verification")
            self._state.verifying = False
            self._state.session_id = None
            raise
        except RegistrationError:
            if not self._is_current(generation):
                return self._discard(generation, "failed verification")
            self._state.verifying = False
            raise

        if not self._is_current(generation):
            return self._discard(generation, "verification")

        self._state.verifying = False
        self._state.verified = True
        logger.info("Email address verified: %s", email)
        return self.status

    def reset(self) -> None:
        """Return to IDLE and invalidate every in-flight response."""
        self._state = VerificationState(generation=self._state.generation + 1)

    def _begin_send(self, email: str) -> int:
        self._state.generation += 1
        self._state.email = email
        self._state.session_id = None
        self._state.code = ""
        self._state.sending = True
        # A verification started under the old session can no longer apply
        self._state.verifying = False
        return self._state.generation

    def _finish_send(self, generation: int, session_id: str) -> VerificationStatus:
        if not self._is_current(generation):
            return self._discard(generation, "send")
        self._state.session_id = session_id
        self._state.sending = False
        logger.info("Verification code dispatched to %s", self._state.email)
        return self.status

    def _is_current(self, generation: int) -> bool:
        return generation == self._state.generation

    def _discard(self, generation: int, what: str) -> VerificationStatus:
        logger.debug(
            "Discarding stale %s response (generation %d, current %d)",
            what,
            generation,
            self._state.generation,
        )
        return self.status
