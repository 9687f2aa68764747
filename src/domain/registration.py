"""
Registration session controller - Multi-step workflow state machine.

This module owns the registration draft and walks a prospective merchant
through the four workflow steps before issuing the single irreversible
account-creation call.

Step State Machine
==================

Steps:
- 1 CREDENTIALS: email, password, confirmation
- 2 VERIFICATION: email ownership proof (one-time code)
- 3 BUSINESS_PROFILE: identity, business and settlement details
- 4 BUSINESS_DETAILS: store details and documents
- SUBMITTED: implicit terminal state after a successful submission

Transitions:
    1 -> 2   local validation, availability check, then code dispatch
    2 -> 3   only when the verification subsystem is VERIFIED
    3 -> 4   local validation
    4 -> gate -> SUBMITTED   submit(), then confirm_submit(token)
    n -> n-1 retreat(); leaving step 2 resets verification to IDLE
    4 -> k   rejected submission rewinds to the earliest step with errors

Every mutating operation returns an Outcome. Domain errors are caught at
the operation boundary and recorded as user-visible state (field errors or
a general message); none escape to the caller.
"""

import logging
import secrets
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace

from .attribution import attribute, owning_step
from .draft import (
    FIRST_STEP,
    LAST_STEP,
    TEXT_FIELDS,
    Document,
    DocumentKind,
    DraftField,
    FieldErrors,
    RegistrationDraft,
    Step,
    parse_field_errors,
    serialize_field_errors,
)
from .exceptions import (
    ConfirmationPendingError,
    ConflictError,
    FieldValidationError,
    GeneralError,
    InvalidTransitionError,
    OperationInProgressError,
    RegistrationError,
    ValidationError,
)
from .ports import (
    Bank,
    BankDirectory,
    BusinessCategory,
    IdentityVerificationService,
    RegistrationService,
    SubmissionReceipt,
)
from .validation import (
    MAX_DOCUMENT_BYTES,
    account_number_error,
    account_number_progress,
    document_error,
    normalize_email,
    validate,
)
from .verification import DEFAULT_CODE_LENGTH, VerificationStatus, VerificationSubsystem

logger = logging.getLogger(__name__)

IMMUTABLE_WARNING = (
    "Your settlement account number and bank cannot be changed after registration. "
    "Please confirm they are correct before continuing."
)


@dataclass(frozen=True)
class ConfirmationGate:
    """
    Open confirmation for the final submission.

    Only confirm_submit() with this token, or cancel_confirm(), closes it.
    """

    token: str
    account_number: str
    bank_name: str
    warning: str = IMMUTABLE_WARNING


@dataclass(frozen=True)
class Outcome:
    """Result of a controller operation."""

    ok: bool
    step: Step
    error: RegistrationError | None = None
    receipt: SubmissionReceipt | None = None
    suggestions: tuple[Bank, ...] = ()

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None


class RegistrationSessionController:
    """
    Orchestrates one registration workflow.

    The draft and step state are owned exclusively by this object and
    changed only through its intent operations. The verification
    subsystem is a sub-object mutated only through its own operations.
    """

    def __init__(
        self,
        identity_service: IdentityVerificationService,
        registration_service: RegistrationService,
        bank_directory: BankDirectory,
        categories: Sequence[BusinessCategory] = (),
        *,
        draft: RegistrationDraft | None = None,
        code_length: int = DEFAULT_CODE_LENGTH,
        max_document_bytes: int = MAX_DOCUMENT_BYTES,
    ) -> None:
        self._registration_service = registration_service
        self._bank_directory = bank_directory
        self._categories = tuple(categories)
        self._max_document_bytes = max_document_bytes

        self._draft = draft if draft is not None else RegistrationDraft()
        self._step = FIRST_STEP
        self._completed: set[Step] = set()
        self._errors: FieldErrors = {}
        self._general_error: str | None = None
        self._gate: ConfirmationGate | None = None
        self._advancing = False
        self._submitting = False
        self._receipt: SubmissionReceipt | None = None

        self.verification = VerificationSubsystem(identity_service, code_length)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> Step:
        return self._step

    @property
    def completed_steps(self) -> frozenset[Step]:
        return frozenset(self._completed)

    @property
    def errors(self) -> FieldErrors:
        return dict(self._errors)

    @property
    def general_error(self) -> str | None:
        return self._general_error

    @property
    def confirmation_gate(self) -> ConfirmationGate | None:
        return self._gate

    @property
    def is_submitted(self) -> bool:
        return self._receipt is not None

    @property
    def receipt(self) -> SubmissionReceipt | None:
        return self._receipt

    @property
    def categories(self) -> tuple[BusinessCategory, ...]:
        return self._categories

    @property
    def verification_status(self) -> VerificationStatus:
        return self.verification.status

    def draft_snapshot(self) -> dict:
        """Display view of the draft (no passwords, document metadata only)."""
        return self._draft.snapshot()

    def persistable_snapshot(self) -> dict:
        """Non-sensitive draft fields for a snapshot store."""
        return self._draft.persistable_snapshot()

    def search_banks(self, query: str) -> list[Bank]:
        return self._bank_directory.search_banks(query)

    # ------------------------------------------------------------------
    # Draft edits
    # ------------------------------------------------------------------

    def edit_field(self, draft_field: DraftField, value: str) -> Outcome:
        """Set a free-text field and clear its error."""
        if draft_field not in TEXT_FIELDS:
            raise ValueError(f"{draft_field.value} cannot be edited as free text")

        def apply() -> None:
            self._guard_mutation()
            if draft_field is DraftField.EMAIL_ADDRESS and self._step != Step.CREDENTIALS:
                raise InvalidTransitionError("Email address can only be changed on the first step")
            if draft_field is DraftField.EMAIL_ADDRESS and self._advancing:
                raise OperationInProgressError("Your email address is being checked")

            self._clear_error(draft_field)
            if draft_field is DraftField.ACCOUNT_NUMBER:
                digits = "".join(c for c in value if c.isdigit())[:10]
                self._draft.account_number = digits
                hint = account_number_progress(digits)
                if hint:
                    self._errors[DraftField.ACCOUNT_NUMBER] = hint
            else:
                self._draft.set(draft_field, value)

        return self._run(apply)

    def select_business_category(self, name: str) -> Outcome:
        """
        Choose a business category by name and re-resolve its id.

        Resolution is a single exact lookup against the category list
        fetched for this session. A name with no match leaves the id
        unset, which step validation reports.
        """

        def apply() -> None:
            self._guard_mutation()
            self._clear_error(DraftField.BUSINESS_CATEGORY)
            match = next((c for c in self._categories if c.name == name), None)
            self._draft.business_category = name
            self._draft.business_category_id = match.id if match is not None else None

        return self._run(apply)

    def enter_bank_name(self, text: str) -> Outcome:
        """
        Record provisional bank text; matching directory entries come back
        as the outcome's suggestions.

        Typing anything other than the selected bank's name drops the
        derived bank code, so a code can never outlive its selection.
        """

        def apply() -> None:
            self._guard_mutation()
            self._clear_error(DraftField.BANK)
            self._draft.bank_name = text
            if text != self._draft.settlement_bank_name:
                self._draft.settlement_bank_code = ""
                self._draft.settlement_bank_name = ""

        outcome = self._run(apply)
        if not outcome.ok or not text.strip():
            return outcome
        return replace(outcome, suggestions=tuple(self._bank_directory.search_banks(text)))

    def select_bank(self, code: str) -> Outcome:
        """Populate bank name and code together from a directory entry."""

        def apply() -> None:
            self._guard_mutation()
            bank = self._bank_directory.get_bank_by_code(code)
            if bank is None:
                message = "Please select your bank from the list"
                raise ValidationError(message, {DraftField.BANK.value: message})

            for draft_field in (
                DraftField.BANK,
                DraftField.SETTLEMENT_BANK,
                DraftField.SETTLEMENT_BANK_NAME,
            ):
                self._clear_error(draft_field)
            self._draft.bank_name = bank.name
            self._draft.settlement_bank_code = bank.code
            self._draft.settlement_bank_name = bank.name

        return self._run(apply)

    def attach_document(self, kind: DocumentKind, document: Document) -> Outcome:
        def apply() -> None:
            self._guard_mutation()
            self._clear_error(kind.field)
            message = document_error(document, self._max_document_bytes)
            if message:
                self._draft.set(kind.field, None)
                raise ValidationError(message, {kind.value: message})
            self._draft.set(kind.field, document)

        return self._run(apply)

    def detach_document(self, kind: DocumentKind) -> Outcome:
        def apply() -> None:
            self._guard_mutation()
            self._clear_error(kind.field)
            self._draft.set(kind.field, None)

        return self._run(apply)

    # ------------------------------------------------------------------
    # Step transitions
    # ------------------------------------------------------------------

    async def advance(self) -> Outcome:
        """
        Validate the current step and move forward.

        Step 1 additionally checks email availability and dispatches the
        first verification code; the move happens only if both succeed.
        """
        return await self._run_async(self._advance)

    async def _advance(self) -> None:
        self._guard_mutation()
        step = self._step

        if step == LAST_STEP:
            raise InvalidTransitionError(
                "This is the final step; submit the registration instead"
            )

        if step == Step.VERIFICATION:
            if not self.verification.is_verified:
                raise InvalidTransitionError("Please verify your email address first")
            self._check_verified_email()
            self._move_forward()
            return

        self._check_step(step)

        if step == Step.CREDENTIALS:
            if self._advancing:
                raise OperationInProgressError("Your email address is already being checked")
            self._advancing = True
            try:
                await self.verification.send_code(self._draft.email_address)
            finally:
                self._advancing = False
            # Retreated or superseded while the check was in flight
            if self._step != Step.CREDENTIALS or self.verification.status not in (
                VerificationStatus.SENT,
                VerificationStatus.SENDING,
            ):
                return
            self._check_verified_email()

        self._move_forward()

    def retreat(self) -> Outcome:
        """Move back one step; leaving verification resets it to IDLE."""

        def apply() -> None:
            self._guard_mutation()
            if self._step == FIRST_STEP:
                raise InvalidTransitionError("Already at the first step")
            if self._step == Step.VERIFICATION:
                self.verification.reset()
            self._step = Step(self._step - 1)
            logger.debug("Retreated to step %d", self._step)

        return self._run(apply)

    # ------------------------------------------------------------------
    # Verification actions
    # ------------------------------------------------------------------

    async def send_code(self) -> Outcome:
        async def apply() -> None:
            self._guard_verification_step()
            await self.verification.send_code(self._draft.email_address)

        return await self._run_async(apply)

    async def resend_code(self) -> Outcome:
        async def apply() -> None:
            self._guard_verification_step()
            await self.verification.resend()

        return await self._run_async(apply)

    async def verify_code(self, code: str) -> Outcome:
        async def apply() -> None:
            self._guard_verification_step()
            await self.verification.verify_code(code)

        return await self._run_async(apply)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self) -> Outcome:
        """
        Re-validate the final data and open the confirmation gate.

        Nothing is sent to the registration service here.
        """

        def apply() -> None:
            self._guard_mutation()
            if self._step != LAST_STEP:
                raise InvalidTransitionError(
                    "Registration can only be submitted from the final step"
                )

            for step in (Step.BUSINESS_PROFILE, Step.BUSINESS_DETAILS):
                self._check_step(step, final=True, rewind=True)

            message = account_number_error(self._draft.account_number)
            if message:
                self._rewind(Step.BUSINESS_PROFILE)
                raise ValidationError(message, {DraftField.ACCOUNT_NUMBER.value: message})

            if self._draft.id_document is None or self._draft.business_reg_certificate is None:
                raise ValidationError("Please upload both required documents")

            self._check_verified_email()
            self._open_gate()

        return self._run(apply)

    async def confirm_submit(self, token: str) -> Outcome:
        """
        Confirm the open gate and perform the single submission call.

        On success the workflow reaches its terminal state. Field-level
        rejections rewind to the earliest affected step; any other
        failure keeps the user on the final step with the gate re-opened.
        """
        return await self._run_async(lambda: self._confirm_submit(token))

    async def _confirm_submit(self, token: str) -> None:
        if self.is_submitted:
            raise InvalidTransitionError("Registration has already been submitted")
        if self._submitting:
            raise OperationInProgressError("Registration is already being submitted")
        if self._gate is None:
            raise InvalidTransitionError("No submission is awaiting confirmation")
        if not secrets.compare_digest(token, self._gate.token):
            raise InvalidTransitionError("Confirmation does not match the open request")

        self._gate = None
        self._errors.clear()
        self._check_verified_email()
        self._submitting = True
        try:
            receipt = await self._registration_service.submit_registration(replace(self._draft))
        except FieldValidationError as exc:
            target = attribute(parse_field_errors(exc.field_errors))
            logger.warning(
                "Registration rejected with %d field error(s)", len(exc.field_errors)
            )
            if target is not None:
                self._rewind(target)
            raise
        except ConflictError:
            logger.warning("Registration rejected: email already registered")
            self._rewind(owning_step(DraftField.EMAIL_ADDRESS))
            raise
        except GeneralError:
            logger.warning("Registration submission failed; confirmation re-opened")
            self._open_gate()
            raise
        finally:
            self._submitting = False

        self._receipt = receipt
        self._completed.add(LAST_STEP)
        logger.info("Registration submitted: account %s", receipt.account_id)

    def cancel_confirm(self) -> Outcome:
        """Close the gate; the draft and the current step are untouched."""

        def apply() -> None:
            if self._gate is None:
                raise InvalidTransitionError("No submission is awaiting confirmation")
            self._gate = None

        return self._run(apply)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _guard_mutation(self) -> None:
        if self.is_submitted:
            raise InvalidTransitionError("Registration has already been submitted")
        if self._submitting:
            raise OperationInProgressError("Registration is being submitted")
        if self._gate is not None:
            raise ConfirmationPendingError("Please confirm or cancel the pending submission")

    def _guard_verification_step(self) -> None:
        self._guard_mutation()
        if self._step != Step.VERIFICATION:
            raise InvalidTransitionError("Email verification is not the current step")

    def _check_step(self, step: Step, *, final: bool = False, rewind: bool = False) -> None:
        for key in [k for k in self._errors if owning_step(k) == step]:
            del self._errors[key]

        step_errors = validate(step, self._draft, final=final)
        if step_errors:
            if rewind:
                self._rewind(step)
            raise ValidationError(
                "Please fix the highlighted fields", serialize_field_errors(step_errors)
            )

    def _check_verified_email(self) -> None:
        """The email carried forward must be the one the code was sent to."""
        bound_email = self.verification.state.email
        if bound_email is not None and normalize_email(self._draft.email_address) == bound_email:
            return

        logger.warning("Draft email no longer matches the verified email; restarting step 1")
        self._rewind(Step.CREDENTIALS)
        self.verification.reset()
        message = "Please verify your email address again"
        raise ValidationError(message, {DraftField.EMAIL_ADDRESS.value: message})

    def _move_forward(self) -> None:
        self._completed.add(self._step)
        self._step = Step(self._step + 1)
        logger.info("Advanced to step %d", self._step)

    def _rewind(self, target: Step) -> None:
        if target >= self._step:
            return
        self._step = target
        self._completed = {s for s in self._completed if s < target}
        if target == Step.CREDENTIALS:
            # Email may change, so ownership has to be proven again
            self.verification.reset()
        logger.info("Rewound to step %d", target)

    def _open_gate(self) -> None:
        self._gate = ConfirmationGate(
            token=secrets.token_urlsafe(16),
            account_number=self._draft.account_number.strip(),
            bank_name=self._draft.settlement_bank_name or self._draft.bank_name,
        )

    def _clear_error(self, draft_field: DraftField) -> None:
        self._errors.pop(draft_field, None)

    def _record(self, exc: RegistrationError) -> None:
        if isinstance(exc, FieldValidationError):
            self._errors.update(parse_field_errors(exc.field_errors))
            self._general_error = str(exc)
        elif isinstance(exc, ValidationError) and exc.field_errors:
            self._errors.update(parse_field_errors(exc.field_errors))
        elif isinstance(exc, ConflictError):
            self._errors[DraftField.EMAIL_ADDRESS] = str(exc)
        else:
            self._general_error = str(exc)

    def _run(self, action: Callable[[], None]) -> Outcome:
        self._general_error = None
        try:
            action()
        except RegistrationError as exc:
            self._record(exc)
            return Outcome(ok=False, step=self._step, error=exc)
        return Outcome(ok=True, step=self._step, receipt=self._receipt)

    async def _run_async(self, action: Callable[[], Awaitable[None]]) -> Outcome:
        self._general_error = None
        try:
            await action()
        except RegistrationError as exc:
            self._record(exc)
            return Outcome(ok=False, step=self._step, error=exc)
        return Outcome(ok=True, step=self._step, receipt=self._receipt)
