"""
Validation engine - Pure per-step rule evaluation.

Every rule here is deterministic and free of I/O. Questions that need a
service (is this email taken, is this bank real) are answered elsewhere;
the engine only checks what the draft itself can prove.
"""

import re
from collections.abc import Callable

from email_validator import EmailNotValidError, validate_email

from .draft import Document, DraftField, FieldErrors, RegistrationDraft, Step

MIN_PASSWORD_LENGTH = 8
ACCOUNT_NUMBER_LENGTH = 10
TAX_ID_DIGIT_COUNTS = (10, 12)
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024
ALLOWED_DOCUMENT_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "application/pdf"})

PHONE_PATTERN = re.compile(r"^(\+234|234|0)?[789][01]\d{8}$")
BUSINESS_REG_PATTERN = re.compile(r"^RC-?\d{7}$", re.IGNORECASE)
TAX_ID_CHARACTERS = re.compile(r"^[0-9-]+$")

ACCOUNT_NUMBER_LENGTH_MESSAGE = "Account number must be exactly 10 digits"
ACCOUNT_NUMBER_DIGITS_MESSAGE = "Account number must contain only digits"

# Character classes in the order they are named in messages
_PASSWORD_CLASSES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("an uppercase letter", re.compile(r"[A-Z]")),
    ("a lowercase letter", re.compile(r"[a-z]")),
    ("a number", re.compile(r"\d")),
    ("a special character", re.compile(r"[^A-Za-z0-9]")),
)


def _join_requirements(requirements: list[str]) -> str:
    if len(requirements) == 1:
        return requirements[0]
    return ", ".join(requirements[:-1]) + " and " + requirements[-1]


def password_error(password: str) -> str | None:
    """
    Check password strength.

    Missing character classes are reported in one sentence that names
    only the classes that are missing.
    """
    if not password.strip():
        return "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    missing = [label for label, pattern in _PASSWORD_CLASSES if not pattern.search(password)]
    if missing:
        return f"Password must include {_join_requirements(missing)}."
    return None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def email_error(email: str) -> str | None:
    if not email.strip():
        return "Email is required"
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return "Please enter a valid email address"
    return None


def account_number_error(account_number: str) -> str | None:
    value = account_number.strip()
    if not value:
        return "Account number is required"
    if len(value) != ACCOUNT_NUMBER_LENGTH:
        return ACCOUNT_NUMBER_LENGTH_MESSAGE
    if not value.isdigit():
        return ACCOUNT_NUMBER_DIGITS_MESSAGE
    return None


def account_number_progress(account_number: str) -> str | None:
    """Inline hint while the account number is partially typed."""
    if 0 < len(account_number) < ACCOUNT_NUMBER_LENGTH:
        return ACCOUNT_NUMBER_LENGTH_MESSAGE
    return None


def business_reg_number_error(value: str) -> str | None:
    formatted = value.strip().upper()
    if formatted and not BUSINESS_REG_PATTERN.match(formatted):
        return "Use RC1234567 or RC-1234567 (7 digits after RC)."
    return None


def tax_id_error(value: str) -> str | None:
    raw = value.strip()
    if not raw:
        return None
    if not TAX_ID_CHARACTERS.match(raw):
        return "Tax ID can only include digits and hyphens."
    digits = raw.replace("-", "")
    if len(digits) not in TAX_ID_DIGIT_COUNTS:
        return "Tax ID must contain exactly 10 or 12 digits."
    return None


def document_error(document: Document, max_bytes: int = MAX_DOCUMENT_BYTES) -> str | None:
    """Upload constraints for identity and registration documents."""
    if document.content_type not in ALLOWED_DOCUMENT_TYPES:
        return "Please upload a JPEG, PNG, WebP or PDF file"
    if document.size == 0:
        return "The uploaded file is empty"
    if document.size > max_bytes:
        return f"File size must be less than {max_bytes // (1024 * 1024)}MB"
    return None


def _validate_credentials(draft: RegistrationDraft, final: bool) -> FieldErrors:
    errors: FieldErrors = {}

    message = email_error(draft.email_address)
    if message:
        errors[DraftField.EMAIL_ADDRESS] = message

    message = password_error(draft.password)
    if message:
        errors[DraftField.PASSWORD] = message

    if not draft.confirm_password.strip():
        errors[DraftField.CONFIRM_PASSWORD] = "Please confirm your password"
    elif draft.confirm_password != draft.password:
        errors[DraftField.CONFIRM_PASSWORD] = "Passwords do not match"

    return errors


def _validate_verification(draft: RegistrationDraft, final: bool) -> FieldErrors:
    # Gated by the verification subsystem, not by field rules
    return {}


def _validate_business_profile(draft: RegistrationDraft, final: bool) -> FieldErrors:
    errors: FieldErrors = {}

    if not draft.full_name.strip():
        errors[DraftField.FULL_NAME] = "Full name is required"

    if not draft.business_name.strip():
        errors[DraftField.BUSINESS_NAME] = "Business name is required"

    if not draft.business_category.strip():
        errors[DraftField.BUSINESS_CATEGORY] = "Please select a business category"
    elif draft.business_category_id is None:
        errors[DraftField.BUSINESS_CATEGORY] = "Please select a valid business category"

    phone = re.sub(r"\s", "", draft.phone_number)
    if not phone:
        errors[DraftField.PHONE_NUMBER] = "Phone number is required"
    elif not PHONE_PATTERN.match(phone):
        errors[DraftField.PHONE_NUMBER] = "Please enter a valid Nigerian phone number"

    message = account_number_error(draft.account_number)
    if message:
        errors[DraftField.ACCOUNT_NUMBER] = message

    if not draft.bank_name.strip():
        errors[DraftField.BANK] = "Bank name is required"
    elif final and not (
        draft.settlement_bank_code and draft.settlement_bank_name == draft.bank_name
    ):
        errors[DraftField.BANK] = "Please select your bank from the list"

    return errors


def _validate_business_details(draft: RegistrationDraft, final: bool) -> FieldErrors:
    errors: FieldErrors = {}

    if not draft.store_name.strip():
        errors[DraftField.STORE_NAME] = "Store name is required"

    if not draft.business_address.strip():
        errors[DraftField.BUSINESS_ADDRESS] = "Business address is required"

    message = business_reg_number_error(draft.business_reg_number)
    if message:
        errors[DraftField.BUSINESS_REG_NUMBER] = message

    message = tax_id_error(draft.tax_id_number)
    if message:
        errors[DraftField.TAX_ID_NUMBER] = message

    if draft.id_document is None:
        errors[DraftField.ID_DOCUMENT] = "ID document is required"

    if draft.business_reg_certificate is None:
        errors[DraftField.BUSINESS_REG_CERTIFICATE] = (
            "Business registration certificate is required"
        )

    return errors


_RULES: dict[Step, Callable[[RegistrationDraft, bool], FieldErrors]] = {
    Step.CREDENTIALS: _validate_credentials,
    Step.VERIFICATION: _validate_verification,
    Step.BUSINESS_PROFILE: _validate_business_profile,
    Step.BUSINESS_DETAILS: _validate_business_details,
}


def validate(step: int, draft: RegistrationDraft, *, final: bool = False) -> FieldErrors:
    """
    Evaluate the rules of one step against the draft.

    Args:
        step: Step number (1..4)
        draft: Draft to check (not modified)
        final: Apply submission-time rules, such as requiring the bank
            to have been picked from the directory lookup

    Returns:
        Field-keyed error messages; empty when the step is valid
    """
    return _RULES[Step(step)](draft, final)
