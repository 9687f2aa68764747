"""
Error attribution router - Maps field errors back to their owning step.

The backend reports rejected fields as a flat map. The workflow rewinds
to the earliest step that owns any of them, so the user fixes problems
in workflow order. Unknown fields fall into the last step, which holds
the least structured data.
"""

from collections.abc import Iterable

from .draft import LAST_STEP, DraftField, ErrorKey, Step, UnrecognizedField

FIELD_STEPS: dict[DraftField, Step] = {
    DraftField.EMAIL_ADDRESS: Step.CREDENTIALS,
    DraftField.PASSWORD: Step.CREDENTIALS,
    DraftField.CONFIRM_PASSWORD: Step.CREDENTIALS,
    DraftField.FULL_NAME: Step.BUSINESS_PROFILE,
    DraftField.BUSINESS_NAME: Step.BUSINESS_PROFILE,
    DraftField.BUSINESS_CATEGORY: Step.BUSINESS_PROFILE,
    DraftField.PHONE_NUMBER: Step.BUSINESS_PROFILE,
    DraftField.ACCOUNT_NUMBER: Step.BUSINESS_PROFILE,
    DraftField.BANK: Step.BUSINESS_PROFILE,
    DraftField.SETTLEMENT_BANK: Step.BUSINESS_PROFILE,
    DraftField.SETTLEMENT_BANK_NAME: Step.BUSINESS_PROFILE,
    DraftField.STORE_NAME: Step.BUSINESS_DETAILS,
    DraftField.BUSINESS_ADDRESS: Step.BUSINESS_DETAILS,
    DraftField.BUSINESS_REG_NUMBER: Step.BUSINESS_DETAILS,
    DraftField.TAX_ID_NUMBER: Step.BUSINESS_DETAILS,
    DraftField.ID_DOCUMENT: Step.BUSINESS_DETAILS,
    DraftField.BUSINESS_REG_CERTIFICATE: Step.BUSINESS_DETAILS,
}


def owning_step(key: ErrorKey) -> Step:
    """Step that collects the given field."""
    if isinstance(key, UnrecognizedField):
        return LAST_STEP
    return FIELD_STEPS[key]


def attribute(field_errors: Iterable[ErrorKey]) -> Step | None:
    """
    Compute the rewind target for a set of field errors.

    Args:
        field_errors: Error keys (a FieldErrors mapping works as-is)

    Returns:
        The minimum owning step, or None when there are no errors
    """
    steps = [owning_step(key) for key in field_errors]
    return min(steps) if steps else None
