"""
Console registration adapter - Implements RegistrationService in-process.

Accepts a complete draft, claims its email in the shared registered set,
and logs the new account. Passwords and document contents are never
logged.
"""

import logging
import uuid

from src.domain.draft import RegistrationDraft
from src.domain.exceptions import ConflictError
from src.domain.ports import SubmissionReceipt

logger = logging.getLogger(__name__)


class ConsoleRegistrationService:
    """
    Implements RegistrationService protocol for development.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, registered_emails: set[str]) -> None:
        self._registered_emails = registered_emails

    async def submit_registration(self, draft: RegistrationDraft) -> SubmissionReceipt:
        email = draft.email_address.strip().lower()
        if email in self._registered_emails:
            raise ConflictError("Email already exists")

        self._registered_emails.add(email)
        account_id = uuid.uuid4().hex
        logger.info(
            "[REGISTRATION] Account: %s Email: %s Store: %s Bank: %s",
            account_id,
            email,
            draft.store_name,
            draft.settlement_bank_code,
        )
        return SubmissionReceipt(account_id=account_id)
