"""
Backend registration adapter - Implements RegistrationService.

Sends the complete draft to the vendor signup endpoint as a single
multipart request: text fields plus both document files.
"""

import logging
import re

from src.domain.draft import RegistrationDraft
from src.domain.exceptions import GeneralError
from src.domain.ports import SubmissionReceipt

from .client import BackendClient, raise_for_failure

logger = logging.getLogger(__name__)

SIGNUP_PATH = "/vendor/signup"


def build_form_fields(draft: RegistrationDraft) -> dict[str, str]:
    """Text part of the signup form, keyed by wire names."""
    return {
        "emailAddress": draft.email_address.strip().lower(),
        "password": draft.password,
        "fullName": draft.full_name.strip(),
        "businessName": draft.business_name.strip(),
        "businessCategory": str(draft.business_category_id or ""),
        "phoneNumber": re.sub(r"\s", "", draft.phone_number),
        "accountNumber": draft.account_number.strip(),
        "settlementBank": draft.settlement_bank_code,
        "settlementBankName": draft.settlement_bank_name,
        "storeName": draft.store_name.strip(),
        "businessAddress": draft.business_address.strip(),
        "businessRegNumber": draft.business_reg_number.strip().upper(),
        "taxIdNumber": draft.tax_id_number.strip(),
    }


class BackendRegistrationService:
    """
    Implements RegistrationService protocol over HTTP.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def submit_registration(self, draft: RegistrationDraft) -> SubmissionReceipt:
        files = {}
        for name, document in (
            ("idDocument", draft.id_document),
            ("businessRegCertificate", draft.business_reg_certificate),
        ):
            if document is not None:
                files[name] = (document.filename, document.content, document.content_type)

        response = await self._client.request(
            "POST", SIGNUP_PATH, data=build_form_fields(draft), files=files
        )
        raise_for_failure(response, "Registration failed")

        data = response.data if isinstance(response.data, dict) else {}
        account_id = data.get("accountId")
        if not account_id:
            logger.error("signup response carried no accountId")
            raise GeneralError("Registration failed")
        return SubmissionReceipt(account_id=str(account_id))
