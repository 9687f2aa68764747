"""
Registration draft - The accumulating record of user input.

The draft is grouped by the step that collects each field. Field names
form a closed enum whose values are the wire names used by the backend,
so server-side error payloads can be mapped back onto the draft.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


class Step(IntEnum):
    """Ordered workflow steps."""

    CREDENTIALS = 1
    VERIFICATION = 2
    BUSINESS_PROFILE = 3
    BUSINESS_DETAILS = 4


FIRST_STEP = Step.CREDENTIALS
LAST_STEP = Step.BUSINESS_DETAILS


class DraftField(str, Enum):
    """Known draft fields, valued by their wire names."""

    EMAIL_ADDRESS = "emailAddress"
    PASSWORD = "password"
    CONFIRM_PASSWORD = "confirmPassword"
    FULL_NAME = "fullName"
    BUSINESS_NAME = "businessName"
    BUSINESS_CATEGORY = "businessCategory"
    PHONE_NUMBER = "phoneNumber"
    ACCOUNT_NUMBER = "accountNumber"
    BANK = "bank"
    SETTLEMENT_BANK = "settlementBank"
    SETTLEMENT_BANK_NAME = "settlementBankName"
    STORE_NAME = "storeName"
    BUSINESS_ADDRESS = "businessAddress"
    BUSINESS_REG_NUMBER = "businessRegNumber"
    TAX_ID_NUMBER = "taxIdNumber"
    ID_DOCUMENT = "idDocument"
    BUSINESS_REG_CERTIFICATE = "businessRegCertificate"


@dataclass(frozen=True)
class UnrecognizedField:
    """A backend field name outside the known draft fields."""

    name: str

    @property
    def value(self) -> str:
        return self.name


# Keys of the whole-draft error map
ErrorKey = DraftField | UnrecognizedField
FieldErrors = dict[ErrorKey, str]


def parse_field_key(raw: str) -> ErrorKey:
    """Map a raw backend field name onto a known field or the fallback bucket."""
    try:
        return DraftField(raw)
    except ValueError:
        return UnrecognizedField(raw)


def parse_field_errors(raw: dict[str, str]) -> FieldErrors:
    """Type a loosely keyed error payload."""
    return {parse_field_key(name): message for name, message in raw.items()}


def serialize_field_errors(errors: FieldErrors) -> dict[str, str]:
    """Flatten typed error keys back to wire names."""
    return {key.value: message for key, message in errors.items()}


class DocumentKind(str, Enum):
    """Required document slots."""

    ID_DOCUMENT = "idDocument"
    BUSINESS_REG_CERTIFICATE = "businessRegCertificate"

    @property
    def field(self) -> DraftField:
        return DraftField(self.value)


@dataclass(frozen=True)
class Document:
    """An uploaded file attachment held in memory until submission."""

    filename: str
    content_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    def describe(self) -> dict[str, Any]:
        return {"filename": self.filename, "contentType": self.content_type, "size": self.size}


# Free-text fields that may be edited directly
TEXT_FIELDS: frozenset[DraftField] = frozenset(
    {
        DraftField.EMAIL_ADDRESS,
        DraftField.PASSWORD,
        DraftField.CONFIRM_PASSWORD,
        DraftField.FULL_NAME,
        DraftField.BUSINESS_NAME,
        DraftField.PHONE_NUMBER,
        DraftField.ACCOUNT_NUMBER,
        DraftField.STORE_NAME,
        DraftField.BUSINESS_ADDRESS,
        DraftField.BUSINESS_REG_NUMBER,
        DraftField.TAX_ID_NUMBER,
    }
)

# Never written to any persistence layer
SENSITIVE_FIELDS: frozenset[DraftField] = frozenset(
    {
        DraftField.PASSWORD,
        DraftField.CONFIRM_PASSWORD,
        DraftField.ID_DOCUMENT,
        DraftField.BUSINESS_REG_CERTIFICATE,
    }
)


@dataclass
class RegistrationDraft:
    """
    In-progress registration record.

    Mutated only by the session controller. Attribute names are the
    snake_case forms of the DraftField wire names, except that the bank
    text input is ``bank_name`` and the derived code is
    ``settlement_bank_code``.
    """

    # Credentials
    email_address: str = ""
    password: str = ""
    confirm_password: str = ""

    # Identity / business
    full_name: str = ""
    business_name: str = ""
    business_category: str = ""
    business_category_id: int | None = None
    phone_number: str = ""
    account_number: str = ""
    bank_name: str = ""
    settlement_bank_code: str = ""
    settlement_bank_name: str = ""

    # Business detail / documents
    store_name: str = ""
    business_address: str = ""
    business_reg_number: str = ""
    tax_id_number: str = ""
    id_document: Document | None = None
    business_reg_certificate: Document | None = None

    def get(self, draft_field: DraftField) -> Any:
        return getattr(self, _ATTRIBUTES[draft_field])

    def set(self, draft_field: DraftField, value: Any) -> None:
        setattr(self, _ATTRIBUTES[draft_field], value)

    def document(self, kind: DocumentKind) -> Document | None:
        return self.get(kind.field)

    def snapshot(self) -> dict[str, Any]:
        """
        Display view of the draft keyed by wire names.

        Passwords are omitted and documents are reduced to metadata.
        """
        view: dict[str, Any] = {}
        for draft_field in DraftField:
            if draft_field in (DraftField.PASSWORD, DraftField.CONFIRM_PASSWORD):
                continue
            value = self.get(draft_field)
            if isinstance(value, Document):
                value = value.describe()
            view[draft_field.value] = value
        view["businessCategoryId"] = self.business_category_id
        return view

    def persistable_snapshot(self) -> dict[str, Any]:
        """Non-sensitive fields only, safe to hand to a snapshot store."""
        data = {
            draft_field.value: self.get(draft_field)
            for draft_field in DraftField
            if draft_field not in SENSITIVE_FIELDS
        }
        data["businessCategoryId"] = self.business_category_id
        return data

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "RegistrationDraft":
        """Rebuild a draft from a persisted snapshot, ignoring sensitive keys."""
        draft = cls()
        for draft_field in DraftField:
            if draft_field in SENSITIVE_FIELDS:
                continue
            value = data.get(draft_field.value)
            if isinstance(value, str):
                draft.set(draft_field, value)
        category_id = data.get("businessCategoryId")
        if isinstance(category_id, int):
            draft.business_category_id = category_id
        return draft


_ATTRIBUTES: dict[DraftField, str] = {
    DraftField.EMAIL_ADDRESS: "email_address",
    DraftField.PASSWORD: "password",
    DraftField.CONFIRM_PASSWORD: "confirm_password",
    DraftField.FULL_NAME: "full_name",
    DraftField.BUSINESS_NAME: "business_name",
    DraftField.BUSINESS_CATEGORY: "business_category",
    DraftField.PHONE_NUMBER: "phone_number",
    DraftField.ACCOUNT_NUMBER: "account_number",
    DraftField.BANK: "bank_name",
    DraftField.SETTLEMENT_BANK: "settlement_bank_code",
    DraftField.SETTLEMENT_BANK_NAME: "settlement_bank_name",
    DraftField.STORE_NAME: "store_name",
    DraftField.BUSINESS_ADDRESS: "business_address",
    DraftField.BUSINESS_REG_NUMBER: "business_reg_number",
    DraftField.TAX_ID_NUMBER: "tax_id_number",
    DraftField.ID_DOCUMENT: "id_document",
    DraftField.BUSINESS_REG_CERTIFICATE: "business_reg_certificate",
}
