"""
API v1 routes.

Defines REST endpoints that expose the registration workflow to a UI.
Every workflow endpoint answers with the full session state on success;
a rejected operation answers with an error detail carrying the message,
the current step and the field errors to display.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, UploadFile, status

from src.api.dependencies import get_controller, get_session_registry
from src.api.models import (
    BankNameRequest,
    BankResponse,
    BankSelectionRequest,
    CategoryResponse,
    CategorySelectionRequest,
    ConfirmRequest,
    DraftUpdateRequest,
    ErrorDetail,
    ErrorResponse,
    SessionResponse,
    VerifyCodeRequest,
)
from src.api.sessions import SessionRegistry
from src.domain.draft import TEXT_FIELDS, Document, DocumentKind, serialize_field_errors
from src.domain.exceptions import (
    ConfirmationPendingError,
    ConflictError,
    ExpiredSessionError,
    FieldValidationError,
    GeneralError,
    InvalidCodeError,
    InvalidTransitionError,
    OperationInProgressError,
    RegistrationError,
    ValidationError,
)
from src.domain.registration import Outcome, RegistrationSessionController

router = APIRouter(tags=["v1"])

# Most specific classes first
_ERROR_STATUS: tuple[tuple[type[RegistrationError], int, str], ...] = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
    (FieldValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "field_validation_error"),
    (ConflictError, status.HTTP_409_CONFLICT, "conflict"),
    (ExpiredSessionError, status.HTTP_410_GONE, "expired_session"),
    (InvalidCodeError, status.HTTP_400_BAD_REQUEST, "invalid_code"),
    (ConfirmationPendingError, status.HTTP_409_CONFLICT, "confirmation_pending"),
    (OperationInProgressError, status.HTTP_409_CONFLICT, "operation_in_progress"),
    (InvalidTransitionError, status.HTTP_409_CONFLICT, "invalid_transition"),
    (GeneralError, status.HTTP_502_BAD_GATEWAY, "general_error"),
)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid verification code"},
    404: {"model": ErrorResponse, "description": "Registration session not found"},
    409: {"model": ErrorResponse, "description": "Operation not allowed in the current state"},
    410: {"model": ErrorResponse, "description": "Verification session expired"},
    422: {"model": ErrorResponse, "description": "Validation error"},
    502: {"model": ErrorResponse, "description": "Backend service failure"},
}


def _error_status(error: RegistrationError) -> tuple[int, str]:
    for error_type, status_code, code in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code, code
    return status.HTTP_400_BAD_REQUEST, "registration_error"


def _rejection(
    error: RegistrationError, controller: RegistrationSessionController
) -> HTTPException:
    status_code, code = _error_status(error)
    detail = ErrorDetail(
        message=str(error),
        code=code,
        current_step=int(controller.current_step),
        field_errors=serialize_field_errors(controller.errors),
    )
    return HTTPException(status_code=status_code, detail=detail.model_dump())


def _respond(
    session_id: str,
    controller: RegistrationSessionController,
    registry: SessionRegistry,
    outcome: Outcome | None = None,
) -> SessionResponse:
    """Persist the draft snapshot, then answer with state or the rejection."""
    registry.persist(session_id, controller)
    if outcome is not None and not outcome.ok and outcome.error is not None:
        raise _rejection(outcome.error, controller)
    return SessionResponse.from_controller(session_id, controller)


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={502: _ERROR_RESPONSES[502]},
    summary="Start a registration session",
)
async def start_session(
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    try:
        session_id, controller = await registry.start()
    except GeneralError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from None
    return _respond(session_id, controller, registry)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    responses={404: _ERROR_RESPONSES[404]},
    summary="Get registration session state",
    description="Current step, completed steps, field errors, draft snapshot, "
    "verification status and any open confirmation.",
)
async def get_session(
    session_id: str,
    controller: RegistrationSessionController = Depends(get_controller),
) -> SessionResponse:
    return SessionResponse.from_controller(session_id, controller)


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Abandon a registration session",
)
async def abandon_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> None:
    registry.discard(session_id)


@router.patch(
    "/sessions/{session_id}/draft",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Edit draft fields",
    description="Set free-text fields. Each edit clears the error shown for that field.",
)
async def edit_draft(
    session_id: str,
    request_data: DraftUpdateRequest,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    not_editable = [f.value for f in request_data.fields if f not in TEXT_FIELDS]
    if not_editable:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Fields cannot be edited directly: {', '.join(not_editable)}",
        )

    for draft_field, value in request_data.fields.items():
        outcome = controller.edit_field(draft_field, value)
        if not outcome.ok:
            return _respond(session_id, controller, registry, outcome)
    return _respond(session_id, controller, registry)


@router.put(
    "/sessions/{session_id}/category",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Select business category",
)
async def select_category(
    session_id: str,
    request_data: CategorySelectionRequest,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = controller.select_business_category(request_data.name)
    return _respond(session_id, controller, registry, outcome)


@router.put(
    "/sessions/{session_id}/bank-name",
    response_model=list[BankResponse],
    responses=_ERROR_RESPONSES,
    summary="Type a bank name",
    description="Records provisional bank text and returns matching banks. "
    "The bank code is only set by selecting one of the returned banks.",
)
async def enter_bank_name(
    session_id: str,
    request_data: BankNameRequest,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> list[BankResponse]:
    outcome = controller.enter_bank_name(request_data.text)
    _respond(session_id, controller, registry, outcome)
    return [BankResponse(code=bank.code, name=bank.name) for bank in outcome.suggestions]


@router.put(
    "/sessions/{session_id}/bank",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Select settlement bank",
)
async def select_bank(
    session_id: str,
    request_data: BankSelectionRequest,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = controller.select_bank(request_data.code)
    return _respond(session_id, controller, registry, outcome)


@router.put(
    "/sessions/{session_id}/documents/{kind}",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Attach a document",
    description="Upload the identity document or business registration certificate "
    "(JPEG, PNG, WebP or PDF).",
)
async def attach_document(
    session_id: str,
    file: UploadFile,
    kind: DocumentKind = Path(...),
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    document = Document(
        filename=file.filename or kind.value,
        content_type=file.content_type or "application/octet-stream",
        content=await file.read(),
    )
    outcome = controller.attach_document(kind, document)
    return _respond(session_id, controller, registry, outcome)


@router.delete(
    "/sessions/{session_id}/documents/{kind}",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Remove a document",
)
async def detach_document(
    session_id: str,
    kind: DocumentKind = Path(...),
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = controller.detach_document(kind)
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/advance",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Advance to the next step",
    description="Validates the current step. On step 1 the email availability check "
    "and the first verification code dispatch happen before moving on.",
)
async def advance(
    session_id: str,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = await controller.advance()
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/retreat",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Go back one step",
)
async def retreat(
    session_id: str,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = controller.retreat()
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/verification/send",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Send verification code",
)
async def send_code(
    session_id: str,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = await controller.send_code()
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/verification/resend",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Resend verification code",
    description="Invalidates the previous code immediately.",
)
async def resend_code(
    session_id: str,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = await controller.resend_code()
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/verification/verify",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Verify email address",
)
async def verify_code(
    session_id: str,
    request_data: VerifyCodeRequest,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = await controller.verify_code(request_data.code)
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/submit",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Request final submission",
    description="Re-validates the business data and opens the confirmation. "
    "Nothing is sent until the confirmation is accepted.",
)
async def submit(
    session_id: str,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = controller.submit()
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/confirm",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Confirm and create the account",
    description="Performs the single irreversible registration call. Settlement "
    "account number and bank cannot be changed afterwards.",
)
async def confirm_submit(
    session_id: str,
    request_data: ConfirmRequest,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = await controller.confirm_submit(request_data.token)
    if outcome.ok:
        response = SessionResponse.from_controller(session_id, controller)
        registry.discard(session_id)
        return response
    return _respond(session_id, controller, registry, outcome)


@router.post(
    "/sessions/{session_id}/cancel",
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Cancel the confirmation",
)
async def cancel_confirm(
    session_id: str,
    controller: RegistrationSessionController = Depends(get_controller),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    outcome = controller.cancel_confirm()
    return _respond(session_id, controller, registry, outcome)


@router.get(
    "/banks",
    response_model=list[BankResponse],
    summary="Search settlement banks",
)
async def search_banks(
    query: str = Query("", description="Part of the bank name"),
    registry: SessionRegistry = Depends(get_session_registry),
) -> list[BankResponse]:
    return [
        BankResponse(code=bank.code, name=bank.name)
        for bank in registry.bank_directory.search_banks(query)
    ]


@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    responses={502: _ERROR_RESPONSES[502]},
    summary="List business categories",
)
async def list_categories(
    registry: SessionRegistry = Depends(get_session_registry),
) -> list[CategoryResponse]:
    try:
        categories = await registry.category_catalog.list_categories()
    except GeneralError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from None
    return [CategoryResponse(id=category.id, name=category.name) for category in categories]
