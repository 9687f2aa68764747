"""
FastAPI dependencies - Dependency injection factories.

This module wires domain services to infrastructure adapters and
provides Depends() factories for injecting them into routes.
"""

import httpx
from fastapi import Depends, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from src.adapters.backend import (
    BackendBusinessCategoryCatalog,
    BackendClient,
    BackendIdentityVerificationService,
    BackendRegistrationService,
)
from src.adapters.console import ConsoleIdentityVerificationService, ConsoleRegistrationService
from src.adapters.repository.postgres import PostgresDraftSnapshotStore
from src.adapters.static import StaticBankDirectory, StaticBusinessCategoryCatalog
from src.api.sessions import SessionRegistry
from src.config.settings import Settings
from src.domain.exceptions import GeneralError
from src.domain.registration import RegistrationSessionController


def build_session_registry(
    settings: Settings,
    pool: ConnectionPool | None = None,
    http: httpx.AsyncClient | None = None,
) -> SessionRegistry:
    """
    Create the session registry with adapters chosen by settings.

    The "http" backend needs an httpx client; the "console" backend runs
    entirely in-process and shares one registered-email set between
    its verification and registration services.
    """
    if settings.service_backend == "http":
        if http is None:
            raise ValueError("An httpx client is required for the http service backend")
        client = BackendClient(http)
        identity_service = BackendIdentityVerificationService(client)
        registration_service = BackendRegistrationService(client)
        category_catalog = BackendBusinessCategoryCatalog(client)
    else:
        registered_emails: set[str] = set()
        identity_service = ConsoleIdentityVerificationService(
            registered_emails,
            code_length=settings.verification_code_length,
            ttl_seconds=settings.verification_ttl_seconds,
            max_attempts=settings.max_verification_attempts,
            bcrypt_cost=settings.bcrypt_cost,
        )
        registration_service = ConsoleRegistrationService(registered_emails)
        category_catalog = StaticBusinessCategoryCatalog()

    snapshot_store = PostgresDraftSnapshotStore(pool) if pool is not None else None

    return SessionRegistry(
        identity_service=identity_service,
        registration_service=registration_service,
        bank_directory=StaticBankDirectory(),
        category_catalog=category_catalog,
        settings=settings,
        snapshot_store=snapshot_store,
    )


def get_session_registry(request: Request) -> SessionRegistry:
    """
    Get session registry from app state.

    The registry is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.sessions


async def get_controller(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> RegistrationSessionController:
    """Resolve the workflow for the session id in the path, or 404."""
    try:
        controller = await registry.get(session_id)
    except GeneralError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from None
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration session not found",
        )
    return controller
