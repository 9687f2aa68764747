"""
Session registry - Live registration workflows keyed by session id.

Workflows live in process memory. When a snapshot store is configured,
the non-sensitive part of each draft is saved after every change so a
session lost from memory can be resumed. A resumed session always
starts again at step 1: credentials were never stored and email
ownership has to be proven again.

Workflows idle for longer than the configured session TTL are evicted
from memory; their snapshots stay in the store.
"""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from src.config.settings import Settings
from src.domain.draft import RegistrationDraft
from src.domain.ports import (
    BankDirectory,
    BusinessCategoryCatalog,
    DraftSnapshotStore,
    IdentityVerificationService,
    RegistrationService,
)
from src.domain.registration import RegistrationSessionController

logger = logging.getLogger(__name__)


@dataclass
class _LiveSession:
    controller: RegistrationSessionController
    last_seen: float


class SessionRegistry:
    """Creates, looks up, resumes and tears down workflows."""

    def __init__(
        self,
        identity_service: IdentityVerificationService,
        registration_service: RegistrationService,
        bank_directory: BankDirectory,
        category_catalog: BusinessCategoryCatalog,
        settings: Settings,
        snapshot_store: DraftSnapshotStore | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._identity_service = identity_service
        self._registration_service = registration_service
        self._bank_directory = bank_directory
        self._category_catalog = category_catalog
        self._settings = settings
        self._snapshot_store = snapshot_store
        self._clock = clock
        self._sessions: dict[str, _LiveSession] = {}

    @property
    def live_count(self) -> int:
        return len(self._sessions)

    @property
    def bank_directory(self) -> BankDirectory:
        return self._bank_directory

    @property
    def category_catalog(self) -> BusinessCategoryCatalog:
        return self._category_catalog

    async def start(self) -> tuple[str, RegistrationSessionController]:
        """
        Start a new workflow.

        The category list is fetched once here and reused for the
        lifetime of the session.

        Raises:
            GeneralError: If the category list cannot be fetched
        """
        self._evict_idle()
        controller = await self._build()
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = _LiveSession(controller, self._clock())
        logger.info("Registration session started: %s", session_id)
        return session_id, controller

    async def get(self, session_id: str) -> RegistrationSessionController | None:
        """Return the live workflow, resuming it from its snapshot if needed."""
        self._evict_idle()
        live = self._sessions.get(session_id)
        if live is not None:
            live.last_seen = self._clock()
            return live.controller

        if self._snapshot_store is None:
            return None
        snapshot = self._snapshot_store.load(session_id)
        if snapshot is None:
            return None

        draft = RegistrationDraft.from_snapshot(snapshot)
        controller = await self._build(draft)
        if draft.business_category:
            # Category ids are re-resolved against this session's list
            controller.select_business_category(draft.business_category)
        self._sessions[session_id] = _LiveSession(controller, self._clock())
        logger.info("Registration session resumed from snapshot: %s", session_id)
        return controller

    def persist(self, session_id: str, controller: RegistrationSessionController) -> None:
        if self._snapshot_store is None:
            return
        self._snapshot_store.save(session_id, controller.persistable_snapshot())

    def discard(self, session_id: str) -> None:
        """Tear a workflow down after submission or abandonment."""
        self._sessions.pop(session_id, None)
        if self._snapshot_store is not None:
            self._snapshot_store.delete(session_id)
        logger.info("Registration session closed: %s", session_id)

    def _evict_idle(self) -> None:
        """Drop workflows idle past the session TTL."""
        cutoff = self._clock() - self._settings.session_ttl_seconds
        expired = [sid for sid, live in self._sessions.items() if live.last_seen < cutoff]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Evicted %d idle registration session(s)", len(expired))

    async def _build(
        self, draft: RegistrationDraft | None = None
    ) -> RegistrationSessionController:
        categories = await self._category_catalog.list_categories()
        return RegistrationSessionController(
            self._identity_service,
            self._registration_service,
            self._bank_directory,
            categories,
            draft=draft,
            code_length=self._settings.verification_code_length,
            max_document_bytes=self._settings.max_document_bytes,
        )
