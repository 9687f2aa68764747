"""Backend adapters - Vendor API implementations over httpx."""

from .catalog import BackendBusinessCategoryCatalog
from .client import BackendClient
from .identity import BackendIdentityVerificationService
from .registration import BackendRegistrationService

__all__ = [
    "BackendBusinessCategoryCatalog",
    "BackendClient",
    "BackendIdentityVerificationService",
    "BackendRegistrationService",
]
