"""Console adapters - In-process services for development."""

from .identity import ConsoleIdentityVerificationService
from .registration import ConsoleRegistrationService

__all__ = ["ConsoleIdentityVerificationService", "ConsoleRegistrationService"]
