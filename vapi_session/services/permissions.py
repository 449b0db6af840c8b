"""Microphone permission handling ahead of a call."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class PermissionStatus(Enum):
    """Result of a microphone permission request."""

    GRANTED = "granted"
    DENIED = "denied"
    PERMANENTLY_DENIED = "permanently_denied"


class PermissionBackend(ABC):
    """Host-specific access to the OS permission subsystem."""

    @abstractmethod
    async def request_microphone(self) -> PermissionStatus:
        """Ask the host for microphone access and return the resulting status."""

    @abstractmethod
    async def open_settings(self) -> bool:
        """Open the host's settings surface so the user can grant access manually.

        Returns:
            True if a settings surface was opened
        """


class HostPermissionBackend(PermissionBackend):
    """Backend for hosts without a runtime permission prompt (desktop, server)."""

    async def request_microphone(self) -> PermissionStatus:
        return PermissionStatus.GRANTED

    async def open_settings(self) -> bool:
        logger.info("No permission settings surface available on this host")
        return False


class PermissionGate:
    """Requests microphone access, re-asking once after a first denial.

    A denial never fails the flow here. If the second request comes back
    permanently denied the settings surface is opened and the status is
    returned to the caller, who decides whether to continue.
    """

    def __init__(self, backend: Optional[PermissionBackend] = None) -> None:
        self._backend = backend or HostPermissionBackend()

    async def ensure_microphone_access(self) -> PermissionStatus:
        status = await self._backend.request_microphone()
        if status is PermissionStatus.DENIED:
            logger.info("Microphone permission denied; requesting again")
            status = await self._backend.request_microphone()
            if status is PermissionStatus.PERMANENTLY_DENIED:
                logger.warning("Microphone permission permanently denied; opening settings")
                await self._backend.open_settings()
        return status
