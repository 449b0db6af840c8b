"""Client for starting real-time voice calls with Vapi assistants."""
from __future__ import annotations

from .exceptions import (
    ClientCreationError,
    ClientTimeoutError,
    MaxRetriesExceededError,
    MissingAssistantError,
    RegistrationError,
    SessionAttachError,
    VapiError,
)
from .models.schemas import SessionDescriptor, SessionRequest
from .services.call import CallEvent, CallStatus, VapiCall
from .services.orchestration import VapiClient
from .services.permissions import (
    HostPermissionBackend,
    PermissionBackend,
    PermissionGate,
    PermissionStatus,
)
from .services.registration import CallRegistrar
from .services.transport import (
    TransportClient,
    TransportEvent,
    TransportEventKind,
    TransportFactory,
)

__all__ = [
    "CallEvent",
    "CallRegistrar",
    "CallStatus",
    "ClientCreationError",
    "ClientTimeoutError",
    "HostPermissionBackend",
    "MaxRetriesExceededError",
    "MissingAssistantError",
    "PermissionBackend",
    "PermissionGate",
    "PermissionStatus",
    "RegistrationError",
    "SessionAttachError",
    "SessionDescriptor",
    "SessionRequest",
    "TransportClient",
    "TransportEvent",
    "TransportEventKind",
    "TransportFactory",
    "VapiCall",
    "VapiClient",
    "VapiError",
]
