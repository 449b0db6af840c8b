"""Session establishment: permission, registration, transport, call attach."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import ClientConfig, DEFAULT_API_BASE_URL, Settings, settings as default_settings
from ..exceptions import MissingAssistantError
from ..models.schemas import SessionRequest
from .call import VapiCall
from .permissions import PermissionGate
from .registration import CallRegistrar
from .transport import TransportClientConstructor, TransportFactory

logger = logging.getLogger(__name__)


class VapiClient:
    """Starts voice calls with Vapi assistants.

    Each ``start()`` asks for microphone access, registers a web call with the
    control plane, creates a transport client and joins the call with it. The
    client itself only holds immutable configuration, so concurrent
    ``start()`` calls are independent.

    Example usage:
        >>> client = VapiClient("public-key", client_factory=make_transport_client)
        >>> call = await client.start(assistant_id="asst_1", wait_until_active=True)
        >>> async for event in call.events():
        ...     print(event.label)
    """

    def __init__(
        self,
        public_key: str,
        *,
        client_factory: TransportClientConstructor,
        api_base_url: str = DEFAULT_API_BASE_URL,
        client_creation_timeout: float = 10.0,
        permission_gate: Optional[PermissionGate] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        http_timeout: float = 30.0,
    ) -> None:
        self.config = ClientConfig(
            public_key=public_key,
            api_base_url=api_base_url.rstrip("/"),
            http_timeout_s=http_timeout,
        )
        self.client_creation_timeout = client_creation_timeout
        self._permission_gate = permission_gate or PermissionGate()
        self._registrar = CallRegistrar(self.config, http_client=http_client)
        self._transport_factory = TransportFactory(client_factory)

    @classmethod
    def from_settings(
        cls,
        *,
        client_factory: TransportClientConstructor,
        settings: Optional[Settings] = None,
        **kwargs: Any,
    ) -> "VapiClient":
        """Build a client from environment-driven settings."""

        settings = settings or default_settings
        if not settings.vapi_public_key:
            raise RuntimeError("VAPI_PUBLIC_KEY missing; set your Vapi public key")
        return cls(
            settings.vapi_public_key,
            client_factory=client_factory,
            api_base_url=settings.vapi_api_base_url,
            client_creation_timeout=settings.client_creation_timeout_s,
            http_timeout=settings.http_timeout_s,
            **kwargs,
        )

    async def start(
        self,
        *,
        assistant_id: Optional[str] = None,
        assistant: Any = None,
        assistant_overrides: Optional[Dict[str, Any]] = None,
        client_creation_timeout: Optional[float] = None,
        wait_until_active: bool = False,
        api_base_url: Optional[str] = None,
    ) -> VapiCall:
        """Start a call with an assistant given by id or inline definition.

        Args:
            assistant_id: ID of a pre-configured assistant
            assistant: Inline assistant definition (used when no id is given)
            assistant_overrides: Settings layered onto the assistant for this call
            client_creation_timeout: Seconds allowed per transport client attempt
            wait_until_active: Return only once the assistant is listening
            api_base_url: Control-plane base URL for this call only

        Raises:
            MissingAssistantError: If neither assistant_id nor assistant is given
            RegistrationError: If the control plane does not return a call URL
            ClientTimeoutError: If the last transport client attempt timed out
            ClientCreationError: If the last transport client attempt failed
            SessionAttachError: If the created client could not join the call
        """
        await self._permission_gate.ensure_microphone_access()

        request = SessionRequest(
            assistant_id=assistant_id,
            assistant=assistant,
            assistant_overrides=assistant_overrides or {},
        )
        if not request.has_assistant:
            raise MissingAssistantError()

        descriptor = await self._registrar.register_session(request, api_base_url)

        timeout = self.client_creation_timeout if client_creation_timeout is None else client_creation_timeout
        client = await self._transport_factory.create_client(timeout)

        try:
            return await VapiCall.create(client, descriptor, wait_until_active=wait_until_active)
        except BaseException:
            # Includes cancellation: the client never reached a call, so it is ours to release.
            logger.warning("Attaching call %s failed; disposing call client", descriptor.id)
            try:
                client.dispose()
            except Exception:
                logger.exception("Failed to dispose call client after attach failure")
            raise
