"""Control-plane call registration over HTTP."""
from __future__ import annotations

import json
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..config import ClientConfig
from ..exceptions import MissingAssistantError, RegistrationError
from ..models.schemas import SessionDescriptor, SessionRequest

logger = logging.getLogger(__name__)


class CallRegistrar:
    """Registers web calls with the Vapi control plane.

    Registration is not retried: a repeated POST may create a second call on
    the server, so failures go straight back to the caller.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.public_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, url: str, body: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, headers=self._headers(), content=body)
        async with httpx.AsyncClient(timeout=self._config.http_timeout_s) as client:
            return await client.post(url, headers=self._headers(), content=body)

    async def register_session(
        self,
        request: SessionRequest,
        api_base_url: Optional[str] = None,
    ) -> SessionDescriptor:
        """Create a web call and return its descriptor.

        Raises:
            MissingAssistantError: If the request names no assistant (no request is sent)
            RegistrationError: On transport failure, a non-201 status, or a 201
                without a join URL
        """
        if not request.has_assistant:
            raise MissingAssistantError()

        url = self._config.registration_url(api_base_url)
        body = json.dumps(request.to_payload())
        logger.info("Registering web call at %s", url)

        try:
            response = await self._post(url, body)
        except httpx.HTTPError as exc:
            logger.error("Call registration request failed: %s", exc)
            raise RegistrationError(f"Failed to create call: {exc}") from exc

        if response.status_code != 201:
            logger.error("Call registration returned HTTP %s", response.status_code)
            raise RegistrationError(
                f"Failed to create call: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise RegistrationError(
                "Call URL not found in response", status_code=response.status_code, body=response.text
            ) from exc

        if not isinstance(data, dict):
            raise RegistrationError(
                "Call URL not found in response", status_code=response.status_code, body=response.text
            )

        try:
            descriptor = SessionDescriptor.from_response(data)
        except ValidationError as exc:
            raise RegistrationError(
                "Call URL not found in response", status_code=response.status_code, body=response.text
            ) from exc

        logger.info("Web call registered (id=%s)", descriptor.id)
        return descriptor
