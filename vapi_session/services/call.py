"""Caller-facing handle for an established (or establishing) Vapi call."""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from typing_extensions import assert_never

from ..exceptions import SessionAttachError
from ..models.schemas import SessionDescriptor
from .transport import TransportClient, TransportEvent, TransportEventKind

logger = logging.getLogger(__name__)

# App message the assistant sends once its media pipeline accepts audio.
LISTENING_MESSAGE = "listening"


class CallStatus(Enum):
    """Call state machine states.

    State Transitions:
    - STARTING → ACTIVE (assistant sent "listening")
    - STARTING → ENDED (stopped or transport failure before the assistant was ready)
    - ACTIVE → ENDED (stopped, assistant left, or transport failure)
    """

    STARTING = "starting"
    ACTIVE = "active"
    ENDED = "ended"


VALID_TRANSITIONS: dict[CallStatus, set[CallStatus]] = {
    CallStatus.STARTING: {CallStatus.ACTIVE, CallStatus.ENDED},
    CallStatus.ACTIVE: {CallStatus.ENDED},
    CallStatus.ENDED: set(),  # Terminal state
}


@dataclass(frozen=True)
class CallEvent:
    """Event delivered to callers through ``VapiCall.events()``.

    Labels: ``call-start``, ``call-end``, ``call-error`` and ``message``.
    """

    label: str
    value: Any = None


class VapiCall:
    """A voice call attached to a transport client.

    The call owns its transport client: ``dispose()`` releases it. Transport
    events must be delivered on the event loop thread that created the call.

    Example:
        >>> call = await client.start(assistant_id="asst_1")
        >>> async for event in call.events():
        ...     print(event.label, event.value)
        >>> await call.send({"type": "add-message", "message": {...}})
        >>> await call.stop()
        >>> call.dispose()
    """

    def __init__(self, client: TransportClient, descriptor: SessionDescriptor) -> None:
        self._client = client
        self._descriptor = descriptor
        self._status = CallStatus.STARTING
        self._events: asyncio.Queue[Optional[CallEvent]] = asyncio.Queue()
        self._active = asyncio.Event()
        self._ended = asyncio.Event()
        self._left = False
        self._disposed = False

    @classmethod
    async def create(
        cls,
        client: TransportClient,
        descriptor: SessionDescriptor,
        *,
        wait_until_active: bool = False,
    ) -> "VapiCall":
        """Join the registered call with ``client``.

        When ``wait_until_active`` is set this returns only after the assistant
        is listening, so the caller never sees ``CallStatus.STARTING``. The
        client is never disposed here; on failure it still belongs to the caller.

        Raises:
            SessionAttachError: If joining fails, or the call ends before the
                assistant starts listening
        """
        call = cls(client, descriptor)
        client.set_event_handler(call._handle_transport_event)

        try:
            await client.join(descriptor.web_call_url)
        except Exception as exc:
            client.set_event_handler(None)
            raise SessionAttachError(f"Failed to join call: {exc}") from exc

        if wait_until_active:
            try:
                await call._wait_until_active()
            except BaseException:
                await call._leave_quietly()
                client.set_event_handler(None)
                raise

        logger.info("Joined call %s (status=%s)", descriptor.id, call.status.value)
        return call

    @property
    def status(self) -> CallStatus:
        return self._status

    @property
    def descriptor(self) -> SessionDescriptor:
        return self._descriptor

    @property
    def id(self) -> Optional[str]:
        return self._descriptor.id

    async def _wait_until_active(self) -> None:
        waiters = {
            asyncio.ensure_future(self._active.wait()),
            asyncio.ensure_future(self._ended.wait()),
        }
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

        if self._status is not CallStatus.ACTIVE:
            raise SessionAttachError("Call ended before the assistant started listening")

    def _transition(self, new_status: CallStatus) -> bool:
        if new_status not in VALID_TRANSITIONS[self._status]:
            logger.warning(
                "Ignoring invalid call transition %s -> %s", self._status.value, new_status.value
            )
            return False
        logger.debug("Call status: %s -> %s", self._status.value, new_status.value)
        self._status = new_status
        return True

    def _emit(self, event: CallEvent) -> None:
        self._events.put_nowait(event)

    def _end(self) -> None:
        if self._status is CallStatus.ENDED:
            return
        self._transition(CallStatus.ENDED)
        self._emit(CallEvent("call-end"))
        self._ended.set()
        self._events.put_nowait(None)

    @staticmethod
    def _decode_message(data: Any) -> Any:
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8", errors="replace")
        if isinstance(data, str):
            try:
                return json.loads(data)
            except ValueError:
                return data
        return data

    def _handle_transport_event(self, event: TransportEvent) -> None:
        kind = event.kind

        if kind is TransportEventKind.APP_MESSAGE:
            message = self._decode_message(event.data)
            if message == LISTENING_MESSAGE:
                if self._transition(CallStatus.ACTIVE):
                    self._active.set()
                    self._emit(CallEvent("call-start"))
                return
            self._emit(CallEvent("message", message))
        elif kind is TransportEventKind.PARTICIPANT_LEFT:
            # The assistant leaving ends the call; the local participant's own
            # departure arrives as LEFT.
            if event.from_remote:
                self._end()
        elif kind is TransportEventKind.LEFT:
            self._end()
        elif kind is TransportEventKind.ERROR:
            logger.error("Transport error during call %s: %s", self.id, event.data)
            self._emit(CallEvent("call-error", event.data))
            self._end()
        else:
            assert_never(kind)

    async def events(self) -> AsyncIterator[CallEvent]:
        """Yield call events until the call ends (``call-end`` is the last one)."""
        while True:
            event = await self._events.get()
            if event is None:
                # Keep the end marker for any later iterator.
                self._events.put_nowait(None)
                return
            yield event

    async def send(self, message: Any) -> None:
        """Send an in-call message to the assistant.

        Raises:
            RuntimeError: If the call has ended
        """
        if self._status is CallStatus.ENDED:
            raise RuntimeError("Call has ended")
        await self._client.send_app_message(message)

    async def stop(self) -> None:
        """Leave the call. Safe to call more than once."""
        try:
            if not self._left and not self._disposed:
                self._left = True
                await self._client.leave()
        finally:
            self._end()

    async def _leave_quietly(self) -> None:
        if self._left:
            return
        self._left = True
        try:
            await self._client.leave()
        except Exception:
            logger.warning("Failed to leave call %s during cleanup", self.id, exc_info=True)

    def dispose(self) -> None:
        """Release the transport client. Later calls are no-ops."""
        if self._disposed:
            return
        self._disposed = True
        self._client.set_event_handler(None)
        self._client.dispose()
        self._end()
