from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Optional

import httpx
import pytest

from vapi_session.services.permissions import PermissionBackend, PermissionStatus
from vapi_session.services.transport import (
    TransportClient,
    TransportEvent,
    TransportEventHandler,
    TransportEventKind,
)


class FakeTransportClient(TransportClient):
    """In-memory transport client recording every interaction."""

    def __init__(self, *, join_error: Optional[Exception] = None, listen_on_join: bool = False) -> None:
        self.join_error = join_error
        self.listen_on_join = listen_on_join
        self.joined_url: Optional[str] = None
        self.sent: list[Any] = []
        self.leave_calls = 0
        self.dispose_calls = 0
        self.handler: Optional[TransportEventHandler] = None

    async def join(self, url: str) -> None:
        if self.join_error is not None:
            raise self.join_error
        self.joined_url = url
        if self.listen_on_join:
            # Deliver after join returns, as a real transport would.
            asyncio.get_running_loop().call_soon(self.emit_app_message, json.dumps("listening"))

    async def leave(self) -> None:
        self.leave_calls += 1
        self.emit(TransportEvent(TransportEventKind.LEFT, from_remote=False))

    async def send_app_message(self, message: Any) -> None:
        self.sent.append(message)

    def set_event_handler(self, handler: Optional[TransportEventHandler]) -> None:
        self.handler = handler

    def dispose(self) -> None:
        self.dispose_calls += 1

    def emit(self, event: TransportEvent) -> None:
        if self.handler is not None:
            self.handler(event)

    def emit_app_message(self, data: Any) -> None:
        self.emit(TransportEvent(TransportEventKind.APP_MESSAGE, data=data))


class FakePermissionBackend(PermissionBackend):
    def __init__(self, *statuses: PermissionStatus) -> None:
        self._statuses = list(statuses) or [PermissionStatus.GRANTED]
        self.requests = 0
        self.settings_opened = 0

    async def request_microphone(self) -> PermissionStatus:
        self.requests += 1
        if len(self._statuses) > 1:
            return self._statuses.pop(0)
        return self._statuses[0]

    async def open_settings(self) -> bool:
        self.settings_opened += 1
        return True


class RecordingHandler:
    """``httpx.MockTransport`` handler returning a canned response."""

    def __init__(self, status_code: int = 201, payload: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self.payload = payload
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def fake_client_cls() -> type[FakeTransportClient]:
    return FakeTransportClient


@pytest.fixture
def fake_permissions() -> Callable[..., FakePermissionBackend]:
    return FakePermissionBackend


@pytest.fixture
def http_handler() -> Callable[..., RecordingHandler]:
    return RecordingHandler


@pytest.fixture
def mock_http_client() -> Callable[[RecordingHandler], httpx.AsyncClient]:
    def _make(handler: RecordingHandler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
