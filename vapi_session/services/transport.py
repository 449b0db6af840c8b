"""Real-time transport client abstraction and retrying client construction.

The media stack itself (signalling, codecs, rooms) lives outside this package.
Callers plug it in by supplying an async factory that returns a
``TransportClient``; ``TransportFactory`` wraps that factory with a
per-attempt timeout and a fixed number of immediate retries.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from typing_extensions import assert_never

from ..exceptions import ClientCreationError, ClientTimeoutError, MaxRetriesExceededError, VapiError

logger = logging.getLogger(__name__)

MAX_CLIENT_CREATION_ATTEMPTS = 5


class TransportEventKind(Enum):
    """Kinds of events a transport client reports to its call."""

    APP_MESSAGE = "app_message"
    PARTICIPANT_LEFT = "participant_left"
    LEFT = "left"
    ERROR = "error"


@dataclass(frozen=True)
class TransportEvent:
    """Event emitted by a transport client while joined to a call."""

    kind: TransportEventKind
    data: Any = None
    participant_id: Optional[str] = None
    # True when the event concerns a participant other than the local user.
    from_remote: bool = True


TransportEventHandler = Callable[[TransportEvent], None]


class TransportClient(ABC):
    """Handle to the real-time media stack for a single call.

    A client has exactly one owner at a time. ``dispose`` releases every
    underlying resource and must be safe to call once after any failure.
    """

    @abstractmethod
    async def join(self, url: str) -> None:
        """Join the call at ``url``.

        Raises:
            ConnectionError: If the join is rejected or the connection fails
        """

    @abstractmethod
    async def leave(self) -> None:
        """Leave the call; the client may not be reused afterwards."""

    @abstractmethod
    async def send_app_message(self, message: Any) -> None:
        """Send an opaque in-call message to the assistant."""

    @abstractmethod
    def set_event_handler(self, handler: Optional[TransportEventHandler]) -> None:
        """Register the callback that receives transport events."""

    @abstractmethod
    def dispose(self) -> None:
        """Release the client's media and network resources."""


TransportClientConstructor = Callable[[], Awaitable[TransportClient]]


class AttemptKind(Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    FAILURE = "failure"


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one construction attempt: a client, or the error that ended it."""

    kind: AttemptKind
    client: Optional[TransportClient] = None
    error: Optional[VapiError] = None


class TransportFactory:
    """Creates transport clients with a per-attempt timeout and immediate retries.

    Construction is local to the process, so failed attempts are retried
    straight away without backoff. After the last attempt fails, that
    attempt's own error (timeout or creation failure) is raised.
    """

    def __init__(
        self,
        constructor: TransportClientConstructor,
        *,
        max_attempts: int = MAX_CLIENT_CREATION_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._constructor = constructor
        self._max_attempts = max_attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def _attempt(self, timeout: float) -> AttemptOutcome:
        # Only an unfinished task counts as a timeout; a TimeoutError raised by
        # the transport itself is a creation failure.
        task = asyncio.ensure_future(self._constructor())
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        finally:
            if not task.done():
                task.cancel()

        if task not in done:
            return AttemptOutcome(AttemptKind.TIMEOUT, error=ClientTimeoutError(timeout))
        exc = asyncio.CancelledError("client construction was cancelled") if task.cancelled() else task.exception()
        if exc is not None:
            return AttemptOutcome(AttemptKind.FAILURE, error=ClientCreationError(exc))
        return AttemptOutcome(AttemptKind.SUCCESS, client=task.result())

    async def create_client(self, timeout: float) -> TransportClient:
        """Construct a transport client, trying up to ``max_attempts`` times.

        Args:
            timeout: Seconds allowed for each individual attempt

        Raises:
            ClientTimeoutError: If the final attempt timed out
            ClientCreationError: If the final attempt failed for another reason
        """
        for attempt in range(1, self._max_attempts + 1):
            outcome = await self._attempt(timeout)
            kind = outcome.kind

            if kind is AttemptKind.SUCCESS:
                assert outcome.client is not None
                if attempt > 1:
                    logger.info("Call client created on attempt %d", attempt)
                return outcome.client
            elif kind is AttemptKind.TIMEOUT or kind is AttemptKind.FAILURE:
                assert outcome.error is not None
                logger.warning(
                    "Call client creation attempt %d/%d failed (%s): %s",
                    attempt,
                    self._max_attempts,
                    kind.value,
                    outcome.error,
                )
                if attempt >= self._max_attempts:
                    raise outcome.error
            else:
                assert_never(kind)

        raise MaxRetriesExceededError(self._max_attempts)
