"""
Exceptions raised while establishing a Vapi call.

Every failure of ``VapiClient.start()`` surfaces as one of these types,
grouped under ``VapiError`` so callers can catch the whole family:

  - MissingAssistantError     no assistant id or inline assistant given
  - RegistrationError         control-plane registration failed
  - ClientTimeoutError        one transport construction attempt timed out
  - ClientCreationError       one transport construction attempt failed
  - MaxRetriesExceededError   retry loop fell through (should not happen)
  - SessionAttachError        joining the call with a live client failed
"""

from __future__ import annotations

from typing import Optional


class VapiError(Exception):
    """Base class for all session-establishment failures."""


class MissingAssistantError(VapiError):
    """
    Raised before any network call when the request carries neither an
    assistant id nor an inline assistant definition.
    """

    def __init__(self) -> None:
        super().__init__("Either assistant_id or assistant must be provided.")


class RegistrationError(VapiError):
    """
    Raised when the control plane did not return a usable call.

    ``body`` holds the raw response payload (when there was a response) so
    callers can log or display the server's reason.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ClientTimeoutError(VapiError):
    """Raised when a single transport client construction attempt times out."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Call client creation timed out after {timeout:g}s.")


class ClientCreationError(VapiError):
    """Raised when the transport reports a failure while constructing a client."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Failed to create call client: {cause!r}")
        self.__cause__ = cause


class MaxRetriesExceededError(VapiError):
    """
    Raised only if the client creation loop exits without either returning a
    client or re-raising the last attempt's error. Seeing it means a bug.
    """

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Call client creation gave up after {attempts} attempts.")


class SessionAttachError(VapiError):
    """Raised when a created transport client could not be attached to the call."""
