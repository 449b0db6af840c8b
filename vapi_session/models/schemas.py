"""Pydantic models describing the call registration payloads."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


class SessionRequest(BaseModel):
    """Which assistant to call, plus per-call overrides.

    Either ``assistant_id`` or ``assistant`` must be set before the request is
    sent; the check is left to the caller so it can happen after the
    microphone prompt and before any network traffic.
    """

    assistant_id: Optional[str] = Field(default=None, description="ID of a pre-configured assistant")
    assistant: Optional[Any] = Field(default=None, description="Inline assistant definition")
    assistant_overrides: Dict[str, Any] = Field(
        default_factory=dict, description="Settings layered onto the assistant for this call only"
    )

    @property
    def has_assistant(self) -> bool:
        return self.assistant_id is not None or self.assistant is not None

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body for ``POST /call/web``.

        The assistant id takes precedence when both forms are present.
        """

        if self.assistant_id is not None:
            return {"assistantId": self.assistant_id, "assistantOverrides": self.assistant_overrides}
        return {"assistant": self.assistant, "assistantOverrides": self.assistant_overrides}


class SessionDescriptor(BaseModel):
    """Control-plane response for a registered web call."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    web_call_url: str = Field(..., alias="webCallUrl", min_length=1, description="Join endpoint for the transport")
    id: Optional[str] = Field(default=None, description="Call identifier assigned by the control plane")

    _raw: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Optional[str]:
        """Accept any scalar id; only the join URL is required to be well-formed."""
        return None if v is None else str(v)

    @property
    def raw(self) -> Dict[str, Any]:
        """Full decoded response document."""
        return self._raw

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "SessionDescriptor":
        descriptor = cls.model_validate(data)
        descriptor._raw = dict(data)
        return descriptor
