"""Pydantic models for inbound client event payloads."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator


class ToggleReadyRequest(BaseModel):
    """``toggle-ready`` payload; a bare JSON boolean is accepted too."""

    ready: bool

    @model_validator(mode="before")
    @classmethod
    def accept_bare_bool(cls, data: Any) -> Any:
        if isinstance(data, bool):
            return {"ready": data}
        return data


class FlagParticipantRequest(BaseModel):
    """``flag-participant`` payload; a bare target id string is accepted too."""

    target_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("targetId", "targetPeerID", "target_id"),
    )

    @model_validator(mode="before")
    @classmethod
    def accept_bare_target(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"targetId": data}
        return data


class SignalRequest(BaseModel):
    """``signal`` payload; the negotiation body is opaque and forwarded unchanged."""

    model_config = ConfigDict(extra="ignore")

    to: str = Field(min_length=1)
    payload: Any = Field(default=None, validation_alias=AliasChoices("payload", "signal"))


__all__ = [
    "FlagParticipantRequest",
    "SignalRequest",
    "ToggleReadyRequest",
]
