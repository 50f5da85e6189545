"""
Pydantic models for the RapidAPI Connect SDK.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from rapidapi_connect.errors import ConnectError


# ============================================================
#  Configuration
# ============================================================


class ConnectConfig(BaseModel):
    """Endpoints and transport settings for a :class:`RapidAPI` client."""

    block_base_url: str = "https://rapidapi.io/connect"
    callback_base_url: str = "https://webhooks.rapidapi.io"
    websocket_base_url: str = "ws://webhooks.rapidapi.io"
    user_agent: str = "RapidAPIConnect_NodeJS"
    timeout: float = 30.0
    heartbeat_interval_ms: int = 30000

    @field_validator("block_base_url", "callback_base_url", "websocket_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class ClientIdentity(BaseModel):
    """Project name and API key. Used as basic-auth credentials."""

    project: str
    key: str = Field(repr=False)

    model_config = {"frozen": True}


# ============================================================
#  Block calls
# ============================================================


class BlockOutcome(BaseModel):
    """A block call that resolved to a named outcome."""

    kind: Literal["outcome"] = "outcome"
    outcome: str
    payload: Any = None


class BlockFailure(BaseModel):
    """A block call that failed.

    ``body`` holds whatever the server sent (parsed JSON when possible,
    raw text otherwise). ``received`` is false when no response arrived,
    which tells a transport failure apart from a literal ``null`` body.
    """

    kind: Literal["failure"] = "failure"
    error: ConnectError
    body: Any = None
    received: bool = True

    model_config = {"arbitrary_types_allowed": True}

    @property
    def handler_argument(self) -> Any:
        """Value passed to the ``"error"`` handler."""
        return self.body if self.received else self.error


BlockResult = BlockOutcome | BlockFailure


# ============================================================
#  Event sockets
# ============================================================


class SessionState(str, Enum):
    """Lifecycle of an :class:`~rapidapi_connect.events.EventSession`."""

    CONNECTING = "connecting"
    JOINED = "joined"
    CLOSED = "closed"


class PhoenixFrame(BaseModel):
    """A channel frame: topic, event tag, payload and correlation ref."""

    topic: Any = None
    event: str
    payload: dict[str, Any] = Field(default_factory=dict)
    ref: Any = None

    @property
    def body(self) -> Any:
        return self.payload.get("body")
