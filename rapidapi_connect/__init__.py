"""
RapidAPI Connect SDK for Python.

Calls blocks on the RapidAPI Connect gateway and subscribes to
webhook events over a channel socket. Async-first: both entry points
run on the current asyncio event loop.

Example::

    import asyncio
    from rapidapi_connect import RapidAPI

    async def main() -> None:
        rapid = RapidAPI("my-project", "my-api-key")

        result = await rapid.call("NasaAPI", "getPictureOfTheDay") \\
            .on("success", lambda payload: print(payload["url"])) \\
            .on("error", lambda body: print("call failed:", body))

        session = rapid.listen(
            "Slack", "slashCommand", {"token": "..."},
            on_message=lambda body: print("event:", body),
            on_error=lambda exc: print("subscription failed:", exc),
        )
        await asyncio.sleep(60)
        await session.close()

    asyncio.run(main())
"""

from rapidapi_connect.client import BlockCall, RapidAPI, resolve_block_response
from rapidapi_connect.errors import (
    ConnectError,
    InvalidArgument,
    ParseError,
    ProtocolError,
    TransportError,
)
from rapidapi_connect.events import (
    CONTROL_EVENT_PREFIX,
    EventSession,
    build_join_frame,
    is_control_frame,
    parse_frame,
)
from rapidapi_connect.types import (
    BlockFailure,
    BlockOutcome,
    BlockResult,
    ClientIdentity,
    ConnectConfig,
    PhoenixFrame,
    SessionState,
)
from rapidapi_connect.urls import channel_identity

__all__ = [
    "RapidAPI",
    "BlockCall",
    "EventSession",
    "ConnectConfig",
    "ClientIdentity",
    "BlockOutcome",
    "BlockFailure",
    "BlockResult",
    "PhoenixFrame",
    "SessionState",
    "ConnectError",
    "TransportError",
    "ProtocolError",
    "ParseError",
    "InvalidArgument",
    "CONTROL_EVENT_PREFIX",
    "build_join_frame",
    "channel_identity",
    "is_control_frame",
    "parse_frame",
    "resolve_block_response",
]

__version__ = "0.3.0"
