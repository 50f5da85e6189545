"""
Event subscription for the RapidAPI Connect SDK.

A subscription is one :class:`EventSession`: a token exchange against the
callback service, then a WebSocket to the messaging endpoint that joins a
single channel and forwards application frames to ``on_message``.
Channel bookkeeping frames (join replies, heartbeats) are swallowed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Coroutine

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from rapidapi_connect.errors import ConnectError, ProtocolError, TransportError
from rapidapi_connect.http import _HttpClient, read_json
from rapidapi_connect.types import (
    ClientIdentity,
    ConnectConfig,
    PhoenixFrame,
    SessionState,
)
from rapidapi_connect.urls import channel_identity, channel_topic, socket_url, token_url

logger = logging.getLogger(__name__)

# Type aliases for user callbacks
MessageHandler = Callable[[Any], Coroutine[Any, Any, None] | None]
CloseHandler = Callable[[int, str], Coroutine[Any, Any, None] | None]
ErrorHandler = Callable[[ConnectError], Coroutine[Any, Any, None] | None]

CONTROL_EVENT_PREFIX = "phx_"
JOIN_EVENT = "phx_join"
JOIN_REF = "1"
HEARTBEAT_TOPIC = "phoenix"
ABNORMAL_CLOSURE = 1006


def is_control_frame(event: str) -> bool:
    """Whether ``event`` is reserved for channel bookkeeping."""
    return event.startswith(CONTROL_EVENT_PREFIX)


def build_join_frame(channel: str) -> dict[str, Any]:
    return {
        "topic": channel_topic(channel),
        "event": JOIN_EVENT,
        "payload": {},
        "ref": JOIN_REF,
    }


def build_heartbeat_frame(ref: int) -> dict[str, Any]:
    return {"topic": HEARTBEAT_TOPIC, "event": "heartbeat", "payload": {}, "ref": str(ref)}


def parse_frame(raw: str | bytes) -> PhoenixFrame | None:
    """Decode an inbound frame, or return ``None`` if it is not one."""
    try:
        return PhoenixFrame.model_validate(json.loads(raw))
    except (ValueError, ValidationError):
        return None


async def invoke_handler(handler: Callable[..., Any], *args: Any) -> None:
    """Call a user handler, awaiting it if it is a coroutine.

    Exceptions raised by the handler are logged, never propagated into
    the SDK's own tasks.
    """
    try:
        result = handler(*args)
        if asyncio.iscoroutine(result):
            await result
    except Exception:
        logger.exception("Error in handler %r", getattr(handler, "__name__", handler))


def _noop(*_: Any) -> None:
    return None


class EventSession:
    """One live subscription to a ``pack.event`` channel.

    Created by :meth:`RapidAPI.listen`; the session starts in
    ``CONNECTING``, moves to ``JOINED`` once the join frame is sent and
    ends in ``CLOSED``. Closure is terminal: nothing reconnects.
    """

    def __init__(
        self,
        http: _HttpClient,
        config: ConnectConfig,
        identity: ClientIdentity,
        pack: str,
        event: str,
        params: Any = None,
        on_message: MessageHandler | None = None,
        on_close: CloseHandler | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._http = http
        self._config = config
        self._label = f"{pack}.{event}"
        self._channel = channel_identity(pack, event, identity)
        self._params_json = json.dumps({} if params is None else params)
        self._on_message = on_message or _noop
        self._on_close = on_close or _noop
        self._on_error = on_error

        self._state = SessionState.CONNECTING
        self._ws: Any | None = None
        self._task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._ref = int(JOIN_REF)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def channel(self) -> str:
        """Channel identity, ``{pack}.{event}_{project}:{key}``."""
        return self._channel

    @property
    def topic(self) -> str:
        return channel_topic(self._channel)

    def start(self) -> asyncio.Task[None]:
        """Begin the token exchange and connection in the background."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the session.

        With an open socket this performs a normal close and ``on_close``
        fires with the resulting code. Before the socket exists, pending
        work is cancelled and ``on_close`` does not fire.
        """
        if self._state is SessionState.CLOSED:
            return
        if self._task is None:
            self._state = SessionState.CLOSED
            return
        if self._ws is not None:
            await self._ws.close(code, reason)
        else:
            self._task.cancel()
        await self.wait_closed()
        if self._task.done():
            self._state = SessionState.CLOSED

    async def wait_closed(self) -> None:
        """Wait until the session reaches ``CLOSED``."""
        # Handlers run inside the session task and may call close().
        if self._task is None or self._task is asyncio.current_task():
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    # ---- Internal ----

    async def _run(self) -> None:
        try:
            try:
                token = await self._exchange_token()
                ws = await self._connect(token)
            except ConnectError as e:
                self._state = SessionState.CLOSED
                await self._report_error(e)
                return

            self._ws = ws
            try:
                await ws.send(json.dumps(build_join_frame(self._channel)))
            except ConnectionClosed:
                logger.debug("Socket for %s closed before join", self._label)
            else:
                self._state = SessionState.JOINED
                logger.info("Joined event channel %s", self._label)
                if self._config.heartbeat_interval_ms > 0:
                    self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(ws))

            code, reason = await self._listen_loop(ws)
            await self._stop_heartbeat()
            self._state = SessionState.CLOSED
            logger.info("Event channel %s closed (%s)", self._label, code)
            await invoke_handler(self._on_close, code, reason)
        finally:
            await self._stop_heartbeat()
            self._state = SessionState.CLOSED

    async def _exchange_token(self) -> str:
        """Trade the channel identity for a socket token."""
        response = await self._http.request(
            "GET",
            token_url(self._config),
            params={"user_id": self._channel, "params": self._params_json},
            headers={"Content-Type": "application/json"},
        )
        if response.status_code != 200:
            raise ProtocolError(
                f"Token exchange failed ({response.status_code})",
                status_code=response.status_code,
                body=response.text,
            )
        data = read_json(response)
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise ProtocolError(
                "Token exchange response has no token",
                status_code=response.status_code,
                body=data,
            )
        return token

    async def _connect(self, token: str) -> Any:
        try:
            return await websockets.connect(socket_url(self._config, token))
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise TransportError(f"WebSocket connection failed: {type(e).__name__}") from e

    async def _listen_loop(self, ws: Any) -> tuple[int, str]:
        """Forward application frames until the socket closes."""
        try:
            async for raw in ws:
                frame = parse_frame(raw)
                if frame is None:
                    logger.debug("Ignoring non-frame WS message on %s", self._label)
                    continue
                if is_control_frame(frame.event):
                    logger.debug("Swallowed control frame %s on %s", frame.event, self._label)
                    continue
                await invoke_handler(self._on_message, frame.body)
        except ConnectionClosed:
            pass
        code = ws.close_code if ws.close_code is not None else ABNORMAL_CLOSURE
        return code, ws.close_reason or ""

    async def _heartbeat_loop(self, ws: Any) -> None:
        """Send channel heartbeats so the server keeps the socket alive."""
        interval = self._config.heartbeat_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            self._ref += 1
            try:
                await ws.send(json.dumps(build_heartbeat_frame(self._ref)))
            except ConnectionClosed:
                return

    async def _stop_heartbeat(self) -> None:
        if self._heartbeat_task and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
        self._heartbeat_task = None

    async def _report_error(self, error: ConnectError) -> None:
        if self._on_error is None:
            logger.warning("Subscription to %s failed: %s", self._label, error)
            return
        await invoke_handler(self._on_error, error)
