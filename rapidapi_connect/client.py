"""
RapidAPI Connect SDK: Python client.

Calls blocks on the RapidAPI Connect gateway and subscribes to
webhook-delivered events. Uses ``httpx`` for HTTP and ``websockets``
for the event socket.

Usage::

    from rapidapi_connect import RapidAPI

    rapid = RapidAPI("my-project", "my-api-key")

    rapid.call("NasaAPI", "getPictureOfTheDay", {}) \\
        .on("success", lambda payload: print(payload)) \\
        .on("error", lambda body: print("failed:", body))

    session = rapid.listen(
        "Slack", "slashCommand", {"token": "..."},
        on_message=print,
        on_close=lambda code, reason: print("closed", code),
    )

Both entry points must be called with a running asyncio event loop;
they return immediately and report results through the handlers.

A block call that fails with no ``"error"`` handler registered is
dropped silently. Register one if failures matter to you.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Generator, Mapping

from rapidapi_connect.errors import InvalidArgument, ParseError, ProtocolError, TransportError
from rapidapi_connect.events import (
    CloseHandler,
    ErrorHandler,
    EventSession,
    MessageHandler,
    invoke_handler,
)
from rapidapi_connect.http import _HttpClient, decode_json, multipart_fields
from rapidapi_connect.types import (
    BlockFailure,
    BlockOutcome,
    BlockResult,
    ClientIdentity,
    ConnectConfig,
)
from rapidapi_connect.urls import block_url, event_url, require_identifier

logger = logging.getLogger(__name__)

# Type alias for outcome handlers
OutcomeHandler = Callable[[Any], Coroutine[Any, Any, None] | None]

ERROR_OUTCOME = "error"


def resolve_block_response(status_code: int, text: str) -> BlockResult:
    """Classify a block response.

    Anything but a 200 whose JSON body has an ``outcome`` field is a
    failure. An undecodable body is passed through as raw text.
    """
    try:
        data = decode_json(text)
    except ParseError as e:
        return BlockFailure(error=e, body=text)

    if status_code != 200:
        return BlockFailure(
            error=ProtocolError(f"Block call failed ({status_code})", status_code=status_code, body=data),
            body=data,
        )
    if not isinstance(data, dict) or "outcome" not in data:
        return BlockFailure(
            error=ProtocolError("Block response has no outcome", status_code=status_code, body=data),
            body=data,
        )
    return BlockOutcome(outcome=str(data["outcome"]), payload=data.get("payload"))


class BlockCall:
    """Handle for one in-flight block call.

    Register outcome handlers with :meth:`on`; they are consulted once,
    when the response arrives. Awaiting the handle waits for that
    dispatch and returns the resolved :data:`BlockResult`.
    """

    def __init__(self, pack: str, block: str) -> None:
        self.pack = pack
        self.block = block
        self._handlers: dict[str, OutcomeHandler] = {}
        self._task: asyncio.Task[BlockResult] | None = None

    def on(self, outcome: str, handler: OutcomeHandler) -> BlockCall:
        """Register ``handler`` for ``outcome``. Returns ``self`` for chaining.

        Raises:
            InvalidArgument: ``outcome`` is not a string or ``handler``
                is not callable.
        """
        if not isinstance(outcome, str):
            raise InvalidArgument("outcome", f"outcome name must be a string, got {type(outcome).__name__}")
        if not callable(handler):
            raise InvalidArgument("handler", f"handler must be callable, got {type(handler).__name__}")
        self._handlers[outcome] = handler
        return self

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        """Abandon the call. No handler fires afterwards."""
        if self._task is not None:
            self._task.cancel()

    def __await__(self) -> Generator[Any, None, BlockResult]:
        if self._task is None:
            raise RuntimeError("Block call has not been started")
        return self._task.__await__()

    def _start(self, http: _HttpClient, url: str, args: Mapping[str, Any]) -> asyncio.Task[BlockResult]:
        self._task = asyncio.get_running_loop().create_task(self._run(http, url, args))
        return self._task

    async def _run(self, http: _HttpClient, url: str, args: Mapping[str, Any]) -> BlockResult:
        try:
            response = await http.request("POST", url, files=multipart_fields(args))
        except TransportError as e:
            result: BlockResult = BlockFailure(error=e, received=False)
        else:
            result = resolve_block_response(response.status_code, response.text)
        await self._dispatch(result)
        return result

    async def _dispatch(self, result: BlockResult) -> None:
        """Invoke at most one handler for ``result``."""
        label = f"{self.pack}/{self.block}"
        if isinstance(result, BlockFailure):
            handler = self._handlers.get(ERROR_OUTCOME)
            if handler is None:
                logger.debug("Block %s failed with no error handler: %s", label, result.error)
                return
            await invoke_handler(handler, result.handler_argument)
            return

        handler = self._handlers.get(result.outcome)
        if handler is None:
            logger.debug("Block %s outcome %r has no handler", label, result.outcome)
            return
        await invoke_handler(handler, result.payload)


class RapidAPI:
    """
    RapidAPI Connect client.

    Holds the project identity and endpoint configuration. Every
    :meth:`call` and :meth:`listen` is independent; nothing but the
    identity is shared between them.
    """

    def __init__(
        self,
        project: str,
        key: str,
        config: ConnectConfig | None = None,
    ) -> None:
        self._identity = ClientIdentity(
            project=require_identifier("project", project),
            key=require_identifier("key", key),
        )
        self._config = config or ConnectConfig()
        self._http = _HttpClient(self._identity, self._config)
        # Background work stays referenced until done, even if the caller
        # drops the returned handle.
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def project(self) -> str:
        return self._identity.project

    @property
    def identity(self) -> ClientIdentity:
        return self._identity

    @property
    def config(self) -> ConnectConfig:
        return self._config

    def block_url(self, pack: str, block: str) -> str:
        """URL a block call for ``pack/block`` is posted to."""
        return block_url(self._config, pack, block)

    def event_url(self, pack: str, event: str) -> str:
        """Webhook callback URL for ``pack.event`` deliveries."""
        return event_url(self._config, self._identity, pack, event)

    def call(self, pack: str, block: str, args: Mapping[str, Any] | None = None) -> BlockCall:
        """Call a block.

        Args:
            pack: Package the block lives in.
            block: Name of the block.
            args: Form fields; strings are sent as text fields, bytes and
                file objects as file parts.

        Returns:
            A :class:`BlockCall` to register outcome handlers on. The
            request is already in flight when this returns.
        """
        require_identifier("pack", pack)
        require_identifier("block", block)
        handle = BlockCall(pack, block)
        self._track(handle._start(self._http, self.block_url(pack, block), dict(args or {})))
        return handle

    def listen(
        self,
        pack: str,
        event: str,
        params: Any = None,
        on_message: MessageHandler | None = None,
        on_close: CloseHandler | None = None,
        on_error: ErrorHandler | None = None,
    ) -> EventSession:
        """Subscribe to webhook events for ``pack.event``.

        Args:
            pack: Package of the event.
            event: Name of the event.
            params: JSON-serialisable subscription parameters.
            on_message: Called with each event body.
            on_close: Called once with ``(code, reason)`` when the socket closes.
            on_error: Called with a :class:`ConnectError` if the token
                exchange or socket connect fails.

        Returns:
            The :class:`EventSession`, already connecting.
        """
        require_identifier("pack", pack)
        require_identifier("event", event)
        session = EventSession(
            self._http,
            self._config,
            self._identity,
            pack,
            event,
            params=params,
            on_message=on_message,
            on_close=on_close,
            on_error=on_error,
        )
        self._track(session.start())
        return session

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
