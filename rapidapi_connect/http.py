"""
Authenticated HTTP requests for the RapidAPI Connect SDK.

Each request opens its own ``httpx.AsyncClient``: calls are independent
and share nothing but the immutable client identity.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Mapping

import httpx

from rapidapi_connect.errors import ParseError, TransportError
from rapidapi_connect.types import ClientIdentity, ConnectConfig

logger = logging.getLogger(__name__)


class _HttpClient:
    """Thin wrapper around httpx for gateway and callback-service requests."""

    def __init__(self, identity: ClientIdentity, config: ConnectConfig) -> None:
        self._auth = httpx.BasicAuth(identity.project, identity.key)
        self._headers = {"User-Agent": config.user_agent}
        self._timeout = config.timeout

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        files: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send one authenticated request and return the raw response.

        An empty ``files`` mapping still sends a (field-less) multipart
        body, so block calls always carry ``multipart/form-data``.

        Raises:
            TransportError: The request could not be completed.
        """
        content = None
        if files is not None and not files:
            content, content_type = empty_multipart()
            headers = {**(headers or {}), "Content-Type": content_type}
            files = None
        async with httpx.AsyncClient(
            auth=self._auth,
            headers=self._headers,
            timeout=self._timeout,
        ) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    content=content,
                    files=files,
                    headers=headers,
                )
            except httpx.HTTPError as e:
                # Never log or raise the URL: the token query carries the API key.
                raise TransportError(f"{method} request failed: {type(e).__name__}") from e
        logger.debug("%s %s -> %d", method, response.request.url.path, response.status_code)
        return response


def empty_multipart() -> tuple[bytes, str]:
    """Body and content type of a multipart form with no fields."""
    boundary = os.urandom(16).hex()
    return f"--{boundary}--\r\n".encode(), f"multipart/form-data; boundary={boundary}"


def multipart_fields(args: Mapping[str, Any]) -> dict[str, Any]:
    """Turn block arguments into httpx ``files`` entries.

    Text values become plain form fields (no filename); bytes and file
    objects are sent as file parts named after their field.
    """
    fields: dict[str, Any] = {}
    for name, value in args.items():
        if isinstance(value, bytes) or hasattr(value, "read"):
            fields[name] = (name, value)
        elif isinstance(value, str):
            fields[name] = (None, value)
        else:
            fields[name] = (None, str(value))
    return fields


def decode_json(text: str) -> Any:
    """Decode a response body as JSON.

    Raises:
        ParseError: The body is not valid JSON.
    """
    try:
        return json.loads(text)
    except ValueError as e:
        raise ParseError(f"Response body is not valid JSON: {e}", body=text) from e


def read_json(response: httpx.Response) -> Any:
    return decode_json(response.text)
