"""
URL and channel identity builders.

Everything here is pure string formatting over a :class:`ConnectConfig`
and a :class:`ClientIdentity`.
"""

from __future__ import annotations

from urllib.parse import quote as url_quote

from rapidapi_connect.errors import InvalidArgument
from rapidapi_connect.types import ClientIdentity, ConnectConfig

CHANNEL_TOPIC_PREFIX = "users_socket:"


def require_identifier(name: str, value: object) -> str:
    """Return ``value`` if it is a non-empty string, else raise."""
    if not isinstance(value, str) or not value:
        raise InvalidArgument(name, f"expected a non-empty string, got {value!r}")
    return value


def block_url(config: ConnectConfig, pack: str, block: str) -> str:
    return f"{config.block_base_url}/{pack}/{block}"


def event_url(config: ConnectConfig, identity: ClientIdentity, pack: str, event: str) -> str:
    """Webhook URL an external service posts ``pack.event`` deliveries to."""
    return (
        f"{config.callback_base_url}/{pack}/{event}/"
        f"{url_quote(identity.project, safe='')}/{url_quote(identity.key, safe='')}"
    )


def token_url(config: ConnectConfig) -> str:
    return f"{config.callback_base_url}/api/get_token"


def socket_url(config: ConnectConfig, token: str) -> str:
    return f"{config.websocket_base_url}/socket/websocket?token={url_quote(token, safe='')}"


def channel_identity(pack: str, event: str, identity: ClientIdentity) -> str:
    """Server-side channel id, e.g. ``weather.alert_p1:k1``."""
    return f"{pack}.{event}_{identity.project}:{identity.key}"


def channel_topic(channel: str) -> str:
    return f"{CHANNEL_TOPIC_PREFIX}{channel}"
