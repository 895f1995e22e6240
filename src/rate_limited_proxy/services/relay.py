"""Relay of admitted notifications to the origin."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
import shortuuid

from ..config import OriginConfig, settings
from ..errors import RelayError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RelayNotification:
    """What the origin receives: who sent it, and the payload untouched."""

    sender: str
    payload: bytes
    source: str | None = None
    notification_id: str = field(default_factory=shortuuid.uuid)

    def to_message(self) -> dict[str, Any]:
        return {
            "receive_proxy_msg": {
                "source": self.source,
                "sender": self.sender,
                "payload": base64.b64encode(self.payload).decode("ascii"),
                "notification_id": self.notification_id,
            }
        }


_default_client: OriginClient | None = None


class OriginClient:
    """HTTP transport to origin endpoints."""

    def __init__(
        self,
        config: OriginConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings.origin
        headers = {"Accept": "application/json"}
        if self._config.token is not None:
            headers["Authorization"] = f"Bearer {self._config.token.get_secret_value()}"
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=self._config.timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def deliver(self, origin_url: str, notification: RelayNotification) -> None:
        try:
            response = await self._client.post(
                origin_url,
                json=notification.to_message(),
                headers={"Idempotency-Key": notification.notification_id},
            )
        except httpx.HTTPError as exc:
            logger.error("Origin %s unreachable: %s", origin_url, exc)
            raise RelayError(f"origin unreachable: {exc}", origin=origin_url) from exc
        if response.status_code >= 400:
            logger.error(
                "Origin %s rejected %s: %s %s",
                origin_url,
                notification.notification_id,
                response.status_code,
                response.text,
            )
            raise RelayError(
                f"origin rejected notification with status {response.status_code}",
                origin=origin_url,
                status_code=response.status_code,
                body=response.text,
            )


class RelayGateway:
    """Dispatches admitted attempts to a single origin.

    A gateway without an origin only meters: ``on_admitted`` succeeds and
    nothing is sent.
    """

    def __init__(self, origin_url: str | None, client: OriginClient | None = None) -> None:
        self.origin_url = origin_url
        self._client = client

    async def on_admitted(
        self,
        sender: str,
        payload: bytes,
        *,
        source: str | None = None,
    ) -> RelayNotification | None:
        if not self.origin_url:
            return None
        notification = RelayNotification(sender=sender, payload=payload, source=source)
        client = self._client or get_origin_client()
        await client.deliver(self.origin_url, notification)
        logger.debug("Relayed %s from %s to %s", notification.notification_id, sender, self.origin_url)
        return notification


def get_origin_client() -> OriginClient:
    global _default_client
    if _default_client is None:
        _default_client = OriginClient()
    return _default_client


__all__ = [
    "OriginClient",
    "RelayGateway",
    "RelayNotification",
    "get_origin_client",
]
