"""Forwarding: admit, then relay to the gate's origin."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import RateLimitExceeded, RelayError
from ..models import RelayFailureMode
from .gates import GateService
from .rate_limit import AdmissionState
from .relay import OriginClient, RelayGateway, RelayNotification

logger = logging.getLogger(__name__)

# One lock per existing gate: the budget is shared by every sender of a gate.
_gate_locks: dict[str, asyncio.Lock] = {}


def _lock_for(gate_name: str) -> asyncio.Lock:
    lock = _gate_locks.get(gate_name)
    if lock is None:
        lock = _gate_locks[gate_name] = asyncio.Lock()
    return lock


@dataclass(slots=True)
class ForwardResult:
    gate: str
    tick: int
    state: AdmissionState
    notification: RelayNotification | None

    @property
    def relayed(self) -> bool:
        return self.notification is not None


class ProxyService:
    """Runs one forward attempt: admission under the gate lock, then relay.

    With ``relay_failure=keep`` the admission is committed and the lock
    released before the origin is called, so a slow origin does not hold
    up other senders. With ``revert`` the relay runs inside the admission
    transaction, which is rolled back when the relay fails. The
    :class:`RelayError` is raised either way.
    """

    def __init__(self, session: AsyncSession, client: OriginClient | None = None) -> None:
        self.session = session
        self.gates = GateService(session)
        self.client = client

    async def forward(
        self,
        gate_name: str,
        sender: str,
        payload: bytes,
        *,
        tick: int,
        source: str | None = None,
    ) -> ForwardResult:
        # unknown names raise GateNotFound before a lock is created for them
        await self.gates.get(gate_name)

        async with _lock_for(gate_name):
            try:
                admission = await self.gates.admit(gate_name, tick)
            except RateLimitExceeded:
                await self.session.commit()
                raise

            gate = admission.gate
            relay = RelayGateway(gate.origin_url, self.client)
            if gate.relay_failure == RelayFailureMode.REVERT:
                try:
                    notification = await relay.on_admitted(sender, payload, source=source)
                except RelayError:
                    await self.session.rollback()
                    logger.warning("Relay failed for gate %s, admission at tick %s reverted", gate_name, tick)
                    raise
                await self.session.commit()
                return ForwardResult(gate=gate_name, tick=tick, state=admission.state, notification=notification)

            await self.session.commit()

        notification = await relay.on_admitted(sender, payload, source=source)
        return ForwardResult(gate=gate_name, tick=tick, state=admission.state, notification=notification)


__all__ = ["ForwardResult", "ProxyService"]
