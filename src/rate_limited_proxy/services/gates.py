"""Persisted gates and their admission state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import DefaultGateConfig
from ..errors import GateExists, GateNotFound, RateLimitExceeded
from ..models import AdmissionRecord, Gate, RelayFailureMode
from ..rate import Rate
from .rate_limit import AdmissionState, evaluate

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GateStatus:
    name: str
    rate: Rate
    origin_url: str | None
    relay_failure: RelayFailureMode
    state: AdmissionState
    admitted_total: int
    rejected_total: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "rate": self.rate.to_dict(),
            "origin_url": self.origin_url,
            "relay_failure": self.relay_failure.value,
            "state": {
                "last_tick": self.state.last_tick,
                "count_in_tick": self.state.count_in_tick,
            },
            "admitted_total": self.admitted_total,
            "rejected_total": self.rejected_total,
        }


@dataclass(slots=True)
class Admission:
    gate: Gate
    state: AdmissionState


def _state_of(record: AdmissionRecord) -> AdmissionState:
    return AdmissionState(last_tick=record.last_tick, count_in_tick=record.count_in_tick)


class GateService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        name: str,
        rate: Rate | str | dict,
        *,
        tick: int,
        origin_url: str | None = None,
        relay_failure: RelayFailureMode = RelayFailureMode.KEEP,
    ) -> Gate:
        rate = Rate.coerce(rate)
        initial = AdmissionState.initial(tick)
        if await self._find(name) is not None:
            raise GateExists(f"Gate {name!r} already exists")
        gate = Gate(
            name=name,
            rate_kind=rate.kind,
            rate_value=rate.value,
            origin_url=origin_url or None,
            relay_failure=RelayFailureMode(relay_failure),
            created_tick=initial.last_tick,
            state=AdmissionRecord(
                last_tick=initial.last_tick,
                count_in_tick=initial.count_in_tick,
                admitted_total=0,
                rejected_total=0,
            ),
        )
        self.session.add(gate)
        await self.session.flush()
        logger.info("Created gate %s with rate %s at tick %s", name, rate, tick)
        return gate

    async def ensure(self, config: DefaultGateConfig, *, tick: int) -> Gate:
        gate = await self._find(config.name)
        if gate is not None:
            return gate
        return await self.create(
            config.name,
            config.rate,
            tick=tick,
            origin_url=config.origin_url,
            relay_failure=config.relay_failure,
        )

    async def get(self, name: str, *, for_update: bool = False) -> Gate:
        gate = await self._find(name, for_update=for_update)
        if gate is None:
            raise GateNotFound(f"Gate {name!r} not found")
        return gate

    async def admit(self, name: str, tick: int) -> Admission:
        """Admit one attempt at ``tick`` or raise :class:`RateLimitExceeded`.

        The gate row is locked for the rest of the transaction. On rejection
        only ``rejected_total`` moves.
        """

        gate = await self.get(name, for_update=True)
        record = gate.state
        previous = _state_of(record)
        try:
            state = evaluate(gate.rate, previous, tick)
        except RateLimitExceeded:
            record.rejected_total += 1
            await self.session.flush()
            logger.info("Gate %s rejected attempt at tick %s (rate %s)", name, tick, gate.rate)
            raise
        record.last_tick = state.last_tick
        record.count_in_tick = state.count_in_tick
        record.admitted_total += 1
        await self.session.flush()
        return Admission(gate=gate, state=state)

    async def status(self, name: str) -> GateStatus:
        gate = await self.get(name)
        record = gate.state
        return GateStatus(
            name=gate.name,
            rate=gate.rate,
            origin_url=gate.origin_url,
            relay_failure=gate.relay_failure,
            state=_state_of(record),
            admitted_total=record.admitted_total,
            rejected_total=record.rejected_total,
        )

    async def latest_tick(self) -> int:
        """Highest tick any gate has recorded, 0 when there are none."""

        stmt = select(func.max(AdmissionRecord.last_tick))
        return (await self.session.execute(stmt)).scalar_one_or_none() or 0

    async def _find(self, name: str, *, for_update: bool = False) -> Gate | None:
        stmt = select(Gate).where(Gate.name == name).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()


__all__ = ["Admission", "GateService", "GateStatus"]
