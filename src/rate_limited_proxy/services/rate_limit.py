"""Tick-based admission engine."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import RateLimitExceeded
from ..rate import Blocks, PerBlock, Rate


@dataclass(frozen=True, slots=True)
class AdmissionState:
    last_tick: int
    count_in_tick: int = 0

    @classmethod
    def initial(cls, tick: int) -> AdmissionState:
        return cls(last_tick=_check_tick(tick), count_in_tick=0)


def _check_tick(tick: int) -> int:
    if isinstance(tick, bool) or not isinstance(tick, int):
        raise TypeError(f"tick must be an integer, got {tick!r}")
    if tick < 0:
        raise ValueError(f"tick must not be negative, got {tick}")
    return tick


def evaluate(rate: Rate, state: AdmissionState, tick: int) -> AdmissionState:
    """Return the state after admitting at ``tick``.

    Raises :class:`RateLimitExceeded` when the attempt falls outside the
    cadence. ``state`` is never modified, so a rejected attempt leaves the
    caller's state exactly as it was.

    ``tick`` must not be lower than ``state.last_tick``; the clock is owned by
    the caller.
    """

    tick = _check_tick(tick)

    if isinstance(rate, PerBlock):
        count = state.count_in_tick if tick == state.last_tick else 0
        if count >= rate.value:
            raise _exceeded(rate, state, tick)
        return AdmissionState(last_tick=tick, count_in_tick=count + 1)

    if isinstance(rate, Blocks):
        # count_in_tick == 0 means nothing was admitted since construction.
        if state.count_in_tick and tick - state.last_tick < rate.value:
            raise _exceeded(rate, state, tick)
        return AdmissionState(last_tick=tick, count_in_tick=1)

    raise TypeError(f"Unsupported rate {rate!r}")


def _exceeded(rate: Rate, state: AdmissionState, tick: int) -> RateLimitExceeded:
    return RateLimitExceeded(
        rate,
        tick=tick,
        last_tick=state.last_tick,
        count_in_tick=state.count_in_tick,
    )


class RateLimiter:
    """In-memory gate holding one shared :class:`AdmissionState`.

    The limit is global across every caller of the instance. Calls are
    expected to be serialised by the host; see ``ProxyService`` for the
    persisted, locked variant.
    """

    def __init__(self, rate: Rate, *, tick: int) -> None:
        self.rate = rate
        self._state = AdmissionState.initial(tick)

    @property
    def state(self) -> AdmissionState:
        return self._state

    def try_admit(self, current_tick: int) -> AdmissionState:
        self._state = evaluate(self.rate, self._state, current_tick)
        return self._state

    def check(self, current_tick: int) -> bool:
        try:
            self.try_admit(current_tick)
        except RateLimitExceeded:
            return False
        return True

    def snapshot(self) -> dict[str, object]:
        return {
            "rate": self.rate.to_dict(),
            "last_tick": self._state.last_tick,
            "count_in_tick": self._state.count_in_tick,
        }


__all__ = ["AdmissionState", "RateLimiter", "evaluate"]
