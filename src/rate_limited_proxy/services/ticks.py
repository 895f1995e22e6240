"""Tick sources for hosts that have no block height of their own."""

from __future__ import annotations

import time
from typing import Callable


class EpochTicker:
    """Derive a non-decreasing integer tick from the Unix epoch.

    Tick ``n`` covers ``[n * tick_seconds, (n + 1) * tick_seconds)`` seconds
    since the epoch, so ticks keep counting across process restarts.
    ``advance_to`` raises the floor, for instance to the highest tick already
    stored, so a wall clock stepping backwards never yields a smaller tick.
    """

    def __init__(self, tick_seconds: float, *, clock: Callable[[], float] = time.time) -> None:
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be positive")
        self.tick_seconds = tick_seconds
        self._clock = clock
        self._floor = 0

    def advance_to(self, tick: int) -> None:
        if tick > self._floor:
            self._floor = tick

    def __call__(self) -> int:
        self.advance_to(int(self._clock() // self.tick_seconds))
        return self._floor


__all__ = ["EpochTicker"]
