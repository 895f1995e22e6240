"""Error hierarchy shared by the gate, the relay and the API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .rate import Rate


class GateError(RuntimeError):
    """Base class; ``code`` is stable and safe to assert on."""

    code = "gate_error"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class InvalidPolicy(GateError, ValueError):
    code = "invalid_policy"


class RateLimitExceeded(GateError):
    code = "rate_limit_exceeded"

    def __init__(self, rate: Rate, *, tick: int, last_tick: int, count_in_tick: int) -> None:
        self.rate = rate
        self.tick = tick
        self.last_tick = last_tick
        self.count_in_tick = count_in_tick
        super().__init__(f"rate limit {rate} exceeded at tick {tick}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            rate=str(self.rate),
            tick=self.tick,
            last_tick=self.last_tick,
            count_in_tick=self.count_in_tick,
        )
        return data


class RelayError(GateError):
    code = "relay_error"

    def __init__(
        self,
        message: str,
        *,
        origin: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.origin = origin
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(origin=self.origin, status_code=self.status_code)
        return data


class GateNotFound(GateError, LookupError):
    code = "gate_not_found"


class GateExists(GateError):
    code = "gate_exists"


__all__ = [
    "GateError",
    "InvalidPolicy",
    "RateLimitExceeded",
    "RelayError",
    "GateNotFound",
    "GateExists",
]
