"""Admission cadence policies.

A rate is one of two variants:

* ``PerBlock(n)``: at most ``n`` admissions within a single tick.
* ``Blocks(b)``: at most one admission every ``b`` ticks.

Rates are ordered by throughput (admissions per tick), so a ``PerBlock`` and a
``Blocks`` rate can be compared: ``PerBlock(2) > Blocks(1) > Blocks(3)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Any, ClassVar, Mapping

from .errors import InvalidPolicy


@dataclass(frozen=True, slots=True)
class Rate:
    value: int

    kind: ClassVar[str] = ""

    def __post_init__(self) -> None:
        if type(self) is Rate:
            raise TypeError("Rate is abstract, use PerBlock or Blocks")
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidPolicy(f"{self.kind} expects an integer, got {self.value!r}")
        if self.value <= 0:
            raise InvalidPolicy(f"{self.kind} must be positive, got {self.value}")

    @property
    def throughput(self) -> Fraction:
        """Admissions per tick."""

        if isinstance(self, PerBlock):
            return Fraction(self.value)
        if isinstance(self, Blocks):
            return Fraction(1, self.value)
        raise TypeError(f"Unsupported rate {self!r}")

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"

    def to_dict(self) -> dict[str, int]:
        return {self.kind: self.value}

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Rate):
            return NotImplemented
        return self.throughput < other.throughput

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Rate):
            return NotImplemented
        return self.throughput <= other.throughput

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Rate):
            return NotImplemented
        return self.throughput > other.throughput

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Rate):
            return NotImplemented
        return self.throughput >= other.throughput

    @classmethod
    def create(cls, kind: str, value: Any) -> Rate:
        variant = _VARIANTS.get(kind.strip().lower())
        if variant is None:
            raise InvalidPolicy(f"Unknown rate kind {kind!r}")
        if isinstance(value, str):
            try:
                value = int(value.strip())
            except ValueError as exc:
                raise InvalidPolicy(f"{kind} expects an integer, got {value!r}") from exc
        return variant(value)

    @classmethod
    def parse(cls, text: str) -> Rate:
        """Parse ``per_block:N`` or ``blocks:N``."""

        kind, sep, value = text.partition(":")
        if not sep:
            raise InvalidPolicy(f"Expected '<kind>:<value>', got {text!r}")
        return cls.create(kind, value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rate:
        """Build from ``{"per_block": N}`` or ``{"blocks": N}``."""

        if len(data) != 1:
            raise InvalidPolicy(f"Expected exactly one rate variant, got {sorted(data)}")
        ((kind, value),) = data.items()
        return cls.create(kind, value)

    @classmethod
    def coerce(cls, value: Any) -> Rate:
        if isinstance(value, Rate):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise InvalidPolicy(f"Cannot build a rate from {value!r}")


@dataclass(frozen=True, slots=True)
class PerBlock(Rate):
    kind: ClassVar[str] = "per_block"


@dataclass(frozen=True, slots=True)
class Blocks(Rate):
    kind: ClassVar[str] = "blocks"


_VARIANTS: dict[str, type[Rate]] = {
    PerBlock.kind: PerBlock,
    Blocks.kind: Blocks,
}


__all__ = ["Rate", "PerBlock", "Blocks"]
