"""Gate configuration and admission state models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..rate import Rate
from .base import Base, TimestampMixin


class RelayFailureMode(str, Enum):
    """What a failed relay does to the tick accounting of its admission."""

    KEEP = "keep"
    REVERT = "revert"


class Gate(TimestampMixin, Base):
    __tablename__ = "gates"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    rate_kind: Mapped[str] = mapped_column(String(16))
    rate_value: Mapped[int] = mapped_column(Integer)
    origin_url: Mapped[Optional[str]] = mapped_column(String(512))
    relay_failure: Mapped[RelayFailureMode] = mapped_column(default=RelayFailureMode.KEEP)
    created_tick: Mapped[int] = mapped_column(BigInteger)

    state: Mapped["AdmissionRecord"] = relationship(
        back_populates="gate",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def rate(self) -> Rate:
        return Rate.create(self.rate_kind, self.rate_value)


class AdmissionRecord(TimestampMixin, Base):
    __tablename__ = "admission_states"

    id: Mapped[int] = mapped_column(primary_key=True)
    gate_id: Mapped[int] = mapped_column(ForeignKey("gates.id"), unique=True, index=True)
    last_tick: Mapped[int] = mapped_column(BigInteger)
    count_in_tick: Mapped[int] = mapped_column(Integer, default=0)
    admitted_total: Mapped[int] = mapped_column(BigInteger, default=0)
    rejected_total: Mapped[int] = mapped_column(BigInteger, default=0)

    gate: Mapped[Gate] = relationship(back_populates="state")


__all__ = ["AdmissionRecord", "Gate", "RelayFailureMode"]
