"""SQLAlchemy models exports."""

from .base import Base, TimestampMixin
from .gate import AdmissionRecord, Gate, RelayFailureMode

__all__ = [
    "Base",
    "TimestampMixin",
    "Gate",
    "AdmissionRecord",
    "RelayFailureMode",
]
