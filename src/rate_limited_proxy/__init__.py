"""Tick-based rate limiting gate with relay to an origin."""

from importlib.metadata import version, PackageNotFoundError

from .errors import GateError, InvalidPolicy, RateLimitExceeded, RelayError
from .rate import Blocks, PerBlock, Rate
from .services.rate_limit import AdmissionState, RateLimiter, evaluate

try:
    __version__ = version("rate-limited-proxy")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "Rate",
    "PerBlock",
    "Blocks",
    "AdmissionState",
    "RateLimiter",
    "evaluate",
    "GateError",
    "InvalidPolicy",
    "RateLimitExceeded",
    "RelayError",
]
