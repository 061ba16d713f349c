from __future__ import annotations

from typing import NamedTuple

from . import config
from .parser import LatencyEvent, ProbeEvent, TimeoutEvent

OK = "ok"
WARNING = "warning"
ERROR = "error"


class Verdict(NamedTuple):
    is_online: bool
    severity: str


def latency_severity(value_ms: float) -> str:
    if value_ms > config.LATENCY_TIMEOUT_MIN_MS:
        return ERROR
    if value_ms > config.LATENCY_WARN_MS:
        return WARNING
    return OK


def classify(event: ProbeEvent, reachable: bool) -> Verdict:
    """Decide whether the connection counts as online for this event.

    A reply only counts as online when it is no slower than
    ``LATENCY_TIMEOUT_MIN_MS`` and name resolution works: ping often
    succeeds on mobile links where DNS does not, and almost everything
    people use the link for needs DNS.
    """
    if isinstance(event, LatencyEvent):
        is_online = event.value_ms <= config.LATENCY_TIMEOUT_MIN_MS and reachable
        return Verdict(bool(is_online), latency_severity(event.value_ms))
    if isinstance(event, TimeoutEvent):
        return Verdict(False, ERROR)
    raise ValueError(f"cannot classify {event!r}")
