from __future__ import annotations

import math
import re
import sys
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Tuple, Union


@dataclass(frozen=True)
class LatencyEvent:
    value_ms: float
    sequence: Optional[int]
    ttl: int
    host: str


@dataclass(frozen=True)
class TimeoutEvent:
    sequence: Optional[int]


class Unrecognized:
    """A line that matched no pattern of the active profile."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNRECOGNIZED"


UNRECOGNIZED = Unrecognized()

ProbeEvent = Union[LatencyEvent, TimeoutEvent, Unrecognized]


class LineFormat:
    """Regular patterns for the text one platform's ``ping`` prints.

    Subclasses list response patterns and timeout patterns in the order they
    are tried, and turn a match into an event. Conversion errors in the
    captured groups propagate as ``ValueError``; ``parse`` absorbs them.
    """

    name = ""
    response_patterns: Tuple[Pattern[str], ...] = ()
    timeout_patterns: Tuple[Pattern[str], ...] = ()

    def response(self, match: "re.Match[str]") -> LatencyEvent:
        raise NotImplementedError

    def timeout(self, match: "re.Match[str]") -> TimeoutEvent:
        raise NotImplementedError


class UnixFormat(LineFormat):
    """Linux, macOS and BSD ``ping``.

    64 bytes from 8.8.8.8: icmp_seq=1 ttl=64 time=42.0 ms
    64 bytes from dns.google (8.8.8.8): icmp_seq=1 ttl=117 time=14.2 ms
    64 bytes from ::1: icmp_seq=1 ttl=64 time=0.031 ms
    64 bytes from lhr25s34-in-x0e.1e100.net (2a00:1450:4009:81f::200e): icmp_seq=1 ttl=117 time=9.97 ms
    Request timeout for icmp_seq 2
    no answer yet for icmp_seq=2
    """

    name = "unix"
    response_patterns = (
        re.compile(
            r"(\d+) bytes from (.+?): icmp_seq=(\S+) ttl=(\S+) time=(\S+) ms"
        ),
    )
    timeout_patterns = (
        re.compile(r"Request timeout for icmp_seq (\S+)"),
        re.compile(r"no answer yet for icmp_seq=(\S+)"),
    )

    def response(self, match):
        return LatencyEvent(
            value_ms=float(match.group(5)),
            sequence=int(match.group(3)),
            ttl=int(match.group(4)),
            host=match.group(2).strip(),
        )

    def timeout(self, match):
        return TimeoutEvent(sequence=int(match.group(1)))


class Win32Format(LineFormat):
    """Windows ``ping -t``. No sequence numbers are printed.

    Reply from 8.8.8.8: bytes=32 time=14ms TTL=117
    Reply from 8.8.8.8: bytes=32 time<1ms TTL=128
    Request timed out.
    PING: transmit failed. General failure.
    """

    name = "win32"
    response_patterns = (
        re.compile(r"from (.+?): bytes=(\d+) time[=<](\S+?)\s?ms TTL=(\S+)"),
    )
    timeout_patterns = (
        re.compile(r"timed out|timeout|failure", re.IGNORECASE),
    )

    def response(self, match):
        return LatencyEvent(
            value_ms=float(match.group(3)),
            sequence=None,
            ttl=int(match.group(4)),
            host=match.group(1).strip(),
        )

    def timeout(self, match):
        return TimeoutEvent(sequence=None)


FORMATS: Dict[str, LineFormat] = {
    fmt.name: fmt for fmt in (UnixFormat(), Win32Format())
}


def default_format_name() -> str:
    return "win32" if sys.platform.startswith("win") else "unix"


def get_format(name: str) -> LineFormat:
    """Look up a profile by name. Raises KeyError for unknown names."""
    return FORMATS[name.strip().lower()]


def parse(line: str, fmt: LineFormat) -> ProbeEvent:
    """Turn one line of ping output into an event.

    Response patterns are tried before timeout patterns and the first match
    wins. Lines that match nothing, or whose numbers do not convert, come
    back as ``UNRECOGNIZED``.
    """
    for pattern in fmt.response_patterns:
        match = pattern.search(line)
        if match:
            try:
                event = fmt.response(match)
            except ValueError:
                return UNRECOGNIZED
            if not math.isfinite(event.value_ms) or event.value_ms < 0:
                return UNRECOGNIZED
            return event
    for pattern in fmt.timeout_patterns:
        match = pattern.search(line)
        if match:
            try:
                return fmt.timeout(match)
            except ValueError:
                return UNRECOGNIZED
    return UNRECOGNIZED
