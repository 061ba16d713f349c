from __future__ import annotations

import asyncio
import socket
import time
from typing import Awaitable, Callable, Optional, Sequence

from . import config

Resolver = Callable[[str], Awaitable[Sequence[object]]]


class ReachabilitySignal:
    """Latest name-resolution result, shared with the line consumer.

    Only the probe writes it. Starts out False until a lookup has completed.
    """

    __slots__ = ("reachable", "checked_at")

    def __init__(self):
        self.reachable = False
        self.checked_at: Optional[float] = None

    def set(self, reachable: bool):
        self.reachable = reachable
        self.checked_at = time.time()

    def __bool__(self) -> bool:
        return self.reachable


async def resolve_host(host: str) -> Sequence[object]:
    """Resolve ``host`` through the loop's threaded ``getaddrinfo``."""
    loop = asyncio.get_running_loop()
    return await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)


class ConnectivityProbe:
    def __init__(
        self,
        signal: ReachabilitySignal,
        host: str = config.PROBE_HOSTNAME,
        interval: float = config.PROBE_INTERVAL_SECONDS,
        timeout: Optional[float] = config.PROBE_TIMEOUT_SECONDS,
        resolver: Resolver = resolve_host,
    ):
        self.signal = signal
        self.host = host
        self.interval = interval
        self.timeout = timeout
        self.resolver = resolver

    async def check_once(self) -> bool:
        """Run one lookup and publish the outcome. Never raises on lookup failure."""
        try:
            addresses = await asyncio.wait_for(
                self.resolver(self.host), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError, ValueError):
            # socket.gaierror is an OSError; bad host strings raise ValueError or UnicodeError
            reachable = False
        else:
            reachable = bool(addresses)
        self.signal.set(reachable)
        return reachable

    async def run(self, stop_event: asyncio.Event):
        """Check every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.is_set():
            start = time.time()
            await self.check_once()
            await asyncio.sleep(max(0, self.interval - (time.time() - start)))
