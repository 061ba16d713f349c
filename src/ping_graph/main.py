from __future__ import annotations

import argparse
import asyncio
import contextlib
import os
import signal
import sys
import threading
from typing import Iterable, List, Optional, TextIO

from rich.console import Console
from rich.live import Live
from rich.text import Text

from . import config
from .outage_logger import OutageLogger
from .parser import FORMATS, LineFormat, default_format_name, get_format, parse
from .probe import ConnectivityProbe, ReachabilitySignal, Resolver, resolve_host
from .stats import RollingAggregator, Snapshot
from .ui import build_view

console = Console()


class LineMonitor:
    """Parses, classifies and aggregates one line at a time."""

    def __init__(
        self,
        fmt: LineFormat,
        reachability: ReachabilitySignal,
        aggregator: Optional[RollingAggregator] = None,
        outage_logger: Optional[OutageLogger] = None,
    ):
        self.fmt = fmt
        self.reachability = reachability
        self.aggregator = aggregator or RollingAggregator()
        self.outage_logger = outage_logger
        self.last_snapshot: Optional[Snapshot] = None

    def handle(self, line: str) -> Optional[Snapshot]:
        event = parse(line, self.fmt)
        # read once so the whole event sees the same value
        reachable = self.reachability.reachable
        snapshot = self.aggregator.apply(event, reachable)
        if snapshot is None:
            return None
        self.last_snapshot = snapshot
        if self.outage_logger is not None:
            self.outage_logger.observe(snapshot)
        return snapshot

    def feed(self, lines: Iterable[str]) -> List[Snapshot]:
        snapshots = []
        for line in lines:
            snapshot = self.handle(line)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots


def start_line_reader(
    stream: TextIO, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue
) -> threading.Thread:
    """Pump lines from a blocking stream into ``queue``; None marks the end."""

    def _pump():
        with contextlib.suppress(RuntimeError):  # loop already closed
            for line in stream:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            loop.call_soon_threadsafe(queue.put_nowait, None)

    thread = threading.Thread(target=_pump, name="line-reader", daemon=True)
    thread.start()
    return thread


async def line_loop(
    queue: asyncio.Queue,
    monitor: LineMonitor,
    live: Live,
    stop_event: asyncio.Event,
    height: int,
):
    """Consumes lines in arrival order and redraws after each recognised one."""
    while not stop_event.is_set():
        line = await queue.get()
        if line is None:
            stop_event.set()
            break
        snapshot = monitor.handle(line)
        if snapshot is not None:
            live.update(build_view(snapshot, height), refresh=True)


async def main_async(
    args: argparse.Namespace,
    stream: TextIO = sys.stdin,
    resolver: Resolver = resolve_host,
):
    """The main asynchronous entry point of the application."""
    stop_event = asyncio.Event()
    reachability = ReachabilitySignal()
    outage_logger = OutageLogger(args.log_file) if args.log_file else None
    monitor = LineMonitor(get_format(args.format), reachability, outage_logger=outage_logger)
    probe = ConnectivityProbe(
        reachability,
        host=args.probe_host,
        interval=args.probe_interval,
        resolver=resolver,
    )

    loop = asyncio.get_running_loop()

    def _signal_handler():
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:  # Windows
            signal.signal(sig, lambda s, f: _signal_handler())

    queue: asyncio.Queue = asyncio.Queue()
    start_line_reader(stream, loop, queue)

    with Live(
        Text(f"Waiting for {args.format} ping output..."),
        console=console,
        auto_refresh=False,
        screen=False,
    ) as live:
        tasks = [
            asyncio.create_task(probe.run(stop_event)),
            asyncio.create_task(
                line_loop(queue, monitor, live, stop_event, args.height)
            ),
        ]

        await stop_event.wait()

        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    if outage_logger is not None:
        outage_logger.finalize()

    st = monitor.aggregator.state
    mean = st.mean_latency()
    console.print("\nSummary:")
    console.print(
        f"replies={st.response_count} timeouts={st.timeout_count} "
        f"online={st.online_count} offline={st.offline_count} "
        f"({st.online_pct():.1f}% online) "
        f"mean={'N/A' if mean is None else f'{mean:.1f} ms'} "
        f"best_streak={st.max_online_streak}"
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ping-graph",
        description="Live latency graph and connection health from piped ping output, "
        "e.g. `ping 8.8.8.8 | ping-graph`.",
    )
    parser.add_argument(
        "--format",
        default=os.environ.get(config.FORMAT_ENV_VAR) or default_format_name(),
        help=f"ping output profile: {', '.join(sorted(FORMATS))} "
        f"(default: ${config.FORMAT_ENV_VAR} or the current platform)",
    )
    parser.add_argument(
        "--probe-host",
        default=config.PROBE_HOSTNAME,
        help="hostname resolved to check DNS (default: %(default)s)",
    )
    parser.add_argument(
        "--probe-interval",
        type=float,
        default=config.PROBE_INTERVAL_SECONDS,
        help="seconds between DNS checks (default: %(default)s)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=config.GRAPH_HEIGHT,
        help="chart height in rows (default: %(default)s)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="append outages and best streaks to this file",
    )
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        args.format = get_format(args.format).name
    except KeyError:
        parser.error(
            f"unknown format {args.format!r}, choose from {', '.join(sorted(FORMATS))}"
        )
    args.probe_host = args.probe_host.strip()
    if not args.probe_host or any(ch.isspace() for ch in args.probe_host):
        parser.error("--probe-host must be a single hostname")
    if args.probe_interval <= 0:
        parser.error("--probe-interval must be positive")
    if args.height < 1:
        parser.error("--height must be at least 1")
    return args


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    try:
        asyncio.run(main_async(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":  # pragma: no cover
    main()
