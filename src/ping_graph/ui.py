from __future__ import annotations

from typing import Optional

import asciichartpy
from rich.console import Group
from rich.text import Text

from . import config
from .classifier import ERROR, OK, WARNING
from .stats import Snapshot

SEVERITY_STYLES = {
    OK: config.STYLE_OK,
    WARNING: config.STYLE_WARNING,
    ERROR: config.STYLE_ERROR,
}


def _ms(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:.1f}"


def build_chart(snapshot: Snapshot, height: int = config.GRAPH_HEIGHT) -> Optional[str]:
    """Plot the graph buffer, or None until there are more than two samples."""
    if len(snapshot.graph) <= 2:
        return None
    return asciichartpy.plot(
        list(snapshot.graph),
        {
            "height": height,
            "offset": config.GRAPH_OFFSET,
            "format": config.GRAPH_LABEL_FORMAT,
        },
    )


def build_view(snapshot: Snapshot, height: int = config.GRAPH_HEIGHT) -> Group:
    header = Text(
        f"{_ms(snapshot.mean_latency)} ms "
        f"({_ms(snapshot.graph_min)} to {_ms(snapshot.graph_max)} ms) "
        f"{snapshot.jitter:.1f} ms jitter"
    )

    status = Text()
    if snapshot.is_online:
        status.append(" Online ", style=config.STYLE_ONLINE)
    else:
        status.append(" Offline ", style=config.STYLE_OFFLINE)
    status.append(
        f" {snapshot.online_pct:.1f}% "
        f"({snapshot.online_count}:{snapshot.offline_count}) "
        f"{snapshot.timeout_count} timed out."
    )
    if snapshot.reachable:
        status.append(" Using DNS")

    latency = Text(
        f"Latency: {snapshot.latency_label}",
        style=SEVERITY_STYLES.get(snapshot.severity, ""),
    )
    streak = Text(
        f"Streak: {snapshot.current_online_streak} "
        f"(best {snapshot.max_online_streak})",
        style="dim",
    )

    parts = [Text(), header, Text()]
    chart = build_chart(snapshot, height)
    if chart is not None:
        parts.append(Text(chart))
    parts.extend([Text(), status, latency, streak])
    return Group(*parts)
