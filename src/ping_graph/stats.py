from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional, Tuple

from . import config
from .classifier import classify
from .parser import LatencyEvent, ProbeEvent, TimeoutEvent


@dataclass
class AggregateState:
    latency_sum: float = 0.0
    response_count: int = 0
    timeout_count: int = 0
    offline_count: int = 0
    online_count: int = 0
    current_online_streak: int = 0
    max_online_streak: int = 0
    is_online: bool = False  # nothing seen yet counts as offline
    graph: Deque[float] = field(
        default_factory=lambda: deque(maxlen=config.GRAPH_MAX)
    )
    decimation_counter: int = 0  # a push is only allowed at 0

    def mean_latency(self) -> Optional[float]:
        if self.response_count == 0:
            return None
        return self.latency_sum / self.response_count

    def online_pct(self) -> float:
        classified = self.online_count + self.offline_count
        if classified == 0:
            return 0.0
        return self.online_count / classified * 100.0

    def jitter(self) -> float:
        """Mean absolute difference between neighbouring chart samples.

        0 while fewer than two samples are buffered.
        """
        if len(self.graph) < 2:
            return 0.0
        samples = list(self.graph)
        total = sum(abs(b - a) for a, b in zip(samples, samples[1:]))
        return total / (len(samples) - 1)


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the aggregate after one event, for rendering."""

    mean_latency: Optional[float]
    graph_min: Optional[float]
    graph_max: Optional[float]
    jitter: float
    graph: Tuple[float, ...]
    is_online: bool
    online_pct: float
    online_count: int
    offline_count: int
    timeout_count: int
    response_count: int
    current_online_streak: int
    max_online_streak: int
    reachable: bool
    severity: str
    latency_label: str


class RollingAggregator:
    """Owns the ``AggregateState`` and is the only thing that changes it."""

    def __init__(
        self,
        graph_max: int = config.GRAPH_MAX,
        graph_tick: int = config.GRAPH_TICK,
        max_graph_value: float = config.MAX_GRAPH_VALUE,
    ):
        if graph_max < 1:
            raise ValueError("graph_max must be at least 1")
        if graph_tick < 0:
            raise ValueError("graph_tick must not be negative")
        self.graph_tick = graph_tick
        self.max_graph_value = max_graph_value
        self.state = AggregateState(graph=deque(maxlen=graph_max))

    def apply(self, event: ProbeEvent, reachable: bool) -> Optional[Snapshot]:
        """Fold one event into the state and return the resulting snapshot.

        Unrecognized events leave the state untouched and return None.
        """
        if isinstance(event, LatencyEvent):
            verdict = classify(event, reachable)
            self.state.response_count += 1
            self.state.latency_sum += event.value_ms
            self._push_to_graph(event.value_ms)
            label = f"{event.value_ms}"
        elif isinstance(event, TimeoutEvent):
            verdict = classify(event, reachable)
            self.state.timeout_count += 1
            self._push_to_graph(self.max_graph_value)
            label = "timeout"
        else:
            return None

        self._record_verdict(verdict.is_online)
        return self.snapshot(reachable, verdict.severity, label)

    def _push_to_graph(self, value: float):
        st = self.state
        if st.decimation_counter == 0:
            # deque(maxlen=...) drops the oldest sample when full
            st.graph.append(min(max(value, 0.0), self.max_graph_value))
            st.decimation_counter = self.graph_tick
        else:
            st.decimation_counter -= 1

    def _record_verdict(self, is_online: bool):
        st = self.state
        st.is_online = is_online
        if is_online:
            st.online_count += 1
            st.current_online_streak += 1
            if st.current_online_streak > st.max_online_streak:
                st.max_online_streak = st.current_online_streak
        else:
            st.offline_count += 1
            st.current_online_streak = 0

    def snapshot(self, reachable: bool, severity: str, latency_label: str) -> Snapshot:
        st = self.state
        graph = tuple(st.graph)
        return Snapshot(
            mean_latency=st.mean_latency(),
            graph_min=min(graph) if graph else None,
            graph_max=max(graph) if graph else None,
            jitter=st.jitter(),
            graph=graph,
            is_online=st.is_online,
            online_pct=st.online_pct(),
            online_count=st.online_count,
            offline_count=st.offline_count,
            timeout_count=st.timeout_count,
            response_count=st.response_count,
            current_online_streak=st.current_online_streak,
            max_online_streak=st.max_online_streak,
            reachable=reachable,
            severity=severity,
            latency_label=latency_label,
        )
