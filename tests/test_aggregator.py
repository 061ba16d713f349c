import math

import pytest

from ping_graph import classifier, config
from ping_graph.main import LineMonitor
from ping_graph.parser import UNRECOGNIZED, LatencyEvent, TimeoutEvent, get_format
from ping_graph.probe import ReachabilitySignal
from ping_graph.stats import RollingAggregator


def reply(ms):
    return LatencyEvent(value_ms=ms, sequence=1, ttl=64, host="8.8.8.8")


def counters(agg):
    st = agg.state
    return (
        st.latency_sum,
        st.response_count,
        st.timeout_count,
        st.online_count,
        st.offline_count,
        st.current_online_streak,
        st.max_online_streak,
        tuple(st.graph),
        st.decimation_counter,
    )


def test_example_session():
    reachability = ReachabilitySignal()
    reachability.set(True)
    monitor = LineMonitor(get_format("unix"), reachability)
    snapshots = monitor.feed(
        [
            "64 bytes from 8.8.8.8: icmp_seq=1 ttl=64 time=42.0 ms",
            "Request timeout for icmp_seq 2",
            "64 bytes from 8.8.8.8: icmp_seq=3 ttl=64 time=250.0 ms",
        ]
    )
    st = monitor.aggregator.state
    assert st.response_count == 2
    assert st.timeout_count == 1
    assert st.offline_count == 2
    assert st.online_count == 1
    assert st.mean_latency() == pytest.approx(146.0)

    first, second, last = snapshots
    assert first.is_online and first.severity == classifier.OK
    assert first.latency_label == "42.0"
    assert not second.is_online and second.latency_label == "timeout"
    assert not last.is_online and last.severity == classifier.ERROR
    assert last.graph == (42.0, config.MAX_GRAPH_VALUE, 250.0)
    assert last.graph_min == 42.0
    assert last.graph_max == config.MAX_GRAPH_VALUE
    assert last.online_pct == pytest.approx(100 / 3)
    assert last.reachable


def test_timeout_counts_once():
    agg = RollingAggregator()
    snapshot = agg.apply(TimeoutEvent(sequence=5), True)
    assert agg.state.timeout_count == 1
    assert agg.state.offline_count == 1
    assert agg.state.response_count == 0
    assert agg.state.latency_sum == 0
    assert not snapshot.is_online
    assert snapshot.severity == classifier.ERROR
    assert snapshot.mean_latency is None


def test_unrecognized_changes_nothing():
    agg = RollingAggregator(graph_tick=2)
    agg.apply(reply(10), True)
    agg.apply(TimeoutEvent(sequence=2), True)
    before = counters(agg)
    assert agg.apply(UNRECOGNIZED, True) is None
    assert agg.apply(UNRECOGNIZED, False) is None
    assert counters(agg) == before


def test_unrecognized_lines_produce_no_snapshot():
    monitor = LineMonitor(get_format("unix"), ReachabilitySignal())
    assert monitor.handle("PING 8.8.8.8 (8.8.8.8): 56 data bytes") is None
    assert monitor.last_snapshot is None
    assert monitor.aggregator.state.online_count == 0


def test_graph_is_bounded_and_keeps_latest():
    agg = RollingAggregator(graph_tick=0)
    total = config.GRAPH_MAX + 50
    for i in range(total):
        agg.apply(reply(float(i % 250)), True)
    graph = list(agg.state.graph)
    assert len(graph) == config.GRAPH_MAX
    assert graph == [float(i % 250) for i in range(50, total)]


def test_graph_values_are_clamped():
    agg = RollingAggregator(max_graph_value=300.0)
    agg.apply(reply(1200.0), True)
    agg.apply(reply(0.0), True)
    assert list(agg.state.graph) == [300.0, 0.0]
    # the mean still uses the raw value
    assert agg.state.latency_sum == 1200.0


@pytest.mark.parametrize("tick", [0, 1, 3, 7])
def test_decimation(tick):
    agg = RollingAggregator(graph_max=1000, graph_tick=tick)
    for k in range(1, 60):
        if k % 3 == 0:
            agg.apply(TimeoutEvent(sequence=k), True)
        else:
            agg.apply(reply(20.0), True)
        assert len(agg.state.graph) == math.ceil(k / (tick + 1))


def test_decimation_respects_capacity():
    agg = RollingAggregator(graph_max=5, graph_tick=1)
    for i in range(40):
        agg.apply(reply(float(i)), True)
    assert list(agg.state.graph) == [30.0, 32.0, 34.0, 36.0, 38.0]


def test_online_plus_offline_equals_classified_lines():
    reachability = ReachabilitySignal()
    monitor = LineMonitor(get_format("unix"), reachability)
    lines = []
    for i in range(30):
        if i % 4 == 0:
            lines.append(f"Request timeout for icmp_seq {i}")
        elif i % 5 == 0:
            lines.append("garbage line")
        else:
            lines.append(f"64 bytes from 1.1.1.1: icmp_seq={i} ttl=57 time={i * 7}.5 ms")
    classified = 0
    for i, line in enumerate(lines):
        reachability.set(i % 3 != 0)
        if monitor.handle(line) is not None:
            classified += 1
    st = monitor.aggregator.state
    assert classified == 30 - lines.count("garbage line")
    assert st.online_count + st.offline_count == classified


def test_streaks():
    agg = RollingAggregator()
    for _ in range(4):
        agg.apply(reply(10), True)
    assert agg.state.current_online_streak == 4
    agg.apply(reply(10), False)
    assert agg.state.current_online_streak == 0
    assert agg.state.max_online_streak == 4
    for _ in range(2):
        agg.apply(reply(10), True)
    agg.apply(reply(150), True)
    assert agg.state.current_online_streak == 0
    assert agg.state.max_online_streak == 4
    for _ in range(6):
        agg.apply(reply(10), True)
    assert agg.state.max_online_streak == 6


def test_jitter():
    agg = RollingAggregator()
    assert agg.state.jitter() == 0.0
    agg.apply(reply(10), True)
    assert agg.state.jitter() == 0.0
    agg.apply(reply(30), True)
    agg.apply(reply(20), True)
    # |30-10| + |20-30| over two gaps
    assert agg.state.jitter() == pytest.approx(15.0)
    snapshot = agg.apply(TimeoutEvent(sequence=4), True)
    assert snapshot.jitter == pytest.approx((20 + 10 + 280) / 3)


def test_snapshot_is_detached_from_state():
    agg = RollingAggregator()
    snapshot = agg.apply(reply(10), True)
    agg.apply(reply(20), True)
    assert snapshot.graph == (10.0,)
    with pytest.raises(AttributeError):
        snapshot.is_online = False  # type: ignore[misc]


def test_invalid_settings():
    with pytest.raises(ValueError):
        RollingAggregator(graph_max=0)
    with pytest.raises(ValueError):
        RollingAggregator(graph_tick=-1)
