from __future__ import annotations

# Graph buffer
GRAPH_MAX = 180  # number of samples kept for the chart
GRAPH_TICK = 0  # eligible samples skipped between two chart pushes
MAX_GRAPH_VALUE = 300.0  # top of the chart, also what a timeout is drawn as

# Chart rendering
GRAPH_HEIGHT = 40
GRAPH_OFFSET = 2
GRAPH_LABEL_FORMAT = "{:8.0f} "

# Latency classification thresholds (ms)
LATENCY_WARN_MS = 100.0
LATENCY_TIMEOUT_MIN_MS = 101.0  # replies slower than this count as offline

# Name resolution check
PROBE_HOSTNAME = "google.com"
PROBE_INTERVAL_SECONDS = 1.0
PROBE_TIMEOUT_SECONDS: float | None = 5.0  # None waits for the resolver

# Input line profile
FORMAT_ENV_VAR = "PING_GRAPH_FORMAT"

# Logging
LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_AGE_DAYS = 90

# Outage detection
CONSECUTIVE_OFFLINE_FOR_OUTAGE = 3

# Status styles
STYLE_ONLINE = "bold white on green"
STYLE_OFFLINE = "bold white on red"
STYLE_OK = "green"
STYLE_WARNING = "yellow"
STYLE_ERROR = "red"
