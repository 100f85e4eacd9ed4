"""Prometheus metrics for the refresh loop."""

from prometheus_client import Counter, Gauge, Histogram

REFRESH_CYCLES = Counter(
    "outage_monitor_refresh_cycles_total",
    "Refresh cycles by outcome",
    ["outcome"],
)
OUTAGES_SAVED = Counter(
    "outage_monitor_outages_saved_total",
    "Outage records handed to the store",
)
LAST_SUCCESS = Gauge(
    "outage_monitor_last_success_timestamp_seconds",
    "Unix time of the last cycle that reached the store",
)
CYCLE_DURATION = Histogram(
    "outage_monitor_refresh_cycle_seconds",
    "Wall time of one refresh cycle",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600),
)
