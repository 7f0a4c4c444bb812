"""
Metrics tracking for Volna Bot
"""
from typing import Dict

# --- Metrics ---
_DEFAULTS = {
    "queue_add": 0,
    "session_start": 0,
    "session_end": 0,
    "playback_start": 0,
    "playback_finish": 0,
    "playback_error": 0,
    "stream_open_fail": 0,
    "metadata_fetch_fail": 0,
    "voice_connect_fail": 0,
    "voice_disconnect": 0,
    "skip": 0,
    # Gauges
    "active_sessions": 0,
}
_METRICS = dict(_DEFAULTS)

def metric_inc(name: str, delta: int = 1):
    """Increment a metric by delta."""
    _METRICS[name] = _METRICS.get(name, 0) + delta

def gauge_set(name: str, value):
    """Set a simple gauge value."""
    _METRICS[name] = value

def metrics_snapshot() -> Dict[str, int]:
    """Get a snapshot of current metrics."""
    return dict(_METRICS)

def reset_metrics():
    _METRICS.clear()
    _METRICS.update(_DEFAULTS)
