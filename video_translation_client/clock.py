import time


def monotonic_ms() -> float:
    """Monotonic clock reading in milliseconds"""
    return time.monotonic() * 1000.0
