# Wall-clock helpers for request and upstream latency.
import time
from contextlib import contextmanager

def elapsed_ms(start: float) -> int:
    """Milliseconds since a time.perf_counter() reading."""
    return int((time.perf_counter() - start) * 1000)

@contextmanager
def timer():
    start = time.perf_counter()
    yield lambda: elapsed_ms(start)
