"""Wall-clock helpers. Timestamps are integer milliseconds since the Unix epoch."""

import time

MS_PER_HOUR = 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)
