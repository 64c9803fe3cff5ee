"""
CPU Throttle — voluntary pause between chunks when the machine is busy.

Chunk workers call pause_if_busy() after each chunk. System CPU usage is
sampled with psutil at most once per check interval; above the limit the
calling worker sleeps for a time proportional to the excess.
"""

import time
import logging
import threading

import psutil

logger = logging.getLogger(__name__)

MAX_SLEEP_SEC = 2.0


class CPUThrottle:

    def __init__(self, max_percent: int = 70, check_interval: float = 2.0):
        self.max_percent = max_percent
        self.check_interval = check_interval
        self._last_check = float("-inf")
        self._throttle_count = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "CPUThrottle":
        return cls(
            max_percent=getattr(config, "max_cpu_percent", 70),
            check_interval=getattr(config, "throttle_check_interval", 2.0),
        )

    @property
    def enabled(self) -> bool:
        return 0 < self.max_percent < 100

    def pause_if_busy(self) -> float:
        """
        Sleep if CPU usage is above the limit.

        Returns:
            Seconds slept (0.0 when within budget or not yet due for a check).
        """
        if not self.enabled:
            return 0.0

        # Only one worker samples per interval; the rest return immediately
        with self._lock:
            now = time.monotonic()
            if now - self._last_check < self.check_interval:
                return 0.0
            self._last_check = now

        usage = psutil.cpu_percent(interval=0.1)
        if usage <= self.max_percent:
            return 0.0

        sleep_time = min(MAX_SLEEP_SEC, (usage - self.max_percent) / 100.0 + 0.3)
        with self._lock:
            self._throttle_count += 1
            count = self._throttle_count

        if count <= 3 or count % 10 == 0:
            logger.debug(
                f"CPU at {usage:.0f}% (limit: {self.max_percent}%), "
                f"sleeping {sleep_time:.1f}s (throttle #{count})"
            )
        time.sleep(sleep_time)
        return sleep_time

    @property
    def total_throttles(self) -> int:
        return self._throttle_count
