"""A single periodically refreshed group of stats fields."""
import copy
import logging
import threading
import time

logger = logging.getLogger(__name__)


class RefreshTier:
    """One refresh task with its own period and in-flight guard.

    `fetch` is called with no arguments and returns a dict of cache fields to
    write. While a tick is still running, further ticks of the same tier are
    skipped, not queued.
    """

    def __init__(
        self,
        name,
        period,
        fetch,
        cache,
        guarded=True,
        heartbeat=False,
        on_heartbeat=None,
        fallback=None,
    ):
        """
        Args:
            name: Label used in log messages, e.g. 'cpu/net'
            period: Seconds between ticks
            fetch: Callable returning {field: value} for the cache
            cache: StatsCache to write into
            guarded: Skip a tick while the previous one is still running
            heartbeat: Stamp 'timestamp' with each write and call on_heartbeat
            on_heartbeat: Callback run after a successful heartbeat write
            fallback: Fields written instead when fetch fails (None keeps stale values)
        """
        self.name = name
        self.period = period
        self._fetch = fetch
        self._cache = cache
        self.guarded = guarded
        self.heartbeat = heartbeat
        self._on_heartbeat = on_heartbeat
        self._fallback = fallback

        self._running = False
        self._flag_lock = threading.Lock()
        self.ticks = 0
        self.skipped = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._running

    def _try_begin(self) -> bool:
        with self._flag_lock:
            if self.guarded and self._running:
                return False
            self._running = True
            return True

    def tick(self) -> bool:
        """Run one refresh; return False if it was skipped."""
        if not self._try_begin():
            self.skipped += 1
            logger.debug(f"Skipping {self.name} refresh, previous run still in flight")
            return False

        self.ticks += 1
        try:
            fields = self._fetch()
            if self.heartbeat:
                fields['timestamp'] = int(time.time() * 1000)
            self._cache.update(**fields)
            if self.heartbeat and self._on_heartbeat is not None:
                self._on_heartbeat()
        except Exception as e:
            self.failures += 1
            logger.error(f"Stats error ({self.name}): {e}")
            if self._fallback is not None:
                self._cache.update(**copy.deepcopy(self._fallback))
        finally:
            self._running = False
        return True
