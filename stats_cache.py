"""
In-memory cache holding the latest sample of every stats category.

Each refresh tier owns a disjoint set of fields and writes them in one burst
under the cache lock, so readers never see half of a tier's update (e.g. new
'cpu' next to old 'network').
"""
import copy
import threading
from contextlib import contextmanager

STATS_FIELDS = ('cpu', 'memory', 'disk', 'network', 'docker', 'uptime', 'timestamp')


class StatsCache:
    """Latest-known-good stats, shared between the collectors and the API."""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats = {field: None for field in STATS_FIELDS}

    @contextmanager
    def write(self):
        """Hold the cache lock and yield the live stats dict for a write burst."""
        with self._lock:
            yield self._stats

    def update(self, **fields):
        """Replace several fields atomically.

        Raises:
            KeyError: if a field name is not part of the snapshot.
        """
        unknown = set(fields) - set(STATS_FIELDS)
        if unknown:
            raise KeyError(f"Unknown stats field(s): {', '.join(sorted(unknown))}")
        with self.write() as stats:
            stats.update(fields)

    def get(self, field):
        with self._lock:
            return copy.deepcopy(self._stats[field])

    def snapshot(self) -> dict:
        """Return a point-in-time copy of every field."""
        with self._lock:
            return copy.deepcopy(self._stats)
