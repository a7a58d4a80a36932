"""
Tiered stats refresh scheduling.

Five tiers keep the shared StatsCache fresh, each on its own period:

    cpu/net   2s   CPU load + network counters (heartbeat, broadcasts)
    mem       5s   memory
    disk     30s   filesystem usage
    docker    5s   container list (empty list on failure)
    uptime   60s   uptime (no in-flight guard)

Only the cpu/net tier stamps 'timestamp' and pushes the cache to SSE
subscribers. The other tiers update the cache silently; subscribers see their
data with the next heartbeat.
"""
import logging
import threading
import time

from .refresh_tier import RefreshTier

logger = logging.getLogger(__name__)

MEMORY_KEYS = ('total', 'used', 'free', 'active')
DISK_KEYS = ('fs', 'mount', 'size', 'used', 'available', 'use')
NETWORK_KEYS = ('iface', 'rx_sec', 'tx_sec', 'rx_bytes', 'tx_bytes')


def shape_cpu(cpu):
    return {'currentLoad': cpu['currentLoad'], 'cpus': list(cpu['cpus'])}


def shape_memory(mem):
    return {key: mem.get(key) for key in MEMORY_KEYS}


def shape_disk(disks):
    return [{key: d.get(key) for key in DISK_KEYS} for d in disks]


def shape_network(interfaces):
    return [{key: n.get(key) for key in NETWORK_KEYS} for n in interfaces]


def _thread_spawn(target):
    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread


class StatsScheduler:
    """Owns the refresh tiers and their timer loops."""

    def __init__(self, provider, cache, on_broadcast=None, intervals=None):
        """
        Args:
            provider: Telemetry source (see telemetry_provider.TelemetryProvider)
            cache: StatsCache written by the tiers
            on_broadcast: Called after every successful cpu/net refresh
            intervals: Optional {tier name: seconds} overriding the defaults
        """
        self._provider = provider
        self._cache = cache
        self._on_broadcast = on_broadcast
        self._stop_event = threading.Event()
        self._started = False
        self._loops = []

        periods = {
            'cpu/net': 2.0,
            'mem': 5.0,
            'disk': 30.0,
            'docker': 5.0,
            'uptime': 60.0,
        }
        periods.update(intervals or {})

        self.tiers = {
            'cpu/net': RefreshTier(
                'cpu/net', periods['cpu/net'], self._fetch_cpu_network, cache,
                heartbeat=True, on_heartbeat=self._broadcast,
            ),
            'mem': RefreshTier('mem', periods['mem'], self._fetch_memory, cache),
            'disk': RefreshTier('disk', periods['disk'], self._fetch_disk, cache),
            'docker': RefreshTier(
                'docker', periods['docker'], self._fetch_docker, cache,
                fallback={'docker': []},
            ),
            'uptime': RefreshTier(
                'uptime', periods['uptime'], self._fetch_uptime, cache,
                guarded=False,
            ),
        }

    @property
    def is_running(self) -> bool:
        return self._started and not self._stop_event.is_set()

    def _broadcast(self):
        if self._on_broadcast is not None:
            self._on_broadcast()

    def _fetch_cpu(self):
        return {'cpu': shape_cpu(self._provider.current_load())}

    def _fetch_network(self):
        return {'network': shape_network(self._provider.network_stats())}

    def _fetch_cpu_network(self):
        fields = self._fetch_cpu()
        fields.update(self._fetch_network())
        return fields

    def _fetch_memory(self):
        return {'memory': shape_memory(self._provider.mem())}

    def _fetch_disk(self):
        return {'disk': shape_disk(self._provider.fs_size())}

    def _fetch_docker(self):
        return {'docker': list(self._provider.docker_containers())}

    def _fetch_uptime(self):
        return {'uptime': self._provider.uptime()}

    def initial_fetch(self):
        """Populate every category once, before the first timer tick.

        Each category is fetched independently; a failure is logged and the
        remaining categories are still fetched. 'timestamp' is stamped only
        when both cpu and network were fetched.
        """
        fetches = [
            ('cpu', self._fetch_cpu),
            ('network', self._fetch_network),
            ('mem', self._fetch_memory),
            ('disk', self._fetch_disk),
            ('uptime', self._fetch_uptime),
        ]
        fetched = set()
        for category, fetch in fetches:
            try:
                self._cache.update(**fetch())
                fetched.add(category)
            except Exception as e:
                logger.error(f"Initial stats fetch error ({category}): {e}")

        if {'cpu', 'network'} <= fetched:
            self._cache.update(timestamp=int(time.time() * 1000))

        try:
            self._cache.update(**self._fetch_docker())
        except Exception as e:
            logger.info(f"Docker unavailable, reporting no containers: {e}")
            self._cache.update(docker=[])

    def start(self, spawn=None):
        """Start one timer loop per tier.

        Args:
            spawn: Callable(target) that runs target concurrently, e.g.
                socketio.start_background_task. Defaults to a daemon thread.
        """
        if self.is_running:
            return
        spawn = spawn or _thread_spawn
        self._stop_event.clear()
        self._started = True
        for tier in self.tiers.values():
            self._loops.append(spawn(lambda tier=tier: self._timer_loop(tier, spawn)))
            logger.info(f"Started {tier.name} refresh every {tier.period}s")

    def stop(self):
        """Stop all timer loops. Refreshes already in flight are left to finish."""
        self._stop_event.set()
        self._loops = []
        logger.info("Stats scheduler stopped")

    def _timer_loop(self, tier, spawn):
        # First tick fires one period after start. Ticks are spawned, so a slow
        # refresh never delays the timer; the in-flight guard drops the overlap.
        while not self._stop_event.wait(tier.period):
            spawn(tier.tick)
