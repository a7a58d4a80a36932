"""
Host telemetry queries backed by psutil and the docker CLI.

Each query returns plain dicts/lists in the shape the stats snapshot stores,
or raises ProviderUnavailable. Nothing here touches the shared cache.
"""
import json
import logging
import subprocess
import time

import psutil

from errors import ProviderUnavailable
from utils.subprocess_helper import blocking_call, run as subprocess_run

logger = logging.getLogger(__name__)

DOCKER_TIMEOUT = 5


class TelemetryProvider:
    """Samples CPU, memory, disk, network, containers and uptime."""

    def __init__(self, docker_cmd=('docker', 'ps', '--no-trunc', '--format', '{{json .}}')):
        self._docker_cmd = list(docker_cmd)
        # Previous per-interface counters, used to derive bytes/sec rates
        self._last_net: dict[str, tuple[float, int, int]] = {}
        # First call of cpu_percent(interval=None) always returns 0.0
        psutil.cpu_percent(interval=None, percpu=True)

    def current_load(self) -> dict:
        """Overall and per-core CPU load in percent."""
        try:
            overall = psutil.cpu_percent(interval=None)
            per_core = psutil.cpu_percent(interval=None, percpu=True)
        except (psutil.Error, OSError) as e:
            raise ProviderUnavailable('cpu', str(e)) from e
        return {'currentLoad': overall, 'cpus': list(per_core)}

    def mem(self) -> dict:
        try:
            vm = psutil.virtual_memory()
        except (psutil.Error, OSError) as e:
            raise ProviderUnavailable('memory', str(e)) from e
        return {
            'total': vm.total,
            'used': vm.used,
            'free': vm.free,
            # 'active' is not reported on every platform
            'active': getattr(vm, 'active', None),
        }

    def fs_size(self) -> list[dict]:
        """Usage of every mounted physical filesystem.

        Mount points that cannot be read (permissions, stale network mounts)
        are skipped rather than failing the whole query. Each statvfs runs
        through blocking_call so a hung mount only stalls the disk tier.
        """
        try:
            partitions = blocking_call(psutil.disk_partitions, all=False)
        except (psutil.Error, OSError) as e:
            raise ProviderUnavailable('disk', str(e)) from e

        disks = []
        for part in partitions:
            try:
                usage = blocking_call(psutil.disk_usage, part.mountpoint)
            except OSError as e:
                logger.debug(f"Skipping {part.mountpoint}: {e}")
                continue
            disks.append({
                'fs': part.device,
                'mount': part.mountpoint,
                'size': usage.total,
                'used': usage.used,
                'available': usage.free,
                'use': usage.percent,
            })
        return disks

    def network_stats(self) -> list[dict]:
        """Per-interface cumulative byte counters and rates since the last call.

        Rates are None for an interface the first time it is seen.
        """
        try:
            counters = psutil.net_io_counters(pernic=True)
        except (psutil.Error, OSError) as e:
            raise ProviderUnavailable('network', str(e)) from e

        now = time.monotonic()
        stats = []
        for iface, io in counters.items():
            rx_sec = tx_sec = None
            previous = self._last_net.get(iface)
            if previous is not None:
                elapsed = now - previous[0]
                if elapsed > 0:
                    rx_sec = max(io.bytes_recv - previous[1], 0) / elapsed
                    tx_sec = max(io.bytes_sent - previous[2], 0) / elapsed
            self._last_net[iface] = (now, io.bytes_recv, io.bytes_sent)
            stats.append({
                'iface': iface,
                'rx_sec': rx_sec,
                'tx_sec': tx_sec,
                'rx_bytes': io.bytes_recv,
                'tx_bytes': io.bytes_sent,
            })
        return stats

    def docker_containers(self) -> list[dict]:
        """Running containers as reported by `docker ps`, one dict per container."""
        try:
            result = subprocess_run(
                self._docker_cmd,
                capture_output=True,
                text=True,
                timeout=DOCKER_TIMEOUT
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ProviderUnavailable('docker', str(e)) from e

        if result.returncode != 0:
            raise ProviderUnavailable('docker', result.stderr.strip() or f"exit code {result.returncode}")

        containers = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            try:
                containers.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise ProviderUnavailable('docker', f"unparseable docker output: {e}") from e
        return containers

    def uptime(self) -> int:
        """Seconds since boot."""
        try:
            boot_time = psutil.boot_time()
        except (psutil.Error, OSError) as e:
            raise ProviderUnavailable('uptime', str(e)) from e
        return int(time.time() - boot_time)
