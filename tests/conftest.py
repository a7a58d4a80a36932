"""Shared fixtures: a scripted telemetry provider and isolated app state."""
import threading
import time

import pytest

import app_state
from errors import ProviderUnavailable
from sse_registry import SubscriberRegistry
from stats_cache import StatsCache

CPU = {'currentLoad': 42, 'cpus': [10, 20]}
NETWORK = [{'iface': 'eth0', 'rx_sec': 100, 'tx_sec': 50, 'rx_bytes': 1000, 'tx_bytes': 500}]
MEMORY = {'total': 8000, 'used': 3000, 'free': 5000, 'active': 2000}
DISK = [{'fs': '/dev/sda1', 'mount': '/', 'size': 100, 'used': 40, 'available': 60, 'use': 40.0}]
DOCKER = [{'ID': 'abc123', 'Names': 'web', 'State': 'running'}]
UPTIME = 3600


class FakeProvider:
    """Telemetry provider returning canned values.

    Set `failing` to a set of method names that should raise, `gates` to
    {method name: threading.Event} to block a call until the event is set,
    and `delays` to {method name: seconds} to slow a call down.
    """

    def __init__(self):
        self.values = {
            'current_load': CPU,
            'network_stats': NETWORK,
            'mem': MEMORY,
            'fs_size': DISK,
            'docker_containers': DOCKER,
            'uptime': UPTIME,
        }
        self.failing = set()
        self.gates = {}
        self.delays = {}
        self.calls = {name: 0 for name in self.values}
        self.entered = {name: threading.Event() for name in self.values}
        self._lock = threading.Lock()

    def _call(self, name):
        with self._lock:
            self.calls[name] += 1
        self.entered[name].set()
        gate = self.gates.get(name)
        if gate is not None:
            gate.wait(timeout=5)
        if name in self.delays:
            time.sleep(self.delays[name])
        if name in self.failing:
            raise ProviderUnavailable(name, f"{name} is unavailable")
        return self.values[name]

    def current_load(self):
        return self._call('current_load')

    def network_stats(self):
        return self._call('network_stats')

    def mem(self):
        return self._call('mem')

    def fs_size(self):
        return self._call('fs_size')

    def docker_containers(self):
        return self._call('docker_containers')

    def uptime(self):
        return self._call('uptime')


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def cache(monkeypatch):
    """A fresh StatsCache installed as app_state.stats_cache."""
    fresh = StatsCache()
    monkeypatch.setattr(app_state, 'stats_cache', fresh)
    return fresh


@pytest.fixture
def registry(monkeypatch):
    """A fresh SubscriberRegistry installed as app_state.sse_clients."""
    fresh = SubscriberRegistry(max_clients=10)
    monkeypatch.setattr(app_state, 'sse_clients', fresh)
    return fresh


@pytest.fixture
def app(cache, registry, provider, monkeypatch):
    from app_factory import create_app

    monkeypatch.setattr(app_state, 'server_config', None)
    monkeypatch.setattr(app_state, 'scheduler', None)
    flask_app, _ = create_app(provider=provider)
    flask_app.config['TESTING'] = True
    yield flask_app
    app_state.scheduler.stop()


@pytest.fixture
def client(app):
    return app.test_client()
