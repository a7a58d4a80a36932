"""Tests for server config loading and saving."""
import json

import app_state
from utils.server_config import (
    init_server_config,
    load_server_config,
    save_server_config,
    tier_intervals,
)


def test_missing_file_created_with_defaults(tmp_path):
    path = tmp_path / 'config' / 'server_config.local.json'

    config = load_server_config(str(path), environ={})

    assert config == app_state.SERVER_CONFIG_DEFAULTS
    assert json.loads(path.read_text()) == app_state.SERVER_CONFIG_DEFAULTS


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / 'server_config.local.json'
    path.write_text(json.dumps({'cpu_network_interval': 1, 'port': '9090', 'unknown_key': 5}))

    config = load_server_config(str(path), environ={})

    assert config['cpu_network_interval'] == 1.0
    assert isinstance(config['cpu_network_interval'], float)
    assert config['port'] == 9090
    assert 'unknown_key' not in config


def test_invalid_values_are_ignored(tmp_path):
    path = tmp_path / 'server_config.local.json'
    path.write_text(json.dumps({'disk_interval': 'often', 'max_stream_clients': True}))

    config = load_server_config(str(path), environ={})

    assert config['disk_interval'] == app_state.SERVER_CONFIG_DEFAULTS['disk_interval']
    assert config['max_stream_clients'] == app_state.SERVER_CONFIG_DEFAULTS['max_stream_clients']


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / 'server_config.local.json'
    path.write_text('{not json')

    assert load_server_config(str(path), environ={}) == app_state.SERVER_CONFIG_DEFAULTS


def test_env_overrides_host_and_port(tmp_path):
    path = tmp_path / 'server_config.local.json'
    save_server_config(app_state.SERVER_CONFIG_DEFAULTS, str(path))

    config = load_server_config(str(path), environ={'HOST': '0.0.0.0', 'PORT': '5000'})

    assert config['host'] == '0.0.0.0'
    assert config['port'] == 5000


def test_save_reports_failure(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('')
    assert save_server_config({}, str(blocker / 'nested' / 'config.json')) is False


def test_tier_intervals():
    intervals = tier_intervals(app_state.SERVER_CONFIG_DEFAULTS)
    assert intervals == {'cpu/net': 2.0, 'mem': 5.0, 'disk': 30.0, 'docker': 5.0, 'uptime': 60.0}


def test_init_applies_subscriber_limit(tmp_path, registry, monkeypatch):
    monkeypatch.setattr(app_state, 'server_config', None)
    monkeypatch.delenv('HOST', raising=False)
    monkeypatch.delenv('PORT', raising=False)
    path = tmp_path / 'server_config.local.json'
    path.write_text(json.dumps({'max_stream_clients': 3}))

    init_server_config(str(path))

    assert app_state.server_config['max_stream_clients'] == 3
    assert registry.max_clients == 3
    assert app_state.get_config_value('max_stream_clients') == 3
