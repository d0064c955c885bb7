"""Tests for session configuration persistence and validation."""

import json

import pytest

from polyfield.session_config import (
    CONNECTION_NETWORK, CONNECTION_SERIAL, DEFAULT_TCP_PORT, DeviceConnection, SessionConfig,
    get_default_config, save_default_config
)


def test_defaults():
    config = SessionConfig()
    assert config.server_url == "http://127.0.0.1:8080"
    assert config.request_timeout_s == 30.0
    assert config.demo_mode is True
    assert config.heatmap_grid_size == 1.0
    assert config.device("edm").ip == "192.168.1.100"
    assert config.device("scoreboard").ip == "192.168.1.101"
    assert config.device("wind").ip == "192.168.1.102"
    assert config.device("edm").tcp_port == DEFAULT_TCP_PORT
    assert config.validate() == []


def test_save_load_round_trip(tmp_path):
    config = SessionConfig(server_url="http://10.0.0.5:9000", request_timeout_s=12.5,
                           demo_mode=False, last_event_type="Horizontal Jumps", heatmap_grid_size=2.0)
    config.device("edm").connection_type = CONNECTION_NETWORK
    config.device("edm").tcp_port = 4001
    config.device("wind").port = "/dev/ttyUSB1"

    path = tmp_path / "session.json"
    config.save(path)
    loaded = SessionConfig.load(path)

    assert loaded.to_dict() == config.to_dict()
    assert loaded.device("edm").connection_type == CONNECTION_NETWORK
    assert loaded.device("wind").port == "/dev/ttyUSB1"


def test_connected_flag_is_never_saved(tmp_path):
    config = SessionConfig()
    config.device("edm").connected = True
    path = tmp_path / "session.json"
    config.save(path)

    assert "connected" not in json.loads(path.read_text())["devices"]["edm"]
    assert SessionConfig.load(path).device("edm").connected is False


def test_disconnect_all():
    config = SessionConfig()
    for conn in config.devices.values():
        conn.connected = True
    config.disconnect_all()
    assert not any(conn.connected for conn in config.devices.values())


def test_unknown_device_gets_defaults():
    config = SessionConfig()
    conn = config.device("photo_finish")
    assert conn.connection_type == CONNECTION_SERIAL
    assert conn.ip == ""


@pytest.mark.parametrize("changes, fragment", [
    ({"server_url": "ftp://host"}, "Server URL"),
    ({"server_url": "localhost:8080"}, "Server URL"),
    ({"request_timeout_s": 0}, "timeout"),
    ({"last_event_type": "Relays"}, "event type"),
    ({"heatmap_grid_size": 3.0}, "Grid size"),
])
def test_validate_flags_bad_values(changes, fragment):
    config = SessionConfig(**changes)
    issues = config.validate()
    assert any(fragment in issue for issue in issues)


def test_validate_network_devices():
    config = SessionConfig()
    config.devices["edm"] = DeviceConnection(connection_type=CONNECTION_NETWORK, ip="", tcp_port=70000)
    config.devices["wind"] = DeviceConnection(connection_type="bluetooth")
    issues = config.validate()
    assert "edm: network connection needs an IP address" in issues
    assert any(issue.startswith("edm: TCP port") for issue in issues)
    assert any(issue.startswith("wind: unknown connection type") for issue in issues)


def test_default_config_falls_back_on_corrupt_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json")
    assert get_default_config(path).to_dict() == SessionConfig().to_dict()


def test_default_config_missing_file(tmp_path):
    assert get_default_config(tmp_path / "missing.json").demo_mode is True


def test_save_default_config_creates_directory(tmp_path):
    path = tmp_path / "nested" / "session.json"
    save_default_config(SessionConfig(demo_mode=False), path)
    assert get_default_config(path).demo_mode is False
