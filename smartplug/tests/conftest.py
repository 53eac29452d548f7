"""
Shared test fixtures for the smart plug poller tests.

Provides recorded-style ``kasa`` outputs for an HS110(EU) and a KP115(EU),
fake ``kasa``/``zabbix_sender`` collaborators that record every call, and
environment variable fixtures for PlugSettings. All poller env vars are
cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pathlib import Path

import pytest
from smartplug.src.catalog import MetricSource
from smartplug.src.models import MetricSample

# All PlugSettings environment variable names, used for cleanup.
_ALL_PLUG_ENV_VARS = (
    "SMARTPLUG_HOST",
    "ZBX_SERVER",
    "ZBX_HOST",
    "VERBOSE",
    "KASA_BIN",
    "SENDER_BIN",
    "ITEM_NAMESPACE",
)

# 2 banner lines + 23 payload lines
HS110_SYSINFO = """\
== Desk lamp - HS110(EU) ==
== System info ==
{'active_mode': 'schedule',
 'alias': 'Desk lamp',
 'dev_name': 'Smart Wi-Fi Plug With Energy Monitoring',
 'deviceId': '8006ABCDEF0123456789ABCDEF0123456789ABCD',
 'err_code': 0,
 'feature': 'TIM:ENE',
 'fwId': '00000000000000000000000000000000',
 'hwId': '0123456789ABCDEF0123456789ABCDEF',
 'hw_ver': '2.0',
 'icon_hash': '',
 'latitude_i': 480000,
 'led_off': 0,
 'longitude_i': 115000,
 'mac': '50:C7:BF:00:11:22',
 'model': 'HS110(EU)',
 'next_action': {'type': -1},
 'oemId': '0123456789ABCDEF0123456789ABCDEF',
 'on_time': 3600,
 'relay_state': 1,
 'rssi': -52,
 'sw_ver': '1.5.4 Build 180815 Rel.121440',
 'type': 'IOT.SMARTPLUGSWITCH',
 'updating': 0}
"""

# 2 banner lines + 25 payload lines
KP115_SYSINFO = """\
== Coffee machine - KP115(EU) ==
== System info ==
{'active_mode': 'none',
 'alias': 'Coffee machine',
 'dev_name': 'Smart Wi-Fi Plug Mini',
 'deviceId': '80061234567890ABCDEF1234567890ABCDEF1234',
 'err_code': 0,
 'feature': 'TIM:ENE',
 'fwId': '00000000000000000000000000000000',
 'hwId': 'ABCDEF0123456789ABCDEF0123456789',
 'hw_ver': '1.0',
 'icon_hash': 'a1b2c3',
 'led_off': 1,
 'mac': '1C:3B:F3:AA:BB:CC',
 'mic_type': 'IOT.SMARTPLUGSWITCH',
 'model': 'KP115(EU)',
 'next_action': {'type': 1, 'schd_sec': 25200, 'action': 1},
 'ntc_state': 0,
 'obd_src': 'tplink',
 'oemId': 'ABCDEF0123456789ABCDEF0123456789',
 'on_time': 120,
 'relay_state': 1,
 'rssi': -61,
 'status': 'new',
 'sw_ver': '1.0.16 Build 210205 Rel.163735',
 'type': 'IOT.SMARTPLUGSWITCH',
 'updating': 0}
"""

ENERGY_OUTPUT = """\
== Emeter ==
Current: 0.123 A
Voltage: 230.456 V
Power: 12.3 W
Total consumption: 1.234 kWh
Today: 0.012 kWh
This month: 0.456 kWh
"""


class FakeKasa:
    """Stand-in for :class:`~smartplug.src.device.KasaClient` recording queries."""

    def __init__(self, sysinfo: str, energy: str = ENERGY_OUTPUT, binary: str = "kasa") -> None:
        self.binary = binary
        self.outputs = {MetricSource.SYSINFO: sysinfo, MetricSource.ENERGY: energy}
        self.calls: list[tuple[str, MetricSource]] = []

    def query(self, host: str, source: MetricSource) -> str:
        self.calls.append((host, source))
        return self.outputs[source]

    def count(self, source: MetricSource) -> int:
        return sum(1 for _, s in self.calls if s is source)


class FakeSender:
    """Stand-in for :class:`~smartplug.src.sender.ZabbixSender` recording samples."""

    def __init__(self, failing_keys: set[str] | None = None) -> None:
        self.failing_keys = failing_keys or set()
        self.sent: list[tuple[MetricSample, str, str]] = []

    def send(self, sample: MetricSample, *, zabbix_server: str, zabbix_host: str) -> bool:
        self.sent.append((sample, zabbix_server, zabbix_host))
        return sample.key not in self.failing_keys

    def values(self) -> dict[str, str]:
        return {sample.key: sample.value for sample, _, _ in self.sent}


@pytest.fixture(autouse=True)
def _clean_plug_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove all poller env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_PLUG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def hs110_kasa() -> FakeKasa:
    """Fake kasa CLI answering like an HS110(EU)."""
    return FakeKasa(HS110_SYSINFO)


@pytest.fixture()
def kp115_kasa() -> FakeKasa:
    """Fake kasa CLI answering like a KP115(EU)."""
    return FakeKasa(KP115_SYSINFO)


@pytest.fixture()
def sender() -> FakeSender:
    """Fake zabbix_sender that accepts every sample."""
    return FakeSender()


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required and optional environment variables for PlugSettings."""
    env = {
        "SMARTPLUG_HOST": "192.168.1.50",
        "ZBX_SERVER": "zabbix.example.com",
        "ZBX_HOST": "plug-desk",
        "VERBOSE": "1",
        "KASA_BIN": "/opt/kasa/bin/kasa",
        "SENDER_BIN": "/usr/bin/zabbix_sender",
        "ITEM_NAMESPACE": "tplink_smartplug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables (no optional ones)."""
    env = {
        "SMARTPLUG_HOST": "10.0.0.20",
        "ZBX_SERVER": "10.0.0.2",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def make_kasa() -> type[FakeKasa]:
    """Factory for fake kasa CLIs with custom outputs."""
    return FakeKasa


@pytest.fixture()
def make_sender() -> type[FakeSender]:
    """Factory for fake senders, e.g. with failing item keys."""
    return FakeSender


@pytest.fixture()
def hs110_sysinfo() -> str:
    """Raw ``kasa sysinfo`` output of an HS110(EU)."""
    return HS110_SYSINFO


@pytest.fixture()
def kp115_sysinfo() -> str:
    """Raw ``kasa sysinfo`` output of a KP115(EU)."""
    return KP115_SYSINFO


@pytest.fixture()
def energy_output() -> str:
    """Raw ``kasa emeter`` output."""
    return ENERGY_OUTPUT
