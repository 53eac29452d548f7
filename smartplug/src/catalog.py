"""
TP-Link smart plug metric catalog -- single source of truth.

Defines every metric the poller forwards to Zabbix, where each one comes from
(``kasa emeter`` text output or ``kasa sysinfo`` pseudo-JSON), the value
transform applied to it, and the per-hardware-model tables:

- ``MODEL_EXTENSIONS``: extra sysinfo fields only some models expose.
- ``MODEL_LINE_BUDGET``: number of trailing ``kasa sysinfo`` lines that form
  the parseable payload (everything before is banner text).

Hardware model keys are sanitized identifiers as produced by
:func:`~smartplug.src.extractor.sanitize_model` (``HS110(EU)`` -> ``HS110_EU_``).

Currently supported models:
    - HS110 (EU)
    - KP115 (EU)

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


class MetricSource(Enum):
    """Which ``kasa`` query a metric is read from."""

    ENERGY = "emeter"
    SYSINFO = "sysinfo"


class Transform(Enum):
    """Value rewrite applied after a sysinfo field has been extracted."""

    NONE = "none"
    EMPTY_AS_TOKEN = "empty_as_token"
    INVERT_FLAG = "invert_flag"
    NESTED_TYPE = "nested_type"
    SECONDS_TO_TIMESTAMP = "seconds_to_timestamp"


@dataclass(frozen=True, slots=True)
class MetricDef:
    """Definition of a single metric forwarded to Zabbix.

    Attributes:
        name: Metric identifier. For sysinfo metrics this is also the JSON
            field name; it is the Zabbix item key unless an alias is given.
        source: Query the value is read from.
        energy_label: Line prefix searched in the ``kasa emeter`` output.
            Required for :attr:`MetricSource.ENERGY`, empty otherwise.
        transform: Rewrite applied to the extracted sysinfo value.
        description: Free-text description of the metric.
    """

    name: str
    source: MetricSource = MetricSource.SYSINFO
    energy_label: str = ""
    transform: Transform = Transform.NONE
    description: str = ""

    def __post_init__(self) -> None:  # noqa: D105
        if self.source is MetricSource.ENERGY and not self.energy_label:
            msg = f"Metric '{self.name}': energy metrics need an energy_label"
            raise ValueError(msg)
        if self.source is MetricSource.ENERGY and self.transform is not Transform.NONE:
            msg = f"Metric '{self.name}': transforms only apply to sysinfo metrics"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ExtensionItem:
    """One ``field[:alias]`` token of a model extension entry.

    Attributes:
        field: Sysinfo field name to read.
        alias: Zabbix item key to send the value under, or ``None`` to use
            *field*.
    """

    field: str
    alias: str | None = None

    @property
    def key(self) -> str:
        """Item key the value is sent under."""
        return self.alias or self.field


# ---------------------------------------------------------------------------
# Metric catalog (order is the send order)
# ---------------------------------------------------------------------------

ALL_METRICS: list[MetricDef] = [
    MetricDef("active_mode", description="Active schedule mode"),
    MetricDef("alias", description="User-assigned device name"),
    MetricDef(
        "current_ma",
        source=MetricSource.ENERGY,
        energy_label="Current:",
        description="Instantaneous current (A)",
    ),
    MetricDef("dev_name", description="Device product name"),
    MetricDef("deviceId", description="Device identifier"),
    MetricDef("err_code", description="Last error code reported by the plug"),
    MetricDef("feature", description="Feature flags (e.g. TIM:ENE)"),
    MetricDef("fwId", description="Firmware identifier"),
    MetricDef("hwId", description="Hardware identifier"),
    MetricDef("hw_ver", description="Hardware version"),
    MetricDef(
        "icon_hash",
        transform=Transform.EMPTY_AS_TOKEN,
        description="App icon hash; usually empty",
    ),
    MetricDef("latitude_i", description="Latitude * 10000"),
    MetricDef(
        "led_off",
        transform=Transform.INVERT_FLAG,
        description="LED state, sent inverted so 1 reads as 'LED on'",
    ),
    MetricDef("longitude_i", description="Longitude * 10000"),
    MetricDef("mac", description="MAC address"),
    MetricDef("model", description="Hardware model, e.g. HS110(EU)"),
    MetricDef(
        "next_action",
        transform=Transform.NESTED_TYPE,
        description="Next scheduled action; only its type is sent",
    ),
    MetricDef("oemId", description="OEM identifier"),
    MetricDef(
        "on_time",
        transform=Transform.SECONDS_TO_TIMESTAMP,
        description="Relay on-time, sent as the switch-on timestamp",
    ),
    MetricDef(
        "power_mw",
        source=MetricSource.ENERGY,
        energy_label="Power:",
        description="Instantaneous power (W)",
    ),
    MetricDef("relay_state", description="Relay state (1 = on)"),
    MetricDef("rssi", description="Wi-Fi signal strength (dBm)"),
    MetricDef("sw_ver", description="Firmware version"),
    MetricDef(
        "total_wh",
        source=MetricSource.ENERGY,
        energy_label="Total consumption:",
        description="Cumulative energy (kWh)",
    ),
    MetricDef("type", description="Device type"),
    MetricDef("updating", description="Firmware update in progress flag"),
    MetricDef(
        "voltage_mv",
        source=MetricSource.ENERGY,
        energy_label="Voltage:",
        description="Instantaneous voltage (V)",
    ),
]
"""Metrics common to every supported plug, in send order."""

METRICS_BY_NAME: dict[str, MetricDef] = {m.name: m for m in ALL_METRICS}
"""Lookup dict keyed by metric name."""

ENERGY_METRICS: frozenset[str] = frozenset(
    m.name for m in ALL_METRICS if m.source is MetricSource.ENERGY
)
"""Names of the metrics read from ``kasa emeter``."""


# ---------------------------------------------------------------------------
# Per-model tables
# ---------------------------------------------------------------------------

MODEL_EXTENSIONS: dict[str, str] = {
    "KP115_EU_": "mic_type:type,ntc_state,obd_src,status",
}
"""Extra items per hardware model.

Format: ``"<item>[:<mapped_to>],<item>[:<mapped_to>],..."``. The optional
``:mapped_to`` sends the value of ``item`` under the Zabbix item key
``mapped_to`` (``mic_type:type`` sends ``mic_type`` as ``type``).
"""

MODEL_LINE_BUDGET: dict[str, int] = {
    "HS110_EU_": 23,
    "KP115_EU_": 25,
}
"""Number of trailing ``kasa sysinfo`` lines holding the payload per model."""

_EXTENSION_TOKEN = r"[A-Za-z0-9_]+(?::[A-Za-z0-9_]+)?"
_EXTENSION_PATTERN = re.compile(rf"^{_EXTENSION_TOKEN}(?:,{_EXTENSION_TOKEN})*$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_valid_extension(entry: str) -> bool:
    """Return True if *entry* is one or more comma-separated ``name[:alias]`` tokens."""
    return bool(_EXTENSION_PATTERN.fullmatch(entry))


def parse_extension(entry: str) -> list[ExtensionItem]:
    """Split a model extension entry into :class:`ExtensionItem` tokens.

    Raises:
        ValueError: If *entry* does not match the ``name[:alias],...`` shape.
    """
    if not is_valid_extension(entry):
        raise ValueError(f"malformed extension entry: '{entry}'")
    items: list[ExtensionItem] = []
    for token in entry.split(","):
        field, _, alias = token.partition(":")
        items.append(ExtensionItem(field=field, alias=alias or None))
    return items


def match_model(model: str, table: Mapping[str, _T]) -> str | None:
    """Find the key of *table* that belongs to the hardware *model*.

    An exact key match wins. Otherwise a key that contains *model* is
    accepted, but only when exactly one key does; the fallback is logged.

    Returns:
        The matching key, or ``None`` when there is no (unique) match.
    """
    if not model:
        return None
    if model in table:
        return model

    candidates = [key for key in table if model in key]
    if len(candidates) == 1:
        logger.warning(
            "Hardware model '%s' has no exact entry, using partial match '%s'",
            model,
            candidates[0],
        )
        return candidates[0]
    if len(candidates) > 1:
        logger.warning(
            "Hardware model '%s' is ambiguous, partially matches %s",
            model,
            sorted(candidates),
        )
    return None
