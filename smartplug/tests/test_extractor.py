"""
Tests for the pure extraction helpers.

Verifies hardware model sanitizing, emeter label parsing and rounding,
sysinfo payload slicing and quote normalisation, ``jq -r`` style rendering,
and the per-metric value transforms.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime

import pytest
from smartplug.src.catalog import Transform
from smartplug.src.extractor import (
    apply_transform,
    extract_energy_value,
    extract_model,
    extract_sysinfo_value,
    parse_sysinfo,
    render_value,
    sanitize_model,
)

_NOW = datetime(2026, 10, 16, 12, 0, 0)


class TestSanitizeModel:
    """Hardware model identifiers contain only alphanumerics and underscores."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("'HS110(EU)',", "HS110_EU_"),
            ("HS110(EU)", "HS110_EU_"),
            ("'KP115(EU)',", "KP115_EU_"),
            ("'HS100(US) v2',", "HS100_US__v2"),
        ],
    )
    def test_sanitize(self, raw: str, expected: str) -> None:
        assert sanitize_model(raw) == expected

    def test_extract_model_from_sysinfo(self, hs110_sysinfo: str, kp115_sysinfo: str) -> None:
        assert extract_model(hs110_sysinfo) == "HS110_EU_"
        assert extract_model(kp115_sysinfo) == "KP115_EU_"

    def test_extract_model_missing(self) -> None:
        assert extract_model("== System info ==\n{'alias': 'x'}\n") == ""
        assert extract_model("") == ""


class TestEnergyValue:
    """Emeter lines are found by label, unit stripped, rounded to 2 decimals."""

    def test_voltage_rounded(self, energy_output: str) -> None:
        assert extract_energy_value(energy_output, "Voltage:") == "230.46"

    def test_single_line(self) -> None:
        assert extract_energy_value("Voltage: 230.456 V", "Voltage:") == "230.46"

    def test_current_power_total(self, energy_output: str) -> None:
        assert extract_energy_value(energy_output, "Current:") == "0.12"
        assert extract_energy_value(energy_output, "Power:") == "12.30"
        assert extract_energy_value(energy_output, "Total consumption:") == "1.23"

    def test_label_must_start_line(self) -> None:
        text = "Apparent Power: 99 W\nPower: 5 W\n"
        assert extract_energy_value(text, "Power:") == "5.00"

    def test_missing_line_yields_empty(self) -> None:
        assert extract_energy_value("== Emeter ==\n", "Voltage:") == ""

    def test_non_numeric_yields_empty(self) -> None:
        assert extract_energy_value("Voltage: n/a V\n", "Voltage:") == ""


class TestParseSysinfo:
    """Only the trailing payload lines are parsed, single quotes converted."""

    def test_parses_payload(self, hs110_sysinfo: str) -> None:
        data = parse_sysinfo(hs110_sysinfo, 23)
        assert data is not None
        assert data["alias"] == "Desk lamp"
        assert data["next_action"] == {"type": -1}

    def test_banner_inside_budget_fails(self, hs110_sysinfo: str) -> None:
        assert parse_sysinfo(hs110_sysinfo, 24) is None

    def test_budget_too_small_fails(self, kp115_sysinfo: str) -> None:
        assert parse_sysinfo(kp115_sysinfo, 23) is None

    def test_non_object_payload(self) -> None:
        assert parse_sysinfo("[1, 2]", 1) is None

    def test_empty_output(self) -> None:
        assert parse_sysinfo("", 23) is None


class TestRenderValue:
    """Values render like ``jq -r``."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Desk lamp", "Desk lamp"),
            ("", ""),
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (0, "0"),
            (-52, "-52"),
            (1.5, "1.5"),
            ({"type": -1}, '{"type":-1}'),
        ],
    )
    def test_render(self, value: object, expected: str) -> None:
        assert render_value(value) == expected


class TestTransforms:
    """Metric-specific rewrites of sysinfo values."""

    def test_empty_icon_hash_becomes_token(self) -> None:
        assert apply_transform(Transform.EMPTY_AS_TOKEN, "", now=_NOW) == "empty"

    def test_icon_hash_kept_when_set(self) -> None:
        assert apply_transform(Transform.EMPTY_AS_TOKEN, "a1b2c3", now=_NOW) == "a1b2c3"

    @pytest.mark.parametrize(("raw", "expected"), [(1, "0"), (0, "1"), ("1", "0"), ("0", "1")])
    def test_led_off_inverted(self, raw: object, expected: str) -> None:
        assert apply_transform(Transform.INVERT_FLAG, raw, now=_NOW) == expected

    def test_led_off_other_value_unchanged(self) -> None:
        assert apply_transform(Transform.INVERT_FLAG, 2, now=_NOW) == "2"

    def test_next_action_type(self) -> None:
        raw = {"type": 1, "schd_sec": 25200, "action": 1}
        assert apply_transform(Transform.NESTED_TYPE, raw, now=_NOW) == "1"

    def test_next_action_missing(self) -> None:
        assert apply_transform(Transform.NESTED_TYPE, None, now=_NOW) == "null"
        assert apply_transform(Transform.NESTED_TYPE, {}, now=_NOW) == "null"
        assert apply_transform(Transform.NESTED_TYPE, 5, now=_NOW) == ""

    def test_on_time_one_hour(self) -> None:
        assert (
            apply_transform(Transform.SECONDS_TO_TIMESTAMP, 3600, now=_NOW)
            == "16.10.2026 11:00:00"
        )

    def test_on_time_crosses_midnight(self) -> None:
        now = datetime(2026, 1, 1, 0, 0, 30)
        assert (
            apply_transform(Transform.SECONDS_TO_TIMESTAMP, 60, now=now)
            == "31.12.2025 23:59:30"
        )

    def test_on_time_not_a_number(self) -> None:
        assert apply_transform(Transform.SECONDS_TO_TIMESTAMP, "soon", now=_NOW) == ""
        assert apply_transform(Transform.SECONDS_TO_TIMESTAMP, None, now=_NOW) == ""


class TestExtractSysinfoValue:
    """End-to-end field extraction from raw sysinfo output."""

    def test_plain_field(self, hs110_sysinfo: str) -> None:
        assert extract_sysinfo_value(hs110_sysinfo, "mac", line_budget=23) == "50:C7:BF:00:11:22"

    def test_numeric_field(self, hs110_sysinfo: str) -> None:
        assert extract_sysinfo_value(hs110_sysinfo, "rssi", line_budget=23) == "-52"

    def test_missing_field_is_null(self, hs110_sysinfo: str) -> None:
        assert extract_sysinfo_value(hs110_sysinfo, "mic_type", line_budget=23) == "null"

    def test_transform_applied(self, hs110_sysinfo: str) -> None:
        assert (
            extract_sysinfo_value(
                hs110_sysinfo,
                "icon_hash",
                line_budget=23,
                transform=Transform.EMPTY_AS_TOKEN,
            )
            == "empty"
        )
        assert (
            extract_sysinfo_value(
                hs110_sysinfo,
                "on_time",
                line_budget=23,
                transform=Transform.SECONDS_TO_TIMESTAMP,
                now=_NOW,
            )
            == "16.10.2026 11:00:00"
        )

    def test_unparseable_payload_is_empty(self) -> None:
        assert extract_sysinfo_value("garbage", "alias", line_budget=23) == ""
