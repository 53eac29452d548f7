"""
Pure extraction helpers that turn raw ``kasa`` output into item values.

Two kinds of input are handled:

- ``kasa emeter`` prints human-readable lines such as ``Voltage: 230.456 V``.
  The value is found by its label, the unit symbol is dropped and the number
  is re-rendered with two decimals.
- ``kasa sysinfo`` prints a banner followed by a single-quoted Python dict.
  Only the trailing lines (per hardware model) are kept, quotes are swapped
  to turn it into JSON, and fields are rendered the way ``jq -r`` would.

Nothing here performs I/O. The current time used for ``on_time`` is passed
in by the caller.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any

from smartplug.src.catalog import Transform

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TIMESTAMP_FORMAT: str = "%d.%m.%Y %H:%M:%S"
"""Rendering of ``on_time`` once converted to an absolute timestamp."""

EMPTY_TOKEN: str = "empty"
"""Sent instead of an empty icon hash, which Zabbix marks unsupported."""

_UNIT_SUFFIX = re.compile(r"\s(?:A|V|W|kWh)")
_MODEL_LINE = re.compile(r"^\s*\{?\s*'model':\s*(\S+)")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


# ---------------------------------------------------------------------------
# Hardware model
# ---------------------------------------------------------------------------


def sanitize_model(raw: str) -> str:
    """Turn a raw sysinfo model value into a hardware model identifier.

    Drops the trailing comma and all quote characters, then replaces every
    non-alphanumeric character with an underscore.

    Example:
        ``'HS110(EU)',`` -> ``HS110_EU_``
    """
    cleaned = raw.strip().rstrip(",").replace("'", "").replace('"', "")
    return _NON_ALNUM.sub("_", cleaned)


def extract_model(sysinfo_text: str) -> str:
    """Return the sanitized hardware model from raw ``kasa sysinfo`` output.

    Returns:
        The identifier (e.g. ``KP115_EU_``), or ``""`` if no model line exists.
    """
    for line in sysinfo_text.splitlines():
        match = _MODEL_LINE.match(line)
        if match:
            return sanitize_model(match.group(1))
    return ""


# ---------------------------------------------------------------------------
# Energy meter
# ---------------------------------------------------------------------------


def extract_energy_value(energy_text: str, label: str) -> str:
    """Extract one reading from ``kasa emeter`` output.

    Args:
        energy_text: Raw command output.
        label: Line prefix to search, e.g. ``"Voltage:"``.

    Returns:
        The value rounded to two decimals (``"230.46"``), or ``""`` when the
        line is missing or not numeric.
    """
    for line in energy_text.splitlines():
        if not line.startswith(label):
            continue
        number = _UNIT_SUFFIX.sub("", line[len(label) :], count=1).strip()
        try:
            return f"{float(number):.2f}"
        except ValueError:
            logger.warning("Energy reading '%s' is not numeric: %r", label, number)
            return ""

    logger.warning("Energy reading '%s' not found in emeter output", label)
    return ""


# ---------------------------------------------------------------------------
# System info
# ---------------------------------------------------------------------------


def parse_sysinfo(sysinfo_text: str, line_budget: int) -> dict[str, Any] | None:
    """Parse the pseudo-JSON payload at the end of ``kasa sysinfo`` output.

    Args:
        sysinfo_text: Raw command output.
        line_budget: Number of trailing lines that make up the payload.

    Returns:
        The payload dict, or ``None`` if it is not valid JSON after quote
        normalisation.
    """
    lines = sysinfo_text.splitlines()[-line_budget:] if line_budget > 0 else []
    payload = "\n".join(lines).replace("'", '"')
    try:
        data = json.loads(payload)
    except ValueError:
        logger.warning(
            "sysinfo payload (last %d lines) is not valid JSON", line_budget
        )
        return None
    if not isinstance(data, dict):
        logger.warning("sysinfo payload is a %s, expected an object", type(data).__name__)
        return None
    return data


def render_value(value: Any) -> str:
    """Render a JSON value as ``jq -r`` prints it."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, separators=(",", ":"))


def apply_transform(transform: Transform, raw: Any, *, now: datetime) -> str:
    """Render *raw* and apply the metric-specific rewrite.

    Args:
        transform: Rewrite to apply.
        raw: Field value as parsed from the sysinfo payload.
        now: Reference time for :attr:`Transform.SECONDS_TO_TIMESTAMP`.
    """
    if transform is Transform.NESTED_TYPE:
        if isinstance(raw, dict):
            return render_value(raw.get("type"))
        return "null" if raw is None else ""

    if transform is Transform.SECONDS_TO_TIMESTAMP:
        try:
            seconds = int(raw)
        except (TypeError, ValueError):
            logger.warning("on_time value %r is not a number of seconds", raw)
            return ""
        return (now - timedelta(seconds=seconds)).strftime(TIMESTAMP_FORMAT)

    value = render_value(raw)
    if transform is Transform.EMPTY_AS_TOKEN:
        return value or EMPTY_TOKEN
    if transform is Transform.INVERT_FLAG:
        return {"0": "1", "1": "0"}.get(value, value)
    return value


def extract_sysinfo_value(
    sysinfo_text: str,
    field: str,
    *,
    line_budget: int,
    transform: Transform = Transform.NONE,
    now: datetime | None = None,
) -> str:
    """Extract and transform one field from raw ``kasa sysinfo`` output.

    Returns:
        The rendered value; ``"null"`` for a missing field and ``""`` when
        the payload cannot be parsed.
    """
    data = parse_sysinfo(sysinfo_text, line_budget)
    if data is None:
        return ""
    return apply_transform(
        transform,
        data.get(field),
        now=now if now is not None else datetime.now(),
    )
