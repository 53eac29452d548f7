"""
Metric extraction and dispatch engine.

Ties the catalog, the ``kasa`` client, the extraction helpers and the Zabbix
sender together for one poll run:

1. :func:`initialize` -- pre-flight gate. Checks the device CLI is
   installed, determines the hardware model with one (cached) sysinfo query,
   resolves the model's sysinfo line budget and validates every model
   extension entry. Raises :class:`InitializationError` on failure.
2. :func:`gather_value` -- extracts one metric and forwards it with one
   zabbix_sender call. Returns a :class:`GatherResult` code, never raises for
   per-metric problems.
3. :func:`run_catalog` / :func:`run_extensions` -- attempt every catalog
   metric, then every extension metric of the model, recording each result in
   a :class:`~smartplug.src.models.RunReport`. There is no early exit.

The two plug queries are cached on the :class:`RunContext`, so one run issues
at most one ``emeter`` and one ``sysinfo`` query.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from smartplug.src.catalog import (
    ALL_METRICS,
    METRICS_BY_NAME,
    MODEL_EXTENSIONS,
    MODEL_LINE_BUDGET,
    ExtensionItem,
    MetricDef,
    MetricSource,
    is_valid_extension,
    match_model,
    parse_extension,
)
from smartplug.src.device import QueryCache
from smartplug.src.extractor import (
    extract_energy_value,
    extract_model,
    extract_sysinfo_value,
)
from smartplug.src.models import MetricSample, RunReport

if TYPE_CHECKING:
    from smartplug.src.device import KasaClient
    from smartplug.src.sender import ZabbixSender

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE: str = "tplink_smartplug"


# ---------------------------------------------------------------------------
# Result codes
# ---------------------------------------------------------------------------


class InitError(IntEnum):
    """Reasons :func:`initialize` can fail."""

    MISSING_BINARY = 1
    UNKNOWN_MODEL = 2
    NO_LINE_BUDGET = 3
    MALFORMED_EXTENSION = 4


class GatherResult(IntEnum):
    """Outcome of :func:`gather_value` for a single metric."""

    OK = 0
    MISSING_ITEM = 1
    MISSING_HOST = 2
    MISSING_SERVER = 3
    MISSING_ZABBIX_HOST = 4
    SEND_FAILED = 5
    UNKNOWN_ITEM = 6


class InitializationError(Exception):
    """Pre-flight check failed; no metric must be attempted.

    Attributes:
        code: Which check failed.
    """

    def __init__(self, code: InitError, message: str) -> None:
        super().__init__(message)
        self.code = code


# ---------------------------------------------------------------------------
# Per-run context
# ---------------------------------------------------------------------------


@dataclass
class RunContext:
    """State shared by every metric of one poll run.

    Attributes:
        hardware_model: Sanitized model identifier, e.g. ``HS110_EU_``.
        line_budget: Trailing sysinfo lines holding the JSON payload.
        extensions: Extra items for this model, in send order.
        cache: Raw query output, filled at most once per query.
        namespace: Zabbix item key prefix.
        clock: Returns "now" for the ``on_time`` conversion.
    """

    hardware_model: str
    line_budget: int
    extensions: list[ExtensionItem] = field(default_factory=list)
    cache: QueryCache = field(default_factory=QueryCache)
    namespace: str = DEFAULT_NAMESPACE
    clock: Callable[[], datetime] = datetime.now

    def resolve(self, metric: str) -> MetricDef | None:
        """Return the definition of *metric*, or ``None`` if it is unknown.

        Catalog metrics carry their own definition; extension fields of this
        model are plain sysinfo fields.
        """
        metric_def = METRICS_BY_NAME.get(metric)
        if metric_def is not None:
            return metric_def
        if any(item.field == metric for item in self.extensions):
            return MetricDef(metric)
        return None


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------


def initialize(
    host: str,
    *,
    client: KasaClient,
    required_binaries: Iterable[str] | None = None,
    extensions: Mapping[str, str] = MODEL_EXTENSIONS,
    line_budgets: Mapping[str, int] = MODEL_LINE_BUDGET,
    namespace: str = DEFAULT_NAMESPACE,
    clock: Callable[[], datetime] = datetime.now,
) -> RunContext:
    """Run the pre-flight checks and build the context for one poll run.

    Args:
        host: Smart plug IP address or hostname.
        client: ``kasa`` wrapper used for the sysinfo query.
        required_binaries: Executables that must be on ``PATH``. Defaults to
            the client's ``kasa`` binary.
        extensions: Model extension table (see
            :data:`~smartplug.src.catalog.MODEL_EXTENSIONS`).
        line_budgets: Model line budget table.
        namespace: Zabbix item key prefix.
        clock: Time source for the ``on_time`` conversion.

    Returns:
        A :class:`RunContext` whose cache already holds the sysinfo output.

    Raises:
        InitializationError: If a binary is missing, the model cannot be
            determined, the model has no line budget, or an extension entry
            is malformed.
    """
    binaries = list(required_binaries) if required_binaries is not None else [client.binary]
    for binary in binaries:
        if shutil.which(binary) is None:
            raise InitializationError(
                InitError.MISSING_BINARY,
                f"Binary '{binary}' is not installed, but required",
            )

    cache = QueryCache()
    hardware_model = extract_model(cache.output(MetricSource.SYSINFO, client, host))
    if not hardware_model:
        raise InitializationError(
            InitError.UNKNOWN_MODEL,
            f"Unable to determine the hardware model of '{host}'",
        )
    logger.info("Hardware model of %s: %s", host, hardware_model)

    budget_key = match_model(hardware_model, line_budgets)
    if budget_key is None:
        raise InitializationError(
            InitError.NO_LINE_BUDGET,
            f"Hardware model '{hardware_model}' has no sysinfo line budget",
        )

    malformed = [entry for entry in extensions.values() if not is_valid_extension(entry)]
    for entry in malformed:
        logger.error("Model extension entry malformed: '%s'", entry)
    if malformed:
        raise InitializationError(
            InitError.MALFORMED_EXTENSION,
            f"{len(malformed)} model extension entr"
            f"{'y is' if len(malformed) == 1 else 'ies are'} malformed",
        )

    extension_key = match_model(hardware_model, extensions)
    items = parse_extension(extensions[extension_key]) if extension_key else []

    return RunContext(
        hardware_model=hardware_model,
        line_budget=line_budgets[budget_key],
        extensions=items,
        cache=cache,
        namespace=namespace,
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Single metric
# ---------------------------------------------------------------------------


def gather_value(
    metric: str,
    host: str,
    zabbix_server: str,
    zabbix_host: str,
    alias: str | None = None,
    *,
    context: RunContext,
    client: KasaClient,
    sender: ZabbixSender,
) -> GatherResult:
    """Extract one metric from the plug and send it to Zabbix.

    The plug is queried only if the query this metric needs is not cached
    yet. Unparseable values are forwarded as empty strings.

    Args:
        metric: Metric (sysinfo field) name.
        host: Smart plug IP address or hostname.
        zabbix_server: Zabbix server address.
        zabbix_host: Host object name in Zabbix.
        alias: Item key to send under instead of *metric*.
        context: Per-run context holding the query cache.
        client: ``kasa`` wrapper.
        sender: Zabbix sender.

    Returns:
        :attr:`GatherResult.OK` or the reason the metric was not sent.
    """
    if not metric:
        return GatherResult.MISSING_ITEM
    if not host:
        return GatherResult.MISSING_HOST
    if not zabbix_server:
        return GatherResult.MISSING_SERVER
    if not zabbix_host:
        return GatherResult.MISSING_ZABBIX_HOST

    metric_def = context.resolve(metric)
    if metric_def is None:
        logger.warning("Unknown item '%s' requested", metric)
        return GatherResult.UNKNOWN_ITEM

    raw = context.cache.output(metric_def.source, client, host)
    if metric_def.source is MetricSource.ENERGY:
        value = extract_energy_value(raw, metric_def.energy_label)
    else:
        value = extract_sysinfo_value(
            raw,
            metric_def.name,
            line_budget=context.line_budget,
            transform=metric_def.transform,
            now=context.clock(),
        )

    sample = MetricSample(namespace=context.namespace, key=alias or metric, value=value)
    if not sender.send(sample, zabbix_server=zabbix_server, zabbix_host=zabbix_host):
        return GatherResult.SEND_FAILED
    return GatherResult.OK


# ---------------------------------------------------------------------------
# Loops
# ---------------------------------------------------------------------------


def run_catalog(
    *,
    context: RunContext,
    host: str,
    zabbix_server: str,
    zabbix_host: str,
    client: KasaClient,
    sender: ZabbixSender,
    report: RunReport,
    metrics: Iterable[MetricDef] = ALL_METRICS,
) -> None:
    """Attempt every catalog metric once, recording each result in *report*."""
    for metric_def in metrics:
        result = gather_value(
            metric_def.name,
            host,
            zabbix_server,
            zabbix_host,
            context=context,
            client=client,
            sender=sender,
        )
        report.record(metric_def.name, int(result))


def run_extensions(
    *,
    context: RunContext,
    host: str,
    zabbix_server: str,
    zabbix_host: str,
    client: KasaClient,
    sender: ZabbixSender,
    report: RunReport,
) -> None:
    """Attempt every extension item of the plug's model, aliases applied."""
    for item in context.extensions:
        result = gather_value(
            item.field,
            host,
            zabbix_server,
            zabbix_host,
            item.alias,
            context=context,
            client=client,
            sender=sender,
        )
        report.record(item.field, int(result))


def run(
    *,
    context: RunContext,
    host: str,
    zabbix_server: str,
    zabbix_host: str,
    client: KasaClient,
    sender: ZabbixSender,
) -> RunReport:
    """Run the catalog, then the model extensions, and return the report."""
    report = RunReport(hardware_model=context.hardware_model)
    run_catalog(
        context=context,
        host=host,
        zabbix_server=zabbix_server,
        zabbix_host=zabbix_host,
        client=client,
        sender=sender,
        report=report,
    )
    run_extensions(
        context=context,
        host=host,
        zabbix_server=zabbix_server,
        zabbix_host=zabbix_host,
        client=client,
        sender=sender,
        report=report,
    )
    return report
