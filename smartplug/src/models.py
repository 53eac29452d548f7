"""
Pydantic models for forwarded metric samples and per-run reports.

``MetricSample`` is one item key/value pair as handed to zabbix_sender.
``RunReport`` aggregates the outcome of a full poll run so the entrypoint can
summarise failures once and pick the process exit code.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MetricSample(BaseModel):
    """A single metric value ready to be sent to Zabbix.

    Attributes:
        namespace: Item key prefix (e.g. ``tplink_smartplug``).
        key: Metric name or its alias inside the brackets.
        value: Extracted value, already rendered as text. May be empty when
            the plug returned nothing parseable.
    """

    namespace: str
    key: str
    value: str

    @property
    def item_key(self) -> str:
        """Full Zabbix item key, ``namespace[key]``."""
        return f"{self.namespace}[{self.key}]"

    def to_sender_line(self) -> str:
        """Render the sample in zabbix_sender input-file format.

        The host column is ``-`` so the host given with ``-s`` is used.
        """
        return f"- {self.item_key} {self.value}\n"


class MetricFailure(BaseModel):
    """A metric that could not be gathered or sent.

    Attributes:
        metric: Metric name (not the alias).
        code: Non-zero ``GatherResult`` code.
    """

    metric: str
    code: int


class RunReport(BaseModel):
    """Outcome of one poll run over the catalog and the model extensions.

    Attributes:
        hardware_model: Sanitized hardware model of the polled plug.
        sent: Number of metrics forwarded successfully.
        failures: Failed metrics in the order they were attempted.
    """

    hardware_model: str = ""
    sent: int = 0
    failures: list[MetricFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every attempted metric was sent."""
        return not self.failures

    @property
    def attempted(self) -> int:
        """Total number of metrics attempted."""
        return self.sent + len(self.failures)

    def record(self, metric: str, code: int) -> None:
        """Record the result code of one attempted metric."""
        if code == 0:
            self.sent += 1
        else:
            self.failures.append(MetricFailure(metric=metric, code=code))
