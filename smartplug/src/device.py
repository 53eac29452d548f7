"""
Smart plug queries through the ``kasa`` device-control CLI.

Runs ``kasa --type plug --host <host> emeter|sysinfo`` as a blocking
subprocess and returns its standard output. The plug itself is never spoken
to directly. Designed to be robust:

- A non-zero exit status or a failure to spawn the binary is logged and
  yields an empty result; it never raises into the metric loop.
- :class:`QueryCache` guarantees each query runs at most once per poll run,
  every metric sourced from the same query reuses the cached text.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

from smartplug.src.catalog import MetricSource

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KASA_DEVICE_TYPE: str = "plug"
"""Value passed to ``kasa --type``; HS110/KP115 are plain plugs."""


# ---------------------------------------------------------------------------
# Device-control CLI wrapper
# ---------------------------------------------------------------------------


class KasaClient:
    """Thin wrapper around the ``kasa`` CLI.

    Args:
        kasa_bin: Name or path of the ``kasa`` executable.
    """

    def __init__(self, kasa_bin: str = "kasa") -> None:
        self._kasa_bin = kasa_bin

    @property
    def binary(self) -> str:
        """Executable this client runs."""
        return self._kasa_bin

    def query(self, host: str, source: MetricSource) -> str:
        """Run one ``kasa`` query against *host* and return its stdout.

        Args:
            host: Smart plug IP address or hostname.
            source: Which query to run (``emeter`` or ``sysinfo``).

        Returns:
            The command's standard output, or ``""`` if it could not be run
            or exited non-zero.
        """
        argv = [self._kasa_bin, "--type", KASA_DEVICE_TYPE, "--host", host, source.value]
        logger.debug("Running %s", " ".join(argv))
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError:
            logger.warning("Failed to run '%s'", self._kasa_bin, exc_info=True)
            return ""

        if result.returncode != 0:
            logger.warning(
                "kasa %s against %s exited with status %d: %s",
                source.value,
                host,
                result.returncode,
                result.stderr.strip(),
            )
            return ""
        return result.stdout


# ---------------------------------------------------------------------------
# Per-run query cache
# ---------------------------------------------------------------------------


@dataclass
class QueryCache:
    """Raw output of the two plug queries, filled lazily once per run.

    ``None`` means the query has not run yet; an empty string is a cached
    (failed or empty) result and is not re-queried.

    Attributes:
        energy: Raw ``kasa emeter`` output.
        sysinfo: Raw ``kasa sysinfo`` output.
    """

    energy: str | None = None
    sysinfo: str | None = None

    def output(self, source: MetricSource, client: KasaClient, host: str) -> str:
        """Return the cached output for *source*, querying the plug on first use."""
        if source is MetricSource.ENERGY:
            if self.energy is None:
                self.energy = client.query(host, MetricSource.ENERGY)
            return self.energy

        if self.sysinfo is None:
            self.sysinfo = client.query(host, MetricSource.SYSINFO)
        return self.sysinfo
