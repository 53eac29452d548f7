"""
Zabbix sender wrapper for forwarding metric samples.

Pipes one ``- <namespace>[<key>] <value>`` line into
``zabbix_sender -i - -s <zabbix host> -z <zabbix server>`` per sample. In
quiet mode the sender's stdout is discarded; in verbose mode ``-vv`` is added
and its diagnostics go straight to the terminal.

Operations:
- send(sample, zabbix_server=..., zabbix_host=...): Forward one sample.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartplug.src.models import MetricSample

logger = logging.getLogger(__name__)


class ZabbixSender:
    """Forwards samples to a Zabbix server through the ``zabbix_sender`` binary.

    A failure (non-zero exit status or the binary missing) is logged and
    reported as ``False``; it never raises, so one bad item cannot stop the
    rest of the run.

    Args:
        sender_bin: Name or path of the ``zabbix_sender`` executable.
        verbose: Pass ``-vv`` and let the sender's output through.

    Usage::

        sender = ZabbixSender(verbose=False)
        sample = MetricSample(namespace="tplink_smartplug", key="alias", value="Desk")
        ok = sender.send(sample, zabbix_server="zabbix.lan", zabbix_host="plug-desk")
    """

    def __init__(self, sender_bin: str = "zabbix_sender", *, verbose: bool = False) -> None:
        self._sender_bin = sender_bin
        self._verbose = verbose

    @property
    def binary(self) -> str:
        """Executable this sender runs."""
        return self._sender_bin

    def build_command(self, *, zabbix_server: str, zabbix_host: str) -> list[str]:
        """Return the argv used for one send."""
        argv = [self._sender_bin, "-i", "-", "-s", zabbix_host, "-z", zabbix_server]
        if self._verbose:
            argv.append("-vv")
        return argv

    def send(self, sample: MetricSample, *, zabbix_server: str, zabbix_host: str) -> bool:
        """Send a single sample.

        Args:
            sample: The item key/value pair to forward.
            zabbix_server: Zabbix server (or proxy) address.
            zabbix_host: Host object name the item belongs to in Zabbix.

        Returns:
            ``True`` if zabbix_sender exited with status 0.
        """
        argv = self.build_command(zabbix_server=zabbix_server, zabbix_host=zabbix_host)
        line = sample.to_sender_line()
        logger.debug("Sending %s", line.rstrip("\n"))
        try:
            result = subprocess.run(
                argv,
                input=line,
                text=True,
                stdout=None if self._verbose else subprocess.DEVNULL,
                check=False,
            )
        except OSError:
            logger.warning("Failed to run '%s'", self._sender_bin, exc_info=True)
            return False

        if result.returncode != 0:
            logger.warning(
                "zabbix_sender failed for %s (exit status %d)",
                sample.item_key,
                result.returncode,
            )
            return False
        return True
