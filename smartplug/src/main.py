"""
Entrypoints for the smart plug to Zabbix edge poller.

One invocation is one poll run; an external scheduler (cron, systemd timer,
container restart policy) re-invokes it periodically. Two entrypoints share
the same run:

- :func:`main` -- command line (``-n/--host``, ``-z/--zabbix-server``,
  ``-a/--zabbix-host``, ``-v/--verbose``).
- :func:`env_main` -- container entrypoint configured from ``SMARTPLUG_HOST``,
  ``ZBX_SERVER``, ``ZBX_HOST`` and ``VERBOSE``.

Exit codes:
    0: Every item was queried from the plug and sent to Zabbix
    1: Preflight tool check failed (zabbix_sender not installed)
    2: Failed to parse command line options
    3: Smart plug hostname or IP address not given
    4: Zabbix server hostname or IP address not given
    5: Initialization failed (see engine.InitError)
    6: One or more items failed to be retrieved or sent

The container entrypoint returns 1 when ``ZBX_SERVER`` and 2 when
``SMARTPLUG_HOST`` is missing, and the codes above otherwise.

Structured JSON logging goes to stderr.

CHANGELOG:
- 2026-10-16: Initial creation
- 2026-10-16: A missing --zabbix-host always falls back to --host, ignoring ZBX_HOST

TODO:
- None
"""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from collections.abc import Sequence
from datetime import UTC, datetime

from pydantic import ValidationError

from smartplug.src import __version__
from smartplug.src.config import PlugSettings
from smartplug.src.device import KasaClient
from smartplug.src.engine import InitializationError, initialize, run
from smartplug.src.models import RunReport
from smartplug.src.sender import ZabbixSender

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PREFLIGHT_FAILED = 1
EXIT_BAD_ARGUMENTS = 2
EXIT_NO_SMARTPLUG_HOST = 3
EXIT_NO_ZABBIX_SERVER = 4
EXIT_INIT_FAILED = 5
EXIT_ITEMS_FAILED = 6

ENV_EXIT_NO_ZABBIX_SERVER = 1
ENV_EXIT_NO_SMARTPLUG_HOST = 2


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(verbose: bool = False) -> None:
    """Configure structured JSON logging for the poller.

    Sets up the root logger with a JSON-formatted handler writing to stderr,
    at DEBUG level when *verbose* is set and INFO otherwise.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def log_config_summary(settings: PlugSettings) -> None:
    """Log the effective configuration at startup."""
    logger.info(
        "Smart plug poller %s starting with config: "
        "smartplug_host=%s, zbx_server=%s, zbx_host=%s, verbose=%s, "
        "kasa_bin=%s, sender_bin=%s, item_namespace=%s",
        __version__,
        settings.smartplug_host,
        settings.zbx_server,
        settings.zbx_host,
        settings.verbose,
        settings.kasa_bin,
        settings.sender_bin,
        settings.item_namespace,
    )


def log_report(report: RunReport) -> None:
    """Summarise a finished run; failures are listed once, at the end."""
    if report.ok:
        logger.info(
            "Sent %d items for hardware model %s", report.sent, report.hardware_model
        )
        return

    logger.error(
        "One or more items failed to either be retrieved from the smartplug "
        "or failed to send to the Zabbix server (%d of %d)",
        len(report.failures),
        report.attempted,
    )
    for failure in report.failures:
        logger.error(" - %s: %d", failure.metric, failure.code)


# ---------------------------------------------------------------------------
# Shared run
# ---------------------------------------------------------------------------


def run_once(settings: PlugSettings) -> int:
    """Execute one poll run and return the process exit code."""
    log_config_summary(settings)

    if shutil.which(settings.sender_bin) is None:
        logger.error(
            "Binary '%s' is not installed, but required", settings.sender_bin
        )
        return EXIT_PREFLIGHT_FAILED

    client = KasaClient(settings.kasa_bin)
    sender = ZabbixSender(settings.sender_bin, verbose=settings.verbose)

    try:
        context = initialize(
            settings.smartplug_host,
            client=client,
            namespace=settings.item_namespace,
        )
    except InitializationError as exc:
        logger.error("Initialization failed (code %d): %s", exc.code, exc)
        return EXIT_INIT_FAILED

    report = run(
        context=context,
        host=settings.smartplug_host,
        zabbix_server=settings.zbx_server,
        zabbix_host=settings.zbx_host,
        client=client,
        sender=sender,
    )
    log_report(report)
    return EXIT_OK if report.ok else EXIT_ITEMS_FAILED


# ---------------------------------------------------------------------------
# Command line entrypoint
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Return the command line parser."""
    p = argparse.ArgumentParser(
        prog="smartplug-zabbix",
        description=(
            "Query a TP-Link smart plug (HS110/KP115) and send its values "
            "to a Zabbix server."
        ),
    )
    p.add_argument(
        "-z",
        "--zabbix-server",
        help="IP address or hostname of a Zabbix server to send the values to",
    )
    p.add_argument(
        "-n",
        "--host",
        help="IP address or hostname of a TP-Link smart plug to query",
    )
    p.add_argument(
        "-a",
        "--zabbix-host",
        help="Name of the smart plug host object in Zabbix (default: --host)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    """Command line entrypoint; returns the process exit code.

    Prints usage and returns 0 when called without arguments. Argument parse
    errors exit with status 2 through argparse.
    """
    args_list = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    if not args_list:
        parser.print_help()
        return EXIT_OK

    args = parser.parse_args(args_list)
    configure_logging(args.verbose)

    if not (args.host or "").strip():
        logger.error(
            "Smart plug hostname or IP not given, although required. "
            "Please use --host <value> or -n <value>."
        )
        return EXIT_NO_SMARTPLUG_HOST

    if not (args.zabbix_server or "").strip():
        logger.error(
            "Zabbix server hostname or IP not given, although required. "
            "Please use --zabbix-server <value> or -z <value>."
        )
        return EXIT_NO_ZABBIX_SERVER

    overrides: dict[str, object] = {
        "smartplug_host": args.host,
        "zbx_server": args.zabbix_server,
    }
    if args.zabbix_host:
        overrides["zbx_host"] = args.zabbix_host
    else:
        overrides["zbx_host"] = args.host
        logger.warning(
            "Name of the smart plug Zabbix host has not been given, "
            "will use given --host value ('%s')",
            args.host,
        )
    if args.verbose:
        overrides["verbose"] = True

    try:
        settings = PlugSettings(**overrides)
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_BAD_ARGUMENTS

    if settings.verbose and not args.verbose:
        configure_logging(True)
    return run_once(settings)


# ---------------------------------------------------------------------------
# Container entrypoint
# ---------------------------------------------------------------------------


def env_main() -> int:
    """Container entrypoint configured entirely from the environment."""
    configure_logging()

    try:
        settings = PlugSettings()
    except ValidationError as exc:
        failed = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        if "zbx_server" in failed:
            logger.error("ZBX_SERVER environment variable is not set")
            return ENV_EXIT_NO_ZABBIX_SERVER
        if "smartplug_host" in failed:
            logger.error("SMARTPLUG_HOST environment variable is not set")
            return ENV_EXIT_NO_SMARTPLUG_HOST
        logger.error("Invalid configuration: %s", exc)
        return EXIT_BAD_ARGUMENTS

    configure_logging(settings.verbose)
    return run_once(settings)


if __name__ == "__main__":
    sys.exit(main())
