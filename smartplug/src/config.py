"""
Edge poller configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
This is the container entrypoint's configuration: ``SMARTPLUG_HOST`` and
``ZBX_SERVER`` are required, ``VERBOSE`` toggles verbose output by its mere
presence. The CLI entrypoint builds the same object from parsed arguments.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

import re

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

_NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


class PlugSettings(BaseSettings):
    """Edge poller configuration for the smart plug to Zabbix pipeline.

    Attributes:
        smartplug_host: Smart plug IP address / hostname on the local LAN.
        zbx_server: Zabbix server (or proxy) IP address / hostname.
        zbx_host: Name of the plug's host object in Zabbix. Defaults to
            smartplug_host if not set.
        verbose: Surface zabbix_sender diagnostics and log at DEBUG level.
            Any non-empty value enables it.
        kasa_bin: Device-control CLI used to query the plug.
        sender_bin: Zabbix sender binary used to forward values.
        item_namespace: Item key prefix, items are sent as
            ``<item_namespace>[<metric>]``.
    """

    smartplug_host: str
    zbx_server: str
    zbx_host: str = ""
    verbose: bool = False
    kasa_bin: str = "kasa"
    sender_bin: str = "zabbix_sender"
    item_namespace: str = "tplink_smartplug"

    @field_validator("verbose", mode="before")
    @classmethod
    def verbose_when_set(cls, v: object) -> bool:
        """Treat any non-empty value as enabled, like ``[[ -z $VERBOSE ]]``."""
        if isinstance(v, bool):
            return v
        return v is not None and str(v) != ""

    @field_validator("smartplug_host", "zbx_server")
    @classmethod
    def host_must_not_be_blank(cls, v: str) -> str:
        """Reject empty or whitespace-only addresses."""
        if not v.strip():
            raise ValueError("host address must not be empty")
        return v.strip()

    @field_validator("item_namespace")
    @classmethod
    def namespace_must_be_key_safe(cls, v: str) -> str:
        """Validate the namespace can prefix a Zabbix item key."""
        if not _NAMESPACE_PATTERN.match(v):
            raise ValueError(
                "ITEM_NAMESPACE may only contain letters, digits, '_', '.' and '-'"
            )
        return v

    @model_validator(mode="after")
    def _default_zbx_host(self) -> "PlugSettings":
        """Default zbx_host to smartplug_host when not explicitly set."""
        if not self.zbx_host:
            self.zbx_host = self.smartplug_host
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
