"""
Edge poller package for the TP-Link smart plug to Zabbix pipeline.

Queries a TP-Link HS110/KP115 smart plug through the ``kasa`` CLI, extracts a
fixed catalog of energy and system-info metrics plus model-specific extras,
and forwards each metric to a Zabbix server with ``zabbix_sender``.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

__version__ = "1.5.0"
