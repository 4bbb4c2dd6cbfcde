"""Zabbix host deployer."""

__version__ = "0.1.0"
