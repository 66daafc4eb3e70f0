"""Exceptions raised at the edges of the synchronization layer.

The merge and diff algorithms themselves never raise for network-shaped
data; these are for malformed input arriving from outside.
"""


class NetSyncError(Exception):
    """Base class for netsync errors."""


class PacketValidationError(NetSyncError):
    """A raw packet failed validation at the network boundary."""


class ConfigError(NetSyncError):
    """A sync configuration file or value is invalid."""
