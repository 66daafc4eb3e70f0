"""
NetSync - authoritative state synchronization for real-time sessions.

The host produces one delta packet per tick describing what changed; every
client accumulates packets into a full reconstructed state and reconciles
its locally predicted entities against it.
See netsync/sync/__init__.py for the sync pipeline.
"""

__all__ = []
