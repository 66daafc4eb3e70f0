"""
Data models for the netsync state-synchronization layer.

This package provides the Pydantic models shared by the authoritative side
and every client:
- Primitives: Point2D and position quantization
- State: EntityState (full record) and EntityDelta (partial record)
- Packet: DeltaPacket (wire payload) and ReconstructedState (client view)

Usage:
    >>> from models import EntityState, DeltaPacket
    >>> packet = DeltaPacket.model_validate({'tick': 1, 'timestamp': 0})
"""

# ============================================================================
# Primitives
# ============================================================================
from .primitives import (
    Point2D,
    round_half_up,
)

# ============================================================================
# Entity state
# ============================================================================
from .state import (
    EntityState,
    EntityDelta,
    NetworkRecord,
    WIRE_ALIASES,
    is_wire_value,
    same_entity,
)

# ============================================================================
# Packets
# ============================================================================
from .packet import (
    CATEGORIES,
    CollectionDelta,
    DeltaPacket,
    ReconstructedState,
)

__all__ = [
    # Primitives
    "Point2D",
    "round_half_up",
    # State
    "EntityState",
    "EntityDelta",
    "NetworkRecord",
    "WIRE_ALIASES",
    "is_wire_value",
    "same_entity",
    # Packets
    "CATEGORIES",
    "CollectionDelta",
    "DeltaPacket",
    "ReconstructedState",
]
