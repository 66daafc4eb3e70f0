"""
Shared primitive data types for the synchronization layer.

Positions travel on the wire as bare ``x``/``y`` fields; Point2D is the
typed view used wherever geometry is computed (reconciliation distance,
quantization).
"""

import math
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict


class Point2D(BaseModel):
    """Immutable 2D point for entity positions.

    Attributes:
        x: X coordinate (horizontal)
        y: Y coordinate (vertical)

    Examples:
        >>> a = Point2D(x=100.0, y=100.0)
        >>> a.distance_to(Point2D(x=103.0, y=104.0))
        5.0
    """
    x: float
    y: float

    model_config = ConfigDict(frozen=True)

    def distance_to(self, other: 'Point2D') -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> Optional['Point2D']:
        """Build a point from a field mapping, or None if x/y are missing."""
        x = fields.get('x')
        y = fields.get('y')
        if x is None or y is None:
            return None
        return cls(x=x, y=y)

    def __str__(self) -> str:
        return f"Point2D(x={self.x:.2f}, y={self.y:.2f})"


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, ties going towards +infinity.

    Python's round() uses banker's rounding; positions are quantized the
    same way on every peer, so ties must break in one fixed direction.
    """
    return int(math.floor(value + 0.5))
