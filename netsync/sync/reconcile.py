"""
Reconciliation of locally predicted entity state against authority.

Policy per field:
- position: if the predicted (x, y) is further than the tolerance from the
  authoritative (x, y), snap to it exactly; otherwise keep the prediction
  so small network disagreement does not cause visible jitter
- authoritative-only fields (health, isDead by default): always copied
  from the authoritative state when it carries them
- everything else: left as predicted
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from models import EntityState

from netsync.config import SyncConfig
from netsync.logging import get_logger

from .recorder import NullRecorder, SyncRecorder

log = get_logger('reconcile')


@dataclass(frozen=True)
class ReconciliationPolicy:
    """Which fields reconciliation corrects and how far prediction may drift."""
    tolerance: float = 10.0
    authoritative_fields: Tuple[str, ...] = ('health', 'isDead')

    @classmethod
    def from_config(cls, config: SyncConfig) -> 'ReconciliationPolicy':
        return cls(
            tolerance=config.position_tolerance,
            authoritative_fields=config.authoritative_fields,
        )


DEFAULT_POLICY = ReconciliationPolicy()


@dataclass(frozen=True)
class ReconcileResult:
    """What a reconcile() call changed."""
    distance: float
    snapped: bool
    overwritten: Tuple[str, ...] = ()


def reconcile(
    predicted: EntityState,
    authoritative: EntityState,
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> ReconcileResult:
    """Correct a predicted state in place from an authoritative one.

    Args:
        predicted: Locally simulated state (mutated)
        authoritative: State received from the authoritative side
        policy: Tolerance and authoritative-only fields

    Returns:
        ReconcileResult describing the correction
    """
    distance = predicted.position.distance_to(authoritative.position)
    snapped = distance > policy.tolerance
    if snapped:
        predicted.x = authoritative.x
        predicted.y = authoritative.y

    authoritative_fields = authoritative.to_fields()
    overwritten = []
    for name in policy.authoritative_fields:
        if name in authoritative_fields:
            predicted.set_field(name, authoritative_fields[name])
            overwritten.append(name)

    return ReconcileResult(distance=distance, snapped=snapped, overwritten=tuple(overwritten))


class Reconciler:
    """
    Applies reconcile() with a fixed policy and keeps correction statistics.

    Args:
        policy: Reconciliation policy (default: 10 unit tolerance)
        recorder: Optional SyncRecorder; snaps are recorded as events
    """

    def __init__(
        self,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
        recorder: Optional[Union[SyncRecorder, NullRecorder]] = None,
    ):
        self.policy = policy
        self._recorder = recorder or NullRecorder()
        self._total = 0
        self._snaps = 0

    def reconcile(self, predicted: EntityState, authoritative: EntityState) -> ReconcileResult:
        result = reconcile(predicted, authoritative, self.policy)
        self._total += 1
        if result.snapped:
            self._snaps += 1
            log.debug(
                "Snapped %s to authority (drift %.1f > %.1f)",
                predicted.id, result.distance, self.policy.tolerance,
            )
            self._recorder.log_event('reconcile_snap', {
                "entity_id": predicted.id,
                "distance": result.distance,
            })
        return result

    @property
    def stats(self) -> dict:
        return {
            "total": self._total,
            "snaps": self._snaps,
            "tolerance": self.policy.tolerance,
        }
