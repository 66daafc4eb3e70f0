"""Tests for the syncable entity contract and SyncedEntity base class."""

import pytest

from models import EntityDelta, EntityState
from netsync.entity import SyncableEntity, SyncedEntity, is_syncable_entity
from netsync.sync.producer import DeltaProducer
from netsync.sync.reconcile import ReconciliationPolicy


class Enemy(SyncedEntity):
    """Test enemy with health and a local-only attribute."""

    entity_type = 'Enemy'
    network_fields = {**SyncedEntity.network_fields, 'health': 'health', 'velocityX': 'vx'}

    def __init__(self, entity_id, x=0.0, y=0.0):
        super().__init__(entity_id, x, y)
        self.health = 100
        self.vx = 0.0
        self.sprite = "enemy.png"
        self.destroyed_calls = 0

    def on_destroyed(self):
        self.destroyed_calls += 1


@pytest.fixture
def enemy():
    return Enemy("e1", 100, 100)


class TestContract:
    """Tests for the SyncableEntity protocol."""

    def test_synced_entity_is_syncable(self, enemy):
        assert isinstance(enemy, SyncableEntity)
        assert is_syncable_entity(enemy)

    def test_plain_objects_are_not(self):
        assert not is_syncable_entity(object())
        assert not is_syncable_entity(None)

    def test_id_must_be_string(self, enemy):
        enemy.id = 42
        assert not is_syncable_entity(enemy)


class TestNetworkState:
    """Tests for producing state from an entity."""

    def test_declared_fields_only(self, enemy):
        fields = enemy.get_network_state().to_fields()

        assert fields == {
            "id": "e1",
            "type": "Enemy",
            "x": 100,
            "y": 100,
            "netVersion": 0,
            "isDead": False,
            "health": 100,
            "velocityX": 0.0,
        }

    def test_mark_changed(self, enemy):
        enemy.mark_changed()
        assert enemy.get_network_state().net_version == 1

    def test_works_with_producer(self, enemy):
        producer = DeltaProducer()
        producer.produce_collection([enemy])
        enemy.health = 60

        changes = producer.produce_collection([enemy])
        assert changes["e1"].to_fields() == {"id": "e1", "health": 60}


class TestApplyDelta:
    """Tests for applying incoming updates to an entity."""

    def test_applies_present_fields(self, enemy):
        enemy.apply_delta(EntityDelta(id="e1", x=150, health=80))

        assert (enemy.x, enemy.y) == (150, 100)
        assert enemy.health == 80

    def test_unknown_fields_ignored(self, enemy):
        enemy.apply_delta({"id": "e1", "sprite": "hacked.png", "mana": 5})

        assert enemy.sprite == "enemy.png"
        assert not hasattr(enemy, "mana")

    def test_update_from_network_state(self, enemy):
        enemy.update_from_network_state(EntityState(id="e1", type="Enemy", x=1, y=2, velocityX=4))
        assert (enemy.x, enemy.y, enemy.vx) == (1, 2, 4)

    def test_destroyed_once(self, enemy):
        enemy.apply_delta({"isDead": True})
        enemy.apply_delta({"isDead": True, "x": 5})

        assert enemy.destroyed
        assert enemy.destroyed_calls == 1


class TestReconcile:
    """Tests for SyncedEntity.reconcile."""

    def test_small_drift_kept(self, enemy):
        authority = EntityState(id="e1", type="Enemy", x=105, y=100, health=40)
        result = enemy.reconcile(authority)

        assert (enemy.x, enemy.y) == (100, 100)
        assert enemy.health == 40
        assert not result.snapped

    def test_large_drift_snaps(self, enemy):
        enemy.vx = 7.0
        enemy.reconcile(EntityState(id="e1", type="Enemy", x=200, y=100, velocityX=1.0))

        assert (enemy.x, enemy.y) == (200, 100)
        # Not authoritative-only, so prediction stands
        assert enemy.vx == 7.0

    def test_death_from_authority(self, enemy):
        enemy.reconcile(EntityState(id="e1", type="Enemy", x=100, y=100, isDead=True))

        assert enemy.is_dead is True
        assert enemy.destroyed_calls == 1

    def test_custom_policy(self, enemy):
        policy = ReconciliationPolicy(tolerance=1.0, authoritative_fields=())
        enemy.reconcile(EntityState(id="e1", type="Enemy", x=103, y=100, health=1), policy)

        assert enemy.x == 103
        assert enemy.health == 100
