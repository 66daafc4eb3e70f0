"""Tests for SyncConfig and config file loading."""

import json

import pytest
import yaml

from netsync.config import SyncConfig, load_sync_config
from netsync.exceptions import ConfigError, NetSyncError


class TestSyncConfig:
    """Tests for SyncConfig construction and validation."""

    def test_defaults(self):
        config = SyncConfig()

        assert config.position_tolerance == 10.0
        assert config.authoritative_fields == ('health', 'isDead')
        assert config.quantize_positions is True
        assert config.max_enemies == 30
        assert config.max_projectiles == 100
        assert config.desync_tick_gap == 60

    def test_from_dict(self):
        config = SyncConfig.from_dict({
            'position_tolerance': 4,
            'authoritative_fields': ['health'],
            'max_projectiles': None,
        })

        assert config.position_tolerance == 4
        assert config.authoritative_fields == ('health',)
        assert config.max_projectiles is None

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="tolerence"):
            SyncConfig.from_dict({'tolerence': 3})

    def test_negative_tolerance(self):
        with pytest.raises(ConfigError):
            SyncConfig(position_tolerance=-1)

    def test_zero_desync_gap(self):
        with pytest.raises(ConfigError):
            SyncConfig(desync_tick_gap=0)

    def test_negative_cap(self):
        with pytest.raises(ConfigError):
            SyncConfig.from_dict({'max_enemies': -5})

    def test_authoritative_fields_must_be_list(self):
        with pytest.raises(ConfigError):
            SyncConfig.from_dict({'authoritative_fields': 'health'})

    def test_wrong_value_type(self):
        with pytest.raises(ConfigError):
            SyncConfig.from_dict({'desync_tick_gap': 'soon'})

    def test_config_error_is_netsync_error(self):
        assert issubclass(ConfigError, NetSyncError)


class TestLoadSyncConfig:
    """Tests for loading config files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "sync.yaml"
        path.write_text(yaml.safe_dump({'position_tolerance': 2.5, 'desync_tick_gap': 30}))

        config = load_sync_config(path)
        assert config.position_tolerance == 2.5
        assert config.desync_tick_gap == 30

    def test_json(self, tmp_path):
        path = tmp_path / "sync.json"
        path.write_text(json.dumps({'quantize_positions': False}))
        assert load_sync_config(str(path)).quantize_positions is False

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_sync_config(path) == SyncConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_sync_config(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_sync_config(path)

    def test_unparsable(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("position_tolerance: [1, 2\n")
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_sync_config(path)
