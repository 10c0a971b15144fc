"""
Tests for configuration management

Ensures configuration loading, defaults and derived helpers work correctly.
"""
import os
import pytest
from unittest.mock import patch

import config as cfg
from config import DraftConfig, get_config, HSR_FAMILY, ZZZ_FAMILY


class TestDraftConfig:
    """Test configuration loading and defaults."""

    def test_config_has_default_values(self):
        """Test that config provides sensible defaults."""
        with patch.dict(os.environ, {}, clear=True):
            config = DraftConfig(_env_file=None)
            assert config.api_url == ""
            assert config.api_version == "v1"
            assert config.zzz_cost_limit_2v2 == 6.0
            assert config.zzz_cost_limit_3v3 == 9.0
            assert config.hsr_cost_limit == 0.0
            assert config.penalty_per_point == 2500
            assert config.penalty_step == 0.25
            assert config.cycle_breakpoint == 4
            assert config.grace_window_seconds == 30
            assert config.default_reserve_seconds == 480
            assert config.log_level == "INFO"
            assert config.environment == "development"
            assert config.testing is False

    def test_config_overrides_defaults_from_env(self):
        """Test that environment variables override default values."""
        with patch.dict(os.environ, {
            'API_URL': 'https://draft.example.com',
            'API_TOKEN': 'secret',
            'GRACE_WINDOW_SECONDS': '45',
            'ZZZ_COST_LIMIT_2V2': '7.5',
            'LOG_LEVEL': 'DEBUG',
            'TESTING': 'true',
        }):
            config = DraftConfig(_env_file=None)
            assert config.api_url == 'https://draft.example.com'
            assert config.api_token == 'secret'
            assert config.grace_window_seconds == 45
            assert config.zzz_cost_limit_2v2 == 7.5
            assert config.log_level == 'DEBUG'
            assert config.is_testing is True

    def test_config_ignores_extra_env_vars(self):
        """Test that unrelated environment variables are ignored."""
        with patch.dict(os.environ, {'SOMETHING_UNRELATED': 'value'}):
            config = DraftConfig(_env_file=None)
            assert not hasattr(config, 'something_unrelated')

    def test_is_development(self):
        with patch.dict(os.environ, {'ENVIRONMENT': 'Development'}):
            assert DraftConfig(_env_file=None).is_development is True
        with patch.dict(os.environ, {'ENVIRONMENT': 'production'}):
            assert DraftConfig(_env_file=None).is_development is False

    def test_session_retention_seconds(self):
        config = DraftConfig(_env_file=None, session_retention_hours=2)
        assert config.session_retention_seconds == 7200


class TestDerivedLimits:
    """Test per-format helpers."""

    @pytest.mark.parametrize("family,team_size,expected", [
        (ZZZ_FAMILY, 2, 6.0),
        (ZZZ_FAMILY, 3, 9.0),
        (HSR_FAMILY, 2, 0.0),
        (HSR_FAMILY, 3, 0.0),
    ])
    def test_cost_limit_for(self, family, team_size, expected):
        config = DraftConfig(_env_file=None)
        assert config.cost_limit_for(family, team_size) == expected

    def test_score_max_for(self):
        config = DraftConfig(_env_file=None)
        assert config.score_max_for(HSR_FAMILY) == 15
        assert config.score_max_for(ZZZ_FAMILY) == 65000


class TestGetConfig:
    """Test lazy global configuration."""

    def test_get_config_is_cached(self):
        first = get_config()
        second = get_config()
        assert first is second

    def test_get_config_recreated_after_reset(self):
        first = get_config()
        cfg._config = None
        assert get_config() is not first
