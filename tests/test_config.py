"""Unit tests for cinestream_recommendation_service.config."""
import json
from unittest.mock import patch

from cinestream_recommendation_service.config import (
    _get_config_value,
    _get_float_value,
    _get_int_value,
    get_blend_weights,
    get_cache_capacity,
    get_cache_hit_threshold,
    get_cache_ttl_seconds,
    get_database_url,
    get_decay_window_days,
    get_high_activity_cache_ttl_seconds,
    get_interaction_window,
    get_serendipity_min_score,
    get_serendipity_ratio,
    get_service_url,
)


class TestGetConfigValue:
    """Tests for _get_config_value function."""

    def test_get_config_value_from_env(self, monkeypatch):
        """Test getting value from environment variable."""
        # Arrange
        monkeypatch.setenv('TEST_KEY', 'test_value')

        # Act
        result = _get_config_value('TEST_KEY')

        # Assert
        assert result == 'test_value'

    def test_get_config_value_with_default(self):
        """Test using default value when key not found."""
        # Act
        result = _get_config_value('NONEXISTENT_KEY', default='default_value')

        # Assert
        assert result == 'default_value'

    def test_get_config_value_from_local_settings(self, tmp_path, monkeypatch):
        """Test falling back to local.settings.json."""
        # Arrange
        monkeypatch.delenv('SETTINGS_ONLY_KEY', raising=False)
        package_dir = tmp_path / 'cinestream_recommendation_service'
        package_dir.mkdir()
        with open(tmp_path / 'local.settings.json', 'w') as f:
            json.dump({"Values": {"SETTINGS_ONLY_KEY": "from_settings"}}, f)

        # Act
        with patch('cinestream_recommendation_service.config.__file__', str(package_dir / 'config.py')):
            result = _get_config_value('SETTINGS_ONLY_KEY')

        # Assert
        assert result == 'from_settings'

    def test_get_config_value_ignores_malformed_settings(self, tmp_path, monkeypatch):
        # Arrange
        monkeypatch.delenv('SETTINGS_ONLY_KEY', raising=False)
        package_dir = tmp_path / 'cinestream_recommendation_service'
        package_dir.mkdir()
        (tmp_path / 'local.settings.json').write_text('{not json')

        # Act
        with patch('cinestream_recommendation_service.config.__file__', str(package_dir / 'config.py')):
            result = _get_config_value('SETTINGS_ONLY_KEY', default='fallback')

        # Assert
        assert result == 'fallback'


class TestTypedValues:
    """Tests for _get_int_value and _get_float_value."""

    def test_int_value_parsed(self, monkeypatch):
        monkeypatch.setenv('INT_KEY', '42')
        assert _get_int_value('INT_KEY', 7) == 42

    def test_int_value_invalid_uses_default(self, monkeypatch):
        monkeypatch.setenv('INT_KEY', 'lots')
        assert _get_int_value('INT_KEY', 7) == 7

    def test_int_value_below_minimum_is_clamped(self, monkeypatch):
        monkeypatch.setenv('INT_KEY', '0')
        assert _get_int_value('INT_KEY', 7, min_val=1) == 1

    def test_float_value_parsed(self, monkeypatch):
        monkeypatch.setenv('FLOAT_KEY', '0.25')
        assert _get_float_value('FLOAT_KEY', 0.5) == 0.25

    def test_float_value_invalid_uses_default(self, monkeypatch):
        monkeypatch.setenv('FLOAT_KEY', 'abc')
        assert _get_float_value('FLOAT_KEY', 0.5) == 0.5

    def test_float_value_below_minimum_is_clamped(self, monkeypatch):
        monkeypatch.setenv('FLOAT_KEY', '-1')
        assert _get_float_value('FLOAT_KEY', 0.5) == 0.0


class TestGetters:
    """Tests for the public configuration getters."""

    def test_get_database_url_from_env(self, monkeypatch):
        monkeypatch.setenv('DATABASE_URL', 'sqlite:///test.db')
        assert get_database_url() == 'sqlite:///test.db'

    def test_get_database_url_default_is_mysql(self, monkeypatch):
        monkeypatch.delenv('DATABASE_URL', raising=False)
        with patch('cinestream_recommendation_service.config._get_config_value', side_effect=lambda k, default=None: default):
            assert get_database_url().startswith('mysql+pymysql://')

    def test_get_service_url_default(self, monkeypatch):
        monkeypatch.delenv('MOVIE_SERVICE_URL', raising=False)
        with patch('cinestream_recommendation_service.config._get_config_value', side_effect=lambda k, default=None: default):
            assert get_service_url('movie', 7071) == 'http://localhost:7071/api'

    def test_get_service_url_from_env(self, monkeypatch):
        monkeypatch.setenv('MOVIE_SERVICE_URL', 'http://movies:8080/api')
        assert get_service_url('movie', 7071) == 'http://movies:8080/api'

    def test_cache_defaults(self, monkeypatch):
        # Arrange
        for key in (
            'RECOMMENDATION_CACHE_CAPACITY',
            'RECOMMENDATION_CACHE_TTL_SECONDS',
            'RECOMMENDATION_CACHE_HIGH_ACTIVITY_TTL_SECONDS',
            'RECOMMENDATION_CACHE_HIT_THRESHOLD',
        ):
            monkeypatch.delenv(key, raising=False)

        # Act & Assert
        assert get_cache_capacity() == 1000
        assert get_cache_ttl_seconds() == 300
        assert get_high_activity_cache_ttl_seconds() == 120
        assert get_cache_hit_threshold() == 3

    def test_ranking_defaults(self, monkeypatch):
        # Arrange
        for key in (
            'RECOMMENDATION_INTERACTION_WINDOW',
            'RECOMMENDATION_DECAY_WINDOW_DAYS',
            'RECOMMENDATION_BASE_WEIGHT',
            'RECOMMENDATION_CONTENT_WEIGHT',
            'RECOMMENDATION_RECENCY_WEIGHT',
            'RECOMMENDATION_SERENDIPITY_RATIO',
            'RECOMMENDATION_SERENDIPITY_MIN_SCORE',
        ):
            monkeypatch.delenv(key, raising=False)

        # Act & Assert
        assert get_interaction_window() == 200
        assert get_decay_window_days() == 30.0
        assert get_blend_weights() == {"base": 0.6, "content": 0.4, "recency": 0.1}
        assert get_serendipity_ratio() == 0.15
        assert get_serendipity_min_score() == 7.5

    def test_cache_capacity_from_env(self, monkeypatch):
        monkeypatch.setenv('RECOMMENDATION_CACHE_CAPACITY', '25')
        assert get_cache_capacity() == 25
