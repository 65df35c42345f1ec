"""
Unit tests for settings validation and the typed config builders.
"""

import pytest
from pydantic import ValidationError

from config import DEFAULT_FSRS_WEIGHTS, Settings
from cadence.priority.weights import PriorityWeights, ProficiencyBand


@pytest.fixture
def settings():
    return Settings(_env_file=None)


class TestSettings:
    """Tests for Settings defaults and validation."""

    def test_defaults(self, settings):
        """Settings should load the documented defaults."""
        assert settings.target_retention == 0.9
        assert settings.session_size == 20
        assert settings.new_item_ratio == 0.3
        assert settings.fsrs_weights == DEFAULT_FSRS_WEIGHTS

    def test_fsrs_weights_length_checked(self):
        """FSRS weights need exactly 17 values."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, fsrs_weights=[0.4] * 16)

    def test_band_weights_checked(self):
        """Band weights must be a valid (F, R, E) triple."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, priority_weights_beginner=[0.5, 0.5])
        with pytest.raises(ValidationError):
            Settings(_env_file=None, priority_weights_advanced=[0.0, 0.0, 0.0])

    def test_retention_bounds(self):
        """Target retention must be strictly below 1."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, target_retention=1.0)

    def test_environment_override(self, monkeypatch):
        """Environment variables should override defaults."""
        monkeypatch.setenv("SESSION_SIZE", "12")
        monkeypatch.setenv("ITEM_SELECTION_STRATEGY", "kl")
        settings = Settings(_env_file=None)
        assert settings.session_size == 12
        assert settings.item_selection_strategy == "kl"


class TestConfigBuilders:
    """Tests for the typed config helper methods."""

    def test_fsrs_parameters(self, settings):
        """get_fsrs_parameters should carry weights and retention."""
        params = settings.get_fsrs_parameters()
        assert len(params.w) == 17
        assert params.request_retention == 0.9
        assert params.maximum_interval == 36500

    def test_priority_config(self, settings):
        """get_priority_config should build the band table from settings."""
        config = Settings(_env_file=None, priority_weights_advanced=[0.2, 0.2, 0.6]).get_priority_config()
        assert config.weights[ProficiencyBand.ADVANCED] == PriorityWeights(0.2, 0.2, 0.6)
        assert config.weights[ProficiencyBand.BEGINNER] == PriorityWeights(0.5, 0.25, 0.25)
        assert config.urgency.cap == 3.0
        assert settings.get_priority_config().cost_floor == 0.1

    def test_estimation_config(self, settings):
        """get_estimation_config should carry the session mode weights."""
        config = settings.get_estimation_config()
        assert config.training_weight == 0.5
        assert config.evaluation_weight == 1.0
        assert config.selection_strategy == "fisher"

    def test_calibration_config(self, settings):
        """get_calibration_config should use the calibration settings."""
        config = settings.get_calibration_config()
        assert config.max_iterations == 100
        assert not config.three_pl

    def test_queue_config(self, settings):
        """get_queue_config should return the session defaults."""
        assert settings.get_queue_config() == {"session_size": 20, "new_item_ratio": 0.3}
