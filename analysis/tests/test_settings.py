"""
Tests for analytics policy loading.
"""

import pytest

from analysis.calculations.rolling import ANNUALIZATION_FACTOR
from analysis.errors import UnsupportedOptionError
from analysis.settings import (
    DEFAULT_VOLUME_HEIGHT,
    ENV_OVERRIDES,
    MONTHLY_RETURNS_MIN_OBSERVATIONS,
    AnalyticsPolicy,
    PolicyConfigError,
    load_policy,
)
from layout import composer


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment overrides out of these tests."""
    for name in list(ENV_OVERRIDES) + ['TRADEVIZ_POLICY_CONFIG']:
        monkeypatch.delenv(name, raising=False)


class TestAnalyticsPolicy:
    """Tests for AnalyticsPolicy validation."""

    def test_defaults(self):
        policy = AnalyticsPolicy()

        assert policy.annualization_factor == 252
        assert policy.monthly_returns_min_observations == 30
        assert policy.correlation_method == 'pearson'
        assert policy.volume_height == 0.2

    def test_defaults_share_module_constants(self):
        """Policy defaults and layout thresholds come from one definition."""
        policy = AnalyticsPolicy()

        assert policy.annualization_factor == ANNUALIZATION_FACTOR
        assert policy.monthly_returns_min_observations == MONTHLY_RETURNS_MIN_OBSERVATIONS
        assert policy.volume_height == DEFAULT_VOLUME_HEIGHT
        assert composer.MONTHLY_RETURNS_MIN_OBSERVATIONS is MONTHLY_RETURNS_MIN_OBSERVATIONS
        assert composer.DEFAULT_VOLUME_HEIGHT is DEFAULT_VOLUME_HEIGHT

    def test_invalid_annualization(self):
        with pytest.raises(ValueError, match="annualization_factor"):
            AnalyticsPolicy(annualization_factor=0)

    def test_invalid_volume_height(self):
        with pytest.raises(ValueError, match="volume_height"):
            AnalyticsPolicy(volume_height=1.0)

    def test_invalid_method(self):
        with pytest.raises(UnsupportedOptionError):
            AnalyticsPolicy(correlation_method='distance')


class TestLoadPolicy:
    """Tests for load_policy."""

    def test_no_config_gives_defaults(self):
        assert load_policy() == AnalyticsPolicy()

    def test_yaml_overrides(self, tmp_path):
        config = tmp_path / "policy.yaml"
        config.write_text(
            "policy:\n"
            "  rolling_window: 20\n"
            "  correlation_method: spearman\n"
        )

        policy = load_policy(str(config))

        assert policy.rolling_window == 20
        assert policy.correlation_method == 'spearman'
        assert policy.annualization_factor == 252

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        config = tmp_path / "policy.yaml"
        config.write_text("policy:\n  histogram_bins: 30\n")
        monkeypatch.setenv('TRADEVIZ_POLICY_CONFIG', str(config))

        assert load_policy().histogram_bins == 30

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        config = tmp_path / "policy.yaml"
        config.write_text("policy:\n  annualization_factor: 365\n")
        monkeypatch.setenv('TRADEVIZ_ANNUALIZATION_FACTOR', '52')

        policy = load_policy(str(config))

        assert policy.annualization_factor == 52

    def test_env_float_coercion(self, monkeypatch):
        monkeypatch.setenv('TRADEVIZ_VOLUME_HEIGHT', '0.25')

        assert load_policy().volume_height == 0.25

    def test_unknown_keys_ignored(self, tmp_path):
        config = tmp_path / "policy.yaml"
        config.write_text("policy:\n  colour_scheme: dark\n  rolling_window: 10\n")

        assert load_policy(str(config)).rolling_window == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(PolicyConfigError, match="not found"):
            load_policy(str(tmp_path / "absent.yaml"))

    def test_malformed_yaml(self, tmp_path):
        config = tmp_path / "policy.yaml"
        config.write_text("policy: [unclosed\n")

        with pytest.raises(PolicyConfigError, match="Failed to parse"):
            load_policy(str(config))

    def test_section_not_mapping(self, tmp_path):
        config = tmp_path / "policy.yaml"
        config.write_text("policy:\n  - 1\n  - 2\n")

        with pytest.raises(PolicyConfigError, match="must be a mapping"):
            load_policy(str(config))

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv('TRADEVIZ_ROLLING_WINDOW', '-5')

        with pytest.raises(PolicyConfigError, match="Invalid policy configuration"):
            load_policy()

    def test_non_numeric_value(self, monkeypatch):
        monkeypatch.setenv('TRADEVIZ_HISTOGRAM_BINS', 'many')

        with pytest.raises(PolicyConfigError, match="Invalid policy configuration"):
            load_policy()
