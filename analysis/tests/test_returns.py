"""
Tests for returns calculation utilities.
Hand-computed expected values for simple, log and rebased series.
"""

import math

import pytest
import numpy as np
import pandas as pd

from analysis.calculations.returns import (
    simple_returns,
    log_returns,
    normalize_to_base,
    returns_distribution,
)
from analysis.errors import InvalidInputError


class TestSimpleReturns:
    """Tests for simple_returns."""

    def test_simple_returns_known_values(self):
        result = simple_returns([100.0, 110.0, 99.0])

        assert np.isnan(result.iloc[0])
        assert abs(result.iloc[1] - 0.10) < 1e-12
        assert abs(result.iloc[2] - (-0.10)) < 1e-12
        assert result.name == 'returns'

    def test_simple_returns_keeps_index(self):
        dates = pd.date_range('2024-01-01', periods=3, freq='D')
        prices = pd.Series([10.0, 11.0, 12.1], index=dates)

        result = simple_returns(prices)

        assert result.index.equals(dates)

    def test_simple_returns_non_positive(self):
        with pytest.raises(InvalidInputError, match="Zero or negative"):
            simple_returns([100.0, 0.0, 50.0])


class TestLogReturns:
    """Tests for log_returns."""

    def test_log_returns_known_values(self):
        prices = [100.0, 110.0, 121.0]

        result = log_returns(prices)

        assert len(result) == 2
        assert abs(result.iloc[0] - math.log(1.1)) < 1e-12
        assert abs(result.iloc[1] - math.log(1.1)) < 1e-12

    def test_log_returns_indexed_by_later_timestamp(self):
        dates = pd.date_range('2024-05-01', periods=3, freq='D')
        prices = pd.Series([50.0, 55.0, 60.0], index=dates)

        result = log_returns(prices)

        assert result.index.equals(dates[1:])

    def test_log_returns_insufficient_data(self):
        with pytest.raises(InvalidInputError, match="at least 2 prices"):
            log_returns([100.0])

    def test_log_returns_negative(self):
        with pytest.raises(InvalidInputError, match="Zero or negative"):
            log_returns([100.0, -1.0])


class TestNormalizeToBase:
    """Tests for normalize_to_base."""

    def test_normalize_default_base(self):
        result = normalize_to_base([50.0, 55.0, 45.0])

        assert result.tolist() == pytest.approx([100.0, 110.0, 90.0])
        assert result.name == 'normalized_value'

    def test_normalize_skips_leading_gap(self):
        """First defined value is the base."""
        result = normalize_to_base([np.nan, 20.0, 30.0], base=1.0)

        assert np.isnan(result.iloc[0])
        assert result.iloc[1:].tolist() == pytest.approx([1.0, 1.5])

    def test_normalize_all_missing(self):
        with pytest.raises(InvalidInputError, match="no defined values"):
            normalize_to_base([np.nan, np.nan])

    def test_normalize_zero_start(self):
        with pytest.raises(InvalidInputError, match="starting at zero"):
            normalize_to_base([0.0, 1.0])


class TestReturnsDistribution:
    """Tests for returns_distribution."""

    def test_distribution_summary(self):
        returns = [0.01, -0.02, 0.03, 0.0, 0.015, -0.005]

        result = returns_distribution(returns, bins=5)

        assert result['count'] == 6
        assert abs(result['mean'] - np.mean(returns)) < 1e-12
        assert abs(result['std'] - np.std(returns, ddof=1)) < 1e-12
        assert len(result['histogram']) == 5
        assert list(result['histogram'].columns) == ['left', 'right', 'center', 'density']

    def test_histogram_density_integrates_to_one(self):
        rng = np.random.default_rng(11)
        returns = rng.normal(0.0, 0.01, size=400)

        histogram = returns_distribution(returns, bins=20)['histogram']

        area = (histogram['density'] * (histogram['right'] - histogram['left'])).sum()
        assert abs(area - 1.0) < 1e-9

    def test_normal_overlay(self):
        returns = [0.01, -0.02, 0.03, 0.0, 0.015, -0.005]

        result = returns_distribution(returns, bins=5, normal_points=25)

        normal = result['normal']
        assert len(normal) == 25
        assert (normal['density'] > 0).all()

    def test_normal_overlay_disabled(self):
        result = returns_distribution([0.01, 0.02, 0.03], show_normal=False)

        assert result['normal'] is None

    def test_missing_values_dropped(self):
        result = returns_distribution([0.01, np.nan, 0.03], bins=2)

        assert result['count'] == 2

    def test_single_return(self):
        """One return still gives a histogram; spread and curves are unavailable."""
        result = returns_distribution([0.01, np.nan], bins=5)

        assert result['count'] == 1
        assert result['mean'] == 0.01
        assert np.isnan(result['std'])
        assert len(result['histogram']) == 5
        assert result['kde'] is None
        assert result['normal'] is None

    def test_no_defined_returns(self):
        with pytest.raises(InvalidInputError, match="at least 1 return"):
            returns_distribution([np.nan, np.nan])

    def test_kde_curve(self):
        """Kernel density estimate spans the observed range."""
        returns = [0.01, -0.02, 0.03, 0.0, 0.015, -0.005]

        kde = returns_distribution(returns, bins=5, kde_points=64)['kde']

        assert list(kde.columns) == ['x', 'density']
        assert len(kde) == 64
        assert kde['x'].iloc[0] == min(returns)
        assert kde['x'].iloc[-1] == max(returns)
        assert (kde['density'] > 0).all()

    def test_kde_independent_of_normal_overlay(self):
        result = returns_distribution([0.01, 0.02, 0.04], show_normal=False)

        assert result['normal'] is None
        assert result['kde'] is not None

    def test_constant_returns_have_no_curves(self):
        result = returns_distribution([0.5, 0.5, 0.5], bins=3)

        assert result['std'] == 0.0
        assert result['kde'] is None
        assert result['normal'] is None

    def test_invalid_bins(self):
        with pytest.raises(InvalidInputError, match="bins must be positive"):
            returns_distribution([0.01, 0.02], bins=0)
