"""
Tests for correlation matrix utilities.
"""

import pytest
import numpy as np
import pandas as pd

from analysis.calculations.correlation import (
    CorrelationCell,
    build_correlation_cells,
    cells_to_frame,
    correlation_matrix,
    linearize_matrix,
    pairwise_correlation,
    prepare_wide_frame,
)
from analysis.errors import InvalidInputError, UnsupportedOptionError


@pytest.fixture
def wide_table():
    return pd.DataFrame({
        'a': [1.0, 2.0, 3.0, 4.0, 5.0],
        'label': ['v', 'w', 'x', 'y', 'z'],
        'b': [2.0, 4.0, 6.0, 8.0, 10.0],
        'c': [5.0, 4.0, 3.0, 2.0, 1.0],
    })


class TestPairwiseCorrelation:
    """Tests for pairwise_correlation."""

    def test_pairwise_complete_observations(self):
        """Positions missing on either side are dropped."""
        x = np.array([1.0, 2.0, 3.0, 4.0, np.nan])
        y = np.array([2.0, 4.0, 6.0, 8.0, 100.0])

        assert pairwise_correlation(x, y) == pytest.approx(1.0)

    def test_spearman_monotonic(self):
        """Monotonic but nonlinear relation has rank correlation 1."""
        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        y = x ** 2

        assert pairwise_correlation(x, y, method='spearman') == pytest.approx(1.0)
        assert pairwise_correlation(x, y, method='pearson') < 1.0

    def test_kendall_known_value(self):
        """Five concordant and one discordant pair."""
        x = np.array([1.0, 2.0, 3.0, 4.0])
        y = np.array([1.0, 3.0, 2.0, 4.0])

        assert pairwise_correlation(x, y, method='kendall') == pytest.approx(4.0 / 6.0)

    @pytest.mark.parametrize("method", ['pearson', 'spearman', 'kendall'])
    def test_constant_input_is_missing(self, method):
        x = np.array([3.0, 3.0, 3.0])
        y = np.array([1.0, 2.0, 3.0])

        assert np.isnan(pairwise_correlation(x, y, method=method))

    def test_single_pair_is_missing(self):
        x = np.array([1.0, np.nan])
        y = np.array([1.0, 2.0])

        assert np.isnan(pairwise_correlation(x, y))

    def test_unsupported_method(self):
        with pytest.raises(UnsupportedOptionError, match="Unsupported correlation method"):
            pairwise_correlation(np.array([1.0, 2.0]), np.array([1.0, 2.0]), method='distance')


class TestCorrelationMatrix:
    """Tests for correlation_matrix and linearization."""

    def test_matrix_values(self, wide_table):
        matrix = correlation_matrix(wide_table)

        assert list(matrix.columns) == ['a', 'b', 'c']
        assert list(matrix.index) == ['a', 'b', 'c']
        assert matrix.at['a', 'b'] == pytest.approx(1.0)
        assert matrix.at['a', 'c'] == pytest.approx(-1.0)
        assert np.diag(matrix.to_numpy()).tolist() == [1.0, 1.0, 1.0]

    def test_matrix_symmetric_and_bounded(self):
        rng = np.random.default_rng(3)
        table = pd.DataFrame(rng.normal(size=(50, 4)), columns=['w', 'x', 'y', 'z'])

        values = correlation_matrix(table, method='spearman').to_numpy()

        assert np.array_equal(values, values.T)
        assert ((values >= -1) & (values <= 1)).all()

    def test_zero_variance_column(self):
        table = pd.DataFrame({
            'a': [1.0, 2.0, 3.0],
            'flat': [7.0, 7.0, 7.0],
        })

        matrix = correlation_matrix(table)

        assert np.isnan(matrix.at['flat', 'flat'])
        assert np.isnan(matrix.at['a', 'flat'])
        assert matrix.at['a', 'a'] == 1.0

    def test_bool_columns_excluded(self):
        table = pd.DataFrame({
            'a': [1.0, 2.0, 3.0],
            'flag': [True, False, True],
            'b': [3.0, 1.0, 2.0],
        })

        assert list(prepare_wide_frame(table).columns) == ['a', 'b']

    def test_no_numeric_columns(self):
        table = pd.DataFrame({'name': ['x', 'y']})

        with pytest.raises(InvalidInputError, match="No numeric columns"):
            correlation_matrix(table)

    def test_long_format_pivot(self):
        """Symbols become columns in order of first appearance."""
        dates = pd.to_datetime(['2024-01-01', '2024-01-02', '2024-01-03'])
        table = pd.DataFrame({
            'date': list(dates) * 2,
            'symbol': ['BBB'] * 3 + ['AAA'] * 3,
            'close': [10.0, 11.0, 12.0, 30.0, 20.0, 10.0],
        })

        matrix = correlation_matrix(table)

        assert list(matrix.columns) == ['BBB', 'AAA']
        assert matrix.at['BBB', 'AAA'] == pytest.approx(-1.0)

    def test_long_format_duplicates(self):
        table = pd.DataFrame({
            'date': pd.to_datetime(['2024-01-01', '2024-01-01']),
            'symbol': ['AAA', 'AAA'],
            'close': [1.0, 2.0],
        })

        with pytest.raises(InvalidInputError, match="Duplicate"):
            correlation_matrix(table)

    def test_linearize_row_major(self, wide_table):
        cells = build_correlation_cells(wide_table)

        assert len(cells) == 9
        assert [(c.row, c.col) for c in cells[:4]] == [
            ('a', 'a'), ('a', 'b'), ('a', 'c'), ('b', 'a')
        ]
        assert isinstance(cells[0], CorrelationCell)

    def test_cells_to_frame(self, wide_table):
        cells = linearize_matrix(correlation_matrix(wide_table))

        frame = cells_to_frame(cells)

        assert list(frame.columns) == ['row', 'col', 'value']
        assert len(frame) == 9
        assert frame.iloc[2]['value'] == pytest.approx(-1.0)

    def test_long_format_unparseable_timestamps(self):
        table = pd.DataFrame({
            'date': ['x', 'y', 'x', 'y'],
            'symbol': ['AAA', 'AAA', 'BBB', 'BBB'],
            'close': [1.0, 2.0, 3.0, 4.0],
        })

        with pytest.raises(InvalidInputError, match="Cannot parse timestamps in 'date'"):
            correlation_matrix(table)

    def test_long_format_datetime_index(self):
        """A DatetimeIndex serves as the time axis when no timestamp column exists."""
        dates = pd.to_datetime(['2024-01-01', '2024-01-02', '2024-01-03'] * 2)
        table = pd.DataFrame({
            'symbol': ['AAA'] * 3 + ['BBB'] * 3,
            'close': [1.0, 2.0, 3.0, 2.0, 4.0, 6.0],
        }, index=dates)

        matrix = correlation_matrix(table)

        assert list(matrix.columns) == ['AAA', 'BBB']
        assert matrix.at['AAA', 'BBB'] == pytest.approx(1.0)

    @pytest.mark.parametrize("method", ['pearson', 'spearman', 'kendall'])
    def test_repeat_runs_identical(self, method):
        rng = np.random.default_rng(5)
        table = pd.DataFrame(rng.normal(size=(40, 3)), columns=['x', 'y', 'z'])
        table.iloc[3, 1] = np.nan

        first = correlation_matrix(table, method=method)
        second = correlation_matrix(table, method=method)

        pd.testing.assert_frame_equal(first, second, check_exact=True)
