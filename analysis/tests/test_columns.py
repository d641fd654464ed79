"""
Tests for semantic column resolution.
"""

import pytest
import pandas as pd

from analysis.calculations.columns import (
    ROLE_CANDIDATES,
    SemanticRole,
    require_column,
    require_columns,
    resolve_column,
)
from analysis.errors import MissingColumnError


class TestResolveColumn:
    """Tests for resolve_column."""

    def test_priority_order_not_column_order(self):
        """Candidate order wins over the table's column order."""
        table = pd.DataFrame({'portfolio_value': [1.0], 'value': [2.0]})

        assert resolve_column(table, SemanticRole.EQUITY) == 'value'

    def test_exact_match_preferred(self):
        table = pd.DataFrame({'total_value': [1.0], 'equity': [2.0]})

        assert resolve_column(table, SemanticRole.EQUITY) == 'equity'

    def test_returns_role(self):
        table = pd.DataFrame({'pnl_pct': [0.1], 'daily_returns': [0.2]})

        assert resolve_column(table, SemanticRole.RETURNS) == 'daily_returns'

    def test_no_match(self):
        table = pd.DataFrame({'foo': [1.0]})

        assert resolve_column(table, SemanticRole.RISK) is None

    def test_accepts_mapping(self):
        assert resolve_column({'ticker': [], 'close': []}, SemanticRole.SYMBOL) == 'ticker'

    def test_accepts_role_string(self):
        table = pd.DataFrame({'date': [1]})

        assert resolve_column(table, 'timestamp') == 'date'

    def test_every_role_has_candidates(self):
        for role in SemanticRole:
            assert len(ROLE_CANDIDATES[role]) > 0


class TestRequireColumn:
    """Tests for require_column and require_columns."""

    def test_missing_role_lists_candidates(self):
        table = pd.DataFrame({'foo': [1.0]})

        with pytest.raises(MissingColumnError, match="No equity column found"):
            require_column(table, SemanticRole.EQUITY)

    def test_override_present(self):
        table = pd.DataFrame({'nav': [1.0], 'equity': [2.0]})

        assert require_column(table, SemanticRole.EQUITY, override='nav') == 'nav'

    def test_override_missing(self):
        table = pd.DataFrame({'equity': [2.0]})

        with pytest.raises(MissingColumnError, match="Column 'nav' not found"):
            require_column(table, SemanticRole.EQUITY, override='nav')

    def test_require_columns_reports_all_missing(self):
        table = pd.DataFrame({'open': [1.0], 'close': [1.0]})

        with pytest.raises(MissingColumnError, match="Missing required columns: high, low"):
            require_columns(table, ['open', 'high', 'low', 'close'])

    def test_require_columns_passes(self):
        table = pd.DataFrame({'open': [1.0], 'close': [1.0]})

        require_columns(table, ['open', 'close'])
