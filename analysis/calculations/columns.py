"""
Column resolution for heterogeneously named tables.
Maps semantic roles onto the first physically present column of a fixed candidate list.
"""

from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

from analysis.errors import MissingColumnError


class SemanticRole(str, Enum):
    """Enumeration of column intents."""
    EQUITY = 'equity'
    RETURNS = 'returns'
    RISK = 'risk'
    TIMESTAMP = 'timestamp'
    GROUP = 'group'
    LABEL = 'label'
    SYMBOL = 'symbol'
    PRICE = 'price'


# Candidate names in priority order; first match wins
ROLE_CANDIDATES: Dict[SemanticRole, Tuple[str, ...]] = {
    SemanticRole.EQUITY: ('equity', 'value', 'portfolio_value', 'portfolio_equity', 'total_value'),
    SemanticRole.RETURNS: ('returns', 'return', 'daily_returns', 'pct_return', 'pnl_pct'),
    SemanticRole.RISK: ('risk', 'volatility', 'sd'),
    SemanticRole.TIMESTAMP: ('datetime', 'date', 'timestamp', 'time'),
    SemanticRole.GROUP: ('strategy', 'symbol', 'name'),
    SemanticRole.LABEL: ('name', 'strategy', 'symbol'),
    SemanticRole.SYMBOL: ('symbol', 'ticker'),
    SemanticRole.PRICE: ('close', 'value', 'price', 'adj_close'),
}


def _column_names(table) -> Iterable[str]:
    if isinstance(table, pd.DataFrame):
        return table.columns
    return table.keys()


def resolve_column(table, role: SemanticRole) -> Optional[str]:
    """
    Resolve a semantic role to a column present in the table.

    Args:
        table: DataFrame (or any mapping of column name to values)
        role: Semantic role to resolve

    Returns:
        First candidate name present in the table, or None if none match
    """
    present = set(_column_names(table))
    for candidate in ROLE_CANDIDATES[SemanticRole(role)]:
        if candidate in present:
            return candidate
    return None


def require_column(table, role: SemanticRole, override: Optional[str] = None) -> str:
    """
    Resolve a role or fail with a descriptive error.

    An explicit override is checked for presence instead of the candidate list.

    Raises:
        MissingColumnError: If the override or every candidate is absent
    """
    role = SemanticRole(role)

    if override is not None:
        if override not in set(_column_names(table)):
            raise MissingColumnError(f"Column '{override}' not found in data")
        return override

    column = resolve_column(table, role)
    if column is None:
        candidates = ", ".join(f"'{c}'" for c in ROLE_CANDIDATES[role])
        raise MissingColumnError(
            f"No {role.value} column found. Expected one of: {candidates}"
        )
    return column


def require_columns(table, columns: Iterable[str]) -> None:
    """
    Check that every named column is present.

    Raises:
        MissingColumnError: Listing the missing columns in request order
    """
    present = set(_column_names(table))
    missing = [c for c in columns if c not in present]
    if missing:
        raise MissingColumnError(f"Missing required columns: {', '.join(missing)}")
