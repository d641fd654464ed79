"""
Analytics policy configuration.
Built-in defaults, optionally overridden by a YAML file and TRADEVIZ_* environment variables.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from analysis.calculations.correlation import validate_method
from analysis.calculations.rolling import ANNUALIZATION_FACTOR

logger = logging.getLogger(__name__)

# Monthly returns need more than this many equity observations
MONTHLY_RETURNS_MIN_OBSERVATIONS = 30

# Share of a price/volume stack given to volume bars
DEFAULT_VOLUME_HEIGHT = 0.2

# Environment variable -> policy field
ENV_OVERRIDES = {
    'TRADEVIZ_ANNUALIZATION_FACTOR': 'annualization_factor',
    'TRADEVIZ_MONTHLY_MIN_OBSERVATIONS': 'monthly_returns_min_observations',
    'TRADEVIZ_ROLLING_WINDOW': 'rolling_window',
    'TRADEVIZ_HISTOGRAM_BINS': 'histogram_bins',
    'TRADEVIZ_CORRELATION_METHOD': 'correlation_method',
    'TRADEVIZ_VOLUME_HEIGHT': 'volume_height',
}


class PolicyConfigError(Exception):
    """Raised when policy configuration cannot be loaded."""
    pass


@dataclass(frozen=True)
class AnalyticsPolicy:
    """Policy constants used by panel builders and layout composition."""
    annualization_factor: int = ANNUALIZATION_FACTOR
    monthly_returns_min_observations: int = MONTHLY_RETURNS_MIN_OBSERVATIONS
    rolling_window: int = 60
    histogram_bins: int = 50
    correlation_method: str = 'pearson'
    volume_height: float = DEFAULT_VOLUME_HEIGHT

    def __post_init__(self):
        """Validate policy values."""
        if self.annualization_factor <= 0:
            raise ValueError("annualization_factor must be positive")

        if self.monthly_returns_min_observations < 0:
            raise ValueError("monthly_returns_min_observations must be non-negative")

        if self.rolling_window <= 0:
            raise ValueError("rolling_window must be positive")

        if self.histogram_bins <= 0:
            raise ValueError("histogram_bins must be positive")

        if not 0 < self.volume_height < 1:
            raise ValueError("volume_height must be between 0 and 1")

        validate_method(self.correlation_method)


def _coerce(name: str, raw: Any) -> Any:
    field_types = {f.name: f.type for f in fields(AnalyticsPolicy)}
    target = field_types[name]
    if target in (int, 'int'):
        return int(raw)
    if target in (float, 'float'):
        return float(raw)
    return str(raw)


def load_policy(config_path: Optional[str] = None) -> AnalyticsPolicy:
    """
    Load analytics policy from YAML and environment.

    Precedence: defaults < YAML 'policy' section < TRADEVIZ_* environment variables.

    Args:
        config_path: Path to YAML config (defaults to TRADEVIZ_POLICY_CONFIG if set)

    Returns:
        Validated AnalyticsPolicy

    Raises:
        PolicyConfigError: If the file is missing, malformed, or values are invalid
    """
    load_dotenv()

    if config_path is None:
        config_path = os.getenv('TRADEVIZ_POLICY_CONFIG')

    values: Dict[str, Any] = {}

    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise PolicyConfigError(f"Policy config file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise PolicyConfigError(f"Failed to parse policy config: {e}") from e

        section = config.get('policy', {}) if isinstance(config, dict) else None
        if not isinstance(section, dict):
            raise PolicyConfigError("Policy config 'policy' section must be a mapping")

        known = {f.name for f in fields(AnalyticsPolicy)}
        for key, raw in section.items():
            if key not in known:
                logger.warning(f"Ignoring unknown policy setting: {key}")
                continue
            values[key] = raw

    for env_name, field_name in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != '':
            values[field_name] = raw

    try:
        coerced = {name: _coerce(name, raw) for name, raw in values.items()}
        policy = replace(AnalyticsPolicy(), **coerced)
    except ValueError as e:
        raise PolicyConfigError(f"Invalid policy configuration: {e}") from e

    logger.debug(f"Loaded analytics policy: {policy}")
    return policy
