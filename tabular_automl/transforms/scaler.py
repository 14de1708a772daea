# tabular_automl/transforms/scaler.py
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pandas as pd

from tabular_automl.exceptions import DegenerateScaleError, SchemaMismatchError

logger = logging.getLogger(__name__)

CLIP_LOWER = -4.0
CLIP_UPPER = 4.0


@dataclass(frozen=True)
class ScalingParams:
    """
    Per-feature standardization statistics plus the clip range.

    Attributes:
        stats: {feature: {'mean': float, 'std': float}} computed on the imputed
            training column, before clipping
        lower: Lower clip bound applied after standardization
        upper: Upper clip bound applied after standardization
    """
    stats: Dict[str, Dict[str, float]] = field(default_factory=dict)
    lower: float = CLIP_LOWER
    upper: float = CLIP_UPPER

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stats': {col: dict(s) for col, s in self.stats.items()},
            'clip_range': [self.lower, self.upper]
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScalingParams":
        lower, upper = d.get('clip_range', (CLIP_LOWER, CLIP_UPPER))
        return cls(
            stats={col: {'mean': float(s['mean']), 'std': float(s['std'])}
                   for col, s in d.get('stats', {}).items()},
            lower=float(lower),
            upper=float(upper)
        )


class Scaler:
    """Standardizes numeric features with fit-time statistics and clips the result"""

    def fit(self, data: pd.DataFrame, numeric_features: List[str],
            lower: float = CLIP_LOWER, upper: float = CLIP_UPPER) -> ScalingParams:
        if lower > upper:
            raise ValueError(f"Invalid clip range: [{lower}, {upper}]")

        stats = {}
        for col in numeric_features:
            if col not in data.columns:
                raise SchemaMismatchError(f"Numeric feature '{col}' not found in data")

            mean = float(data[col].mean())
            std = float(data[col].std())
            if not math.isfinite(std) or std == 0 or not math.isfinite(mean):
                raise DegenerateScaleError(
                    f"Cannot standardize '{col}': mean={mean}, std={std}"
                )
            stats[col] = {'mean': mean, 'std': std}

        return ScalingParams(stats=stats, lower=lower, upper=upper)

    def apply(self, data: pd.DataFrame, params: ScalingParams) -> pd.DataFrame:
        data_copy = data.copy()

        for col, s in params.stats.items():
            if col not in data_copy.columns:
                raise SchemaMismatchError(f"Numeric feature '{col}' not found in data")

            standardized = (data_copy[col].astype(float) - s['mean']) / s['std']
            data_copy[col] = standardized.clip(lower=params.lower, upper=params.upper)

        return data_copy

    def inverse(self, data: pd.DataFrame, params: ScalingParams) -> pd.DataFrame:
        """Undo standardization (clipping is not reversible)"""
        data_copy = data.copy()

        for col, s in params.stats.items():
            if col in data_copy.columns:
                data_copy[col] = data_copy[col] * s['std'] + s['mean']

        return data_copy
