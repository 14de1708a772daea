# tabular_automl/transforms/imputer.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from tabular_automl.exceptions import EmptyColumnError, SchemaMismatchError

logger = logging.getLogger(__name__)

MISSING_INDICATOR_SUFFIX = "_is_missing"


def missing_indicator_name(feature: str) -> str:
    return f"{feature}{MISSING_INDICATOR_SUFFIX}"


@dataclass(frozen=True)
class ImputationParams:
    """Fill value per nullable feature, recorded once at fit time"""
    fill_values: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.fill_values)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ImputationParams":
        return cls(fill_values=dict(d))


class Imputer:
    """Fills missing values and adds a 0/1 missingness indicator per nullable feature.

    Numeric features are filled with the training median. Categorical features
    are filled with the first non-null value seen in the training column, not
    the mode.
    """

    def fit(self, data: pd.DataFrame, nullable_features: List[str],
            numeric_features: List[str]) -> ImputationParams:
        numeric = set(numeric_features)
        fill_values = {}

        for col in nullable_features:
            if col not in data.columns:
                raise SchemaMismatchError(f"Nullable feature '{col}' not found in data")

            non_null = data[col].dropna()
            if non_null.empty:
                raise EmptyColumnError(f"Column '{col}' has no non-null values to impute from")

            if col in numeric:
                fill_values[col] = float(non_null.median())
            else:
                value = non_null.iloc[0]
                # numpy scalars do not survive json persistence
                fill_values[col] = value.item() if isinstance(value, np.generic) else value

            logger.debug(f"Imputation value for '{col}': {fill_values[col]!r}")

        return ImputationParams(fill_values=fill_values)

    def apply(self, data: pd.DataFrame, params: ImputationParams) -> pd.DataFrame:
        data_copy = data.copy()

        for col, value in params.fill_values.items():
            if col not in data_copy.columns:
                raise SchemaMismatchError(f"Nullable feature '{col}' not found in data")

            is_missing = data_copy[col].isna().astype(int)
            indicator_col = missing_indicator_name(col)
            if indicator_col in data_copy.columns:
                # Already imputed once: keep the recorded indicator
                is_missing = np.maximum(data_copy[indicator_col].astype(int), is_missing)

            data_copy[indicator_col] = is_missing
            if is_missing.any():
                data_copy[col] = data_copy[col].where(data_copy[col].notna(), value)

        return data_copy
