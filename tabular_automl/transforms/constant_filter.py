# tabular_automl/transforms/constant_filter.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstantColumns:
    """Zero-variance columns removed at fit time and replayed at inference"""
    dropped: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {'dropped': list(self.dropped)}

    @classmethod
    def from_dict(cls, d: Dict[str, List[str]]) -> "ConstantColumns":
        return cls(dropped=list(d.get('dropped', [])))


class ConstantColumnFilter:
    """Drops columns holding a single value across every row"""

    def fit(self, data: pd.DataFrame) -> ConstantColumns:
        if len(data) < 2:
            # Variance is undefined below two rows
            return ConstantColumns()

        dropped = [col for col in data.columns if data[col].nunique(dropna=False) <= 1]
        if dropped:
            logger.info(f"Removing {len(dropped)} constant columns: {dropped}")

        return ConstantColumns(dropped=dropped)

    def apply(self, data: pd.DataFrame, params: ConstantColumns) -> pd.DataFrame:
        return data.drop(columns=[c for c in params.dropped if c in data.columns])
