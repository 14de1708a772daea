# tabular_automl/transforms/categories.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from tabular_automl.exceptions import DuplicateInputNameError, SchemaMismatchError

logger = logging.getLogger(__name__)

OTHER_CATEGORY = "Other"
DEFAULT_MAX_CATEGORIES = 10


@dataclass(frozen=True)
class TopCategoriesMap:
    """Kept categories per categorical feature, most frequent first"""
    categories: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, List[str]]:
        return {col: list(values) for col, values in self.categories.items()}

    @classmethod
    def from_dict(cls, d: Dict[str, List[str]]) -> "TopCategoriesMap":
        return cls(categories={col: list(values) for col, values in d.items()})


@dataclass(frozen=True)
class EncodedColumnSet:
    """Indicator columns produced at fit time, in final order"""
    features: List[str] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {'features': list(self.features), 'columns': list(self.columns)}

    @classmethod
    def from_dict(cls, d: Dict[str, List[str]]) -> "EncodedColumnSet":
        return cls(features=list(d.get('features', [])), columns=list(d.get('columns', [])))


def _require_columns(data: pd.DataFrame, columns: List[str]):
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise SchemaMismatchError(f"Categorical features not found in data: {missing}")


class RareCategoryCollapser:
    """Caps categorical cardinality at the top-k most frequent values.

    Frequency ties are broken by the lexicographic order of the value, so the
    kept set does not depend on row order. A literal "Other" that makes the
    top-k is kept as is and becomes indistinguishable from collapsed values.
    """

    def __init__(self, max_categories: int = DEFAULT_MAX_CATEGORIES):
        self.max_categories = max_categories

    def fit(self, data: pd.DataFrame, categorical_features: List[str],
            k: Optional[int] = None) -> TopCategoriesMap:
        k = self.max_categories if k is None else k
        _require_columns(data, categorical_features)

        top_map = {}
        for col in categorical_features:
            counts = data[col].value_counts(dropna=True)
            ranked = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
            top_map[col] = [str(value) for value, _ in ranked[:k]]

            if len(counts) > k:
                logger.info(f"Collapsing {len(counts) - k} rare categories of '{col}' into '{OTHER_CATEGORY}'")

        return TopCategoriesMap(categories=top_map)

    def apply(self, data: pd.DataFrame, top_map: TopCategoriesMap) -> pd.DataFrame:
        data_copy = data.copy()
        _require_columns(data_copy, list(top_map.categories))

        for col, kept in top_map.categories.items():
            values = data_copy[col].astype(object)
            as_text = values.where(values.isna(), values.astype(str))
            data_copy[col] = as_text.where(as_text.isin(kept), OTHER_CATEGORY)

        return data_copy


class CategoricalEncoder:
    """One-hot expands collapsed categorical features into `<feature>_<value>` columns"""

    def fit(self, data: pd.DataFrame, categorical_features: List[str]) -> EncodedColumnSet:
        _require_columns(data, categorical_features)

        columns = []
        for col in categorical_features:
            values = sorted(str(v) for v in data[col].dropna().unique())
            columns.extend(f"{col}_{value}" for value in values)

        duplicated = sorted({c for c in columns if columns.count(c) > 1})
        if duplicated:
            raise DuplicateInputNameError(f"Indicator column names collide: {duplicated}")

        return EncodedColumnSet(features=list(categorical_features), columns=columns)

    def apply(self, data: pd.DataFrame, column_set: EncodedColumnSet,
              categorical_features: Optional[List[str]] = None) -> pd.DataFrame:
        if categorical_features is None:
            categorical_features = column_set.features

        unknown = [c for c in categorical_features if c not in column_set.features]
        if unknown:
            raise SchemaMismatchError(f"Categorical features not seen at fit time: {unknown}")
        _require_columns(data, column_set.features)

        if not column_set.features:
            return data.copy()

        expanded = pd.get_dummies(
            data[column_set.features].astype(object),
            prefix=column_set.features,
            prefix_sep="_",
            dtype=int
        )

        extra = [c for c in expanded.columns if c not in column_set.columns]
        if extra:
            logger.warning(f"Dropping {len(extra)} indicator columns unseen at fit time: {extra}")

        encoded = expanded.reindex(columns=column_set.columns, fill_value=0)
        remaining = data.drop(columns=column_set.features)

        return pd.concat([remaining, encoded], axis=1)
