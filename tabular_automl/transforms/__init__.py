"""Fit/apply preprocessing components.

Each component's fit returns an immutable parameter object that is persisted
and later injected into apply, so inference never needs the training set.
"""

from tabular_automl.transforms.categories import (
    OTHER_CATEGORY,
    CategoricalEncoder,
    EncodedColumnSet,
    RareCategoryCollapser,
    TopCategoriesMap,
)
from tabular_automl.transforms.constant_filter import ConstantColumnFilter, ConstantColumns
from tabular_automl.transforms.imputer import ImputationParams, Imputer, missing_indicator_name
from tabular_automl.transforms.names import COLUMN_PREFIX, ColnameMapping, NameSanitizer
from tabular_automl.transforms.scaler import Scaler, ScalingParams
from tabular_automl.transforms.target import LabelVocabulary, TargetEncoder

__all__ = [
    "OTHER_CATEGORY",
    "COLUMN_PREFIX",
    "CategoricalEncoder",
    "ColnameMapping",
    "ConstantColumnFilter",
    "ConstantColumns",
    "EncodedColumnSet",
    "ImputationParams",
    "Imputer",
    "LabelVocabulary",
    "NameSanitizer",
    "RareCategoryCollapser",
    "Scaler",
    "ScalingParams",
    "TargetEncoder",
    "TopCategoriesMap",
    "missing_indicator_name",
]
