# tabular_automl/agents/feature_agent.py
import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd

from tabular_automl.exceptions import SchemaError, SchemaMismatchError
from tabular_automl.schema import SchemaModel
from tabular_automl.transforms import (
    CategoricalEncoder,
    ColnameMapping,
    ConstantColumnFilter,
    ConstantColumns,
    EncodedColumnSet,
    ImputationParams,
    Imputer,
    LabelVocabulary,
    NameSanitizer,
    RareCategoryCollapser,
    Scaler,
    ScalingParams,
    TargetEncoder,
    TopCategoriesMap,
)
from tabular_automl.transforms.scaler import CLIP_LOWER, CLIP_UPPER
from tabular_automl.utils.logging_config import log_execution_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreprocessingState:
    """Every parameter object produced by a fit, and the only state reused at inference"""
    schema: SchemaModel
    imputation: ImputationParams
    top_categories: TopCategoriesMap
    encoded_columns: EncodedColumnSet
    constant_columns: ConstantColumns
    scaling: ScalingParams
    colname_mapping: ColnameMapping
    label_vocabulary: LabelVocabulary

    @property
    def feature_columns(self) -> List[str]:
        """Sanitized model input columns, in training order"""
        return list(self.colname_mapping.sanitized)


class FeatureEngineeringAgent:
    """Agent responsible for fitting and replaying the preprocessing steps"""

    def __init__(self, max_categories: int = 10,
                 clip_range: Tuple[float, float] = (CLIP_LOWER, CLIP_UPPER)):
        self.clip_range = clip_range
        self.imputer = Imputer()
        self.collapser = RareCategoryCollapser(max_categories=max_categories)
        self.encoder = CategoricalEncoder()
        self.constant_filter = ConstantColumnFilter()
        self.scaler = Scaler()
        self.sanitizer = NameSanitizer()
        self.target_encoder = TargetEncoder()

    @log_execution_time
    def fit_transform(self, data: pd.DataFrame,
                      schema: SchemaModel) -> Tuple[pd.DataFrame, np.ndarray, PreprocessingState]:
        """Fit every preprocessing step on the training data"""
        if schema.target_feature not in data.columns:
            raise SchemaError(f"Target column '{schema.target_feature}' not found in training data")

        n_missing_labels = int(data[schema.target_feature].isna().sum())
        if n_missing_labels:
            raise SchemaError(
                f"Target column '{schema.target_feature}' has {n_missing_labels} missing labels"
            )

        X = self._select_features(data, schema, error=SchemaError)
        logger.info(f"Fitting preprocessing on {X.shape[0]} rows, {X.shape[1]} features")

        # 1. Impute missing values and flag them
        imputation = self.imputer.fit(X, schema.nullable_features, schema.numeric_features)
        X = self.imputer.apply(X, imputation)

        # 2. Collapse rare categories
        top_categories = self.collapser.fit(X, schema.categorical_features)
        X = self.collapser.apply(X, top_categories)

        # 3. One-hot encode
        encoded_columns = self.encoder.fit(X, schema.categorical_features)
        X = self.encoder.apply(X, encoded_columns, schema.categorical_features)

        # 4. Remove constant columns
        constant_columns = self.constant_filter.fit(X)
        X = self.constant_filter.apply(X, constant_columns)
        if X.shape[1] == 0:
            raise SchemaError("No feature columns remain after constant-column removal")

        # 5. Standardize and clip the numeric features that survived
        numeric_present = [c for c in schema.numeric_features if c in X.columns]
        lower, upper = self.clip_range
        scaling = self.scaler.fit(X, numeric_present, lower=lower, upper=upper)
        X = self.scaler.apply(X, scaling)

        # 6. Sanitize column names
        colname_mapping = self.sanitizer.fit(list(X.columns))
        X = self.sanitizer.apply(X, colname_mapping)

        # 7. Label encode the target
        label_vocabulary = self.target_encoder.fit(data[schema.target_feature])
        y = self.target_encoder.apply(data[schema.target_feature], label_vocabulary)

        state = PreprocessingState(
            schema=schema,
            imputation=imputation,
            top_categories=top_categories,
            encoded_columns=encoded_columns,
            constant_columns=constant_columns,
            scaling=scaling,
            colname_mapping=colname_mapping,
            label_vocabulary=label_vocabulary
        )

        logger.info(
            f"Preprocessing fitted: {X.shape[1]} model columns, "
            f"{len(constant_columns.dropped)} constant columns removed, "
            f"{len(label_vocabulary)} target classes"
        )
        return X, y, state

    @log_execution_time
    def transform(self, data: pd.DataFrame, state: PreprocessingState) -> pd.DataFrame:
        """Replay the fitted preprocessing on new data using only the persisted state"""
        X = self._select_features(data, state.schema, error=SchemaMismatchError)

        X = self.imputer.apply(X, state.imputation)
        X = self.collapser.apply(X, state.top_categories)
        X = self.encoder.apply(X, state.encoded_columns, state.schema.categorical_features)
        X = self.constant_filter.apply(X, state.constant_columns)
        X = self.scaler.apply(X, state.scaling)
        X = self.sanitizer.apply(X, state.colname_mapping)

        return X

    def transform_target(self, target_values, state: PreprocessingState) -> np.ndarray:
        return self.target_encoder.apply(target_values, state.label_vocabulary)

    def decode_target(self, codes, state: PreprocessingState) -> List[str]:
        return self.target_encoder.decode(codes, state.label_vocabulary)

    def _select_features(self, data: pd.DataFrame, schema: SchemaModel,
                         error: type = SchemaMismatchError) -> pd.DataFrame:
        """Keep schema features in data column order; ID, target and extra columns are ignored"""
        missing = [c for c in schema.feature_names if c not in data.columns]
        if missing:
            raise error(f"Features not found in data: {missing}")

        wanted = set(schema.feature_names)
        extra = [c for c in data.columns
                 if c not in wanted and c not in (schema.id_feature, schema.target_feature)]
        if extra:
            logger.debug(f"Ignoring columns outside the schema: {extra}")

        return data[[c for c in data.columns if c in wanted]].copy()


def expected_column_count(state: PreprocessingState) -> int:
    """Numeric features + missingness indicators + encoded columns - constant columns"""
    schema = state.schema
    n_before_filter = (
        len(schema.numeric_features)
        + len(state.imputation.fill_values)
        + len(state.encoded_columns.columns)
    )
    return n_before_filter - len(state.constant_columns.dropped)
