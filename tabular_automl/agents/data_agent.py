# tabular_automl/agents/data_agent.py
import json
import logging
from pathlib import Path
from typing import Union

import pandas as pd

from tabular_automl.exceptions import SchemaError
from tabular_automl.schema import FeatureRole, SchemaModel

logger = logging.getLogger(__name__)


class DataIngestionAgent:
    """Agent responsible for reading the schema document and the data files"""

    def __init__(self):
        self.schema_pattern = "*.json"
        self.data_pattern = "*.csv"

    def load_schema(self, schema_path: Union[str, Path]) -> SchemaModel:
        """Load the schema from a JSON file, or the first JSON file in a directory"""
        path = self._resolve(schema_path, self.schema_pattern)
        logger.info(f"Reading schema: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise SchemaError(f"Schema file {path} is not valid JSON: {e}") from e

        schema = SchemaModel.from_document(document)
        logger.info(
            f"Schema loaded: {len(schema.numeric_features)} numeric, "
            f"{len(schema.categorical_features)} categorical, "
            f"{len(schema.nullable_features)} nullable features"
        )
        return schema

    def load_data(self, data_path: Union[str, Path], schema: SchemaModel,
                  require_target: bool = True) -> pd.DataFrame:
        """Load a CSV file, or the first CSV file in a directory, typed per the schema"""
        path = self._resolve(data_path, self.data_pattern)
        logger.info(f"Reading data: {path}")

        text_columns = set(schema.categorical_features) | {schema.id_feature, schema.target_feature}
        data = pd.read_csv(path, dtype={c: str for c in text_columns})

        required = schema.feature_names + [schema.id_feature]
        if require_target:
            required.append(schema.target_feature)
        missing = [c for c in required if c not in data.columns]
        if missing:
            raise SchemaError(f"Columns defined in the schema not found in {path.name}: {missing}")

        data = self._coerce_types(data, schema)

        logger.info(f"Data loaded successfully: {data.shape[0]} rows, {data.shape[1]} columns")
        return data

    def _coerce_types(self, data: pd.DataFrame, schema: SchemaModel) -> pd.DataFrame:
        """Parse numeric features to float; text columns keep their nulls"""
        data_copy = data.copy()

        for col in data_copy.columns:
            role = schema.role_of(col)
            if role != FeatureRole.NUMERIC:
                continue
            try:
                data_copy[col] = pd.to_numeric(data_copy[col]).astype(float)
            except (ValueError, TypeError) as e:
                raise SchemaError(f"Numeric feature '{col}' has non-numeric values: {e}") from e

        return data_copy

    def _resolve(self, path: Union[str, Path], pattern: str) -> Path:
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Path not found: {path}")

        if path.is_dir():
            matches = sorted(path.glob(pattern))
            if not matches:
                raise FileNotFoundError(f"No {pattern} file found in {path}")
            return matches[0]

        return path
