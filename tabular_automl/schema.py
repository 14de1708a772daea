# tabular_automl/schema.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tabular_automl.exceptions import SchemaError


class FeatureRole(str, Enum):
    """Role a column plays in the dataset"""
    NUMERIC = "NUMERIC"
    CATEGORICAL = "CATEGORICAL"
    ID = "ID"
    TARGET = "TARGET"


class ModelCategory(str, Enum):
    BINARY_CLASSIFICATION = "binary_classification"
    MULTICLASS_CLASSIFICATION = "multiclass_classification"


# Wire models for the external schema document

class FeatureDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    data_type: str = Field(alias="dataType")
    nullable: bool = False


class NamedField(BaseModel):
    name: str


class SchemaDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    features: List[FeatureDocument]
    id: NamedField
    target: NamedField
    model_category: str = Field(alias="modelCategory")


@dataclass(frozen=True)
class FeatureSpec:
    name: str
    role: FeatureRole
    nullable: bool = False


@dataclass(frozen=True)
class SchemaModel:
    """Typed view of feature roles consumed by every downstream component.

    Invariants: exactly one ID feature, exactly one TARGET feature, every other
    feature NUMERIC or CATEGORICAL, and no name used twice.
    """
    features: tuple
    model_category: str

    def __post_init__(self):
        names = [f.name for f in self.features]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise SchemaError(f"Feature names are not unique: {duplicated}")

        for role in (FeatureRole.ID, FeatureRole.TARGET):
            count = sum(1 for f in self.features if f.role == role)
            if count != 1:
                raise SchemaError(f"Schema must define exactly one {role.value} feature, found {count}")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "SchemaModel":
        """Build the schema view from the raw schema document"""
        try:
            parsed = SchemaDocument.model_validate(document)
        except ValidationError as e:
            raise SchemaError(f"Invalid schema document: {e}") from e

        specs = []
        for feature in parsed.features:
            try:
                role = FeatureRole(feature.data_type.upper())
            except ValueError:
                raise SchemaError(
                    f"Feature '{feature.name}' has unsupported dataType '{feature.data_type}'"
                ) from None
            if role not in (FeatureRole.NUMERIC, FeatureRole.CATEGORICAL):
                raise SchemaError(
                    f"Feature '{feature.name}' must be NUMERIC or CATEGORICAL, got {role.value}"
                )
            specs.append(FeatureSpec(feature.name, role, feature.nullable))

        specs.append(FeatureSpec(parsed.id.name, FeatureRole.ID))
        specs.append(FeatureSpec(parsed.target.name, FeatureRole.TARGET))

        return cls(features=tuple(specs), model_category=parsed.model_category)

    def _names(self, *roles: FeatureRole) -> List[str]:
        return [f.name for f in self.features if f.role in roles]

    @property
    def feature_names(self) -> List[str]:
        return self._names(FeatureRole.NUMERIC, FeatureRole.CATEGORICAL)

    @property
    def numeric_features(self) -> List[str]:
        return self._names(FeatureRole.NUMERIC)

    @property
    def categorical_features(self) -> List[str]:
        return self._names(FeatureRole.CATEGORICAL)

    @property
    def nullable_features(self) -> List[str]:
        return [f.name for f in self.features
                if f.nullable and f.role in (FeatureRole.NUMERIC, FeatureRole.CATEGORICAL)]

    @property
    def id_feature(self) -> str:
        return self._names(FeatureRole.ID)[0]

    @property
    def target_feature(self) -> str:
        return self._names(FeatureRole.TARGET)[0]

    def role_of(self, name: str) -> Optional[FeatureRole]:
        for feature in self.features:
            if feature.name == name:
                return feature.role
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'features': [
                {'name': f.name, 'role': f.role.value, 'nullable': f.nullable}
                for f in self.features
            ],
            'model_category': self.model_category
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SchemaModel":
        try:
            specs = tuple(
                FeatureSpec(f['name'], FeatureRole(f['role']), bool(f.get('nullable', False)))
                for f in d['features']
            )
            return cls(features=specs, model_category=d['model_category'])
        except (KeyError, TypeError, ValueError) as e:
            raise SchemaError(f"Invalid persisted schema: {e}") from e
