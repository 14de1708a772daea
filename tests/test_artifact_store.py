# tests/test_artifact_store.py
import json

import numpy as np
import pandas as pd
import pytest
from sklearn.ensemble import RandomForestClassifier

from tabular_automl.agents.feature_agent import FeatureEngineeringAgent
from tabular_automl.artifact_store import (
    COLNAME_MAPPING_FILE,
    ENCODED_TARGET_FILE,
    MANIFEST_FILE,
    SCALING_FILE,
    ArtifactStore,
)
from tabular_automl.exceptions import MissingArtifactError
from tabular_automl.schema import SchemaModel


class TestArtifactStore:

    @pytest.fixture
    def fitted(self, schema_document, training_data):
        schema = SchemaModel.from_document(schema_document)
        X, y, state = FeatureEngineeringAgent().fit_transform(training_data, schema)
        model = RandomForestClassifier(n_estimators=5, random_state=42).fit(X, y)
        return X, state, model

    def test_save_and_load(self, tmp_path, fitted, training_data):
        X, state, model = fitted
        store = ArtifactStore(tmp_path / "artifacts")

        files = store.save(state, model)
        loaded_state, loaded_model = store.load()

        assert store.is_committed()
        assert set(files) >= {'schema', 'imputation', 'scaling', 'colname_mapping', 'model'}
        assert loaded_state == state
        pd.testing.assert_frame_equal(
            FeatureEngineeringAgent().transform(training_data, loaded_state), X
        )
        assert (loaded_model.predict_proba(X) == model.predict_proba(X)).all()

    def test_mapping_csv_has_two_columns(self, tmp_path, fitted):
        X, state, model = fitted
        store = ArtifactStore(tmp_path)
        store.save(state, model)

        mapping = pd.read_csv(tmp_path / COLNAME_MAPPING_FILE)

        assert list(mapping.columns) == ['original', 'sanitized']
        assert mapping['sanitized'].tolist() == list(X.columns)

    def test_scaling_file_carries_clip_range(self, tmp_path, fitted):
        X, state, model = fitted
        ArtifactStore(tmp_path).save(state, model)

        with open(tmp_path / SCALING_FILE) as f:
            scaling = json.load(f)

        assert scaling['clip_range'] == [-4.0, 4.0]
        assert set(scaling['stats']) == {'age'}

    def test_encoded_target_saved(self, tmp_path, schema_document, training_data):
        schema = SchemaModel.from_document(schema_document)
        X, y, state = FeatureEngineeringAgent().fit_transform(training_data, schema)
        model = RandomForestClassifier(n_estimators=5, random_state=42).fit(X, y)
        store = ArtifactStore(tmp_path)

        files = store.save(state, model, target=y)

        assert files['encoded_target'] == str(tmp_path / ENCODED_TARGET_FILE)
        assert list(pd.read_csv(tmp_path / ENCODED_TARGET_FILE).columns) == ['target']
        np.testing.assert_array_equal(store.load_target(), y)

    def test_encoded_target_not_carried_over(self, tmp_path, fitted):
        X, state, model = fitted
        store = ArtifactStore(tmp_path)
        store.save(state, model, target=np.zeros(len(X), dtype=int))

        store.save(state, model)

        assert not (tmp_path / ENCODED_TARGET_FILE).exists()
        with pytest.raises(MissingArtifactError):
            store.load_target()

    def test_load_without_manifest(self, tmp_path, fitted):
        X, state, model = fitted
        store = ArtifactStore(tmp_path)
        store.save(state, model)

        (tmp_path / MANIFEST_FILE).unlink()

        with pytest.raises(MissingArtifactError):
            store.load()

    def test_load_empty_directory(self, tmp_path):
        with pytest.raises(MissingArtifactError):
            ArtifactStore(tmp_path / "never_trained").load_state()

    def test_missing_parameter_file(self, tmp_path, fitted):
        X, state, model = fitted
        store = ArtifactStore(tmp_path)
        store.save(state, model)

        (tmp_path / SCALING_FILE).unlink()

        with pytest.raises(MissingArtifactError):
            store.load_state()

    def test_no_temp_files_left(self, tmp_path, fitted):
        X, state, model = fitted
        ArtifactStore(tmp_path).save(state, model)

        assert not list(tmp_path.rglob("*.tmp"))
