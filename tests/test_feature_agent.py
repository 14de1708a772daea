# tests/test_feature_agent.py
import re

import numpy as np
import pandas as pd
import pytest

from tabular_automl.agents.feature_agent import FeatureEngineeringAgent, expected_column_count
from tabular_automl.exceptions import SchemaError, SchemaMismatchError
from tabular_automl.schema import SchemaModel
from tabular_automl.transforms import OTHER_CATEGORY


class TestFeatureEngineeringAgent:

    @pytest.fixture
    def schema(self, schema_document):
        return SchemaModel.from_document(schema_document)

    @pytest.fixture
    def fitted(self, schema, training_data):
        agent = FeatureEngineeringAgent()
        X, y, state = agent.fit_transform(training_data, schema)
        return agent, X, y, state

    def test_end_to_end_scenario(self, fitted, training_data):
        """100 rows, nullable age with 5 nulls, 12 cities, yes/no target"""
        agent, X, y, state = fitted

        assert list(state.imputation.fill_values) == ['age']
        assert state.imputation.fill_values['age'] == pytest.approx(training_data['age'].median())
        assert X['feat_age_is_missing'].sum() == 5

        assert len(state.top_categories.categories['city']) == 10
        city_columns = [c for c in X.columns if c.startswith('feat_city_')]
        assert len(city_columns) == 11
        assert f'feat_city_{OTHER_CATEGORY}' in city_columns

        assert state.label_vocabulary.labels == ['no', 'yes']
        expected_codes = (training_data['response'] == 'yes').astype(int).values
        np.testing.assert_array_equal(y, expected_codes)

    def test_column_count_matches_mapping(self, fitted):
        agent, X, y, state = fitted

        assert X.shape[1] == expected_column_count(state)
        assert X.shape[1] == len(state.colname_mapping)
        assert list(X.columns) == state.feature_columns

    def test_id_target_and_extra_columns_excluded(self, schema, training_data):
        data = training_data.assign(notes='free text')
        X, _, _ = FeatureEngineeringAgent().fit_transform(data, schema)

        for col in ('customer_id', 'response', 'notes'):
            assert not any(col in c for c in X.columns)

    def test_output_is_numeric_and_bounded(self, fitted):
        agent, X, y, state = fitted

        assert not X.isnull().any().any()
        assert all(pd.api.types.is_numeric_dtype(X[c]) for c in X.columns)
        assert X['feat_age'].between(-4, 4).all()
        assert all(re.match(r"^feat_[A-Za-z0-9_]+$", c) for c in X.columns)

    def test_transform_reproduces_training_matrix(self, fitted, training_data):
        """Replaying the persisted state on the training rows gives the fit-time matrix"""
        agent, X, y, state = fitted

        replayed = FeatureEngineeringAgent().transform(training_data, state)

        pd.testing.assert_frame_equal(replayed, X)

    def test_transform_new_data(self, fitted):
        agent, X, y, state = fitted

        new_data = pd.DataFrame({
            'customer_id': ['N1', 'N2', 'N3'],
            'city': ['Paris', 'Atlantis', 'Sofia'],
            'age': [np.nan, 200.0, 35.0]
        })
        result = agent.transform(new_data, state)

        assert list(result.columns) == state.feature_columns
        assert result['feat_age_is_missing'].tolist() == [1, 0, 0]
        assert result['feat_age'].max() == 4.0
        assert result['feat_city_Paris'].tolist() == [1, 0, 0]
        assert result[f'feat_city_{OTHER_CATEGORY}'].tolist() == [0, 1, 1]

    def test_transform_missing_feature_raises(self, fitted):
        agent, X, y, state = fitted

        with pytest.raises(SchemaMismatchError):
            agent.transform(pd.DataFrame({'customer_id': ['N1'], 'age': [30.0]}), state)

    def test_missing_target_at_fit_raises(self, schema, training_data):
        with pytest.raises(SchemaError):
            FeatureEngineeringAgent().fit_transform(training_data.drop(columns=['response']), schema)

    def test_missing_target_label_at_fit_raises(self, schema, training_data):
        data = training_data.copy()
        data.loc[7, 'response'] = np.nan

        with pytest.raises(SchemaError, match="1 missing labels"):
            FeatureEngineeringAgent().fit_transform(data, schema)

    def test_all_features_constant_raises(self):
        schema = SchemaModel.from_document({
            'modelCategory': 'binary_classification',
            'id': {'name': 'row_id'},
            'target': {'name': 'label'},
            'features': [{'name': 'x', 'dataType': 'NUMERIC'}]
        })
        data = pd.DataFrame({'row_id': ['a', 'b', 'c'], 'x': [1.0, 1.0, 1.0], 'label': ['0', '1', '0']})

        with pytest.raises(SchemaError, match="No feature columns remain"):
            FeatureEngineeringAgent().fit_transform(data, schema)

    def test_constant_columns_removed_and_replayed(self, schema_document, training_data):
        schema_document['features'].append({'name': 'plan', 'dataType': 'NUMERIC', 'nullable': True})
        schema = SchemaModel.from_document(schema_document)
        data = training_data.assign(plan=1.0)

        agent = FeatureEngineeringAgent()
        X, _, state = agent.fit_transform(data, schema)

        # Constant numeric column and its all-zero indicator are both dropped
        assert state.constant_columns.dropped == ['plan', 'plan_is_missing']
        assert 'plan' not in state.scaling.stats
        assert 'feat_plan' not in X.columns
        assert X.shape[1] == expected_column_count(state)

        replayed = agent.transform(data.assign(plan=[0.0, 5.0] * 50), state)
        assert list(replayed.columns) == list(X.columns)

    def test_max_categories_is_configurable(self, schema, training_data):
        X, _, state = FeatureEngineeringAgent(max_categories=3).fit_transform(training_data, schema)

        assert state.top_categories.categories['city'] == ['Paris', 'Rome', 'Berlin']
        assert len([c for c in X.columns if c.startswith('feat_city_')]) == 4
