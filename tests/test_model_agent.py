# tests/test_model_agent.py
import pytest
import pandas as pd
import numpy as np
from unittest import mock
from sklearn.datasets import make_classification

from tabular_automl.agents.model_agent import ModelTrainingAgent
from tabular_automl.exceptions import SchemaMismatchError, UnsupportedModelCategoryError
from tabular_automl.transforms import LabelVocabulary


class TestModelTrainingAgent:

    @pytest.fixture
    def binary_data(self):
        """Create binary classification matrix for testing"""
        X, y = make_classification(n_samples=200, n_features=6, n_classes=2, random_state=42)
        return pd.DataFrame(X, columns=[f'feat_x{i}' for i in range(6)]), y

    @pytest.fixture
    def multiclass_data(self):
        """Create multi-class classification matrix for testing"""
        X, y = make_classification(n_samples=300, n_features=8, n_informative=5,
                                   n_classes=3, random_state=42)
        return pd.DataFrame(X, columns=[f'feat_x{i}' for i in range(8)]), y

    @pytest.fixture
    def mock_mlflow(self):
        """Mock MLflow for testing"""
        with mock.patch('mlflow.set_tracking_uri') as set_uri, \
             mock.patch('mlflow.set_experiment') as set_experiment, \
             mock.patch('mlflow.start_run') as start_run, \
             mock.patch('mlflow.log_param') as log_param, \
             mock.patch('mlflow.log_metric') as log_metric, \
             mock.patch('mlflow.sklearn.log_model') as log_model:

            yield {
                'set_tracking_uri': set_uri,
                'set_experiment': set_experiment,
                'start_run': start_run,
                'log_param': log_param,
                'log_metric': log_metric,
                'log_model': log_model
            }

    def test_binary_training(self, binary_data):
        X, y = binary_data
        agent = ModelTrainingAgent()

        model = agent.fit(X, y, 'binary_classification', num_trees=20)

        assert model.n_estimators == 20
        assert model.random_state == 42
        assert list(model.classes_) == [0, 1]
        assert list(model.feature_names_in_) == list(X.columns)

    def test_multiclass_training(self, multiclass_data):
        X, y = multiclass_data
        model = ModelTrainingAgent().fit(X, y, 'multiclass_classification', num_trees=20)

        assert list(model.classes_) == [0, 1, 2]

    def test_same_seed_same_forest(self, binary_data):
        X, y = binary_data

        first = ModelTrainingAgent(random_state=7).fit(X, y, 'binary_classification', num_trees=10)
        second = ModelTrainingAgent(random_state=7).fit(X, y, 'binary_classification', num_trees=10)

        np.testing.assert_array_equal(first.predict_proba(X), second.predict_proba(X))

    def test_unsupported_model_category(self, binary_data):
        X, y = binary_data

        with pytest.raises(UnsupportedModelCategoryError):
            ModelTrainingAgent().fit(X, y, 'regression')

        with pytest.raises(UnsupportedModelCategoryError):
            ModelTrainingAgent.check_model_category('multi_label_classification')

        assert ModelTrainingAgent.check_model_category('binary_classification') == 'binary_classification'

    def test_row_count_mismatch(self, binary_data):
        X, y = binary_data

        with pytest.raises(SchemaMismatchError):
            ModelTrainingAgent().fit(X, y[:-1], 'binary_classification')

    def test_tracking_disabled_skips_mlflow(self, binary_data, mock_mlflow):
        X, y = binary_data
        ModelTrainingAgent(tracking_enabled=False).fit(X, y, 'binary_classification', num_trees=5)

        mock_mlflow['start_run'].assert_not_called()
        mock_mlflow['log_model'].assert_not_called()

    def test_tracking_logs_run(self, binary_data, mock_mlflow):
        X, y = binary_data
        agent = ModelTrainingAgent(
            tracking_enabled=True,
            tracking_uri='sqlite:///test.db',
            experiment_name='test_experiment'
        )

        agent.fit(X, y, 'binary_classification', num_trees=5)

        mock_mlflow['set_tracking_uri'].assert_called_once_with('sqlite:///test.db')
        mock_mlflow['set_experiment'].assert_called_once_with('test_experiment')
        logged = {c.args[0]: c.args[1] for c in mock_mlflow['log_param'].call_args_list}
        assert logged['model_category'] == 'binary_classification'
        assert logged['n_estimators'] == 5
        assert logged['n_features'] == 6
        assert logged['n_classes'] == 2
        assert mock_mlflow['log_metric'].call_args.args[0] == 'train_accuracy'
        mock_mlflow['log_model'].assert_called_once()

    def test_predict_columns(self, binary_data):
        X, y = binary_data
        agent = ModelTrainingAgent()
        model = agent.fit(X, y, 'binary_classification', num_trees=10)
        vocab = LabelVocabulary(labels=['no', 'yes'])

        predictions = agent.predict(model, X.iloc[:15], vocab)

        assert list(predictions.columns) == ['no', 'yes', 'prediction']
        np.testing.assert_allclose(predictions[['no', 'yes']].sum(axis=1), 1.0)
        assert set(predictions['prediction']) <= {'no', 'yes'}
        expected = np.where(predictions['yes'] > predictions['no'], 'yes', 'no')
        ties = predictions['yes'] == predictions['no']
        assert (predictions['prediction'][~ties] == expected[~ties]).all()

    def test_predict_rejects_reordered_columns(self, binary_data):
        X, y = binary_data
        agent = ModelTrainingAgent()
        model = agent.fit(X, y, 'binary_classification', num_trees=5)

        with pytest.raises(SchemaMismatchError):
            agent.predict(model, X[list(reversed(X.columns))], LabelVocabulary(labels=['no', 'yes']))
