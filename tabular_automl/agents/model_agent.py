# tabular_automl/agents/model_agent.py
import logging
from datetime import datetime
from typing import Optional

import mlflow
import mlflow.sklearn
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import accuracy_score

from tabular_automl.exceptions import SchemaMismatchError, UnsupportedModelCategoryError
from tabular_automl.schema import ModelCategory
from tabular_automl.transforms import LabelVocabulary
from tabular_automl.utils.logging_config import log_execution_time

logger = logging.getLogger(__name__)

SUPPORTED_MODEL_CATEGORIES = (
    ModelCategory.BINARY_CLASSIFICATION.value,
    ModelCategory.MULTICLASS_CLASSIFICATION.value,
)


class ModelTrainingAgent:
    """Agent responsible for fitting the random forest classifier"""

    def __init__(self, random_state: int = 42, n_jobs: int = -1,
                 tracking_enabled: bool = False,
                 tracking_uri: Optional[str] = None,
                 experiment_name: str = "tabular_automl"):
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.tracking_enabled = tracking_enabled
        self.tracking_uri = tracking_uri
        self.experiment_name = experiment_name

    @staticmethod
    def check_model_category(model_category: str) -> str:
        """Fail fast on a model category the trainer cannot fit"""
        if model_category not in SUPPORTED_MODEL_CATEGORIES:
            raise UnsupportedModelCategoryError(
                f"Unsupported model category '{model_category}', "
                f"expected one of {list(SUPPORTED_MODEL_CATEGORIES)}"
            )
        return model_category

    @log_execution_time
    def fit(self, X: pd.DataFrame, y: np.ndarray, model_category: str,
            num_trees: int = 100) -> RandomForestClassifier:
        """Fit a random forest on the transformed matrix and integer-coded target"""
        self.check_model_category(model_category)

        if len(X) != len(y):
            raise SchemaMismatchError(f"Feature matrix has {len(X)} rows but target has {len(y)}")

        # Binary and multiclass share the same ensemble
        model = RandomForestClassifier(
            n_estimators=num_trees,
            random_state=self.random_state,
            n_jobs=self.n_jobs
        )
        model.fit(X, y)

        train_accuracy = accuracy_score(y, model.predict(X))
        logger.info(
            f"Trained {model_category} random forest: {num_trees} trees, "
            f"{X.shape[1]} features, {len(model.classes_)} classes, "
            f"train accuracy {train_accuracy:.4f}"
        )

        if self.tracking_enabled:
            self._track_run(model, X, model_category, num_trees, train_accuracy)

        return model

    def _track_run(self, model: RandomForestClassifier, X: pd.DataFrame,
                   model_category: str, num_trees: int, train_accuracy: float):
        if self.tracking_uri:
            mlflow.set_tracking_uri(self.tracking_uri)
        mlflow.set_experiment(self.experiment_name)

        with mlflow.start_run(run_name=f"random_forest_{datetime.now().strftime('%Y%m%d_%H%M%S')}"):
            mlflow.log_param("model_category", model_category)
            mlflow.log_param("n_estimators", num_trees)
            mlflow.log_param("n_features", X.shape[1])
            mlflow.log_param("n_train_samples", X.shape[0])
            mlflow.log_param("n_classes", len(model.classes_))
            mlflow.log_metric("train_accuracy", train_accuracy)
            mlflow.sklearn.log_model(model, "model")

    def predict(self, model: RandomForestClassifier, X: pd.DataFrame,
                vocab: LabelVocabulary) -> pd.DataFrame:
        """Per-class probabilities with one column per vocabulary label"""
        expected = list(getattr(model, "feature_names_in_", X.columns))
        if list(X.columns) != expected:
            raise SchemaMismatchError("Feature columns do not match the columns the model was trained on")

        probabilities = model.predict_proba(X)
        # Classes absent from training rows have no column in predict_proba
        frame = pd.DataFrame(0.0, index=X.index, columns=vocab.labels)
        for position, code in enumerate(model.classes_):
            frame[vocab.labels[int(code)]] = probabilities[:, position]

        frame["prediction"] = [vocab.labels[int(model.classes_[i])]
                               for i in np.argmax(probabilities, axis=1)]
        return frame
