# tabular_automl/pipeline.py
import logging
import operator
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, TypedDict, Union

import numpy as np
import pandas as pd
from langgraph.graph import END, StateGraph

from tabular_automl.agents.data_agent import DataIngestionAgent
from tabular_automl.agents.feature_agent import FeatureEngineeringAgent, PreprocessingState
from tabular_automl.agents.model_agent import ModelTrainingAgent
from tabular_automl.artifact_store import ArtifactStore
from tabular_automl.config import Config, get_config
from tabular_automl.schema import SchemaModel
from tabular_automl.utils.logging_config import PipelineLogger

logger = logging.getLogger(__name__)


class TrainingState(TypedDict, total=False):
    """State shared across the training steps"""
    # Input
    schema_path: str
    data_path: str
    artifacts_dir: str

    # Data
    schema: SchemaModel
    raw_data: pd.DataFrame
    features: pd.DataFrame
    target: np.ndarray
    preprocessing: PreprocessingState

    # Model
    model: Any
    artifact_files: Dict[str, str]

    # Workflow
    current_step: str
    execution_log: Annotated[List[str], operator.add]


class InferenceState(TypedDict, total=False):
    """State shared across the inference steps"""
    data_path: str
    artifacts_dir: str

    preprocessing: PreprocessingState
    model: Any
    raw_data: pd.DataFrame
    features: pd.DataFrame
    predictions: pd.DataFrame

    current_step: str
    execution_log: Annotated[List[str], operator.add]


class TrainingPipeline:
    """Schema + training data -> fitted preprocessing state, model and persisted artifacts"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

        self.data_agent = DataIngestionAgent()
        self.feature_agent = FeatureEngineeringAgent(
            max_categories=self.config.preprocessing.MAX_CATEGORIES,
            clip_range=(self.config.preprocessing.CLIP_LOWER, self.config.preprocessing.CLIP_UPPER)
        )
        self.model_agent = ModelTrainingAgent(
            random_state=self.config.training.RANDOM_STATE,
            n_jobs=self.config.training.N_JOBS,
            tracking_enabled=self.config.mlflow.ENABLED,
            tracking_uri=self.config.mlflow.TRACKING_URI,
            experiment_name=self.config.mlflow.EXPERIMENT_NAME
        )

        self.compiled_graph = self._build_graph().compile()
        logger.info("Training pipeline initialized")

    def _build_graph(self) -> StateGraph:
        workflow = StateGraph(TrainingState)

        workflow.add_node("data_ingestion", self._ingest)
        workflow.add_node("preprocessing", self._preprocess)
        workflow.add_node("model_training", self._train)
        workflow.add_node("artifact_persistence", self._persist)

        workflow.set_entry_point("data_ingestion")
        workflow.add_edge("data_ingestion", "preprocessing")
        workflow.add_edge("preprocessing", "model_training")
        workflow.add_edge("model_training", "artifact_persistence")
        workflow.add_edge("artifact_persistence", END)

        return workflow

    async def _ingest(self, state: TrainingState) -> dict:
        with PipelineLogger("data_ingestion") as step:
            schema = self.data_agent.load_schema(state['schema_path'])
            # Reject unsupported model categories before any work is done
            self.model_agent.check_model_category(schema.model_category)
            data = self.data_agent.load_data(state['data_path'], schema)
            step.log_metric("rows", len(data))

        return {
            'schema': schema,
            'raw_data': data,
            'current_step': 'data_ingestion',
            'execution_log': [f"Data loaded: {data.shape[0]} rows, {data.shape[1]} columns"]
        }

    async def _preprocess(self, state: TrainingState) -> dict:
        with PipelineLogger("preprocessing") as step:
            X, y, preprocessing = self.feature_agent.fit_transform(state['raw_data'], state['schema'])
            step.log_metric("model_columns", X.shape[1])

        # The raw training table is not retained past fit
        return {
            'raw_data': None,
            'features': X,
            'target': y,
            'preprocessing': preprocessing,
            'current_step': 'preprocessing',
            'execution_log': [f"Preprocessing fitted: {X.shape[1]} model columns"]
        }

    async def _train(self, state: TrainingState) -> dict:
        with PipelineLogger("model_training"):
            model = self.model_agent.fit(
                state['features'],
                state['target'],
                state['schema'].model_category,
                num_trees=self.config.training.NUM_TREES
            )

        return {
            'model': model,
            'current_step': 'model_training',
            'execution_log': [f"Model trained: {type(model).__name__}"]
        }

    async def _persist(self, state: TrainingState) -> dict:
        with PipelineLogger("artifact_persistence") as step:
            store = ArtifactStore(state['artifacts_dir'])
            files = store.save(state['preprocessing'], state['model'], target=state['target'])
            step.log_progress(f"Committed {len(files)} artifacts")

        return {
            'artifact_files': files,
            'current_step': 'completed',
            'execution_log': [f"Artifacts saved to {state['artifacts_dir']}"]
        }

    async def run_training(self, schema_path: Union[str, Path], data_path: Union[str, Path],
                           artifacts_dir: Optional[Union[str, Path]] = None) -> TrainingState:
        """Execute the training workflow; typed errors propagate to the caller"""
        if artifacts_dir is None:
            artifacts_dir = self.config.paths.ARTIFACTS_DIR

        initial_state = TrainingState(
            schema_path=str(schema_path),
            data_path=str(data_path),
            artifacts_dir=str(artifacts_dir),
            current_step="initialization",
            execution_log=[f"Training started at {datetime.now()}"]
        )

        logger.info(f"Starting training run: data={data_path}, artifacts={artifacts_dir}")
        final_state = await self.compiled_graph.ainvoke(initial_state)
        logger.info("Training run completed successfully")

        return final_state


class InferencePipeline:
    """Persisted artifacts + raw data -> per-class predictions"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

        self.data_agent = DataIngestionAgent()
        self.feature_agent = FeatureEngineeringAgent()
        self.model_agent = ModelTrainingAgent()

        self.compiled_graph = self._build_graph().compile()

    def _build_graph(self) -> StateGraph:
        workflow = StateGraph(InferenceState)

        workflow.add_node("artifact_loading", self._load_artifacts)
        workflow.add_node("data_ingestion", self._ingest)
        workflow.add_node("preprocessing", self._transform)
        workflow.add_node("prediction", self._predict)

        workflow.set_entry_point("artifact_loading")
        workflow.add_edge("artifact_loading", "data_ingestion")
        workflow.add_edge("data_ingestion", "preprocessing")
        workflow.add_edge("preprocessing", "prediction")
        workflow.add_edge("prediction", END)

        return workflow

    async def _load_artifacts(self, state: InferenceState) -> dict:
        with PipelineLogger("artifact_loading"):
            preprocessing, model = ArtifactStore(state['artifacts_dir']).load()

        return {
            'preprocessing': preprocessing,
            'model': model,
            'current_step': 'artifact_loading',
            'execution_log': [f"Artifacts loaded from {state['artifacts_dir']}"]
        }

    async def _ingest(self, state: InferenceState) -> dict:
        with PipelineLogger("data_ingestion"):
            data = self.data_agent.load_data(
                state['data_path'], state['preprocessing'].schema, require_target=False
            )

        return {
            'raw_data': data,
            'current_step': 'data_ingestion',
            'execution_log': [f"Data loaded: {data.shape[0]} rows"]
        }

    async def _transform(self, state: InferenceState) -> dict:
        with PipelineLogger("preprocessing"):
            X = self.feature_agent.transform(state['raw_data'], state['preprocessing'])

        return {
            'features': X,
            'current_step': 'preprocessing',
            'execution_log': [f"Preprocessing replayed: {X.shape[1]} model columns"]
        }

    async def _predict(self, state: InferenceState) -> dict:
        preprocessing = state['preprocessing']
        id_feature = preprocessing.schema.id_feature

        with PipelineLogger("prediction"):
            probabilities = self.model_agent.predict(
                state['model'], state['features'], preprocessing.label_vocabulary
            )
            predictions = pd.concat(
                [state['raw_data'][[id_feature]].reset_index(drop=True),
                 probabilities.reset_index(drop=True)],
                axis=1
            )

        return {
            'predictions': predictions,
            'current_step': 'completed',
            'execution_log': [f"Predicted {len(predictions)} rows"]
        }

    async def run_inference(self, data_path: Union[str, Path],
                            artifacts_dir: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """Execute the inference workflow and return the predictions frame"""
        if artifacts_dir is None:
            artifacts_dir = self.config.paths.ARTIFACTS_DIR

        initial_state = InferenceState(
            data_path=str(data_path),
            artifacts_dir=str(artifacts_dir),
            current_step="initialization",
            execution_log=[f"Inference started at {datetime.now()}"]
        )

        final_state = await self.compiled_graph.ainvoke(initial_state)
        return final_state['predictions']
