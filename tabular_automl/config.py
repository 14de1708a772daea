# tabular_automl/config.py
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class PathConfig:
    """Configuration for project paths"""
    PROJECT_ROOT: Path
    MODEL_INPUTS_OUTPUTS: Path
    INPUT_SCHEMA_DIR: Path
    TRAIN_DIR: Path
    TEST_DIR: Path
    ARTIFACTS_DIR: Path
    PREDICTIONS_DIR: Path
    LOGS_DIR: Path


@dataclass
class MLFlowConfig:
    """Configuration for MLflow tracking"""
    ENABLED: bool
    TRACKING_URI: str
    EXPERIMENT_NAME: str


@dataclass
class PreprocessingConfig:
    """Configuration for the preprocessing components"""
    MAX_CATEGORIES: int
    CLIP_LOWER: float
    CLIP_UPPER: float


@dataclass
class ModelTrainingConfig:
    """Configuration for model training"""
    NUM_TREES: int
    RANDOM_STATE: int
    N_JOBS: int


class Config:
    """Central configuration manager for the pipeline"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_file: Optional path to JSON config file to override defaults
        """
        self._load_default_config()

        if config_file and os.path.exists(config_file):
            self._load_config_file(config_file)

        self._load_environment_variables()

    def _load_default_config(self):
        """Load default configuration values"""

        project_root = Path(__file__).parent.parent
        inputs_outputs = project_root / "model_inputs_outputs"
        self.paths = PathConfig(
            PROJECT_ROOT=project_root,
            MODEL_INPUTS_OUTPUTS=inputs_outputs,
            INPUT_SCHEMA_DIR=inputs_outputs / "inputs" / "schema",
            TRAIN_DIR=inputs_outputs / "inputs" / "data" / "training",
            TEST_DIR=inputs_outputs / "inputs" / "data" / "testing",
            ARTIFACTS_DIR=inputs_outputs / "model" / "artifacts",
            PREDICTIONS_DIR=inputs_outputs / "outputs" / "predictions",
            LOGS_DIR=project_root / "logs"
        )

        self.mlflow = MLFlowConfig(
            ENABLED=True,
            TRACKING_URI="sqlite:///mlflow.db",
            EXPERIMENT_NAME="tabular_automl"
        )

        self.preprocessing = PreprocessingConfig(
            MAX_CATEGORIES=10,
            CLIP_LOWER=-4.0,
            CLIP_UPPER=4.0
        )

        self.training = ModelTrainingConfig(
            NUM_TREES=100,
            RANDOM_STATE=42,
            N_JOBS=-1
        )

        self.logging_level = "INFO"

    def _load_config_file(self, config_file: str):
        """Load configuration from JSON file"""
        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load config file {config_file}: {e}")
            return

        for section, values in config_data.items():
            if not hasattr(self, section):
                logger.warning(f"Ignoring unknown config section '{section}'")
                continue
            config_obj = getattr(self, section)
            if not isinstance(values, dict):
                setattr(self, section, values)
                continue
            for key, value in values.items():
                if hasattr(config_obj, key):
                    if section == 'paths':
                        value = Path(value)
                    setattr(config_obj, key, value)

    def _load_environment_variables(self):
        """Load configuration from environment variables"""

        if os.getenv("MLFLOW_TRACKING_URI"):
            self.mlflow.TRACKING_URI = os.getenv("MLFLOW_TRACKING_URI")

        if os.getenv("MLFLOW_EXPERIMENT_NAME"):
            self.mlflow.EXPERIMENT_NAME = os.getenv("MLFLOW_EXPERIMENT_NAME")

        if os.getenv("MLFLOW_ENABLED"):
            self.mlflow.ENABLED = os.getenv("MLFLOW_ENABLED").lower() == 'true'

        if os.getenv("MAX_CATEGORIES"):
            self.preprocessing.MAX_CATEGORIES = int(os.getenv("MAX_CATEGORIES"))

        if os.getenv("NUM_TREES"):
            self.training.NUM_TREES = int(os.getenv("NUM_TREES"))

        if os.getenv("RANDOM_STATE"):
            self.training.RANDOM_STATE = int(os.getenv("RANDOM_STATE"))

        if os.getenv("N_JOBS"):
            self.training.N_JOBS = int(os.getenv("N_JOBS"))

        if os.getenv("ARTIFACTS_DIR"):
            self.paths.ARTIFACTS_DIR = Path(os.getenv("ARTIFACTS_DIR"))

        if os.getenv("LOG_LEVEL"):
            self.logging_level = os.getenv("LOG_LEVEL")

    def create_directories(self):
        """Create the output directories if they don't exist"""
        directories = [
            self.paths.ARTIFACTS_DIR,
            self.paths.PREDICTIONS_DIR,
            self.paths.LOGS_DIR
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def save_config(self, config_file: str):
        """Save current configuration to JSON file"""
        config_dict: Dict[str, Any] = {}

        for section in ('paths', 'mlflow', 'preprocessing', 'training'):
            config_dict[section] = {
                key: str(value) if isinstance(value, Path) else value
                for key, value in getattr(self, section).__dict__.items()
            }
        config_dict['logging_level'] = self.logging_level

        with open(config_file, 'w') as f:
            json.dump(config_dict, f, indent=2)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if self.preprocessing.MAX_CATEGORIES < 1:
            issues.append(f"MAX_CATEGORIES must be >= 1: {self.preprocessing.MAX_CATEGORIES}")

        if self.preprocessing.CLIP_LOWER >= self.preprocessing.CLIP_UPPER:
            issues.append(
                f"Invalid clip range: [{self.preprocessing.CLIP_LOWER}, {self.preprocessing.CLIP_UPPER}]"
            )

        if self.training.NUM_TREES < 1:
            issues.append(f"NUM_TREES must be >= 1: {self.training.NUM_TREES}")

        return issues

    def __str__(self) -> str:
        return f"Config(project_root={self.paths.PROJECT_ROOT}, artifacts={self.paths.ARTIFACTS_DIR})"


# Global configuration instance
_config = None


def get_config(config_file: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton pattern)"""
    global _config
    if _config is None:
        _config = Config(config_file)
    return _config


def reload_config(config_file: Optional[str] = None) -> Config:
    """Reload configuration (useful for testing)"""
    global _config
    _config = Config(config_file)
    return _config
