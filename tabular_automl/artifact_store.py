# tabular_automl/artifact_store.py
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import joblib
import numpy as np
import pandas as pd

from tabular_automl import __version__
from tabular_automl.agents.feature_agent import PreprocessingState
from tabular_automl.exceptions import MissingArtifactError
from tabular_automl.schema import SchemaModel
from tabular_automl.transforms import (
    ColnameMapping,
    ConstantColumns,
    EncodedColumnSet,
    ImputationParams,
    LabelVocabulary,
    ScalingParams,
    TopCategoriesMap,
)

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"
SCHEMA_FILE = "schema.json"
IMPUTATION_FILE = "imputation.json"
TOP_CATEGORIES_FILE = "top_categories.json"
ENCODED_COLUMNS_FILE = "encoded_columns.json"
CONSTANT_COLUMNS_FILE = "constant_columns.json"
SCALING_FILE = "scaling.json"
COLNAME_MAPPING_FILE = "colname_mapping.csv"
LABEL_VOCABULARY_FILE = "label_vocabulary.json"
ENCODED_TARGET_FILE = "encoded_target.csv"
PREDICTOR_FILE = Path("predictor") / "predictor.joblib"

# Parameter objects persisted as JSON documents
_JSON_ARTIFACTS = {
    'imputation': (IMPUTATION_FILE, ImputationParams),
    'top_categories': (TOP_CATEGORIES_FILE, TopCategoriesMap),
    'encoded_columns': (ENCODED_COLUMNS_FILE, EncodedColumnSet),
    'constant_columns': (CONSTANT_COLUMNS_FILE, ConstantColumns),
    'scaling': (SCALING_FILE, ScalingParams),
    'label_vocabulary': (LABEL_VOCABULARY_FILE, LabelVocabulary),
}


class ArtifactStore:
    """Persists and loads every fitted parameter object plus the model.

    A save removes the manifest first and writes it last, so a directory left
    behind by a failed run is never loadable.
    """

    def __init__(self, artifacts_dir: Union[str, Path]):
        self.artifacts_dir = Path(artifacts_dir)

    @property
    def manifest_path(self) -> Path:
        return self.artifacts_dir / MANIFEST_FILE

    def is_committed(self) -> bool:
        return self.manifest_path.exists()

    def save(self, state: PreprocessingState, model: Any,
             target: Optional[np.ndarray] = None) -> Dict[str, str]:
        """Save all artifacts and commit them with a manifest.

        When given, the integer-coded training target is kept beside the
        label vocabulary as a single-column CSV.
        """
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)
        if self.manifest_path.exists():
            self.manifest_path.unlink()

        files = {}

        files['schema'] = self._write_json(SCHEMA_FILE, state.schema.to_dict())
        for name, (file_name, _) in _JSON_ARTIFACTS.items():
            files[name] = self._write_json(file_name, getattr(state, name).to_dict())

        files['colname_mapping'] = self._atomic_write(
            COLNAME_MAPPING_FILE,
            lambda path: state.colname_mapping.to_frame().to_csv(path, index=False)
        )
        files['model'] = self._atomic_write(
            PREDICTOR_FILE,
            lambda path: joblib.dump(model, path)
        )

        target_path = self.artifacts_dir / ENCODED_TARGET_FILE
        if target is not None:
            files['encoded_target'] = self._atomic_write(
                ENCODED_TARGET_FILE,
                lambda path: pd.DataFrame({'target': np.asarray(target, dtype=int)}).to_csv(path, index=False)
            )
        elif target_path.exists():
            # Stale target from an earlier save
            target_path.unlink()

        manifest = {
            'files': files,
            'created_at': datetime.now().isoformat(),
            'package_version': __version__,
            'n_features': len(state.colname_mapping),
            'n_classes': len(state.label_vocabulary)
        }
        self._write_json(MANIFEST_FILE, manifest)

        logger.info(f"Saved {len(files)} artifacts to {self.artifacts_dir}")
        return {name: str(self.artifacts_dir / rel) for name, rel in files.items()}

    def load(self) -> Tuple[PreprocessingState, Any]:
        """Load the preprocessing state and the fitted model"""
        return self.load_state(), self.load_model()

    def load_state(self) -> PreprocessingState:
        self._require_manifest()

        params = {
            name: cls.from_dict(self._read_json(file_name))
            for name, (file_name, cls) in _JSON_ARTIFACTS.items()
        }
        mapping_frame = pd.read_csv(self._existing(COLNAME_MAPPING_FILE), dtype=str, keep_default_na=False)

        return PreprocessingState(
            schema=SchemaModel.from_dict(self._read_json(SCHEMA_FILE)),
            colname_mapping=ColnameMapping.from_frame(mapping_frame),
            **params
        )

    def load_model(self) -> Any:
        self._require_manifest()
        return joblib.load(self._existing(PREDICTOR_FILE))

    def load_target(self) -> np.ndarray:
        """Integer-coded training target saved with the artifacts"""
        self._require_manifest()
        frame = pd.read_csv(self._existing(ENCODED_TARGET_FILE))
        return frame['target'].to_numpy(dtype=int)

    def _require_manifest(self):
        if not self.is_committed():
            raise MissingArtifactError(
                f"No committed artifacts in {self.artifacts_dir} (missing {MANIFEST_FILE})"
            )

    def _existing(self, relative: Union[str, Path]) -> Path:
        path = self.artifacts_dir / relative
        if not path.exists():
            raise MissingArtifactError(f"Artifact not found: {path}")
        return path

    def _read_json(self, relative: Union[str, Path]) -> Dict[str, Any]:
        with open(self._existing(relative), 'r', encoding='utf-8') as f:
            return json.load(f)

    def _write_json(self, relative: Union[str, Path], payload: Dict[str, Any]) -> str:
        def write(path: Path):
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)

        return self._atomic_write(relative, write)

    def _atomic_write(self, relative: Union[str, Path], writer: Callable[[Path], Any]) -> str:
        """Write to a temp file in the target directory, then rename over the target"""
        target = self.artifacts_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        os.close(fd)
        try:
            writer(Path(tmp_name))
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        return str(Path(relative))
