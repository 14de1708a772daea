# tabular_automl/transforms/target.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from tabular_automl.exceptions import EmptyColumnError, UnseenLabelError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabelVocabulary:
    """Sorted distinct target labels; the code of a label is its index"""
    labels: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.labels)

    def to_dict(self) -> Dict[str, List[str]]:
        return {'labels': list(self.labels)}

    @classmethod
    def from_dict(cls, d: Dict[str, List[str]]) -> "LabelVocabulary":
        return cls(labels=[str(label) for label in d['labels']])


def _as_label(value) -> str:
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        # 1.0 and "1" name the same class
        return str(int(value))
    return str(value)


def _sort_key(labels: List[str]):
    try:
        numeric = {label: float(label) for label in labels}
    except ValueError:
        return lambda label: label
    return lambda label: numeric[label]


class TargetEncoder:
    """Maps target labels to contiguous integer codes"""

    def fit(self, target_values: Sequence) -> LabelVocabulary:
        values = pd.Series(target_values).dropna()
        if values.empty:
            raise EmptyColumnError("Target column has no non-null values")

        distinct = list({_as_label(v) for v in values})
        labels = sorted(distinct, key=_sort_key(distinct))

        logger.info(f"Target vocabulary: {labels}")
        return LabelVocabulary(labels=labels)

    def apply(self, target_values: Sequence, vocab: LabelVocabulary) -> np.ndarray:
        index = {label: i for i, label in enumerate(vocab.labels)}
        codes = []

        for value in pd.Series(target_values):
            if pd.isna(value):
                raise UnseenLabelError("Target contains a missing label")
            label = _as_label(value)
            if label not in index:
                raise UnseenLabelError(f"Label '{label}' is not in the vocabulary {vocab.labels}")
            codes.append(index[label])

        return np.asarray(codes, dtype=int)

    def decode(self, codes: Sequence[int], vocab: LabelVocabulary) -> List[str]:
        return [vocab.labels[int(code)] for code in codes]
