# tabular_automl/transforms/names.py
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from tabular_automl.exceptions import (
    DuplicateInputNameError,
    SchemaMismatchError,
    UnknownColumnError,
)

logger = logging.getLogger(__name__)

COLUMN_PREFIX = "feat_"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class ColnameMapping:
    """Ordered original -> sanitized column name pairs"""
    original: List[str] = field(default_factory=list)
    sanitized: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, str]:
        return dict(zip(self.original, self.sanitized))

    def __len__(self) -> int:
        return len(self.original)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({'original': self.original, 'sanitized': self.sanitized})

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "ColnameMapping":
        return cls(
            original=[str(v) for v in frame['original']],
            sanitized=[str(v) for v in frame['sanitized']]
        )


def sanitize_name(name: str) -> str:
    cleaned = str(name).strip().replace(" ", "_")
    cleaned = _UNSAFE_CHARS.sub("_", cleaned)
    return f"{COLUMN_PREFIX}{cleaned or '_'}"


class NameSanitizer:
    """Produces collision-free, symbol-safe column names"""

    def fit(self, column_names: List[str]) -> ColnameMapping:
        names = [str(n) for n in column_names]

        duplicated = sorted(n for n, count in Counter(names).items() if count > 1)
        if duplicated:
            raise DuplicateInputNameError(f"Given column names are not unique: {duplicated}")

        sanitized = [sanitize_name(n) for n in names]

        # Suffix every member of a collision group with its 1-based position
        # until no group remains; each pass lengthens the colliding names
        while True:
            counts = Counter(sanitized)
            collisions = sorted(n for n, count in counts.items() if count > 1)
            if not collisions:
                break
            for dup in collisions:
                position = 0
                for i, current in enumerate(sanitized):
                    if current == dup:
                        position += 1
                        sanitized[i] = f"{dup}_{position}"

        renamed = sum(1 for a, b in zip(names, sanitized) if b != f"{COLUMN_PREFIX}{a}")
        if renamed:
            logger.debug(f"Sanitized {renamed} column names beyond the '{COLUMN_PREFIX}' prefix")

        return ColnameMapping(original=names, sanitized=sanitized)

    def apply(self, data: pd.DataFrame, mapping: ColnameMapping) -> pd.DataFrame:
        lookup = mapping.as_dict()

        unknown = [c for c in data.columns if c not in lookup]
        if unknown:
            raise UnknownColumnError(f"Columns missing from the name mapping: {unknown}")

        missing = [c for c in mapping.original if c not in data.columns]
        if missing:
            raise SchemaMismatchError(f"Columns expected by the name mapping not found: {missing}")

        return data[mapping.original].rename(columns=lookup)
