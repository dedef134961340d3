"""
Core module - Recall modeling and study batch selection.

Components:
    - recall_engine: Online linear recall model (SGD, clipped output)
    - batch_selector: Shuffle-then-sort selection of the next study batch
"""

from .recall_engine import (
    RecallEngine,
    RecallEngineError,
    InvalidInputError,
    DimensionMismatchError,
    build_features,
    sgd_step,
)
from .batch_selector import ScoredQuestion, select_batch, select_study_batch

__all__ = [
    "RecallEngine",
    "RecallEngineError",
    "InvalidInputError",
    "DimensionMismatchError",
    "build_features",
    "sgd_step",
    "ScoredQuestion",
    "select_batch",
    "select_study_batch",
]
