"""
Recall Engine - Online linear recall model trained with SGD.

Features:
    - Linear recall score over [bias, review_count, days_since_review]
    - Hard clipping of the score into [0, 1] (no sigmoid)
    - One stochastic gradient step per observed answer
    - Never-reviewed questions use a fixed 100-day recency
"""

import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union

from loguru import logger


Timestamp = Union[str, datetime, None]

DEFAULT_WEIGHTS = [0.5, -0.1, -0.05]  # [bias, w_count, w_recency]
LEARNING_RATE = 0.01
NEVER_REVIEWED_DAYS = 100.0
MAX_RECENCY_DAYS = 365.0
SECONDS_PER_DAY = 86400
NUM_FEATURES = 3


class RecallEngineError(ValueError):
    """Base class for recall engine errors."""


class InvalidInputError(RecallEngineError):
    """Negative review count, unparseable timestamp or non-numeric value."""


class DimensionMismatchError(RecallEngineError):
    """Weight vector does not match the feature vector length."""


# ==================== Feature Construction ====================

def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    """
    Parse a last-reviewed timestamp.

    Accepts None, a datetime, or an ISO-8601 string. A trailing "Z" and
    naive values are read as UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidInputError(f"Unparseable last_reviewed_at: {value!r}") from e
    else:
        raise InvalidInputError(f"Unsupported last_reviewed_at type: {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(last_reviewed_at: Timestamp, now: Optional[datetime] = None) -> float:
    """Fractional days since the last review, or 100.0 if never reviewed."""
    reviewed = parse_timestamp(last_reviewed_at)
    if reviewed is None:
        return NEVER_REVIEWED_DAYS

    now = parse_timestamp(now) or datetime.now(timezone.utc)
    return (now - reviewed).total_seconds() / SECONDS_PER_DAY


def build_features(review_count: int, last_reviewed_at: Timestamp,
                   now: Optional[datetime] = None) -> List[float]:
    """
    Feature vector used by both predict and train.

    x = [1, review_count, min(days_since, 365)]
    """
    if isinstance(review_count, bool) or not isinstance(review_count, int):
        raise InvalidInputError(f"review_count must be an integer, got {review_count!r}")
    if review_count < 0:
        raise InvalidInputError(f"review_count must be >= 0, got {review_count}")

    recency = min(days_since(last_reviewed_at, now), MAX_RECENCY_DAYS)
    return [1.0, float(review_count), recency]


# ==================== Model Math ====================

def linear_score(weights: Sequence[float], features: Sequence[float]) -> float:
    """Dot product of weights and features."""
    return math.fsum(w * x for w, x in zip(weights, features))


def clip_probability(score: float) -> float:
    return max(0.0, min(1.0, score))


def sgd_step(weights: Sequence[float], features: Sequence[float], label: float,
             learning_rate: float = LEARNING_RATE) -> List[float]:
    """
    One online gradient step.

    w_i <- w_i + lr * (label - prediction) * x_i

    Returns a new weight list; the input is not modified.
    """
    prediction = clip_probability(linear_score(weights, features))
    error = label - prediction
    return [w + learning_rate * error * x for w, x in zip(weights, features)]


def _to_float(value, name: str) -> float:
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(result):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return result


# ==================== Engine ====================

class RecallEngine:
    """
    Online recall predictor for a single learner session.

    Linear model with hard clipping:
        recall = clip(w · x, 0, 1)
        x = [1, review_count, min(days_since_review, 365)]

    Trained one answer at a time:
        w <- w + lr * (label - recall) * x
    """

    LEARNING_RATE = LEARNING_RATE

    def __init__(self, weights: Optional[Sequence[float]] = None):
        if weights is None:
            weights = DEFAULT_WEIGHTS

        weights = list(weights)
        if len(weights) != NUM_FEATURES:
            raise DimensionMismatchError(
                f"Expected {NUM_FEATURES} weights, got {len(weights)}"
            )

        self._weights: List[float] = [_to_float(w, "weight") for w in weights]
        self._learning_rate = self.LEARNING_RATE

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    def predict(self, review_count: int, last_reviewed_at: Timestamp = None,
                now: Optional[datetime] = None) -> float:
        """
        Predict recall probability for a question.

        Args:
            review_count: Times the question was reviewed before
            last_reviewed_at: Last review time, or None if never reviewed
            now: Reference time (defaults to current UTC time)

        Returns:
            Recall probability in [0, 1]
        """
        features = build_features(review_count, last_reviewed_at, now)
        return clip_probability(linear_score(self._weights, features))

    def train(self, review_count: int, last_reviewed_at: Timestamp, label: float,
              now: Optional[datetime] = None) -> List[float]:
        """
        Update weights from one graded answer.

        The prediction uses the weights from before the update.

        Args:
            review_count: Review count before this answer
            last_reviewed_at: Last review time before this answer
            label: 1.0 for correct, 0.0 for incorrect
            now: Reference time (defaults to current UTC time)

        Returns:
            The updated weight vector (a copy)
        """
        label = _to_float(label, "label")
        features = build_features(review_count, last_reviewed_at, now)

        new_weights = sgd_step(self._weights, features, label, self._learning_rate)
        logger.debug(
            "SGD step features={} label={} weights {} -> {}",
            features, label, self._weights, new_weights,
        )

        self._weights = new_weights
        return list(self._weights)

    def get_weights(self) -> List[float]:
        """Snapshot of the current weights."""
        return list(self._weights)

    def __repr__(self) -> str:
        return f"RecallEngine(weights={self._weights!r})"
