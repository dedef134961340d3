"""
Batch Selector - Picks the next study batch from scored questions.

Selection:
    1. Score every candidate with the recall engine
    2. Shuffle the scored set (random tie-break)
    3. Stable sort ascending by predicted recall
    4. Take the first `batch_size` questions
"""

import random
from typing import Callable, Iterable, List, Optional, Union
from dataclasses import dataclass


DEFAULT_BATCH_SIZE = 10

RandomSource = Union[random.Random, int, None]


@dataclass
class ScoredQuestion:
    """A question candidate with its predicted recall."""
    question: object
    predicted_recall: float


def _as_rng(rng: RandomSource) -> random.Random:
    if isinstance(rng, random.Random):
        return rng
    return random.Random(rng)


def rank_for_review(scored: Iterable[ScoredQuestion], rng: RandomSource = None) -> List[ScoredQuestion]:
    """
    Order scored questions lowest recall first.

    The shuffle runs before the sort so equal scores (e.g. every new
    question) come out in a random order rather than dataset order.
    """
    ranked = list(scored)
    _as_rng(rng).shuffle(ranked)
    ranked.sort(key=lambda c: c.predicted_recall)  # list.sort is stable
    return ranked


def select_batch(scored: Iterable[ScoredQuestion], batch_size: int = DEFAULT_BATCH_SIZE,
                 rng: RandomSource = None) -> List[ScoredQuestion]:
    """Take the `batch_size` questions with the lowest predicted recall."""
    if batch_size < 0:
        raise ValueError(f"batch_size must be >= 0, got {batch_size}")
    return rank_for_review(scored, rng)[:batch_size]


def score_questions(questions: Iterable, scorer: Callable[[object], float]) -> List[ScoredQuestion]:
    """Attach a predicted recall to each question."""
    return [ScoredQuestion(question=q, predicted_recall=scorer(q)) for q in questions]


def select_study_batch(questions: Iterable, scorer: Callable[[object], float],
                       batch_size: int = DEFAULT_BATCH_SIZE,
                       rng: Optional[RandomSource] = None) -> List[ScoredQuestion]:
    """Score, shuffle, sort and cut in one call."""
    return select_batch(score_questions(questions, scorer), batch_size, rng)
