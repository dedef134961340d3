"""Tests for core/batch_selector.py"""

import sys
sys.path.append(".")

import random

import pytest

from core.batch_selector import (
    ScoredQuestion,
    rank_for_review,
    select_batch,
    select_study_batch,
)


def tied(n, score=0.0):
    return [ScoredQuestion(question={"id": i}, predicted_recall=score) for i in range(n)]


def ids(batch):
    return tuple(c.question["id"] for c in batch)


def test_default_batch_size_is_ten():
    batch = select_batch(tied(12), rng=1)
    assert len(batch) == 10


def test_tied_scores_give_different_orderings_per_seed():
    orderings = {ids(select_batch(tied(12), batch_size=10, rng=seed)) for seed in range(20)}
    assert len(orderings) > 1


def test_tied_scores_not_always_in_dataset_order():
    dataset_order = tuple(range(10))
    orderings = [ids(select_batch(tied(12), rng=seed)) for seed in range(20)]
    assert any(o != dataset_order for o in orderings)


def test_same_seed_is_reproducible():
    assert ids(select_batch(tied(12), rng=42)) == ids(select_batch(tied(12), rng=42))
    assert ids(select_batch(tied(12), rng=random.Random(3))) == ids(select_batch(tied(12), rng=random.Random(3)))


def test_sorted_ascending_by_recall():
    scored = [ScoredQuestion(question={"id": i}, predicted_recall=r)
              for i, r in enumerate([0.9, 0.1, 0.5, 0.0, 1.0, 0.3])]

    for seed in range(5):
        batch = select_batch(scored, batch_size=4, rng=seed)
        assert [c.predicted_recall for c in batch] == [0.0, 0.1, 0.3, 0.5]


def test_lowest_recall_first_then_shuffled_ties():
    scored = tied(5, score=0.0) + [ScoredQuestion(question={"id": 99}, predicted_recall=0.8)]
    ranked = rank_for_review(scored, rng=0)

    assert ranked[-1].question["id"] == 99
    assert sorted(ids(ranked[:5])) == [0, 1, 2, 3, 4]


def test_small_candidate_set_returns_everything():
    assert len(select_batch(tied(4), batch_size=10, rng=0)) == 4
    assert select_batch([], batch_size=10, rng=0) == []


def test_negative_batch_size_raises():
    with pytest.raises(ValueError):
        select_batch(tied(3), batch_size=-1)


def test_input_list_is_not_reordered():
    scored = tied(6)
    select_batch(scored, rng=5)
    assert ids(scored) == tuple(range(6))


def test_select_study_batch_scores_then_selects():
    questions = [{"id": i, "recall": r} for i, r in enumerate([0.7, 0.2, 0.9, 0.4])]
    batch = select_study_batch(questions, lambda q: q["recall"], batch_size=2, rng=0)

    assert [c.question["id"] for c in batch] == [1, 3]
    assert [c.predicted_recall for c in batch] == [0.2, 0.4]
