"""Shared fixtures: in-memory Redis double, small question bank, fixed clock."""

import sys
sys.path.append(".")

import random
from datetime import datetime, timezone

import pytest

from question_bank import QuestionBank
from redis_store import RedisStore
from study_session import StudyService


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class InMemoryRedis:
    """The subset of the redis-py client used by RedisStore (decode_responses=True)."""

    def __init__(self):
        self.data = {}

    def get(self, name):
        return self.data.get(name)

    def set(self, name, value):
        self.data[name] = str(value)
        return True

    def hget(self, name, key):
        return self.data.get(name, {}).get(key)

    def hset(self, name, key=None, value=None, mapping=None):
        h = self.data.setdefault(name, {})
        added = 0
        items = dict(mapping or {})
        if key is not None:
            items[key] = value
        for k, v in items.items():
            if k not in h:
                added += 1
            h[str(k)] = str(v)
        return added

    def hgetall(self, name):
        return dict(self.data.get(name, {}))

    def hincrby(self, name, key, amount=1):
        h = self.data.setdefault(name, {})
        h[key] = str(int(h.get(key, 0)) + amount)
        return int(h[key])

    def exists(self, *names):
        return sum(1 for n in names if n in self.data)

    def delete(self, *names):
        removed = 0
        for n in names:
            if self.data.pop(n, None) is not None:
                removed += 1
        return removed


def make_questions(subjects=("ALGEBRA", "BIOLOGY"), per_subject=6):
    questions = []
    qid = 1
    for subject in subjects:
        for i in range(per_subject):
            questions.append({
                "id": qid,
                "subject": subject,
                "question_text": f"{subject} question {i + 1}?",
                "option_a": "first",
                "option_b": "second",
                "option_c": "third",
                "option_d": "fourth",
                "correct_answer": "ABCD"[qid % 4],
            })
            qid += 1
    return questions


@pytest.fixture
def redis_client():
    return InMemoryRedis()


@pytest.fixture
def store(redis_client):
    return RedisStore(client=redis_client)


@pytest.fixture
def bank():
    return QuestionBank(questions=make_questions())


@pytest.fixture
def service(store, bank):
    return StudyService(store=store, bank=bank, batch_size=10, clock=lambda: NOW, rng=random.Random(7))
