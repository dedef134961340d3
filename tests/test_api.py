"""Tests for main.py endpoints"""

import sys
sys.path.append(".")

import random
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import main
from study_session import StudyService


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def client(monkeypatch, store, bank):
    svc = StudyService(store=store, bank=bank, batch_size=10, clock=lambda: NOW, rng=random.Random(0))
    monkeypatch.setattr(main, "service", svc)
    return TestClient(main.app)


def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_subjects(client):
    assert client.get("/subjects").json() == {"subjects": ["ALGEBRA", "BIOLOGY"]}


def test_start_session_generates_learner_id(client):
    response = client.post("/start-session", json={})

    assert response.status_code == 200
    body = response.json()
    assert body["learner_id"]
    assert body["batch_size"] == 10
    assert "correct_answer" not in body["question"]


def test_unknown_subject_is_404(client):
    response = client.post("/start-session", json={"learner_id": "u1", "subject": "ASTROLOGY"})
    assert response.status_code == 404


def test_answer_flow(client, bank):
    start = client.post("/start-session", json={"learner_id": "u1", "subject": "ALGEBRA"}).json()
    question_id = start["question"]["id"]

    current = client.get("/session/u1").json()
    assert current["question"]["id"] == question_id
    assert current["finished"] is False

    response = client.post("/answer", json={
        "learner_id": "u1",
        "choice": bank.get_question(question_id).correct_answer,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["is_correct"] is True
    assert body["message"] == "CORRECT"
    assert body["weights"] == pytest.approx([0.51, -0.1, 0.95])

    assert client.get("/weights/u1").json()["weights"] == pytest.approx([0.51, -0.1, 0.95])
    assert client.get("/stats/u1").json() == {
        "total_attempted": 1,
        "correct_count": 1,
        "mastery": 100,
        "accuracy": 100,
    }

    analytics = client.get("/analytics/u1").json()["subjects"]
    assert analytics[0]["subject"] == "ALGEBRA"
    assert analytics[0]["attempted"] == 1


def test_answer_without_session_is_404(client):
    response = client.post("/answer", json={"learner_id": "ghost", "choice": "A"})
    assert response.status_code == 404
    assert client.get("/session/ghost").status_code == 404


def test_answer_missing_fields_is_422(client):
    assert client.post("/answer", json={"learner_id": "u1"}).status_code == 422


def test_corrupt_weights_are_422(client, store):
    store.save_weights("u2", [0.5, -0.1])
    assert client.get("/weights/u2").status_code == 422
    assert client.post("/start-session", json={"learner_id": "u2"}).status_code == 422


def test_delete_learner(client, store):
    client.post("/start-session", json={"learner_id": "u1"})

    response = client.delete("/learner/u1")

    assert response.json() == {"status": "deleted", "learner_id": "u1"}
    assert store.get_session("u1") is None


def test_empty_subject_starts_full_session(client):
    response = client.post("/start-session", json={"learner_id": "u1", "subject": ""})

    assert response.status_code == 200
    assert response.json()["subject"] is None


def test_stale_answer_is_409(client, bank):
    start = client.post("/start-session", json={"learner_id": "u1"}).json()
    question_id = start["question"]["id"]
    payload = {
        "learner_id": "u1",
        "choice": bank.get_question(question_id).correct_answer,
        "question_id": question_id,
    }

    assert client.post("/answer", json=payload).status_code == 200
    assert client.post("/answer", json=payload).status_code == 409
    assert client.get("/stats/u1").json()["total_attempted"] == 1
