"""
Study Session - Runs the score -> select -> answer -> train cycle.

Flow:
    start_session:  score every candidate, pick the lowest-recall batch
    submit_answer:  grade, train the recall engine, persist weights and
                    review history, advance to the next question
"""

import random
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger

import config
from core.recall_engine import RecallEngine
from core.batch_selector import select_study_batch
from question_bank import Question, QuestionBank
from redis_store import RedisStore


class StudySessionError(LookupError):
    """No active session, unknown subject, or nothing to study."""


class StaleAnswerError(StudySessionError):
    """Answer refers to a question the session has already moved past."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StudyService:
    """
    Drives study sessions for learners.

    One RecallEngine is built per call from the learner's stored weights;
    the updated weights are written back after every answer. Answers from
    the same learner are applied one at a time.
    """

    def __init__(self, store: RedisStore, bank: QuestionBank,
                 batch_size: Optional[int] = None,
                 clock: Callable[[], datetime] = utc_now,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.bank = bank
        self.batch_size = batch_size if batch_size is not None else config.STUDY_BATCH_SIZE
        self.clock = clock
        self.rng = rng or random.Random()

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ==================== Helpers ====================

    def _learner_lock(self, learner_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(learner_id, threading.Lock())

    def get_engine(self, learner_id: str) -> RecallEngine:
        """Recall engine with the learner's saved weights (defaults if none)."""
        return RecallEngine(self.store.get_weights(learner_id))

    def get_review_state(self, learner_id: str, question: Question,
                         overrides: Dict[int, Dict] = None) -> Tuple[int, Optional[str]]:
        """
        Resolve (review_count, last_reviewed_at) for a question.

        The learner's override wins over the values seeded in the bank.
        """
        if overrides is None:
            override = self.store.get_override(learner_id, question.id) or {}
        else:
            override = overrides.get(question.id, {})

        review_count = override.get("review_count")
        if review_count is None:
            review_count = question.review_count or 0

        last_reviewed_at = override.get("last_reviewed_at")
        if last_reviewed_at is None:
            last_reviewed_at = question.last_reviewed_at

        return int(review_count), last_reviewed_at

    def _question_payload(self, question: Question, index: int, total: int,
                          predicted_recall: float = None) -> Dict:
        payload = question.to_public_dict()
        payload["position"] = index + 1
        payload["total"] = total
        if predicted_recall is not None:
            payload["predicted_recall"] = predicted_recall
        return payload

    def _predicted_recall(self, session: Dict, index: int) -> Optional[float]:
        scores = session.get("predicted_recall") or []
        return scores[index] if index < len(scores) else None

    def _require_session(self, learner_id: str) -> Dict:
        session = self.store.get_session(learner_id)
        if session is None:
            raise StudySessionError(f"No active session for learner {learner_id}. Start a new session first.")
        return session

    # ==================== Session Flow ====================

    def start_session(self, learner_id: str, subject: Optional[str] = None) -> Dict:
        """
        Start a study session with the questions the learner is least likely to recall.

        Args:
            learner_id: Learner identifier
            subject: Subject filter, or None for all subjects

        Returns:
            Dict with subject, batch size and the first question
        """
        subject = subject or None
        if subject is not None and subject not in self.bank.get_subjects():
            raise StudySessionError(f"Unknown subject: {subject}")

        candidates = self.bank.get_questions(subject)
        if not candidates:
            raise StudySessionError("No questions available")

        engine = self.get_engine(learner_id)
        overrides = self.store.get_overrides(learner_id)
        now = self.clock()

        def scorer(question: Question) -> float:
            review_count, last_reviewed_at = self.get_review_state(learner_id, question, overrides)
            return engine.predict(review_count, last_reviewed_at, now=now)

        batch = select_study_batch(candidates, scorer, self.batch_size, self.rng)
        if not batch:
            raise StudySessionError("Batch size is 0, nothing to study")
        question_ids = [c.question.id for c in batch]
        self.store.create_session(
            learner_id, question_ids, subject, [c.predicted_recall for c in batch]
        )

        logger.info(
            "Started session for {} (subject={}): {} of {} questions",
            learner_id, subject or "ALL", len(batch), len(candidates),
        )

        first = batch[0]
        return {
            "learner_id": learner_id,
            "subject": subject,
            "batch_size": len(batch),
            "question": self._question_payload(first.question, 0, len(batch), first.predicted_recall),
        }

    def current_question(self, learner_id: str) -> Optional[Dict]:
        """Current question of the active session, or None when finished."""
        session = self._require_session(learner_id)
        question_ids: List[int] = session["question_ids"]
        index = session["current_index"]
        if index >= len(question_ids):
            return None

        question = self.bank.get_question(question_ids[index])
        return self._question_payload(
            question, index, len(question_ids), self._predicted_recall(session, index)
        )

    def submit_answer(self, learner_id: str, choice: str,
                      question_id: Optional[int] = None) -> Dict:
        """
        Grade an answer to the current question and learn from it.

        Args:
            learner_id: Learner identifier
            choice: Option letter (A-D, any case)
            question_id: Question being answered; if given it must be the
                session's current question

        Returns:
            Feedback dict with correctness, new weights, stats and the next question

        Raises:
            StaleAnswerError: question_id is not the current question
        """
        with self._learner_lock(learner_id):
            return self._apply_answer(learner_id, choice, question_id)

    def _apply_answer(self, learner_id: str, choice: str,
                      question_id: Optional[int]) -> Dict:
        session = self._require_session(learner_id)
        question_ids = session["question_ids"]
        index = session["current_index"]
        if index >= len(question_ids):
            raise StudySessionError("Session is already finished. Start a new session.")
        if question_id is not None and question_id != question_ids[index]:
            raise StaleAnswerError(
                f"Question {question_id} is not the current question ({question_ids[index]})"
            )

        question = self.bank.get_question(question_ids[index])
        is_correct = question.is_correct(choice)
        review_count, last_reviewed_at = self.get_review_state(learner_id, question)
        now = self.clock()

        # Train on the review state from before this answer
        engine = self.get_engine(learner_id)
        new_weights = engine.train(review_count, last_reviewed_at, 1.0 if is_correct else 0.0, now=now)
        self.store.save_weights(learner_id, new_weights)

        self.store.set_override(learner_id, question.id, review_count + 1, now.isoformat())
        stats = self.store.record_result(learner_id, is_correct)
        new_index = self.store.advance_session(learner_id)

        logger.info(
            "Learner {} answered question {}: {}",
            learner_id, question.id, "correct" if is_correct else "incorrect",
        )

        finished = new_index >= len(question_ids)
        next_question = None
        if not finished:
            next_question = self._question_payload(
                self.bank.get_question(question_ids[new_index]), new_index, len(question_ids),
                self._predicted_recall(session, new_index),
            )

        return {
            "question_id": question.id,
            "is_correct": is_correct,
            "message": "CORRECT" if is_correct else f"INCORRECT. ANSWER: {question.correct_answer}",
            "correct_answer": question.correct_answer,
            "weights": new_weights,
            "stats": stats,
            "next_question": next_question,
            "finished": finished,
        }

    # ==================== Reporting ====================

    def get_stats(self, learner_id: str) -> Dict:
        """Totals, mastery and accuracy percentage."""
        stats = self.store.get_stats(learner_id)
        total = stats["total_attempted"]
        stats["accuracy"] = (stats["correct_count"] * 100) // total if total else 0
        return stats

    def get_subject_analytics(self, learner_id: str) -> List[Dict]:
        """
        Coverage per subject.

        mastery = floor(attempted / total_questions * 100), where attempted
        counts questions the learner has answered at least once.
        """
        overrides = self.store.get_overrides(learner_id)
        analytics = []

        for subject in self.bank.get_subjects():
            questions = self.bank.get_questions(subject)
            reviews = [overrides[q.id] for q in questions if q.id in overrides]
            total = len(questions)

            analytics.append({
                "subject": subject,
                "total_questions": total,
                "attempted": len(reviews),
                "total_reviews": sum(int(r.get("review_count") or 0) for r in reviews),
                "mastery": (len(reviews) * 100) // total if total else 0,
            })

        return analytics

    def get_weights(self, learner_id: str) -> List[float]:
        return self.get_engine(learner_id).get_weights()

    def reset(self, learner_id: str):
        """Forget everything about a learner."""
        self.store.delete_learner(learner_id)
        logger.info("Reset learner {}", learner_id)
