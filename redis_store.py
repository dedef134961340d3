"""
Redis Store - Per-learner model weights, review history and stats.

Key Structure:
    learner:{learner_id}:weights   -> String (JSON list of 3 floats)
    learner:{learner_id}:overrides -> Hash (question_id -> JSON {review_count, last_reviewed_at})
    learner:{learner_id}:stats     -> Hash (total_attempted, correct_count, mastery)
    learner:{learner_id}:session   -> Hash (subject, question_ids, predicted_recall, current_index)
"""

import json
import redis
from typing import Dict, Optional, List
from loguru import logger

import config


class RedisStore:
    def __init__(self, client=None):
        """Connect to Redis using environment settings (or use the given client)."""
        if client is not None:
            self.client = client
            return

        self.client = redis.Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            password=config.REDIS_PASSWORD,
            db=config.REDIS_DB,
            decode_responses=True  # Return strings instead of bytes
        )

    # ==================== Key Builders ====================

    def _weights_key(self, learner_id: str) -> str:
        """Redis key for model weights."""
        return f"learner:{learner_id}:weights"

    def _overrides_key(self, learner_id: str) -> str:
        """Redis key for per-question review state."""
        return f"learner:{learner_id}:overrides"

    def _stats_key(self, learner_id: str) -> str:
        """Redis key for answer totals."""
        return f"learner:{learner_id}:stats"

    def _session_key(self, learner_id: str) -> str:
        """Redis key for the active study session."""
        return f"learner:{learner_id}:session"

    # ==================== Weights ====================

    def get_weights(self, learner_id: str) -> Optional[List[float]]:
        """
        Get the saved weight vector.

        Returns:
            List of floats, or None if nothing has been saved yet
        """
        raw = self.client.get(self._weights_key(learner_id))
        if raw is None:
            return None
        return [float(w) for w in json.loads(raw)]

    def save_weights(self, learner_id: str, weights: List[float]):
        """Upsert the weight vector."""
        self.client.set(self._weights_key(learner_id), json.dumps([float(w) for w in weights]))

    # ==================== Review Overrides ====================

    def get_override(self, learner_id: str, question_id) -> Optional[Dict]:
        """
        Get the learner's review state for one question.

        Returns:
            Dict with review_count and last_reviewed_at, or None
        """
        raw = self.client.hget(self._overrides_key(learner_id), str(question_id))
        return json.loads(raw) if raw else None

    def get_overrides(self, learner_id: str) -> Dict[int, Dict]:
        """Get review state for every question the learner has answered."""
        raw = self.client.hgetall(self._overrides_key(learner_id))
        return {int(qid): json.loads(v) for qid, v in raw.items()}

    def set_override(self, learner_id: str, question_id, review_count: int, last_reviewed_at: str):
        """Upsert the review state of one question."""
        record = json.dumps({
            "review_count": review_count,
            "last_reviewed_at": last_reviewed_at
        })
        self.client.hset(self._overrides_key(learner_id), str(question_id), record)

    # ==================== Stats ====================

    def get_stats(self, learner_id: str) -> Dict[str, int]:
        """Get answer totals (zeros for a new learner)."""
        raw = self.client.hgetall(self._stats_key(learner_id))
        return {
            "total_attempted": int(raw.get("total_attempted", 0)),
            "correct_count": int(raw.get("correct_count", 0)),
            "mastery": int(raw.get("mastery", 0)),
        }

    def record_result(self, learner_id: str, is_correct: bool) -> Dict[str, int]:
        """
        Add one graded answer to the totals.

        Mastery = min(100, floor(correct / attempted * 100))

        Returns:
            Updated stats
        """
        key = self._stats_key(learner_id)
        total = self.client.hincrby(key, "total_attempted", 1)
        correct = self.client.hincrby(key, "correct_count", 1 if is_correct else 0)
        mastery = min(100, (correct * 100) // total)
        self.client.hset(key, "mastery", mastery)

        return {
            "total_attempted": total,
            "correct_count": correct,
            "mastery": mastery,
        }

    # ==================== Study Session ====================

    def create_session(self, learner_id: str, question_ids: List[int], subject: Optional[str] = None,
                       predicted_recall: Optional[List[float]] = None) -> Dict:
        """
        Store a new study batch, replacing any previous one.

        Args:
            learner_id: Learner identifier
            question_ids: Batch in presentation order
            subject: Subject filter, or None for all subjects
            predicted_recall: Score of each question when the batch was picked
        """
        key = self._session_key(learner_id)
        session = {
            "subject": subject or "",
            "question_ids": json.dumps(list(question_ids)),
            "predicted_recall": json.dumps(list(predicted_recall or [])),
            "current_index": 0
        }
        self.client.delete(key)
        self.client.hset(key, mapping=session)
        logger.debug("Stored session for {} with {} questions", learner_id, len(question_ids))
        return self.get_session(learner_id)

    def get_session(self, learner_id: str) -> Optional[Dict]:
        """
        Get the active study session.

        Returns:
            Dict with subject, question_ids, predicted_recall and current_index, or None
        """
        raw = self.client.hgetall(self._session_key(learner_id))
        if not raw:
            return None
        return {
            "subject": raw.get("subject") or None,
            "question_ids": json.loads(raw.get("question_ids", "[]")),
            "predicted_recall": json.loads(raw.get("predicted_recall", "[]")),
            "current_index": int(raw.get("current_index", 0)),
        }

    def advance_session(self, learner_id: str) -> int:
        """Move to the next question. Returns the new index."""
        return self.client.hincrby(self._session_key(learner_id), "current_index", 1)

    # ==================== Cleanup ====================

    def delete_learner(self, learner_id: str):
        """
        Delete all data for a learner (reset).
        """
        self.client.delete(
            self._weights_key(learner_id),
            self._overrides_key(learner_id),
            self._stats_key(learner_id),
            self._session_key(learner_id)
        )
