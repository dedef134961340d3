"""
Question Bank - Loads the static multiple-choice questions.

File format (JSON):
    [
        {"id": 1, "subject": "...", "question_text": "...",
         "option_a": "...", "option_b": "...", "option_c": "...", "option_d": "...",
         "correct_answer": "B"},
        ...
    ]
An object with a "questions" list is accepted as well.
"""

import json
from dataclasses import dataclass
from typing import Dict, List, Optional

import config


OPTION_LETTERS = ["A", "B", "C", "D"]


class QuestionBankError(ValueError):
    """Question bank file is missing fields or malformed."""


@dataclass
class Question:
    """A single question as stored in the bank."""
    id: int
    subject: str
    question_text: str
    option_a: str
    option_b: str
    option_c: str = ""
    option_d: str = ""
    correct_answer: str = "A"
    review_count: int = 0  # Seeded history, overridden per learner
    last_reviewed_at: Optional[str] = None

    def options(self) -> Dict[str, str]:
        """Letter -> option text, skipping empty options."""
        texts = [self.option_a, self.option_b, self.option_c, self.option_d]
        return {letter: text for letter, text in zip(OPTION_LETTERS, texts) if text}

    def is_correct(self, choice: str) -> bool:
        return (choice or "").strip().upper() == self.correct_answer.upper()

    def to_public_dict(self) -> Dict:
        """Question data safe to show before answering (no correct answer)."""
        return {
            "id": self.id,
            "subject": self.subject,
            "question_text": self.question_text,
            "options": self.options(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        missing = [k for k in ("id", "subject", "question_text", "option_a", "option_b", "correct_answer")
                   if k not in data]
        if missing:
            raise QuestionBankError(f"Question {data.get('id', '?')} missing fields: {missing}")

        answer = str(data["correct_answer"]).strip().upper()
        if answer not in OPTION_LETTERS:
            raise QuestionBankError(f"Question {data['id']} has invalid correct_answer {data['correct_answer']!r}")

        return cls(
            id=int(data["id"]),
            subject=data["subject"],
            question_text=data["question_text"],
            option_a=data["option_a"],
            option_b=data["option_b"],
            option_c=data.get("option_c") or "",
            option_d=data.get("option_d") or "",
            correct_answer=answer,
            review_count=int(data.get("review_count") or 0),
            last_reviewed_at=data.get("last_reviewed_at"),
        )


class QuestionBank:
    def __init__(self, data_path: str = None, questions: List[dict] = None):
        """Load questions from a JSON file, or from a list of dicts."""
        if questions is None:
            data_path = data_path or config.QUESTION_BANK_PATH
            with open(data_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            questions = data["questions"] if isinstance(data, dict) else data

        # question_id -> Question, in file order
        self.questions: Dict[int, Question] = {}
        for raw in questions:
            question = Question.from_dict(raw)
            if question.id in self.questions:
                raise QuestionBankError(f"Duplicate question id {question.id}")
            self.questions[question.id] = question

    def __len__(self) -> int:
        return len(self.questions)

    def get_question(self, question_id: int) -> Optional[Question]:
        return self.questions.get(int(question_id))

    def get_questions(self, subject: Optional[str] = None) -> List[Question]:
        """
        Get questions, optionally filtered by subject.

        Args:
            subject: Subject name, or None for the whole bank

        Returns:
            List of questions in file order
        """
        if subject is None:
            return list(self.questions.values())
        return [q for q in self.questions.values() if q.subject == subject]

    def get_subjects(self) -> List[str]:
        """Sorted list of distinct subjects."""
        return sorted({q.subject for q in self.questions.values()})
