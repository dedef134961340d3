"""
FastAPI Backend for Viva Recall

Endpoints:
    GET    /                        - Health check
    GET    /subjects                - List subjects in the question bank
    POST   /start-session           - Start a study session (lowest recall first)
    GET    /session/{learner_id}    - Current question of the active session
    POST   /answer                  - Submit an answer, train the recall model
    GET    /stats/{learner_id}      - Attempted, correct, mastery, accuracy
    GET    /analytics/{learner_id}  - Per-subject coverage
    GET    /weights/{learner_id}    - Current recall model weights
    DELETE /learner/{learner_id}    - Reset a learner
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Optional
import uuid

import config
from core.recall_engine import RecallEngineError
from logging_config import setup_logging
from question_bank import QuestionBank
from redis_store import RedisStore
from study_session import StaleAnswerError, StudyService, StudySessionError

# ==================== Initialize ====================

setup_logging()

app = FastAPI(
    title="Viva Recall API",
    description="Spaced-repetition quiz with an online recall model",
    version="1.0.0"
)

# Allow frontend to connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize components
service = StudyService(store=RedisStore(), bank=QuestionBank(config.QUESTION_BANK_PATH))

# ==================== Request/Response Models ====================

class StartSessionRequest(BaseModel):
    learner_id: Optional[str] = None  # Auto-generate if not provided
    subject: Optional[str] = None  # None = all subjects

class AnswerRequest(BaseModel):
    learner_id: str
    choice: str
    question_id: Optional[int] = None  # Rejected if the session has moved on

class AnswerResponse(BaseModel):
    question_id: int
    is_correct: bool
    message: str
    correct_answer: str
    weights: list
    stats: dict
    next_question: Optional[dict] = None
    finished: bool

class StatsResponse(BaseModel):
    total_attempted: int
    correct_count: int
    mastery: int
    accuracy: int

# ==================== Helper Functions ====================

def to_http_error(error: Exception) -> HTTPException:
    """Map domain errors to HTTP errors."""
    if isinstance(error, StaleAnswerError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, StudySessionError):
        return HTTPException(status_code=404, detail=str(error))
    return HTTPException(status_code=422, detail=str(error))

# ==================== Endpoints ====================

@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Viva Recall API is running"}


@app.get("/subjects")
def get_subjects():
    """List all subjects in the question bank."""
    return {"subjects": service.bank.get_subjects()}


@app.post("/start-session")
def start_session(request: StartSessionRequest):
    """
    Start a new study session.

    Returns the first question of the batch.
    """
    # Generate learner ID if not provided
    learner_id = request.learner_id or str(uuid.uuid4())[:8]

    try:
        return service.start_session(learner_id, request.subject)
    except (StudySessionError, RecallEngineError) as e:
        raise to_http_error(e)


@app.get("/session/{learner_id}")
def get_session(learner_id: str):
    """Current question and progress of the active session."""
    try:
        question = service.current_question(learner_id)
    except StudySessionError as e:
        raise to_http_error(e)

    return {
        "learner_id": learner_id,
        "question": question,
        "finished": question is None
    }


@app.post("/answer", response_model=AnswerResponse)
def answer(request: AnswerRequest):
    """
    Grade an answer and train the recall model.
    """
    try:
        result = service.submit_answer(request.learner_id, request.choice, request.question_id)
    except (StudySessionError, RecallEngineError) as e:
        raise to_http_error(e)

    return AnswerResponse(**result)


@app.get("/stats/{learner_id}", response_model=StatsResponse)
def get_stats(learner_id: str):
    return StatsResponse(**service.get_stats(learner_id))


@app.get("/analytics/{learner_id}")
def get_analytics(learner_id: str):
    """Per-subject coverage for the analytics view."""
    return {"learner_id": learner_id, "subjects": service.get_subject_analytics(learner_id)}


@app.get("/weights/{learner_id}")
def get_weights(learner_id: str):
    try:
        weights = service.get_weights(learner_id)
    except RecallEngineError as e:
        raise to_http_error(e)
    return {"learner_id": learner_id, "weights": weights}


@app.delete("/learner/{learner_id}")
def delete_learner(learner_id: str):
    """
    Delete all learner data (reset).
    """
    service.reset(learner_id)
    return {"status": "deleted", "learner_id": learner_id}


# ==================== Run Server ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
