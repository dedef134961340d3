"""
Settings loaded from environment variables (and .env).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

BASE_DIR = Path(__file__).parent

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")  # development, production
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Redis
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_DB = int(os.getenv("REDIS_DB", 0))

# Question bank
QUESTION_BANK_PATH = os.getenv("QUESTION_BANK_PATH", str(BASE_DIR / "data" / "questions.json"))

# Study sessions
STUDY_BATCH_SIZE = int(os.getenv("STUDY_BATCH_SIZE", 10))
