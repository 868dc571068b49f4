"""
config.py — Environment-driven settings and the shared logger.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent
load_dotenv(ROOT_DIR / ".env")

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("edugovern.progress")

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "My School")

# External data collaborator (roster, marks, class timeline feeds)
MARKS_API_URL = os.getenv("MARKS_API_URL", "http://localhost:5000").rstrip("/")
MARKS_API_TOKEN = os.getenv("MARKS_API_TOKEN", "").strip() or None
MARKS_API_TIMEOUT_SECONDS = float(os.getenv("MARKS_API_TIMEOUT_SECONDS", "15"))

# How equal averages are ordered before ranks are assigned: "input" or "student_id"
RANK_TIE_BREAK = os.getenv("RANK_TIE_BREAK", "input").strip().lower()
TIE_BREAK_MODES = ("input", "student_id")
if RANK_TIE_BREAK not in TIE_BREAK_MODES:
    logger.warning(f"Unknown RANK_TIE_BREAK '{RANK_TIE_BREAK}', falling back to 'input'")
    RANK_TIE_BREAK = "input"
