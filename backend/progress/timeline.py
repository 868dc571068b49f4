"""
timeline.py — Date-wise breakdowns.

Two flavours of the same group-then-mean pattern:
- build_student_timeline: one student's marks grouped by exam date
- build_class_timeline:   a class's pre-aggregated exam feed, labelled for charting
"""

from collections import Counter
from typing import Any, Dict, List

import pandas as pd

from progress.normalizer import marks_frame, normalize_class_exam, round1
from progress.subjects import GENERAL_SUBJECT

UNKNOWN_DATE = "Unknown"
NO_DATE = "No date"
DEFAULT_EXAM_TYPE = "Exam"


def _parse_date(value: Any):
    if value is None:
        return pd.NaT
    return pd.to_datetime(value, errors="coerce", utc=True)


# ── Per-student ─────────────────────────────────────────────────────

def build_student_timeline(marks: List[Any]) -> List[Dict[str, Any]]:
    """
    Mean percentage per exam date, oldest first.

    Marks are sorted by date before grouping (stable, undated last) so the
    output order is deterministic. Undated marks share the "Unknown" bucket.
    """
    df = marks_frame(marks)
    if df.empty:
        return []

    df["_ts"] = df["exam_date"].map(_parse_date)
    df = df.sort_values("_ts", kind="mergesort", na_position="last")
    df["exam_date"] = df["exam_date"].fillna(UNKNOWN_DATE)

    date_means = df.groupby("exam_date", sort=False)["percentage"].mean()
    return [
        {"date": str(d), "percentage": round1(mean)}
        for d, mean in date_means.items()
    ]


# ── Per-class ───────────────────────────────────────────────────────

def _exam_identity(exam: Dict[str, Any]):
    return (exam["exam_type"] or DEFAULT_EXAM_TYPE, exam["subject"] or GENERAL_SUBJECT)


def build_class_timeline(class_exams: List[Any]) -> List[Dict[str, Any]]:
    """
    Label each class exam for the progress chart.

    The label is the exam type, plus " · subject" unless the subject is
    "General". When the same (exam type, subject) pair shows up more than
    once in the feed, the date is appended in parentheses. Duplicate counts
    are taken over the whole feed before any label is built. Feed order is
    kept; undated exams stay in and read "No date".
    """
    exams = [normalize_class_exam(e) for e in (class_exams or [])]
    combo_count = Counter(_exam_identity(e) for e in exams)

    timeline = []
    for exam in exams:
        exam_type, subject = _exam_identity(exam)
        date_str = exam["exam_date"] or NO_DATE

        label = exam_type if subject == GENERAL_SUBJECT else f"{exam_type} · {subject}"
        if combo_count[(exam_type, subject)] > 1:
            label = f"{label} ({date_str})"

        timeline.append({
            "label": label,
            "date": date_str,
            "exam_type": exam_type,
            "subject": subject,
            "max_marks": exam["max_marks"],
            "avg_pct": exam["avg_pct"],
            "student_count": exam["student_count"],
        })

    return timeline
