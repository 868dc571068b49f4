"""
normalizer.py — Canonical shapes for loosely-typed feed rows.

The roster, marks and class-timeline feeds drift in field names and casing
(`student_id` vs `id`, `subject` vs `subject_name`, `obtained_marks` vs
`marks`). Every row is coalesced here so the aggregators only ever see:

- Mark:      subject, exam_type, exam_date, obtained_marks, max_marks
- Student:   student_id, name, class, section
- ClassExam: exam_type, subject, exam_date, max_marks, avg_pct, student_count

All functions are total: missing or malformed values are defaulted, never raised.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

DEFAULT_MAX_MARKS = 100.0

MARK_ALIASES = {
    "subject": ["subject_name", "subject"],
    "exam_type": ["exam_type", "exam_name", "exam"],
    "exam_date": ["exam_date", "date"],
    "obtained_marks": ["obtained_marks", "marks", "obtained", "score"],
    "max_marks": ["max_marks", "max_score", "out_of", "total_marks"],
}

STUDENT_ALIASES = {
    "student_id": ["student_id", "studentid", "id"],
    "name": ["name", "student_name", "staff_name", "full_name"],
    "class": ["class", "class_name"],
    "section": ["section", "section_name"],
}

CLASS_EXAM_ALIASES = {
    "exam_type": ["exam_type", "exam_name", "exam"],
    "subject": ["subject", "subject_name"],
    "exam_date": ["exam_date", "date"],
    "max_marks": ["max_marks", "max_score"],
    "avg_pct": ["avg_pct", "average", "avg"],
    "student_count": ["student_count", "count"],
}


# ── Helpers ─────────────────────────────────────────────────────────

def _lookup(record: Dict[str, Any], aliases: List[str]) -> Any:
    """Return the first non-null value among aliases (case-insensitive keys)."""
    keys_lower = {str(k).lower().strip(): k for k in record}
    for a in aliases:
        key = keys_lower.get(a)
        if key is None:
            continue
        value = record[key]
        if value is not None and not (isinstance(value, float) and np.isnan(value)):
            return value
    return None


def _to_number(val: Any) -> Optional[float]:
    """Convert to a finite float or return None."""
    if isinstance(val, bool):
        return None
    try:
        v = float(val)
    except (TypeError, ValueError):
        return None
    return None if np.isnan(v) or np.isinf(v) else v


def _to_text(val: Any) -> Optional[str]:
    if val is None:
        return None
    text = str(val).strip()
    if not text or text.lower() in ("nan", "none", "null"):
        return None
    return text


def _to_date_string(val: Any) -> Optional[str]:
    """Keep only the date part: '2024-05-01T00:00:00.000Z' -> '2024-05-01'."""
    if val is None:
        return None
    if isinstance(val, (datetime, date)):
        if pd.isna(val):
            return None
        return val.isoformat()[:10]
    text = _to_text(val)
    return text[:10] if text else None


def round1(value: Any) -> Optional[float]:
    """Round half up to one decimal place, None for missing/NaN."""
    v = _to_number(value)
    if v is None:
        return None
    return float(Decimal(v).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def percentage(mark: Dict[str, Any]) -> float:
    """Percentage score of a canonical Mark."""
    return mark["obtained_marks"] / mark["max_marks"] * 100


# ── Normalizers ─────────────────────────────────────────────────────

def normalize_mark(record: Any) -> Dict[str, Any]:
    """Coalesce one raw mark row into the canonical Mark shape."""
    if not isinstance(record, dict):
        record = {}

    obtained = _to_number(_lookup(record, MARK_ALIASES["obtained_marks"]))
    max_marks = _to_number(_lookup(record, MARK_ALIASES["max_marks"]))
    if max_marks is None or max_marks <= 0:
        max_marks = DEFAULT_MAX_MARKS

    return {
        "subject": _to_text(_lookup(record, MARK_ALIASES["subject"])),
        "exam_type": _to_text(_lookup(record, MARK_ALIASES["exam_type"])),
        "exam_date": _to_date_string(_lookup(record, MARK_ALIASES["exam_date"])),
        "obtained_marks": obtained if obtained is not None else 0.0,
        "max_marks": max_marks,
    }


def normalize_marks(records: Optional[List[Any]]) -> List[Dict[str, Any]]:
    if not isinstance(records, (list, tuple)):
        return []
    return [normalize_mark(r) for r in records]


def marks_frame(records: Optional[List[Any]]) -> pd.DataFrame:
    """Normalized marks as a DataFrame with a 'percentage' column (empty-safe)."""
    df = pd.DataFrame(normalize_marks(records), columns=list(MARK_ALIASES))
    df["percentage"] = (
        df["obtained_marks"].astype(float) / df["max_marks"].astype(float) * 100
    )
    return df


def normalize_student(row: Any) -> Dict[str, Any]:
    """Coalesce a roster row into the canonical Student shape."""
    if not isinstance(row, dict):
        row = {}
    student_id = _to_text(_lookup(row, STUDENT_ALIASES["student_id"]))
    sid = student_id or ""
    return {
        "student_id": sid,
        "name": _to_text(_lookup(row, STUDENT_ALIASES["name"])) or sid,
        "class": _to_text(_lookup(row, STUDENT_ALIASES["class"])),
        "section": _to_text(_lookup(row, STUDENT_ALIASES["section"])),
    }


def normalize_class_exam(row: Any) -> Dict[str, Any]:
    """Coalesce a pre-aggregated class timeline row."""
    if not isinstance(row, dict):
        row = {}
    max_marks = _to_number(_lookup(row, CLASS_EXAM_ALIASES["max_marks"]))
    avg_pct = _to_number(_lookup(row, CLASS_EXAM_ALIASES["avg_pct"]))
    count = _to_number(_lookup(row, CLASS_EXAM_ALIASES["student_count"]))
    return {
        "exam_type": _to_text(_lookup(row, CLASS_EXAM_ALIASES["exam_type"])),
        "subject": _to_text(_lookup(row, CLASS_EXAM_ALIASES["subject"])),
        "exam_date": _to_date_string(_lookup(row, CLASS_EXAM_ALIASES["exam_date"])),
        "max_marks": max_marks if max_marks and max_marks > 0 else DEFAULT_MAX_MARKS,
        "avg_pct": round1(avg_pct) if avg_pct is not None else 0.0,
        "student_count": int(count) if count is not None else 0,
    }
