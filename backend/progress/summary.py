"""
summary.py — Cohort summaries and ranking.

Computes, for every student in a cohort:
- overall average percentage (None when the student has no marks)
- number of marks
- rank (1-based position after sorting by average, students without marks last)

Plus the small cohort helpers the progress page needs: section average,
cohort filtering, section lists and compare-target candidates.
"""

from typing import Any, Dict, List, Optional

import pandas as pd

from progress.normalizer import marks_frame, normalize_student, round1


def student_average(marks: List[Any]) -> Optional[float]:
    df = marks_frame(marks)
    if df.empty:
        return None
    return round1(df["percentage"].mean())


def build_student_summaries(
    students: List[Any],
    marks_by_student: Dict[str, List[Any]],
    tie_break: str = "input",
) -> List[Dict[str, Any]]:
    """
    Summarise and rank a cohort.

    Students with an average come first, highest first; students without
    marks follow in their input order. Equal averages keep input order, or
    are ordered by student id when tie_break is "student_id". Rank is the
    1-based position in that order, so ranks are always 1..N with no gaps.
    """
    if not isinstance(marks_by_student, dict):
        marks_by_student = {}
    summaries = []
    for position, raw in enumerate(students or []):
        student = normalize_student(raw)
        marks = marks_by_student.get(student["student_id"])
        if not isinstance(marks, (list, tuple)):
            marks = []
        summaries.append({
            "student_id": student["student_id"],
            "name": student["name"],
            "class": student["class"],
            "section": student["section"],
            "average": student_average(marks),
            "count": len(marks),
            "_position": position,
        })

    def _order(s):
        secondary = s["student_id"] if tie_break == "student_id" else ""
        if s["average"] is None:
            return (1, 0.0, "", s["_position"])
        return (0, -s["average"], secondary, s["_position"])

    summaries.sort(key=_order)
    for i, s in enumerate(summaries):
        del s["_position"]
        s["rank"] = i + 1
    return summaries


# ── Cohort helpers ──────────────────────────────────────────────────

def cohort_average(summaries: List[Dict[str, Any]]) -> Optional[float]:
    """Mean of the non-null student averages, one decimal; None if nobody has marks."""
    averages = pd.Series(
        [s.get("average") for s in summaries or [] if s.get("average") is not None],
        dtype=float,
    )
    if averages.empty:
        return None
    return round1(averages.mean())


def students_with_marks(summaries: List[Dict[str, Any]]) -> int:
    return sum(1 for s in summaries or [] if s.get("count", 0) > 0)


def filter_cohort(
    students: List[Any],
    class_name: Optional[str] = None,
    section: Optional[str] = None,
    query: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Students matching class, section and a name/id search (all optional)."""
    q = (query or "").strip().lower()
    cohort = []
    for raw in students or []:
        s = normalize_student(raw)
        if class_name and s["class"] != class_name:
            continue
        if section and s["section"] != section:
            continue
        if q and q not in s["name"].lower() and q not in s["student_id"].lower():
            continue
        cohort.append(s)
    return cohort


def sections_for_class(sections: List[Dict[str, Any]], class_name: str) -> List[str]:
    """Sorted section names whose class_name matches."""
    names = {
        str(s.get("name")).strip()
        for s in sections or []
        if s.get("class_name") == class_name and s.get("name")
    }
    return sorted(names)


def compare_candidates(
    students: List[Any],
    summaries: List[Dict[str, Any]],
    class_name: str,
    exclude_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Students of the same class (any section) a selected student can be
    compared against, sorted by section then name, each with its average.
    """
    averages = {s["student_id"]: s.get("average") for s in summaries or []}
    candidates = []
    for s in filter_cohort(students, class_name=class_name):
        if exclude_id is not None and s["student_id"] == exclude_id:
            continue
        candidates.append({**s, "average": averages.get(s["student_id"])})
    candidates.sort(key=lambda s: (s["section"] or "", s["name"] or ""))
    return candidates
