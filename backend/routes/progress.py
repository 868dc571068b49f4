"""
Progress routes — stateless analytics over marks supplied in the request.
"""

from fastapi import APIRouter, HTTPException

from progress.class_order import sort_classes
from progress.compare import (
    compare_averages,
    merge_section_summaries,
    merge_subject_series,
    merge_timeline_series,
)
from progress.config import RANK_TIE_BREAK, TIE_BREAK_MODES
from progress.subjects import build_subject_averages
from progress.summary import (
    build_student_summaries,
    cohort_average,
    student_average,
    students_with_marks,
)
from progress.timeline import build_class_timeline, build_student_timeline

router = APIRouter()


def _require_list(payload: dict, *keys: str) -> list:
    """First list-valued field among keys, or 400."""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return value
    raise HTTPException(400, f"'{keys[0]}' must be a list.")


@router.post("/summary")
async def summary(payload: dict):
    """
    Rank a cohort.
    Expects: { "students": [...roster rows...] | "studentIds": [...],
               "marksByStudent": { id: [...marks...] }, "tieBreak"?: "input" | "student_id" }
    """
    students = payload.get("students")
    if not isinstance(students, list):
        ids = _require_list(payload, "studentIds")
        students = [{"student_id": str(sid)} for sid in ids]

    marks_by_student = payload.get("marksByStudent") or {}
    if not isinstance(marks_by_student, dict):
        raise HTTPException(400, "'marksByStudent' must be an object keyed by student id.")

    tie_break = payload.get("tieBreak") or RANK_TIE_BREAK
    if tie_break not in TIE_BREAK_MODES:
        raise HTTPException(400, f"'tieBreak' must be one of {', '.join(TIE_BREAK_MODES)}.")

    summaries = build_student_summaries(students, marks_by_student, tie_break=tie_break)
    return {
        "students": summaries,
        "average": cohort_average(summaries),
        "with_marks": students_with_marks(summaries),
    }


@router.post("/compare")
async def compare(payload: dict):
    """
    Merge two series for overlay charts.
    Expects: { "seriesA": [...], "seriesB"?: [...], "labelA": str, "labelB"?: str,
               "kind": "subject" | "timeline" }
    """
    series_a = _require_list(payload, "seriesA")
    series_b = payload.get("seriesB")
    if series_b is not None and not isinstance(series_b, list):
        raise HTTPException(400, "'seriesB' must be a list.")

    label_a = payload.get("labelA")
    if not label_a:
        raise HTTPException(400, "'labelA' is required.")
    label_b = payload.get("labelB")
    if series_b is not None and not label_b:
        raise HTTPException(400, "'labelB' is required when 'seriesB' is given.")

    kind = payload.get("kind", "subject")
    if kind == "subject":
        return merge_subject_series(series_a, label_a, series_b, label_b)
    if kind == "timeline":
        return merge_timeline_series(series_a, label_a, series_b, label_b)
    raise HTTPException(400, f"Unknown comparison kind '{kind}'. Use 'subject' or 'timeline'.")


@router.post("/timeline")
async def class_timeline(payload: dict):
    """Label a class's exam timeline feed. Expects: { "classExams": [...] }"""
    return build_class_timeline(_require_list(payload, "classExams"))


@router.post("/student")
async def student_breakdown(payload: dict):
    """Subject-wise and date-wise breakdown of one student's marks."""
    marks = _require_list(payload, "marks")
    return {
        "subjects": build_subject_averages(marks),
        "timeline": build_student_timeline(marks),
        "average": student_average(marks),
        "count": len(marks),
    }


@router.post("/sections")
async def section_comparison(payload: dict):
    """
    Section-vs-section view over two ranked summary lists.
    Expects: { "summariesA": [...], "summariesB": [...], "labelA": str, "labelB": str }
    """
    summaries_a = _require_list(payload, "summariesA")
    summaries_b = _require_list(payload, "summariesB")
    label_a = payload.get("labelA") or "Section A"
    label_b = payload.get("labelB") or "Section B"

    avg_a = cohort_average(summaries_a)
    avg_b = cohort_average(summaries_b)
    return {
        "rows": merge_section_summaries(summaries_a, summaries_b, label_a, label_b),
        "average_a": avg_a,
        "average_b": avg_b,
        **compare_averages(avg_a, avg_b, label_a, label_b),
    }


@router.post("/classes/sort")
async def classes_sort(payload: dict):
    """Order class names PreKG, LKG, UKG, 1..12, then everything else."""
    return sort_classes(_require_list(payload, "classes"))
