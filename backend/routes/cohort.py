"""
Cohort routes — live analytics backed by the admin server's feeds.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from progress.compare import (
    compare_averages,
    difference_from,
    merge_section_summaries,
    merge_subject_series,
    merge_timeline_series,
)
from progress.config import RANK_TIE_BREAK, logger
from progress.fetcher import FeedError, MarksFeedClient, fetch_marks_for_cohort
from progress.normalizer import normalize_student
from progress.subjects import build_subject_averages
from progress.summary import (
    build_student_summaries,
    cohort_average,
    filter_cohort,
    student_average,
    students_with_marks,
)
from progress.timeline import build_class_timeline, build_student_timeline

router = APIRouter()


async def get_feed_client():
    async with MarksFeedClient() as client:
        yield client


async def _roster(client: MarksFeedClient):
    try:
        return await client.get_students()
    except FeedError as exc:
        logger.error(f"Roster feed unavailable: {exc}")
        raise HTTPException(502, str(exc))


async def _ranked(client: MarksFeedClient, cohort):
    marks = await fetch_marks_for_cohort([s["student_id"] for s in cohort], client.get_marks)
    return build_student_summaries(cohort, marks, tie_break=RANK_TIE_BREAK)


@router.get("/summary")
async def cohort_summary(
    class_name: str = Query(..., alias="class"),
    section: Optional[str] = None,
    compare_section: Optional[str] = None,
    q: Optional[str] = None,
    client: MarksFeedClient = Depends(get_feed_client),
):
    """Ranked summaries for a class/section, optionally against a second section."""
    roster = await _roster(client)
    summaries = await _ranked(client, filter_cohort(roster, class_name, section, q))

    result = {
        "class": class_name,
        "section": section,
        "students": summaries,
        "average": cohort_average(summaries),
        "with_marks": students_with_marks(summaries),
    }

    if compare_section:
        other = await _ranked(client, filter_cohort(roster, class_name, compare_section))
        label_a = f"Section {section}" if section else "Section A"
        label_b = f"Section {compare_section}"
        avg_b = cohort_average(other)
        result["compare"] = {
            "section": compare_section,
            "students": other,
            "average": avg_b,
            "rows": merge_section_summaries(summaries, other, label_a, label_b),
            **compare_averages(result["average"], avg_b, label_a, label_b),
        }
    return result


@router.get("/student/{student_id}")
async def student_progress(
    student_id: str,
    compare: Optional[str] = None,
    client: MarksFeedClient = Depends(get_feed_client),
):
    """One student's subject/date breakdown, overlaid with a second student when asked."""
    roster = {s["student_id"]: s for s in map(normalize_student, await _roster(client))}
    if student_id not in roster:
        raise HTTPException(404, f"Student '{student_id}' not found.")
    if compare and compare not in roster:
        raise HTTPException(404, f"Student '{compare}' not found.")

    ids = [student_id] + ([compare] if compare else [])
    marks = await fetch_marks_for_cohort(ids, client.get_marks)

    student = roster[student_id]
    subjects_a = build_subject_averages(marks[student_id])
    timeline_a = build_student_timeline(marks[student_id])
    average_a = student_average(marks[student_id])

    subjects_b = timeline_b = average_b = label_b = None
    if compare:
        label_b = roster[compare]["name"]
        subjects_b = build_subject_averages(marks[compare])
        timeline_b = build_student_timeline(marks[compare])
        average_b = student_average(marks[compare])

    # Section standing of the selected student; none without a class and section
    rank = section_avg = None
    if student["class"] is not None and student["section"] is not None:
        section_peers = filter_cohort(roster.values(), student["class"], student["section"])
        peer_marks = await fetch_marks_for_cohort(
            [s["student_id"] for s in section_peers if s["student_id"] not in marks],
            client.get_marks,
        )
        peer_marks.update(marks)
        section_summaries = build_student_summaries(
            section_peers, peer_marks, tie_break=RANK_TIE_BREAK
        )
        section_avg = cohort_average(section_summaries)
        rank = next(
            (s["rank"] for s in section_summaries if s["student_id"] == student_id), None
        )

    result = {
        "student": student,
        "average": average_a,
        "count": len(marks[student_id]),
        "rank": rank,
        "section_average": section_avg,
        "vs_section": difference_from(average_a, section_avg),
        "subjects": merge_subject_series(subjects_a, student["name"], subjects_b, label_b),
        "timeline": merge_timeline_series(timeline_a, student["name"], timeline_b, label_b),
    }
    if compare:
        result["compare"] = {
            "student": roster[compare],
            "average": average_b,
            "count": len(marks[compare]),
            **compare_averages(average_a, average_b, student["name"], label_b),
        }
    return result


@router.get("/timeline")
async def cohort_timeline(
    class_name: str = Query(..., alias="class"),
    client: MarksFeedClient = Depends(get_feed_client),
):
    """Labelled exam timeline of a class."""
    try:
        rows = await client.get_exam_timeline(class_name)
    except FeedError as exc:
        logger.error(f"Timeline feed unavailable for class {class_name}: {exc}")
        raise HTTPException(502, str(exc))
    return build_class_timeline(rows)
