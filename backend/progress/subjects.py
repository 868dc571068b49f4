"""
subjects.py — Per-subject average percentage for one student.
"""

from typing import Any, Dict, List

from progress.normalizer import marks_frame, round1

GENERAL_SUBJECT = "General"


def build_subject_averages(marks: List[Any]) -> List[Dict[str, Any]]:
    """
    Mean percentage per subject, rounded to one decimal.

    Subjects come out in order of first appearance so chart axes stay put
    for a given input order. Marks without a subject fall under "General".
    """
    df = marks_frame(marks)
    if df.empty:
        return []

    df["subject"] = df["subject"].fillna(GENERAL_SUBJECT)
    subject_means = df.groupby("subject", sort=False)["percentage"].mean()
    return [
        {"subject": str(subj), "percentage": round1(mean)}
        for subj, mean in subject_means.items()
    ]
