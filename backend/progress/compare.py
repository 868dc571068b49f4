"""
compare.py — Side-by-side series for two comparison targets.

Subject comparisons fill gaps with 0 (bar/radar charts read "no data" as no
strength). Timeline comparisons fill gaps with None so line charts show a
break instead of a dip to zero.
"""

from typing import Any, Callable, Dict, List, Optional

from progress.normalizer import round1
from progress.timeline import UNKNOWN_DATE


def _date_order(key: Any):
    return (key == UNKNOWN_DATE, str(key))


def merge_series(
    series_a: List[Dict[str, Any]],
    label_a: str,
    series_b: Optional[List[Dict[str, Any]]] = None,
    label_b: Optional[str] = None,
    key: str = "subject",
    value: str = "percentage",
    fill: Any = 0,
    sort_key: Optional[Callable[[Any], Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Union the keys of two series into rows of {key, label_a[, label_b]}.

    Keys keep first-appearance order (A's, then B's new ones) unless
    sort_key is given. The second column is only emitted when series_b is
    not None; a missing value for a key is replaced by `fill`.
    """
    series_a = series_a or []
    values_a = {row.get(key): row.get(value) for row in series_a}
    values_b = {row.get(key): row.get(value) for row in series_b or []}

    keys = list(dict.fromkeys([row.get(key) for row in series_a] + list(values_b)))
    if sort_key is not None:
        keys.sort(key=sort_key)

    if label_a == key:
        label_a = f"{label_a} (2)"
    if series_b is not None:
        label_b = label_b if label_b is not None else "B"
        taken, n = (key, label_a), 2
        base = label_b
        while label_b in taken:
            label_b = f"{base} ({n})"
            n += 1

    merged = []
    for k in keys:
        va = values_a.get(k)
        row = {key: k, label_a: va if va is not None else fill}
        if series_b is not None:
            vb = values_b.get(k)
            row[label_b] = vb if vb is not None else fill
        merged.append(row)
    return merged


def merge_subject_series(series_a, label_a, series_b=None, label_b=None):
    """Subject-wise merge; absent subjects read as 0."""
    return merge_series(series_a, label_a, series_b, label_b, key="subject", fill=0)


def merge_timeline_series(series_a, label_a, series_b=None, label_b=None):
    """Date-wise merge, dates ascending with "Unknown" last; absent dates read as None."""
    return merge_series(
        series_a, label_a, series_b, label_b,
        key="date", fill=None, sort_key=_date_order,
    )


# ── Section vs section ──────────────────────────────────────────────

def merge_section_summaries(
    summaries_a: List[Dict[str, Any]],
    summaries_b: List[Dict[str, Any]],
    label_a: str,
    label_b: str,
) -> List[Dict[str, Any]]:
    """
    Pair two ranked cohorts position by position (rank 1 with rank 1, ...).

    Each row carries the average and name from both sides; the shorter
    side is padded with None / "".
    """
    summaries_a = summaries_a or []
    summaries_b = summaries_b or []
    if label_b == label_a:
        label_b = f"{label_b} (2)"

    rows = []
    for i in range(max(len(summaries_a), len(summaries_b))):
        a = summaries_a[i] if i < len(summaries_a) else {}
        b = summaries_b[i] if i < len(summaries_b) else {}
        rows.append({
            "index": i + 1,
            label_a: a.get("average"),
            f"{label_a}_name": a.get("name") or "",
            label_b: b.get("average"),
            f"{label_b}_name": b.get("name") or "",
        })
    return rows


def compare_averages(
    avg_a: Optional[float],
    avg_b: Optional[float],
    label_a: str,
    label_b: str,
) -> Dict[str, Any]:
    """Who leads and by how much. A wins ties; unknown when either side has no average."""
    if avg_a is None or avg_b is None:
        return {"leader": None, "margin": None}
    return {
        "leader": label_a if avg_a >= avg_b else label_b,
        "margin": round1(abs(avg_a - avg_b)),
    }


def difference_from(value: Optional[float], baseline: Optional[float]) -> Optional[float]:
    """Signed gap to a baseline (e.g. a student against the section average)."""
    if value is None or baseline is None:
        return None
    return round1(value - baseline)
