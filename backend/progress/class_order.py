"""
class_order.py — Pedagogical ordering of class names.

PreKG < LKG < UKG < 1 < 2 < ... < 12, case-insensitive. Anything else sorts
after all of these and keeps its input order.
"""

import re
from typing import Any, Iterable, List

PRE_PRIMARY = {"prekg": 0, "lkg": 1, "ukg": 2}
UNKNOWN_ORDER = 999


def _leading_number(text: str):
    match = re.match(r"^(\d+)", text)
    return int(match.group(1)) if match else None


def class_sort_key(name: Any) -> int:
    """Sort position of a class name; unknown names share the last slot."""
    if name is None:
        return UNKNOWN_ORDER
    text = str(name).strip()
    if not text:
        return UNKNOWN_ORDER
    if text.lower() in PRE_PRIMARY:
        return PRE_PRIMARY[text.lower()]
    num = _leading_number(text)
    if num is not None and 1 <= num <= 12:
        return 3 + num
    return UNKNOWN_ORDER


def sort_classes(names: Iterable[Any]) -> List[Any]:
    """Sort class names in school order (stable for unknown names)."""
    return sorted(names, key=class_sort_key)


def normalize_class(value: Any) -> str:
    """Comparison form of a class name: '5A' and '5' both become '5'."""
    if value is None:
        return ""
    text = str(value).strip()
    if not text:
        return ""
    if text.lower() in PRE_PRIMARY:
        return text.lower()
    num = _leading_number(text)
    if num is not None:
        return str(num)
    return text.lower()


def is_same_class(a: Any, b: Any) -> bool:
    return normalize_class(a) == normalize_class(b)
