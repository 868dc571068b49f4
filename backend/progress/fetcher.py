"""
fetcher.py — Reads the external roster, marks and class-timeline feeds.

Marks for a cohort are fetched one request per student, all in flight at
once. A student whose request fails is treated as having no marks; the rest
of the batch is unaffected. There is no cancellation: callers use a
SelectionGuard to drop results that arrive after the selection changed.
"""

import asyncio
import itertools
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from progress.config import (
    MARKS_API_TIMEOUT_SECONDS,
    MARKS_API_TOKEN,
    MARKS_API_URL,
    logger,
)
from progress.normalizer import normalize_marks


class FeedError(Exception):
    """An upstream feed could not be read."""


def _unwrap(payload: Any) -> List[Any]:
    """Feeds answer {"data": [...]}; anything else reads as empty."""
    if isinstance(payload, dict):
        payload = payload.get("data")
    return payload if isinstance(payload, list) else []


class MarksFeedClient:
    """Async client for the admin server's student and marks endpoints."""

    def __init__(
        self,
        base_url: str = MARKS_API_URL,
        token: Optional[str] = MARKS_API_TOKEN,
        timeout: float = MARKS_API_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        try:
            res = await self._client.get(path, params=params)
            res.raise_for_status()
            return _unwrap(res.json())
        except httpx.HTTPStatusError as exc:
            message = None
            try:
                body = exc.response.json()
                if isinstance(body, dict):
                    message = body.get("message")
            except ValueError:
                pass
            raise FeedError(message or f"Failed to fetch {path}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise FeedError(f"Network error while fetching {path}: {exc}") from exc

    async def get_students(self) -> List[Any]:
        return await self._get("/api/students")

    async def get_marks(self, student_id: str) -> List[Any]:
        return await self._get("/api/marks", params={"studentId": student_id})

    async def get_exam_timeline(self, class_name: str) -> List[Any]:
        return await self._get("/api/marks/timeline", params={"class": class_name})


async def fetch_marks_for_cohort(
    student_ids: List[str],
    fetch_one: Callable[[str], Awaitable[List[Any]]],
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Fetch every student's marks concurrently.

    Returns {student_id: [Mark, ...]} with normalized marks. A failed fetch
    is logged and yields [] for that student only.
    """
    async def _one(sid: str) -> List[Dict[str, Any]]:
        try:
            return normalize_marks(await fetch_one(sid))
        except Exception as exc:
            logger.warning(f"Marks fetch failed for student {sid}: {exc}")
            return []

    ids = list(dict.fromkeys(student_ids or []))
    logger.info(f"Fetching marks for {len(ids)} students")
    results = await asyncio.gather(*(_one(sid) for sid in ids))
    return dict(zip(ids, results))


class SelectionGuard:
    """
    Generation counter for in-flight fetches.

    Call begin() when a selection changes and keep the token; when the
    fetch completes, apply its result only if is_current(token).
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._current = 0

    def begin(self) -> int:
        self._current = next(self._counter)
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current
