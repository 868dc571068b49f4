"""
Tests for routes/progress.py and routes/cohort.py via FastAPI's TestClient.
"""

import os
import sys

import httpx
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from main import app
from progress.fetcher import MarksFeedClient
from routes.cohort import get_feed_client

ROSTER = [
    {"student_id": "S1", "name": "Asha", "class": "5", "section": "A"},
    {"student_id": "S2", "name": "Bilal", "class": "5", "section": "A"},
    {"id": 3, "student_name": "Chen", "class": "5", "section": "B"},
    {"student_id": "S4", "name": "Dina", "class": "6", "section": "A"},
    {"student_id": "S5", "name": "Esi"},
]

MARKS = {
    "S1": [
        {"subject": "Math", "exam_date": "2024-05-01T00:00:00.000Z", "obtained_marks": 80, "max_marks": 100},
        {"subject": "Science", "exam_date": "2024-06-01", "obtained_marks": 35, "max_marks": 50},
    ],
    "S2": [
        {"subject": "Math", "exam_date": "2024-05-01", "obtained_marks": 90, "max_marks": 100},
    ],
    "3": [
        {"subject": "Art", "exam_date": "2024-04-01", "obtained_marks": 60, "max_marks": 100},
    ],
    "S5": [
        {"subject": "Math", "exam_date": "2024-05-01", "obtained_marks": 70, "max_marks": 100},
    ],
}

TIMELINE = [
    {"exam_date": "2024-05-01", "exam_type": "Midterm", "subject": "Math", "max_marks": 100,
     "avg_pct": "85.0", "student_count": 2},
    {"exam_date": "2024-06-01", "exam_type": "Midterm", "subject": "Math", "max_marks": 100,
     "avg_pct": "70.0", "student_count": 2},
]


def _feed(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/students":
        return httpx.Response(200, json={"data": ROSTER})
    if path == "/api/marks":
        sid = request.url.params.get("studentId")
        return httpx.Response(200, json={"data": MARKS.get(sid, [])})
    if path == "/api/marks/timeline":
        if request.url.params.get("class") == "down":
            return httpx.Response(503, json={"message": "Failed to fetch exam timeline"})
        return httpx.Response(200, json={"data": TIMELINE})
    return httpx.Response(404)


async def _feed_client():
    async with MarksFeedClient(
        base_url="http://feeds.test", transport=httpx.MockTransport(_feed)
    ) as client:
        yield client


@pytest.fixture
def client():
    app.dependency_overrides[get_feed_client] = _feed_client
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        res = client.get("/api/health")
        assert res.status_code == 200
        assert res.json()["status"] == "ok"

    def test_config(self, client):
        assert client.get("/api/config").json()["rank_tie_break"] in ("input", "student_id")


class TestProgressRoutes:
    """Stateless /api/progress endpoints."""

    def test_summary_with_student_ids(self, client):
        res = client.post("/api/progress/summary", json={
            "studentIds": ["a", "b", "c"],
            "marksByStudent": {
                "a": [{"obtained_marks": 90}],
                "c": [{"obtained_marks": 90}],
            },
        })
        assert res.status_code == 200
        body = res.json()
        assert [(s["student_id"], s["rank"]) for s in body["students"]] == [
            ("a", 1), ("c", 2), ("b", 3),
        ]
        assert body["average"] == 90.0
        assert body["with_marks"] == 2

    def test_summary_with_roster_rows(self, client):
        res = client.post("/api/progress/summary", json={
            "students": ROSTER[:2],
            "marksByStudent": MARKS,
        })
        top = res.json()["students"][0]
        assert top["name"] == "Bilal"
        assert top["section"] == "A"

    def test_summary_non_list_marks_read_as_empty(self, client):
        res = client.post("/api/progress/summary", json={
            "studentIds": ["a"], "marksByStudent": {"a": 5},
        })
        assert res.status_code == 200
        student = res.json()["students"][0]
        assert student["count"] == 0
        assert student["average"] is None
        assert student["rank"] == 1

    def test_student_breakdown_with_timezone_date(self, client):
        res = client.post("/api/progress/student", json={"marks": [
            {"subject": "Math", "exam_date": "2024-05-01", "obtained_marks": 60},
            {"subject": "Math", "exam_date": "10:00 UTC", "obtained_marks": 80},
        ]})
        assert res.status_code == 200
        assert len(res.json()["timeline"]) == 2

    def test_summary_requires_students(self, client):
        assert client.post("/api/progress/summary", json={}).status_code == 400

    def test_summary_rejects_unknown_tie_break(self, client):
        res = client.post("/api/progress/summary", json={"studentIds": [], "tieBreak": "random"})
        assert res.status_code == 400

    def test_compare_subject(self, client):
        res = client.post("/api/progress/compare", json={
            "kind": "subject",
            "seriesA": [{"subject": "Math", "percentage": 85.0}],
            "seriesB": [{"subject": "Art", "percentage": 60.0}],
            "labelA": "Asha",
            "labelB": "Chen",
        })
        assert res.json() == [
            {"subject": "Math", "Asha": 85.0, "Chen": 0},
            {"subject": "Art", "Asha": 0, "Chen": 60.0},
        ]

    def test_compare_timeline_uses_null_fill(self, client):
        res = client.post("/api/progress/compare", json={
            "kind": "timeline",
            "seriesA": [{"date": "2024-05-01", "percentage": 85.0}],
            "seriesB": [{"date": "2024-04-01", "percentage": 60.0}],
            "labelA": "Asha",
            "labelB": "Chen",
        })
        assert res.json()[0] == {"date": "2024-04-01", "Asha": None, "Chen": 60.0}

    def test_compare_without_b(self, client):
        res = client.post("/api/progress/compare", json={
            "seriesA": [{"subject": "Math", "percentage": 85.0}], "labelA": "Asha",
        })
        assert res.json() == [{"subject": "Math", "Asha": 85.0}]

    @pytest.mark.parametrize("payload", [
        {"labelA": "A"},
        {"seriesA": [], "labelA": "A", "kind": "radar"},
        {"seriesA": []},
        {"seriesA": [], "labelA": "A", "seriesB": []},
    ])
    def test_compare_bad_payloads(self, client, payload):
        assert client.post("/api/progress/compare", json=payload).status_code == 400

    def test_timeline(self, client):
        res = client.post("/api/progress/timeline", json={"classExams": TIMELINE})
        labels = [e["label"] for e in res.json()]
        assert labels == ["Midterm · Math (2024-05-01)", "Midterm · Math (2024-06-01)"]

    def test_student_breakdown(self, client):
        res = client.post("/api/progress/student", json={"marks": MARKS["S1"]})
        body = res.json()
        assert body["subjects"] == [
            {"subject": "Math", "percentage": 80.0},
            {"subject": "Science", "percentage": 70.0},
        ]
        assert body["timeline"][0] == {"date": "2024-05-01", "percentage": 80.0}
        assert body["average"] == 75.0
        assert body["count"] == 2

    def test_sections(self, client):
        res = client.post("/api/progress/sections", json={
            "summariesA": [{"name": "Asha", "average": 80.0}],
            "summariesB": [{"name": "Chen", "average": 60.0}, {"name": "Eli", "average": None}],
            "labelA": "Sec A",
            "labelB": "Sec B",
        })
        body = res.json()
        assert len(body["rows"]) == 2
        assert body["leader"] == "Sec A"
        assert body["margin"] == 20.0

    def test_classes_sort(self, client):
        res = client.post("/api/progress/classes/sort", json={"classes": ["12", "PreKG", "2", "LKG", "1", "UKG"]})
        assert res.json() == ["PreKG", "LKG", "UKG", "1", "2", "12"]


class TestCohortRoutes:
    """Live /api/cohort endpoints backed by the mocked feeds."""

    def test_summary_for_section(self, client):
        res = client.get("/api/cohort/summary", params={"class": "5", "section": "A"})
        assert res.status_code == 200
        body = res.json()
        assert [s["student_id"] for s in body["students"]] == ["S2", "S1"]
        assert body["average"] == 82.5
        assert "compare" not in body

    def test_summary_with_compare_section(self, client):
        res = client.get(
            "/api/cohort/summary",
            params={"class": "5", "section": "A", "compare_section": "B"},
        )
        compare = res.json()["compare"]
        assert compare["average"] == 60.0
        assert compare["leader"] == "Section A"
        assert compare["rows"][0]["Section B_name"] == "Chen"

    def test_student_progress_with_compare(self, client):
        res = client.get("/api/cohort/student/S1", params={"compare": "3"})
        assert res.status_code == 200
        body = res.json()
        assert body["rank"] == 2
        assert body["section_average"] == 82.5
        assert body["vs_section"] == -7.5
        assert {r["subject"] for r in body["subjects"]} == {"Math", "Science", "Art"}
        art = next(r for r in body["subjects"] if r["subject"] == "Art")
        assert art["Asha"] == 0
        first = body["timeline"][0]
        assert first == {"date": "2024-04-01", "Asha": None, "Chen": 60.0}
        assert body["compare"]["leader"] == "Asha"

    def test_student_without_section_has_no_standing(self, client):
        requested = []

        def handler(request):
            if request.url.path == "/api/marks":
                requested.append(request.url.params.get("studentId"))
            return _feed(request)

        async def feed_client():
            async with MarksFeedClient(
                base_url="http://feeds.test", transport=httpx.MockTransport(handler)
            ) as c:
                yield c

        app.dependency_overrides[get_feed_client] = feed_client
        res = client.get("/api/cohort/student/S5")
        assert res.status_code == 200
        body = res.json()
        assert body["average"] == 70.0
        assert body["rank"] is None
        assert body["section_average"] is None
        assert body["vs_section"] is None
        assert requested == ["S5"]

    def test_student_not_found(self, client):
        assert client.get("/api/cohort/student/NOPE").status_code == 404

    def test_timeline(self, client):
        res = client.get("/api/cohort/timeline", params={"class": "5"})
        assert res.json()[1]["label"] == "Midterm · Math (2024-06-01)"
        assert res.json()[1]["avg_pct"] == 70.0

    def test_timeline_upstream_failure(self, client):
        res = client.get("/api/cohort/timeline", params={"class": "down"})
        assert res.status_code == 502
        assert res.json()["detail"] == "Failed to fetch exam timeline"
