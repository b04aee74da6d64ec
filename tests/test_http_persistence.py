"""
Tests for the HTTP persistence adapter against httpx.MockTransport.
"""

import json
from datetime import timedelta

import httpx
import pytest

from review_core.bkt import MasteryState
from review_core.errors import PersistenceError
from review_core.fsrs import Grade, ReviewState, SchedulingState, advance
from review_core.persistence import HttpPersistenceService
from review_core.records import DailyActivity, LearnerStats, ReviewEvent, ReviewSession
from review_core.session import Phase, ReviewSessionOrchestrator


BASE_URL = "https://api.example.test/v1"


class FakeApi:
    """Records requests and answers from a route table."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        status, body = self.routes.get(key, (200, {"data": None}))
        return httpx.Response(status, json=body)

    def body(self, index=-1):
        return json.loads(self.requests[index].content)


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def service(api):
    client = httpx.Client(transport=httpx.MockTransport(api), base_url=BASE_URL)
    with HttpPersistenceService(client=client) as svc:
        yield svc
    client.close()


def test_get_scheduling_states_unwraps_envelope(api, service, now):
    api.routes[("GET", "/v1/scheduling-states")] = (200, {"data": [
        {"item_id": "card-1", "stability": 2.5, "difficulty": 5.0, "repetitions": 1,
         "lapses": 0, "review_state": "review", "due_at": "2026-03-04T09:00:00+00:00",
         "last_reviewed_at": "2026-03-02T09:00:00+00:00"},
        {"item_id": "card-2", "stability": 1.0, "difficulty": 5.0},
    ]})

    states = service.get_scheduling_states()
    assert [s.item_id for s in states] == ["card-1", "card-2"]
    assert states[0].review_state == ReviewState.REVIEW
    assert states[0].due_at == now + timedelta(days=2)
    assert states[1].is_new


def test_upsert_scheduling_state_posts_payload(api, service, now):
    state, _ = advance(SchedulingState.new("card-1"), Grade.GOOD, now)
    service.upsert_scheduling_state(state)

    request = api.requests[-1]
    assert request.method == "POST"
    assert request.url.path == "/v1/scheduling-states"
    body = api.body()
    assert body["item_id"] == "card-1"
    assert body["review_state"] == "review"
    assert body["repetitions"] == 1


def test_get_mastery_states_passes_filters(api, service):
    api.routes[("GET", "/v1/mastery-states")] = (200, {"data": [
        {"concept_id": "c1", "keyword_id": "kw-1", "p_know": 0.4, "p_transit": 0.18,
         "p_slip": 0.1, "p_guess": 0.2, "total_attempts": 3, "correct_attempts": 2},
    ]})

    [state] = service.get_mastery_states(keyword_id="kw-1")
    assert state.concept_id == "c1"
    assert state.total_attempts == 3
    assert api.requests[-1].url.params["keyword_id"] == "kw-1"
    assert "concept_id" not in api.requests[-1].url.params


def test_upsert_mastery_state(api, service):
    service.upsert_mastery_state(MasteryState.new("c1", keyword_id="kw-1"))
    assert api.requests[-1].url.path == "/v1/mastery-states"
    assert api.body()["keyword_id"] == "kw-1"


def test_session_lifecycle_routes(api, service, now):
    api.routes[("POST", "/v1/sessions")] = (201, {"data": {"id": "server-7"}})
    session = ReviewSession(id="local-1", started_at=now)

    assert service.create_session(session) == "server-7"
    assert api.body()["id"] == "local-1"

    service.close_session(session.close(now + timedelta(seconds=90), 3, 2))
    request = api.requests[-1]
    assert request.method == "PUT"
    assert request.url.path == "/v1/sessions/local-1"
    assert api.body()["duration_seconds"] == 90


def test_create_session_falls_back_to_local_id(service, now):
    assert service.create_session(ReviewSession(id="local-1", started_at=now)) == "local-1"


def test_event_and_aggregate_routes(api, service, now):
    service.append_review_event(ReviewEvent(
        event_id="s1:0", session_id="s1", item_id="card-1", grade=4, created_at=now,
    ))
    service.upsert_daily_activity(DailyActivity(now.date(), 1, 1, 30, session_id="s1"))
    service.upsert_learner_stats(LearnerStats(1, 30, 1, now.date(), session_id="s1"))

    assert [r.url.path for r in api.requests] == [
        "/v1/review-events", "/v1/daily-activity", "/v1/learner-stats",
    ]
    assert api.body(0)["item_type"] == "flashcard"
    assert api.body(1)["activity_date"] == now.date().isoformat()
    assert api.body(2)["total_sessions"] == 1


def test_error_envelope_raises(api, service):
    api.routes[("GET", "/v1/scheduling-states")] = (200, {"error": "learner not found"})
    with pytest.raises(PersistenceError, match="learner not found"):
        service.get_scheduling_states()


def test_http_error_status_raises_with_code(api, service, now):
    api.routes[("POST", "/v1/review-events")] = (503, {"error": "maintenance"})
    event = ReviewEvent(event_id="s1:0", session_id="s1", item_id="a", grade=3, created_at=now)
    with pytest.raises(PersistenceError, match="maintenance") as excinfo:
        service.append_review_event(event)
    assert excinfo.value.status_code == 503

    api.routes[("GET", "/v1/mastery-states")] = (500, {"error": "boom"})
    with pytest.raises(PersistenceError) as excinfo:
        service.get_mastery_states()
    assert excinfo.value.status_code == 500


def test_missing_envelope_raises(api, service):
    api.routes[("GET", "/v1/scheduling-states")] = (200, [1, 2, 3])
    with pytest.raises(PersistenceError):
        service.get_scheduling_states()


def test_transport_error_raises_persistence_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(refuse), base_url=BASE_URL)
    service = HttpPersistenceService(client=client)
    with pytest.raises(PersistenceError):
        service.get_scheduling_states()
    client.close()


def test_timestamps_without_offset_are_utc(api, service, now):
    api.routes[("GET", "/v1/scheduling-states")] = (200, {"data": [
        {"item_id": "card-1", "stability": 2.0, "difficulty": 5.0, "repetitions": 1,
         "review_state": "review", "due_at": "2026-03-01T09:00:00",
         "last_reviewed_at": "2026-02-27T09:00:00"},
    ]})
    api.routes[("GET", "/v1/mastery-states")] = (200, {"data": [
        {"concept_id": "c1", "p_know": 0.4, "p_transit": 0.18, "p_slip": 0.1,
         "p_guess": 0.2, "last_attempt_at": "2026-02-27T09:00:00"},
    ]})

    [state] = service.get_scheduling_states()
    assert state.due_at == now - timedelta(days=1)
    assert state.last_reviewed_at.tzinfo is not None
    assert state.is_due(now)

    [mastery] = service.get_mastery_states()
    assert mastery.last_attempt_at == now - timedelta(days=3)


# ---- Driving a session over HTTP ----

def test_session_loads_rows_without_offset(api, service, catalog, make_item, writer, clock):
    catalog.add(make_item("card-1"))
    api.routes[("GET", "/v1/scheduling-states")] = (200, {"data": [
        {"item_id": "card-1", "stability": 2.0, "difficulty": 5.0, "repetitions": 1,
         "review_state": "review", "due_at": "2026-03-01T09:00:00",
         "last_reviewed_at": "2026-02-27T09:00:00"},
    ]})
    orchestrator = ReviewSessionOrchestrator(service, catalog, writer=writer, clock=clock)

    orchestrator.load()
    assert orchestrator.phase == Phase.IDLE
    assert orchestrator.load_error is None
    assert orchestrator.due_count == 1


def test_local_session_id_stays_authoritative(api, service, catalog, make_item, writer, clock):
    catalog.add(make_item("card-1"))
    api.routes[("GET", "/v1/scheduling-states")] = (200, {"data": [
        {"item_id": "card-1", "stability": 1.0, "difficulty": 5.0},
    ]})
    api.routes[("POST", "/v1/sessions")] = (201, {"data": {"id": "server-7"}})
    orchestrator = ReviewSessionOrchestrator(service, catalog, writer=writer, clock=clock)

    orchestrator.load()
    orchestrator.start()
    orchestrator.reveal()
    clock.tick(seconds=20)
    orchestrator.grade(4)
    assert orchestrator.wait_for_writes(timeout=5)
    assert writer.failed_writes == []

    session_id = orchestrator.session.id
    bodies = {}
    for request in api.requests:
        if request.method != "GET":
            bodies.setdefault((request.method, request.url.path), json.loads(request.content))

    assert bodies[("POST", "/v1/sessions")]["id"] == session_id
    assert ("PUT", f"/v1/sessions/{session_id}") in bodies
    assert ("PUT", "/v1/sessions/server-7") not in bodies
    assert bodies[("POST", "/v1/review-events")]["session_id"] == session_id
    assert bodies[("POST", "/v1/daily-activity")]["session_id"] == session_id
    assert bodies[("POST", "/v1/learner-stats")]["session_id"] == session_id
