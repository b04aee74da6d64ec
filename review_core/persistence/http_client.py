"""
HTTP persistence adapter.

Talks to the review REST API. Every successful response wraps its payload as
{"data": ...}; failures carry {"error": "..."} and/or a non-2xx status. The
client is expected to be authenticated already (the API scopes every call to
the current learner).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from review_core import config
from review_core.bkt.engine import MasteryState
from review_core.errors import PersistenceError
from review_core.fsrs.memory_state import SchedulingState
from review_core.persistence.schemas import (
    DailyActivityPayload,
    LearnerStatsPayload,
    MasteryStatePayload,
    ReviewEventPayload,
    SchedulingStatePayload,
    SessionPayload,
)
from review_core.records import DailyActivity, LearnerStats, ReviewEvent, ReviewSession

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpPersistenceService:
    """
    PersistenceService over the review REST API.

    Pass either a ready httpx.Client (base_url and auth headers set) or a
    base_url plus headers; the base_url defaults to REVIEW_API_URL.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        base_url: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        if client is None:
            client = httpx.Client(
                base_url=base_url or config.get_review_api_url(),
                headers=headers or {},
                timeout=timeout,
            )
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpPersistenceService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---- Transport ----

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[BaseModel] = None,
        params: Optional[dict[str, str]] = None
    ) -> Any:
        """Send one request and unwrap the {"data": ...} envelope."""
        json_body = body.model_dump(mode="json") if body is not None else None
        try:
            response = self._client.request(method, path, json=json_body, params=params)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"{method} {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise PersistenceError(
                f"{method} {path} returned {response.status_code}: {message or response.text}",
                status_code=response.status_code,
            )
        if isinstance(payload, dict) and payload.get("error"):
            raise PersistenceError(
                f"{method} {path} failed: {payload['error']}",
                status_code=response.status_code,
            )
        if not isinstance(payload, dict) or "data" not in payload:
            raise PersistenceError(
                f"{method} {path} returned an unexpected body",
                status_code=response.status_code,
            )
        return payload["data"]

    # ---- Scheduling states ----

    def get_scheduling_states(self) -> list[SchedulingState]:
        data = self._request("GET", "/scheduling-states")
        try:
            return [SchedulingStatePayload.model_validate(row).to_domain() for row in data or []]
        except ValidationError as exc:
            raise PersistenceError(f"Invalid scheduling state in response: {exc}") from exc

    def upsert_scheduling_state(self, state: SchedulingState) -> None:
        self._request("POST", "/scheduling-states", SchedulingStatePayload.from_domain(state))

    # ---- Mastery states ----

    def get_mastery_states(
        self,
        concept_id: Optional[str] = None,
        keyword_id: Optional[str] = None
    ) -> list[MasteryState]:
        params = {}
        if concept_id is not None:
            params["concept_id"] = concept_id
        if keyword_id is not None:
            params["keyword_id"] = keyword_id

        data = self._request("GET", "/mastery-states", params=params or None)
        try:
            return [MasteryStatePayload.model_validate(row).to_domain() for row in data or []]
        except ValidationError as exc:
            raise PersistenceError(f"Invalid mastery state in response: {exc}") from exc

    def upsert_mastery_state(self, state: MasteryState) -> None:
        self._request("POST", "/mastery-states", MasteryStatePayload.from_domain(state))

    # ---- Sessions and events ----

    def create_session(self, session: ReviewSession) -> str:
        data = self._request("POST", "/sessions", SessionPayload.from_domain(session))
        if isinstance(data, dict) and data.get("id"):
            return str(data["id"])
        return session.id

    def close_session(self, session: ReviewSession) -> None:
        self._request("PUT", f"/sessions/{session.id}", SessionPayload.from_domain(session))

    def append_review_event(self, event: ReviewEvent) -> None:
        self._request("POST", "/review-events", ReviewEventPayload.from_domain(event))

    # ---- Aggregates ----

    def upsert_daily_activity(self, activity: DailyActivity) -> None:
        self._request("POST", "/daily-activity", DailyActivityPayload.from_domain(activity))

    def upsert_learner_stats(self, stats: LearnerStats) -> None:
        self._request("POST", "/learner-stats", LearnerStatsPayload.from_domain(stats))
