# runroute/services/clients/scoring.py
import json
import re
from typing import List, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from runroute.core.config import settings
from runroute.core.errors import ScoringError
from runroute.core.logger import logger
from runroute.models.routing import (
    Preferences,
    RouteCandidate,
    RouteEvaluation,
    ScoreCriteria,
    ScoringSource,
)

SYSTEM_PROMPT = (
    "You are a running route expert. Evaluate ALL routes provided and return ONLY a "
    "valid JSON array with one evaluation object for each route in this exact format:\n"
    '[{{"routeId": 0, "score": 0.85, "reasoning": "Good distance match", "criteria": '
    '{{"distanceAccuracy": 0.9, "terrainMatch": 0.8, "safetyScore": 0.7, '
    '"scenicValue": 0.6, "navigationEase": 0.8}}}}]\n'
    "IMPORTANT: Return exactly {count} evaluation objects, one for each route. Do not use "
    "markdown formatting or code blocks. Return only the JSON array. When terrain is set "
    "to flat, prioritize low elevation. When terrain is set to hilly, prefer routes with "
    "high elevation gain, to the point where elevation is more important than distance."
)

_FENCE = re.compile(r"```(?:json)?\n?")


class _Criteria(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    distance_accuracy: float = Field(alias="distanceAccuracy", ge=0.0, le=1.0)
    terrain_match: float = Field(alias="terrainMatch", ge=0.0, le=1.0)
    safety_score: float = Field(alias="safetyScore", ge=0.0, le=1.0)
    scenic_value: float = Field(alias="scenicValue", ge=0.0, le=1.0)
    navigation_ease: float = Field(alias="navigationEase", ge=0.0, le=1.0)


class _Evaluation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route_id: Union[int, str] = Field(alias="routeId")
    score: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    criteria: _Criteria


_EVALUATIONS = TypeAdapter(List[_Evaluation])


class ScoringClient:
    """
    LLM-backed route scoring through an OpenAI-compatible chat completion.

    evaluate() returns one RouteEvaluation per candidate, in candidate
    order, or raises ScoringError; it never returns a partial list.
    """

    def __init__(
        self,
        api_key: str = settings.OPENAI_API_KEY,
        base_url: str = settings.OPENAI_BASE_URL,
        model: str = settings.OPENAI_MODEL,
        timeout_s: float = settings.HTTP_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.model = model
        self.timeout_s = timeout_s
        self.transport = transport

    async def evaluate(
        self, candidates: Sequence[RouteCandidate], preferences: Preferences
    ) -> List[RouteEvaluation]:
        if not candidates:
            return []

        content = await self._complete(self._messages(candidates, preferences))
        return self.parse_evaluations(content, candidates)

    def parse_evaluations(
        self, content: str, candidates: Sequence[RouteCandidate]
    ) -> List[RouteEvaluation]:
        try:
            cleaned = _FENCE.sub("", content).strip()
            parsed = _EVALUATIONS.validate_python(json.loads(cleaned))
        except (TypeError, ValueError, ValidationError) as e:
            raise ScoringError(f"Invalid AI response format: {e}") from e

        if len(parsed) != len(candidates):
            raise ScoringError(
                f"Expected {len(candidates)} evaluations, got {len(parsed)}"
            )

        by_candidate = {}
        for item in parsed:
            index = self._resolve_index(item.route_id, candidates)
            if index is None:
                raise ScoringError(f"Evaluation refers to unknown route {item.route_id!r}")
            by_candidate[index] = item

        if len(by_candidate) != len(candidates):
            raise ScoringError("Evaluations do not cover every route")

        return [
            RouteEvaluation(
                route_id=candidate.id,
                score=by_candidate[i].score,
                reasoning=by_candidate[i].reasoning,
                criteria=ScoreCriteria(**by_candidate[i].criteria.model_dump()),
                source=ScoringSource.EXTERNAL,
            )
            for i, candidate in enumerate(candidates)
        ]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _messages(self, candidates: Sequence[RouteCandidate], preferences: Preferences) -> list:
        routes = [
            {
                "id": i,
                "distance": round(c.distance_km, 2),
                "ascent": round(c.ascent_m, 1),
                "descent": round(c.descent_m, 1),
                "duration": round(c.duration_min),
            }
            for i, c in enumerate(candidates)
        ]
        user = (
            f"Evaluate these {len(candidates)} routes for preferences: "
            f"distance={preferences.distance_km}km, pace={preferences.pace_min_per_km}min/km, "
            f"type={preferences.shape.value}, terrain={preferences.terrain.value}\n"
            f"Routes data: {json.dumps(routes)}\n"
            "Return scores 0-1.0 and criteria scores 0-1.0 for each route."
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT.format(count=len(candidates))},
            {"role": "user", "content": user},
        ]

    async def _complete(self, messages: list) -> str:
        body = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.1,
            "max_tokens": 2000,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_s), transport=self.transport
            ) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise ScoringError(f"Scoring request failed: {e}") from e

        if response.status_code == 429:
            raise ScoringError("Rate limit exceeded", status_code=429)
        if response.status_code != 200:
            raise ScoringError(
                f"Scoring API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ScoringError("Unexpected scoring response shape") from e
        if not isinstance(content, str):
            # null on refusals and content-filter stops
            raise ScoringError("Unexpected scoring response shape")

        logger.debug("Raw AI response: {}", content)
        return content

    @staticmethod
    def _resolve_index(
        route_id: Union[int, str], candidates: Sequence[RouteCandidate]
    ) -> Optional[int]:
        if isinstance(route_id, int):
            return route_id if 0 <= route_id < len(candidates) else None
        for i, candidate in enumerate(candidates):
            if candidate.id == route_id:
                return i
        if route_id.isdigit() and int(route_id) < len(candidates):
            return int(route_id)
        return None
