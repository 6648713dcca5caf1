# runroute/services/route_scorer.py
from typing import Dict, List, Sequence

from runroute.models.routing import (
    Preferences,
    RouteCandidate,
    RouteEvaluation,
    ScoreCriteria,
    ScoringSource,
    TerrainPreference,
)

WEIGHTS: Dict[str, float] = {
    "distance_accuracy": 0.30,
    "terrain_match": 0.25,
    "safety_score": 0.20,
    "scenic_value": 0.15,
    "navigation_ease": 0.10,
}


class RouteScorer:
    """
    Deterministic route scoring used whenever the LLM scorer is unavailable.

    It is also the behaviour the LLM scorer is prompted to approximate.
    score() is pure: same candidate and preferences, same evaluation.
    """

    SAFETY_SCORE = 0.7
    # Points per km assumed when the route has no measurable distance
    DEFAULT_COMPLEXITY = 50.0

    def score(self, candidate: RouteCandidate, preferences: Preferences) -> RouteEvaluation:
        target = preferences.distance_km
        actual = candidate.distance_km
        ascent_per_km = candidate.ascent_m / actual if actual > 0 else 0.0

        distance_accuracy = self.distance_accuracy(actual, target)
        terrain_match = self.terrain_match(ascent_per_km, preferences.terrain)
        complexity = self.complexity(len(candidate.coordinates), actual)
        scenic_value = min(0.9, 0.4 + complexity / 200.0)
        navigation_ease = max(0.3, 0.9 - complexity / 300.0)

        criteria = {
            "distance_accuracy": distance_accuracy,
            "terrain_match": terrain_match,
            "safety_score": self.SAFETY_SCORE,
            "scenic_value": scenic_value,
            "navigation_ease": navigation_ease,
        }
        composite = sum(criteria[name] * weight for name, weight in WEIGHTS.items())

        return RouteEvaluation(
            route_id=candidate.id,
            score=round(composite, 2),
            reasoning=self._reasoning(candidate, preferences, distance_accuracy, ascent_per_km),
            criteria=ScoreCriteria(**{name: round(value, 2) for name, value in criteria.items()}),
            source=ScoringSource.FALLBACK,
        )

    def score_all(
        self, candidates: Sequence[RouteCandidate], preferences: Preferences
    ) -> List[RouteEvaluation]:
        return [self.score(candidate, preferences) for candidate in candidates]

    @staticmethod
    def distance_accuracy(actual_km: float, target_km: float) -> float:
        if target_km <= 0:
            return 0.0
        return max(0.0, 1.0 - 2.0 * abs(actual_km - target_km) / target_km)

    @staticmethod
    def terrain_match(ascent_per_km: float, terrain: TerrainPreference) -> float:
        if terrain == TerrainPreference.FLAT:
            if ascent_per_km < 30:
                return 0.9
            return max(0.2, 0.9 - (ascent_per_km - 30) / 50.0)

        if terrain == TerrainPreference.HILLY:
            if 50 <= ascent_per_km <= 100:
                return 0.9
            if ascent_per_km < 50:
                return 0.4 + (ascent_per_km / 50.0) * 0.4
            return max(0.3, 0.9 - (ascent_per_km - 100) / 100.0)

        return 0.5

    @classmethod
    def complexity(cls, point_count: int, distance_km: float) -> float:
        if distance_km <= 0:
            return cls.DEFAULT_COMPLEXITY
        return point_count / distance_km

    @staticmethod
    def _reasoning(
        candidate: RouteCandidate,
        preferences: Preferences,
        distance_accuracy: float,
        ascent_per_km: float,
    ) -> str:
        text = (
            f"Distance: {candidate.distance_km:.1f}km (target: {preferences.distance_km}km), "
            f"Duration: {candidate.duration_min:.0f}min"
        )
        if distance_accuracy > 0.8:
            text += ", excellent match"
        elif distance_accuracy > 0.6:
            text += ", good match"
        else:
            text += ", distance deviation"

        if preferences.terrain == TerrainPreference.FLAT and ascent_per_km < 30:
            text += ", flat terrain as requested"
        elif preferences.terrain == TerrainPreference.HILLY and ascent_per_km > 50:
            text += ", hilly terrain as requested"
        return text
