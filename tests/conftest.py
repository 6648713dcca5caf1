# tests/conftest.py
import os
import random
import sys

import pytest

# Add the project root directory to sys.path so that "import runroute" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from runroute.models.routing import Coordinate  # noqa: E402
from runroute.services.candidate_generator import RouteCandidateGenerator  # noqa: E402
from runroute.services.orchestrator import CandidateOrchestrator  # noqa: E402

from fakes import FakeDirections  # noqa: E402


@pytest.fixture
def oslo() -> Coordinate:
    return Coordinate(lat=59.9139, lon=10.7522)


@pytest.fixture
def seeded_generator() -> RouteCandidateGenerator:
    return RouteCandidateGenerator(rng=random.Random(7))


@pytest.fixture
def make_orchestrator(seeded_generator):
    """
    Build an orchestrator around fake collaborators with no retry delay.
    """

    def _make(directions=None, **kwargs) -> CandidateOrchestrator:
        kwargs.setdefault("generator", seeded_generator)
        kwargs.setdefault("retry_base_delay_s", 0.0)
        kwargs.setdefault("max_retries", 3)
        kwargs.setdefault("concurrent", False)
        return CandidateOrchestrator(directions=directions or FakeDirections(), **kwargs)

    return _make
