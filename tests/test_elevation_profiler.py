# tests/test_elevation_profiler.py
import pytest

from runroute.models.routing import (
    Coordinate,
    ElevationProfile,
    GradientBucket,
    TerrainLevel,
)
from runroute.services import geodesy
from runroute.services.elevation_profiler import ElevationProfiler

profiler = ElevationProfiler()

START = Coordinate(lat=59.9139, lon=10.7522)


def northward(step_km, elevations):
    """Points due north of START, step_km apart, with the given elevations."""
    points = []
    for i, elevation in enumerate(elevations):
        p = geodesy.destination(START, 0, step_km * i)
        points.append(Coordinate(lat=p.lat, lon=p.lon, elevation=elevation))
    return points


def test_profile_totals():
    coords = northward(1.0, [0.0, 10.0, 5.0, 25.0])

    profile = profiler.profile(coords)

    assert profile.total_distance_km == pytest.approx(3.0, rel=1e-6)
    assert profile.total_ascent_m == pytest.approx(30.0)
    assert profile.total_descent_m == pytest.approx(5.0)
    assert profile.max_elevation_m == 25.0
    assert profile.min_elevation_m == 0.0
    assert profile.average_gradient_pct == pytest.approx(35.0 / 3000.0 * 100, rel=1e-6)
    assert profile.max_gradient_pct == pytest.approx(2.0, rel=1e-6)
    assert profile.ascent_per_km == pytest.approx(10.0, rel=1e-6)
    assert len(profile.segments) == 3
    assert profile.segments[-1].cumulative_distance_km == pytest.approx(3.0, rel=1e-6)


@pytest.mark.parametrize("coords", [[], [START]])
def test_profile_of_short_sequence_is_empty(coords):
    profile = profiler.profile(coords)
    assert profile == ElevationProfile()
    assert profile.ascent_per_km == 0


def test_profile_is_recomputed_from_current_coordinates():
    coords = northward(0.5, [0.0, 0.0, 0.0])
    assert profiler.profile(coords).total_ascent_m == 0

    raised = [Coordinate(lat=c.lat, lon=c.lon, elevation=i * 20.0) for i, c in enumerate(coords)]
    assert profiler.profile(raised).total_ascent_m == pytest.approx(40.0)


@pytest.mark.parametrize(
    "gradient, bucket",
    [(0.0, GradientBucket.FLAT), (3.0, GradientBucket.FLAT), (-3.0, GradientBucket.FLAT),
     (3.01, GradientBucket.MODERATE), (-8.0, GradientBucket.MODERATE),
     (8.01, GradientBucket.STEEP), (-15.0, GradientBucket.STEEP)],
)
def test_gradient_buckets(gradient, bucket):
    assert profiler.gradient_bucket(gradient) == bucket


def test_colored_segments():
    # 100 m segments: +2 m (2%), +5 m (5%), -10 m (-10%)
    coords = northward(0.1, [0.0, 2.0, 7.0, -3.0])

    segments = profiler.colored_segments(coords)

    assert [s.bucket for s in segments] == [
        GradientBucket.FLAT,
        GradientBucket.MODERATE,
        GradientBucket.STEEP,
    ]
    assert [s.color for s in segments] == ["#10b981", "#f59e0b", "#ef4444"]
    assert segments[2].elevation_change_m == pytest.approx(-10.0)
    assert segments[0].start == coords[0]
    assert segments[-1].end == coords[-1]


def _profile(avg, max_gradient, ascent_per_km):
    return ElevationProfile(
        total_distance_km=1.0,
        total_ascent_m=ascent_per_km,
        average_gradient_pct=avg,
        max_gradient_pct=max_gradient,
    )


def test_terrain_boundary_between_flat_and_rolling():
    assert profiler.classify_terrain(_profile(2, 5, 30)).level == TerrainLevel.FLAT
    assert profiler.classify_terrain(_profile(2, 5, 31)).level == TerrainLevel.ROLLING


@pytest.mark.parametrize(
    "avg, max_gradient, apk, level, difficulty",
    [
        (1, 4, 10, TerrainLevel.FLAT, 1),
        (2.1, 5, 10, TerrainLevel.ROLLING, 2),
        (5, 12, 80, TerrainLevel.ROLLING, 2),
        (4, 13, 50, TerrainLevel.HILLY, 3),
        (8, 20, 150, TerrainLevel.HILLY, 3),
        (8, 20, 151, TerrainLevel.MOUNTAINOUS, 4),
        (9, 10, 10, TerrainLevel.MOUNTAINOUS, 4),
    ],
)
def test_terrain_levels(avg, max_gradient, apk, level, difficulty):
    terrain = profiler.classify_terrain(_profile(avg, max_gradient, apk))
    assert terrain.level == level
    assert terrain.difficulty == difficulty
    assert terrain.description


def test_sample_at_interval_keeps_first_and_last():
    coords = northward(0.01, [float(i) for i in range(11)])

    sampled = profiler.sample_at_interval(coords, interval_km=0.045)

    assert sampled == [coords[0], coords[5], coords[10]]


def test_sample_at_interval_appends_unsampled_last_point():
    coords = northward(0.01, [0.0] * 8)

    sampled = profiler.sample_at_interval(coords, interval_km=0.045)

    assert sampled == [coords[0], coords[5], coords[7]]


def test_sample_at_interval_short_input():
    assert profiler.sample_at_interval([]) == []
    assert profiler.sample_at_interval([START]) == [START]


def test_kilometer_markers_are_interpolated():
    coords = northward(2.5, [0.0, 50.0])

    markers = profiler.kilometer_markers(coords)

    assert [m.kilometer for m in markers] == [1, 2]
    assert geodesy.distance_km(START, markers[0].position) == pytest.approx(1.0, rel=1e-4)
    assert geodesy.distance_km(START, markers[1].position) == pytest.approx(2.0, rel=1e-4)
    assert markers[0].position.elevation == pytest.approx(20.0)


def test_kilometer_markers_across_many_segments():
    coords = northward(0.3, [0.0] * 12)  # 3.3 km

    markers = profiler.kilometer_markers(coords)

    assert [m.kilometer for m in markers] == [1, 2, 3]
    assert profiler.kilometer_markers(coords[:2]) == []
