# runroute/services/elevation_profiler.py
from typing import List, Sequence

from runroute.models.routing import (
    ColoredSegment,
    Coordinate,
    ElevationProfile,
    GradientBucket,
    KilometerMarker,
    SegmentGradient,
    TerrainClassification,
    TerrainLevel,
)
from runroute.services import geodesy

BUCKET_COLORS = {
    GradientBucket.FLAT: "#10b981",
    GradientBucket.MODERATE: "#f59e0b",
    GradientBucket.STEEP: "#ef4444",
}


class ElevationProfiler:
    """
    Elevation and gradient analysis over a coordinate sequence.

    Everything here is a pure function of the coordinates passed in;
    nothing is cached between calls.
    """

    FLAT_GRADIENT_MAX = 3.0
    MODERATE_GRADIENT_MAX = 8.0

    # (level, max avg gradient %, max gradient %, max ascent per km), in
    # evaluation order. Anything beyond the last row is mountainous.
    TERRAIN_THRESHOLDS = (
        (TerrainLevel.FLAT, 2.0, 5.0, 30.0),
        (TerrainLevel.ROLLING, 5.0, 12.0, 80.0),
        (TerrainLevel.HILLY, 8.0, 20.0, 150.0),
    )

    TERRAIN_DETAILS = {
        TerrainLevel.FLAT: ("Flat terrain with minimal elevation changes", 1, "#10b981"),
        TerrainLevel.ROLLING: ("Rolling terrain with moderate hills", 2, "#f59e0b"),
        TerrainLevel.HILLY: ("Hilly terrain with challenging climbs", 3, "#ef4444"),
        TerrainLevel.MOUNTAINOUS: ("Mountainous terrain with steep climbs", 4, "#dc2626"),
    }

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def profile(self, coordinates: Sequence[Coordinate]) -> ElevationProfile:
        if len(coordinates) < 2:
            return ElevationProfile()

        total_distance = 0.0
        total_ascent = 0.0
        total_descent = 0.0
        max_elevation = coordinates[0].elevation
        min_elevation = coordinates[0].elevation
        max_gradient = 0.0
        segments: List[SegmentGradient] = []

        for prev, curr in zip(coordinates[:-1], coordinates[1:]):
            dist = geodesy.distance_km(prev, curr)
            change = curr.elevation - prev.elevation
            gradient = geodesy.gradient_percent(prev.elevation, curr.elevation, dist)
            bucket = self.gradient_bucket(gradient)

            total_distance += dist
            max_elevation = max(max_elevation, curr.elevation)
            min_elevation = min(min_elevation, curr.elevation)
            max_gradient = max(max_gradient, abs(gradient))

            if change > 0:
                total_ascent += change
            else:
                total_descent += -change

            segments.append(
                SegmentGradient(
                    distance_km=dist,
                    elevation_change_m=change,
                    gradient_pct=gradient,
                    start_elevation_m=prev.elevation,
                    end_elevation_m=curr.elevation,
                    cumulative_distance_km=total_distance,
                    bucket=bucket,
                    color=BUCKET_COLORS[bucket],
                )
            )

        average_gradient = 0.0
        if total_distance > 0:
            average_gradient = (total_ascent + total_descent) / (total_distance * 1000.0) * 100.0

        return ElevationProfile(
            total_distance_km=total_distance,
            total_ascent_m=total_ascent,
            total_descent_m=total_descent,
            max_elevation_m=max_elevation,
            min_elevation_m=min_elevation,
            average_gradient_pct=average_gradient,
            max_gradient_pct=max_gradient,
            segments=segments,
        )

    def gradient_bucket(self, gradient_pct: float) -> GradientBucket:
        steepness = abs(gradient_pct)
        if steepness <= self.FLAT_GRADIENT_MAX:
            return GradientBucket.FLAT
        if steepness <= self.MODERATE_GRADIENT_MAX:
            return GradientBucket.MODERATE
        return GradientBucket.STEEP

    def colored_segments(self, coordinates: Sequence[Coordinate]) -> List[ColoredSegment]:
        segments = []
        for start, end in zip(coordinates[:-1], coordinates[1:]):
            dist = geodesy.distance_km(start, end)
            gradient = geodesy.gradient_percent(start.elevation, end.elevation, dist)
            bucket = self.gradient_bucket(gradient)
            segments.append(
                ColoredSegment(
                    start=start,
                    end=end,
                    gradient_pct=gradient,
                    bucket=bucket,
                    color=BUCKET_COLORS[bucket],
                    distance_km=dist,
                    elevation_change_m=end.elevation - start.elevation,
                )
            )
        return segments

    def classify_terrain(self, profile: ElevationProfile) -> TerrainClassification:
        """
        Four-level terrain classification. Levels are tested from flat
        upwards and all three limits of a level must hold.
        """
        avg_gradient = profile.average_gradient_pct
        max_gradient = profile.max_gradient_pct
        ascent_per_km = profile.ascent_per_km

        level = TerrainLevel.MOUNTAINOUS
        for candidate, avg_limit, max_limit, ascent_limit in self.TERRAIN_THRESHOLDS:
            if (
                avg_gradient <= avg_limit
                and max_gradient <= max_limit
                and ascent_per_km <= ascent_limit
            ):
                level = candidate
                break

        description, difficulty, color = self.TERRAIN_DETAILS[level]
        return TerrainClassification(
            level=level,
            description=description,
            difficulty=difficulty,
            color=color,
        )

    def sample_at_interval(
        self, coordinates: Sequence[Coordinate], interval_km: float = 0.05
    ) -> List[Coordinate]:
        """
        Thin a coordinate sequence to points at least interval_km apart by
        cumulative distance. First and last points are always kept.
        """
        if len(coordinates) < 2:
            return list(coordinates)

        sampled = [coordinates[0]]
        cumulative = 0.0
        last_sampled = 0.0

        for prev, curr in zip(coordinates[:-1], coordinates[1:]):
            cumulative += geodesy.distance_km(prev, curr)
            if cumulative - last_sampled >= interval_km:
                sampled.append(curr)
                last_sampled = cumulative

        last = coordinates[-1]
        if sampled[-1].lat != last.lat or sampled[-1].lon != last.lon:
            sampled.append(last)

        return sampled

    def kilometer_markers(self, coordinates: Sequence[Coordinate]) -> List[KilometerMarker]:
        """
        One marker per whole kilometre travelled, interpolated inside the
        segment that crosses the boundary.
        """
        markers: List[KilometerMarker] = []
        travelled = 0.0
        next_km = 1

        for prev, curr in zip(coordinates[:-1], coordinates[1:]):
            seg = geodesy.distance_km(prev, curr)
            # A long segment can cross several boundaries
            while seg > 0 and travelled + seg >= next_km:
                ratio = (next_km - travelled) / seg
                markers.append(
                    KilometerMarker(
                        kilometer=next_km,
                        position=geodesy.interpolate(prev, curr, ratio),
                    )
                )
                next_km += 1
            travelled += seg

        return markers
