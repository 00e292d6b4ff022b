"""
Geohash tests - encoding, distances and radius decomposition coverage.
"""

import math
import random

import pytest

from lendhub.geo import geohash


def destination(origin: geohash.Point, bearing_deg: float, distance_km: float) -> geohash.Point:
    """Point reached from ``origin`` along a great circle (same sphere as distance_km)."""
    lat1, lon1 = math.radians(origin[0]), math.radians(origin[1])
    bearing = math.radians(bearing_deg)
    d = distance_km / geohash.EARTH_RADIUS_KM
    lat2 = math.asin(math.sin(lat1) * math.cos(d) + math.cos(lat1) * math.sin(d) * math.cos(bearing))
    lon2 = lon1 + math.atan2(
        math.sin(bearing) * math.sin(d) * math.cos(lat1), math.cos(d) - math.sin(lat1) * math.sin(lat2)
    )
    lon = (math.degrees(lon2) + 540) % 360 - 180
    return math.degrees(lat2), lon


def test_encode_known_value():
    assert geohash.encode(57.64911, 10.40744, 11) == "u4pruydqqvj"


def test_encode_default_precision():
    assert len(geohash.encode(52.37, 4.89)) == geohash.DEFAULT_PRECISION


@pytest.mark.parametrize("lat, lon", [(91, 0), (-90.5, 0), (0, 180.1), (0, -181)])
def test_encode_rejects_out_of_range(lat, lon):
    with pytest.raises(ValueError):
        geohash.encode(lat, lon)


def test_distance_paris_london():
    assert geohash.distance_km((48.8566, 2.3522), (51.5074, -0.1278)) == pytest.approx(343.5, abs=1.0)


def test_distance_across_antimeridian():
    assert geohash.distance_km((0.0, 179.99), (0.0, -179.99)) == pytest.approx(2.22, abs=0.01)


def test_within_radius_is_inclusive():
    center = (52.37, 4.89)
    edge = destination(center, 90, 3.0)
    d = geohash.distance_km(center, edge)
    assert geohash.within_radius(edge, center, d)
    assert not geohash.within_radius(edge, center, d - 1e-6)


@pytest.mark.parametrize("radius", [0, -1.5])
def test_bounding_boxes_rejects_non_positive_radius(radius):
    with pytest.raises(ValueError):
        geohash.bounding_boxes((0, 0), radius)


def test_bounding_boxes_are_unique_and_well_formed():
    ranges = geohash.bounding_boxes((52.37, 4.89), 5)
    assert 1 <= len(ranges) <= 9
    assert len(set(ranges)) == len(ranges)
    for low, high in ranges:
        assert low <= high


def test_in_range_prefix_semantics():
    assert geohash.in_range("u4pruydqqv", ("u4p", "u4~"))
    assert geohash.in_range("u4zzzzzzzz", ("u4p", "u4~"))
    assert not geohash.in_range("u5000000000", ("u4p", "u4~"))
    assert not geohash.in_range("u4h", ("u4p", "u4~"))
    # Closed upper bound: longer hashes under the bound prefix sort after it
    assert geohash.in_range("u4r", ("u4p", "u4r"))
    assert not geohash.in_range("u4r0", ("u4p", "u4r"))


@pytest.mark.parametrize("radius_km", [0.3, 1, 5, 25, 150, 500, 1000, 1500])
def test_bounding_boxes_cover_every_point_in_the_disc(radius_km):
    rng = random.Random(20261019 + int(radius_km * 10))
    centers = [(rng.uniform(-89.9, 89.9), rng.uniform(-180, 180)) for _ in range(25)]
    centers += [(0.0, 179.995), (-33.86, -179.999), (64.1, -21.9)]
    centers += [(89.0, 0.0), (89.9, 45.0), (-84.94, -134.38), (-89.9, -170.0), (86.0, 179.9)]
    for center in centers:
        ranges = geohash.bounding_boxes(center, radius_km)
        for _ in range(60):
            # Bias towards the rim, where misses would show up
            point = destination(center, rng.uniform(0, 360), radius_km * math.sqrt(rng.random()))
            if not geohash.within_radius(point, center, radius_km):
                continue
            hashed = geohash.encode(*point)
            assert any(geohash.in_range(hashed, r) for r in ranges), (center, point, ranges)


@pytest.mark.parametrize(
    "center, point, radius_km",
    [
        ((89.0, 0.0), (89.0, 180.0), 300),
        ((-84.94, -134.38), (-85.42, 174.47), 500),
        ((90.0, 0.0), (89.5, -90.0), 60),
    ],
)
def test_bounding_boxes_reach_across_the_pole(center, point, radius_km):
    assert geohash.within_radius(point, center, radius_km)
    ranges = geohash.bounding_boxes(center, radius_km)
    assert any(geohash.in_range(geohash.encode(*point), r) for r in ranges)
