"""
Geohash encoding and radius-query decomposition.
Challenge: Answer "what is within R km of P" with ordered range scans on a string column.
Design: Pure functions. Callers run one range query per bounding box, then discard
false positives with an exact haversine check (boxes are rectangles, the query is a disc).
"""

import math

Point = tuple[float, float]  # (latitude, longitude)
GeohashRange = tuple[str, str]

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
DEFAULT_PRECISION = 10
MAXIMUM_BITS_PRECISION = 22 * BITS_PER_CHAR

# Sorts after every base32 character: "<prefix>~" bounds all hashes sharing <prefix>
PREFIX_END = "~"

EARTH_RADIUS_KM = 6371.0
EARTH_MERI_CIRCUMFERENCE_M = 40007860.0
EARTH_EQ_RADIUS_M = 6378137.0
METERS_PER_DEGREE_LATITUDE = 110574.0
E2 = 0.00669447819799  # eccentricity squared
EPSILON = 1e-12
# Boxes use ellipsoidal degree lengths, distances a sphere; pad so boxes always contain the disc
BOX_RADIUS_PADDING = 1.01
# Cells per axis (as a power of two) when a disc wraps every longitude
BAND_AXIS_BITS = 3


def encode(latitude: float, longitude: float, precision: int = DEFAULT_PRECISION) -> str:
    """Encode a coordinate into a base32 geohash of ``precision`` characters."""
    if not -90 <= latitude <= 90:
        raise ValueError(f"latitude out of range: {latitude}")
    if not -180 <= longitude <= 180:
        raise ValueError(f"longitude out of range: {longitude}")
    if precision <= 0 or precision > 22:
        raise ValueError(f"precision must be in 1..22, got {precision}")

    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    chars: list[str] = []
    value = 0
    bits = 0
    even = True  # even bits encode longitude
    while len(chars) < precision:
        coord, rng = (longitude, lon_range) if even else (latitude, lat_range)
        mid = (rng[0] + rng[1]) / 2
        if coord > mid:
            value = (value << 1) + 1
            rng[0] = mid
        else:
            value = value << 1
            rng[1] = mid
        even = not even
        if bits < 4:
            bits += 1
        else:
            chars.append(BASE32[value])
            bits = 0
            value = 0
    return "".join(chars)


def distance_km(a: Point, b: Point) -> float:
    """Great-circle (haversine) distance between two points in kilometres."""
    lat_delta = math.radians(b[0] - a[0])
    lon_delta = math.radians(b[1] - a[1])
    h = (
        math.sin(lat_delta / 2) ** 2
        + math.cos(math.radians(a[0])) * math.cos(math.radians(b[0])) * math.sin(lon_delta / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within_radius(candidate: Point, center: Point, radius_km: float) -> bool:
    """Exact check used to drop bounding-box false positives."""
    return distance_km(candidate, center) <= radius_km


def _meters_to_longitude_degrees(distance_m: float, latitude: float) -> float:
    radians = math.radians(latitude)
    num = math.cos(radians) * EARTH_EQ_RADIUS_M * math.pi / 180
    denom = 1 / math.sqrt(1 - E2 * math.sin(radians) * math.sin(radians))
    delta_deg = num * denom
    if delta_deg < EPSILON:
        return 360.0 if distance_m > 0 else 0.0
    return min(360.0, distance_m / delta_deg)


def _longitude_bits_for_resolution(resolution_m: float, latitude: float) -> float:
    degs = _meters_to_longitude_degrees(resolution_m, latitude)
    return max(1.0, math.log2(360 / degs)) if abs(degs) > 0.000001 else 1.0


def _latitude_bits_for_resolution(resolution_m: float) -> float:
    return min(math.log2(EARTH_MERI_CIRCUMFERENCE_M / 2 / resolution_m), MAXIMUM_BITS_PRECISION)


def _wrap_longitude(longitude: float) -> float:
    if -180 <= longitude <= 180:
        return longitude
    adjusted = longitude + 180
    if adjusted > 0:
        return (adjusted % 360) - 180
    return 180 - (-adjusted % 360)


def _bounding_box_bits(center: Point, size_m: float) -> int:
    lat_delta = size_m / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90.0, center[0] + lat_delta)
    lat_south = max(-90.0, center[0] - lat_delta)
    bits_lat = math.floor(_latitude_bits_for_resolution(size_m)) * 2
    bits_lon_north = math.floor(_longitude_bits_for_resolution(size_m, lat_north)) * 2 - 1
    bits_lon_south = math.floor(_longitude_bits_for_resolution(size_m, lat_south)) * 2 - 1
    return min(bits_lat, bits_lon_north, bits_lon_south, MAXIMUM_BITS_PRECISION)


def _latitude_band(center: Point, radius_m: float) -> tuple[float, float]:
    lat_degrees = radius_m / METERS_PER_DEGREE_LATITUDE
    return max(-90.0, center[0] - lat_degrees), min(90.0, center[0] + lat_degrees)


def _longitude_span(radius_m: float, lat_south: float, lat_north: float) -> float:
    return max(
        _meters_to_longitude_degrees(radius_m, lat_north),
        _meters_to_longitude_degrees(radius_m, lat_south),
    )


def _bounding_box_coordinates(center: Point, radius_m: float) -> list[Point]:
    lat_south, lat_north = _latitude_band(center, radius_m)
    lon_degs = _longitude_span(radius_m, lat_south, lat_north)
    west = _wrap_longitude(center[1] - lon_degs)
    east = _wrap_longitude(center[1] + lon_degs)
    return [
        (center[0], center[1]),
        (center[0], west),
        (center[0], east),
        (lat_north, center[1]),
        (lat_north, west),
        (lat_north, east),
        (lat_south, center[1]),
        (lat_south, west),
        (lat_south, east),
    ]


def _geohash_range(geohash: str, bits: int) -> GeohashRange:
    precision = math.ceil(bits / BITS_PER_CHAR)
    if len(geohash) < precision:
        return geohash, geohash + PREFIX_END
    geohash = geohash[:precision]
    base = geohash[:-1]
    last_value = BASE32.index(geohash[-1])
    significant_bits = bits - len(base) * BITS_PER_CHAR
    unused_bits = BITS_PER_CHAR - significant_bits
    start_value = (last_value >> unused_bits) << unused_bits
    end_value = start_value + (1 << unused_bits)
    if end_value > 31:
        return base + BASE32[start_value], base + PREFIX_END
    return base + BASE32[start_value], base + BASE32[end_value]


def _band_ranges(lat_south: float, lat_north: float) -> list[GeohashRange]:
    """Ranges for every cell touching a latitude band, across all longitudes."""
    axis_bits = max(1, min(BAND_AXIS_BITS, math.floor(math.log2(180 / (lat_north - lat_south)))))
    bits = axis_bits * 2  # first bit is longitude, so an even count splits both axes equally
    precision = math.ceil(bits / BITS_PER_CHAR)
    columns = 1 << axis_bits
    row_height = 180 / columns
    column_width = 360 / columns
    # Samples one row height apart cannot step over a row
    latitudes = []
    lat = lat_south
    while lat < lat_north:
        latitudes.append(lat)
        lat += row_height
    latitudes.append(lat_north)
    ranges: list[GeohashRange] = []
    for lat in latitudes:
        for column in range(columns):
            lon = -180 + (column + 0.5) * column_width
            rng = _geohash_range(encode(lat, lon, precision), bits)
            if rng not in ranges:
                ranges.append(rng)
    return ranges


def bounding_boxes(center: Point, radius_km: float) -> list[GeohashRange]:
    """
    Ordered ``(low, high)`` geohash ranges whose union covers the disc of ``radius_km``.

    Both ends are inclusive. A high bound ending in ``~`` means "every hash with
    this prefix". Usually 1-9 ranges depending on how the disc straddles cells;
    discs spanning every longitude get one range per cell of their latitude band.
    """
    if radius_km <= 0:
        raise ValueError(f"radius_km must be positive, got {radius_km}")
    radius_m = radius_km * 1000 * BOX_RADIUS_PADDING
    lat_south, lat_north = _latitude_band(center, radius_m)
    if _longitude_span(radius_m, lat_south, lat_north) >= 180:
        # Disc reaches a pole or wraps the globe: corner samples cannot see the far side
        return _band_ranges(lat_south, lat_north)
    query_bits = max(1, _bounding_box_bits(center, radius_m))
    precision = math.ceil(query_bits / BITS_PER_CHAR)
    ranges: list[GeohashRange] = []
    for lat, lon in _bounding_box_coordinates(center, radius_m):
        rng = _geohash_range(encode(lat, lon, precision), query_bits)
        if rng not in ranges:
            ranges.append(rng)
    return ranges


def in_range(geohash: str, rng: GeohashRange) -> bool:
    """True if ``geohash`` falls inside ``rng`` (same semantics as the SQL range scan)."""
    low, high = rng
    if geohash < low:
        return False
    if high.endswith(PREFIX_END):
        return geohash.startswith(high[:-1])
    return geohash <= high
