import logging
from typing import Iterable, Union

from shapely.geometry import MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep
from shapely.validation import explain_validity

from geohash64 import (
    LAT_RANGE,
    LON_RANGE,
    DegenerateInputError,
    GeoHash,
    decode,
    encode,
    with_character_precision,
)

logger = logging.getLogger(__name__)

MAX_LONGITUDE_SPAN = 180.0

PolygonLike = Union[Polygon, MultiPolygon]


def _eastward_distance(lon1: float, lon2: float) -> float:
    """Degrees travelled going east from lon1 to lon2, in [0, 360)."""
    return ((lon2 + 180) - (lon1 + 180)) % 360


def is_west(lon1: float, lon2: float) -> bool:
    """True if lon1 is west of lon2, going less than half way round the globe."""
    return 0 < _eastward_distance(lon1, lon2) < 180


def is_east(lon1: float, lon2: float) -> bool:
    """True if lon1 is east of lon2, going less than half way round the globe."""
    return 0 < _eastward_distance(lon2, lon1) < 180


def is_north(lat1: float, lat2: float) -> bool:
    return lat1 > lat2


def is_south(lat1: float, lat2: float) -> bool:
    return lat1 < lat2


def encode_point(point: Point, precision: int) -> str:
    """Encode a shapely Point given in (lon, lat) order."""
    if not isinstance(point, Point):
        raise DegenerateInputError(f"Expected a Point, got {type(point).__name__}")
    if point.is_empty:
        raise DegenerateInputError("Cannot encode an empty point")
    return encode(point.y, point.x, precision)


def geohash_to_polygon(code: Union[GeoHash, str]) -> Polygon:
    """The cell's rectangle as a closed-ring shapely Polygon."""
    if isinstance(code, str):
        code = decode(code)
    return Polygon(code.bounding_box.to_ring())


def _check_polygon(polygon: BaseGeometry) -> None:
    if not isinstance(polygon, (Polygon, MultiPolygon)):
        raise DegenerateInputError(
            f"Expected a Polygon or MultiPolygon, got {type(polygon).__name__}"
        )
    if polygon.is_empty:
        raise DegenerateInputError("Cannot cover an empty polygon")
    if not polygon.is_valid:
        reason = explain_validity(polygon)
        logger.warning("Rejecting invalid polygon: %s", reason)
        raise DegenerateInputError(f"Invalid polygon: {reason}")

    west, south, east, north = polygon.bounds
    if not (
        LON_RANGE[0] <= west <= east <= LON_RANGE[1]
        and LAT_RANGE[0] <= south <= north <= LAT_RANGE[1]
    ):
        raise DegenerateInputError(
            f"Polygon bounds {polygon.bounds} fall outside the lon/lat range"
        )
    if east - west >= MAX_LONGITUDE_SPAN:
        logger.warning(
            "Rejecting polygon spanning %.6f degrees of longitude", east - west
        )
        raise DegenerateInputError(
            f"Polygon spans {east - west} degrees of longitude, "
            f"must be less than {MAX_LONGITUDE_SPAN}"
        )


def cover_polygon(polygon: PolygonLike, precision: int) -> set[str]:
    """
    Every geohash of ``precision`` characters whose cell intersects ``polygon``
    (touching the boundary counts).

    The sweep starts at the cell holding the south-west corner of the
    polygon's bounds and walks east along each row, then north row by row.

    Args:
        polygon: shapely Polygon or MultiPolygon in lon/lat degrees
        precision: geohash length in characters (1 to 12)

    Returns:
        set of base32 geohashes

    Raises:
        DegenerateInputError: empty, invalid or non-polygonal input, bounds
            outside the lon/lat range, or a longitude span of 180 degrees or more
        PrecisionError: precision outside 1..12
    """
    _check_polygon(polygon)
    west, south, east, north = polygon.bounds
    row = with_character_precision(south, west, precision)
    logger.debug(
        "Covering bounds (%f, %f, %f, %f) at precision %d starting from %s",
        west,
        south,
        east,
        north,
        precision,
        row,
    )

    prepared = prep(polygon)
    result = set()
    rows = 0
    while row.bounding_box.min_lat < north:
        rows += 1
        column = row
        # The first column always holds the west edge; is_west decides the rest.
        while True:
            if prepared.intersects(geohash_to_polygon(column)):
                result.add(column.to_base32())
            column = column.east()
            if not is_west(column.bounding_box.min_lon, east):
                break
        # North of the top row the neighbour wraps to the south pole.
        if row.bounding_box.max_lat >= LAT_RANGE[1]:
            break
        row = row.north()

    logger.debug("Covered polygon with %d geohashes over %d rows", len(result), rows)
    return result


def cover_points(points: Iterable[tuple[float, float]], precision: int) -> set[str]:
    """Cover the polygon whose exterior ring is ``points``, given as (lon, lat)."""
    ring = list(points)
    if len(ring) < 3:
        raise DegenerateInputError(
            f"A polygon needs at least 3 points, got {len(ring)}"
        )
    return cover_polygon(Polygon(ring), precision)


if __name__ == "__main__":
    # A small block in Urumqi, points as (lat, lon)
    block = [
        (43.82682, 87.561062),
        (43.823374, 87.559966),
        (43.816155, 87.560759),
        (43.813458, 87.571201),
        (43.814606, 87.577705),
        (43.823769, 87.577217),
        (43.828968, 87.568535),
    ]
    hashes = cover_points([(lon, lat) for lat, lon in block], 7)
    print(f"Covered with {len(hashes)} geohashes")
    for geohash in sorted(hashes):
        print(f" - {geohash} {decode(geohash).bounding_box}")
