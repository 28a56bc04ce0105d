from dataclasses import dataclass, field
from functools import total_ordering
from typing import Optional

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"  # Standard Base32 characters
BASE32_DECODE_MAP = {char: index for index, char in enumerate(BASE32)}
BITS_PER_CHAR = 5

MAX_BIT_PRECISION = 64
MAX_CHARACTER_PRECISION = 12
DEFAULT_CHARACTER_PRECISION = 12

LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)

_WORD_MASK = (1 << MAX_BIT_PRECISION) - 1


class GeohashError(ValueError):
    """Base class for geohash failures."""


class PrecisionError(GeohashError):
    """Requested precision is not positive or exceeds 64 bits / 12 characters."""


class InvalidCharacterError(GeohashError):
    """Input contains a symbol outside the accepted alphabet."""


class PrecisionNotAlignedError(GeohashError):
    """Base32 form requested for a bit count that is not a multiple of 5."""


class PrecisionMismatchError(GeohashError):
    """Two codes of different precision were compared."""


class DegenerateInputError(GeohashError):
    """Coordinates or geometry outside what a geohash can describe."""


@dataclass(frozen=True)
class BoundingBox:
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @property
    def center(self) -> tuple[float, float]:
        """Center as (lon, lat)."""
        return (self.min_lon + self.max_lon) / 2, (self.min_lat + self.max_lat) / 2

    @property
    def width(self) -> float:
        return self.max_lon - self.min_lon

    @property
    def height(self) -> float:
        return self.max_lat - self.min_lat

    def contains(self, lat: float, lon: float) -> bool:
        """Inclusive point test."""
        return (
            self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon
        )

    def contains_box(self, other: "BoundingBox") -> bool:
        return (
            self.min_lon <= other.min_lon
            and self.min_lat <= other.min_lat
            and other.max_lon <= self.max_lon
            and other.max_lat <= self.max_lat
        )

    def to_ring(self) -> list[tuple[float, float]]:
        """Closed (lon, lat) ring, counter-clockwise from the SW corner."""
        return [
            (self.min_lon, self.min_lat),
            (self.max_lon, self.min_lat),
            (self.max_lon, self.max_lat),
            (self.min_lon, self.max_lat),
            (self.min_lon, self.min_lat),
        ]


def _check_coordinates(lat: float, lon: float) -> None:
    if not LAT_RANGE[0] <= lat <= LAT_RANGE[1]:
        raise DegenerateInputError(f"Latitude {lat} must be between -90 and 90")
    if not LON_RANGE[0] <= lon <= LON_RANGE[1]:
        raise DegenerateInputError(f"Longitude {lon} must be between -180 and 180")


def _check_bit_precision(number_of_bits: int) -> None:
    if not 0 < number_of_bits <= MAX_BIT_PRECISION:
        raise PrecisionError(
            f"Bit precision must be between 1 and {MAX_BIT_PRECISION}, "
            f"got {number_of_bits}"
        )


def _check_character_precision(number_of_chars: int) -> None:
    if not 0 < number_of_chars <= MAX_CHARACTER_PRECISION:
        raise PrecisionError(
            f"Precision must be between 1 and {MAX_CHARACTER_PRECISION}, "
            f"got {number_of_chars}"
        )


def _lat_lon_bit_counts(significant_bits: int) -> tuple[int, int]:
    """Longitude takes the extra bit when the total is odd."""
    lat_bits = significant_bits // 2
    return lat_bits, significant_bits - lat_bits


def _prefix_mask(significant_bits: int) -> int:
    return (_WORD_MASK << (MAX_BIT_PRECISION - significant_bits)) & _WORD_MASK


def _bisect(bits: int, significant_bits: int) -> BoundingBox:
    """Replays the interleaved bisection of the world, longitude first."""
    lat_lo, lat_hi = LAT_RANGE
    lon_lo, lon_hi = LON_RANGE
    for i in range(significant_bits):
        bit = (bits >> (MAX_BIT_PRECISION - 1 - i)) & 1
        if i % 2 == 0:
            mid = (lon_lo + lon_hi) / 2
            if bit:
                lon_lo = mid
            else:
                lon_hi = mid
        else:
            mid = (lat_lo + lat_hi) / 2
            if bit:
                lat_lo = mid
            else:
                lat_hi = mid
    return BoundingBox(lon_lo, lat_lo, lon_hi, lat_hi)


def _encode_bitstream(value: float, lo: float, hi: float, bit_length: int) -> list[int]:
    """Encodes a value into a bitstream using binary subdivision."""
    res = []
    for _ in range(bit_length):
        mid = (lo + hi) / 2
        if value >= mid:
            lo = mid
            res.append(1)
        else:
            hi = mid
            res.append(0)
    return res


def _extract_every_second_bit(bits: int, start: int, count: int) -> int:
    value = 0
    for i in range(count):
        value = (value << 1) | ((bits >> (MAX_BIT_PRECISION - 1 - start - 2 * i)) & 1)
    return value


def _interleave(lat_value: int, lat_count: int, lon_value: int, lon_count: int) -> int:
    """Right-aligned axis fields in, left-aligned interleaved word out."""
    total = lat_count + lon_count
    bits = 0
    for i in range(total):
        if i % 2 == 0:
            bit = (lon_value >> (lon_count - 1 - i // 2)) & 1
        else:
            bit = (lat_value >> (lat_count - 1 - i // 2)) & 1
        bits = (bits << 1) | bit
    return bits << (MAX_BIT_PRECISION - total)


@total_ordering
@dataclass(frozen=True)
class GeoHash:
    """A geohash cell held as up to 64 interleaved bits, left-aligned.

    Equality and ordering only look at ``bits`` and ``significant_bits``;
    padding below the significant bits is cleared on construction and the
    bounding box is always rebuilt from the bits.
    """

    bits: int
    significant_bits: int
    originating_point: Optional[tuple[float, float]] = field(
        default=None, compare=False
    )
    bounding_box: BoundingBox = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        if not 0 <= self.significant_bits <= MAX_BIT_PRECISION:
            raise PrecisionError(
                f"Significant bits must be between 0 and {MAX_BIT_PRECISION}, "
                f"got {self.significant_bits}"
            )
        if not 0 <= self.bits <= _WORD_MASK:
            raise PrecisionError(f"Value {self.bits} does not fit in 64 bits")
        bits = self.bits & _prefix_mask(self.significant_bits)
        object.__setattr__(self, "bits", bits)
        object.__setattr__(self, "bounding_box", _bisect(bits, self.significant_bits))

    def __lt__(self, other: "GeoHash") -> bool:
        if not isinstance(other, GeoHash):
            return NotImplemented
        return (self.bits, self.significant_bits) < (other.bits, other.significant_bits)

    def __str__(self) -> str:
        if self.significant_bits % BITS_PER_CHAR == 0:
            return self.to_base32()
        return self.to_binary_string()

    @property
    def center(self) -> tuple[float, float]:
        """Center of the bounding box as (lon, lat)."""
        return self.bounding_box.center

    @property
    def point(self) -> tuple[float, float]:
        """The encoded (lon, lat), or the box center for decoded codes."""
        if self.originating_point is not None:
            return self.originating_point
        return self.center

    @property
    def character_precision(self) -> int:
        if self.significant_bits % BITS_PER_CHAR:
            raise PrecisionNotAlignedError(
                f"Precision of {self.significant_bits} bits is not divisible "
                f"by {BITS_PER_CHAR}"
            )
        return self.significant_bits // BITS_PER_CHAR

    def to_base32(self) -> str:
        """Base32 string, five bits per character, most significant first."""
        chars = []
        for i in range(self.character_precision):
            shift = MAX_BIT_PRECISION - BITS_PER_CHAR * (i + 1)
            chars.append(BASE32[(self.bits >> shift) & 0x1F])
        return "".join(chars)

    def to_binary_string(self) -> str:
        if not self.significant_bits:
            return ""
        return format(self.ord(), f"0{self.significant_bits}b")

    def within(self, other: "GeoHash") -> bool:
        """True if this cell lies inside (or is) ``other``'s cell."""
        if other.significant_bits > self.significant_bits:
            return False
        return self.bits & _prefix_mask(other.significant_bits) == other.bits

    def contains(self, lat: float, lon: float) -> bool:
        return self.bounding_box.contains(lat, lon)

    def sub_hashes(self) -> list["GeoHash"]:
        """The 32 cells one base32 character deeper, in alphabet order."""
        child_bits = self.significant_bits + BITS_PER_CHAR
        if child_bits > MAX_BIT_PRECISION:
            raise PrecisionError(f"Cannot refine a {self.significant_bits}-bit geohash")
        shift = MAX_BIT_PRECISION - child_bits
        return [GeoHash(self.bits | (i << shift), child_bits) for i in range(32)]

    def _sub_hashes_where(
        self, lat_bit: Optional[int] = None, lon_bit: Optional[int] = None
    ) -> list["GeoHash"]:
        # The first added bit is longitude when the current bit count is even.
        lon_first = self.significant_bits % 2 == 0
        lat_shift, lon_shift = (3, 4) if lon_first else (4, 3)
        return [
            child
            for index, child in enumerate(self.sub_hashes())
            if (lat_bit is None or (index >> lat_shift) & 1 == lat_bit)
            and (lon_bit is None or (index >> lon_shift) & 1 == lon_bit)
        ]

    def sub_hashes_north(self) -> list["GeoHash"]:
        """The 16 sub-hashes in the northern half of this cell."""
        return self._sub_hashes_where(lat_bit=1)

    def sub_hashes_south(self) -> list["GeoHash"]:
        """The 16 sub-hashes in the southern half of this cell."""
        return self._sub_hashes_where(lat_bit=0)

    def sub_hashes_north_west(self) -> list["GeoHash"]:
        return self._sub_hashes_where(lat_bit=1, lon_bit=0)

    def sub_hashes_north_east(self) -> list["GeoHash"]:
        return self._sub_hashes_where(lat_bit=1, lon_bit=1)

    def sub_hashes_south_west(self) -> list["GeoHash"]:
        return self._sub_hashes_where(lat_bit=0, lon_bit=0)

    def sub_hashes_south_east(self) -> list["GeoHash"]:
        return self._sub_hashes_where(lat_bit=0, lon_bit=1)

    # Neighbours

    def _axis_fields(self) -> tuple[int, int, int, int]:
        lat_count, lon_count = _lat_lon_bit_counts(self.significant_bits)
        lat_value = _extract_every_second_bit(self.bits, 1, lat_count)
        lon_value = _extract_every_second_bit(self.bits, 0, lon_count)
        return lat_value, lat_count, lon_value, lon_count

    def _moved(self, d_lat: int, d_lon: int) -> "GeoHash":
        # Each axis wraps at 2**count: past a pole or the antimeridian the
        # result comes back in on the opposite side.
        lat_value, lat_count, lon_value, lon_count = self._axis_fields()
        lat_value = (lat_value + d_lat) & ((1 << lat_count) - 1)
        lon_value = (lon_value + d_lon) & ((1 << lon_count) - 1)
        return GeoHash(
            _interleave(lat_value, lat_count, lon_value, lon_count),
            self.significant_bits,
        )

    def north(self) -> "GeoHash":
        return self._moved(1, 0)

    def south(self) -> "GeoHash":
        return self._moved(-1, 0)

    def east(self) -> "GeoHash":
        return self._moved(0, 1)

    def west(self) -> "GeoHash":
        return self._moved(0, -1)

    def adjacent(self) -> list["GeoHash"]:
        """The 8 neighbours in the order N, NE, E, SE, S, SW, W, NW."""
        northern = self.north()
        eastern = self.east()
        southern = self.south()
        western = self.west()
        return [
            northern,
            northern.east(),
            eastern,
            southern.east(),
            southern,
            southern.west(),
            western,
            northern.west(),
        ]

    # Z-order position

    def ord(self) -> int:
        """Index of this cell on the Z-order curve at its precision."""
        return self.bits >> (MAX_BIT_PRECISION - self.significant_bits)

    def next(self, step: int = 1) -> "GeoHash":
        return from_ord(self.ord() + step, self.significant_bits)

    def prev(self) -> "GeoHash":
        return self.next(-1)


def with_bit_precision(lat: float, lon: float, number_of_bits: int) -> GeoHash:
    """Encode a latitude and longitude into a geohash of ``number_of_bits`` bits."""
    _check_bit_precision(number_of_bits)
    _check_coordinates(lat, lon)

    lat_count, lon_count = _lat_lon_bit_counts(number_of_bits)
    lat_stream = _encode_bitstream(lat, *LAT_RANGE, lat_count)
    lon_stream = _encode_bitstream(lon, *LON_RANGE, lon_count)

    lat_value = lon_value = 0
    for bit in lat_stream:
        lat_value = (lat_value << 1) | bit
    for bit in lon_stream:
        lon_value = (lon_value << 1) | bit

    return GeoHash(
        _interleave(lat_value, lat_count, lon_value, lon_count),
        number_of_bits,
        originating_point=(lon, lat),
    )


def with_character_precision(lat: float, lon: float, number_of_chars: int) -> GeoHash:
    _check_character_precision(number_of_chars)
    return with_bit_precision(lat, lon, number_of_chars * BITS_PER_CHAR)


def encode(lat: float, lon: float, precision: int = DEFAULT_CHARACTER_PRECISION) -> str:
    """Encode a latitude and longitude into a base32 geohash.

    Raises:
        PrecisionError: precision outside 1..12
        DegenerateInputError: coordinates outside +-90 / +-180
    """
    return with_character_precision(lat, lon, precision).to_base32()


def decode(geohash: str) -> GeoHash:
    """Decode a base32 geohash into its cell.

    The returned value carries the bounding box (``bounding_box``) and the
    center point (``center``, as lon/lat).

    Raises:
        PrecisionError: empty string or more than 12 characters
        InvalidCharacterError: a character outside the base32 alphabet
    """
    _check_character_precision(len(geohash))

    geohash_value = 0
    for char in geohash:
        try:
            index = BASE32_DECODE_MAP[char]
        except KeyError as exc:
            raise InvalidCharacterError(
                f"Invalid character {char!r} in geohash {geohash!r}"
            ) from exc
        geohash_value = (geohash_value << BITS_PER_CHAR) | index

    significant_bits = len(geohash) * BITS_PER_CHAR
    return GeoHash(
        geohash_value << (MAX_BIT_PRECISION - significant_bits), significant_bits
    )


def from_binary_string(binary_string: str) -> GeoHash:
    """Decode a string of '0'/'1' characters, one bit per character.

    The empty string is the whole world at 0 bits.
    """
    significant_bits = len(binary_string)
    if significant_bits > MAX_BIT_PRECISION:
        raise PrecisionError(
            f"Binary geohash can only be {MAX_BIT_PRECISION} bits long, "
            f"got {significant_bits}"
        )
    value = 0
    for char in binary_string:
        if char not in "01":
            raise InvalidCharacterError(
                f"{binary_string!r} is not a valid geohash as a binary string"
            )
        value = (value << 1) | (char == "1")
    return GeoHash(value << (MAX_BIT_PRECISION - significant_bits), significant_bits)


def from_bits(bits: int, significant_bits: int) -> GeoHash:
    """Decode a left-aligned 64-bit value; bits below the precision are ignored."""
    return GeoHash(bits, significant_bits)


def from_ord(ordinal: int, significant_bits: int) -> GeoHash:
    """Inverse of ``GeoHash.ord``; ordinals wrap around the curve."""
    if not 0 <= significant_bits <= MAX_BIT_PRECISION:
        raise PrecisionError(
            f"Significant bits must be between 0 and {MAX_BIT_PRECISION}, "
            f"got {significant_bits}"
        )
    ordinal %= 1 << significant_bits
    return GeoHash(ordinal << (MAX_BIT_PRECISION - significant_bits), significant_bits)


def steps_between(one: GeoHash, two: GeoHash) -> int:
    """How many ``next()`` calls lead from ``one`` to ``two``, signed."""
    if one.significant_bits != two.significant_bits:
        raise PrecisionMismatchError(
            "Steps between geohashes are only defined for equal significant bits, "
            f"got {one.significant_bits} and {two.significant_bits}"
        )
    return two.ord() - one.ord()


def neighbors(geohash: str) -> list[str]:
    """The 8 neighbouring geohashes, ordered N, NE, E, SE, S, SW, W, NW."""
    return [cell.to_base32() for cell in decode(geohash).adjacent()]


class Geohash:
    BASE32 = BASE32

    def __init__(self, precision: int = DEFAULT_CHARACTER_PRECISION):
        """Initialize Geohash encoder/decoder with given precision."""
        _check_character_precision(precision)
        self.precision = precision

    def _check_length(self, geohash: str) -> None:
        if len(geohash) != self.precision:
            raise PrecisionMismatchError(
                f"Geohash length {len(geohash)} doesn't match "
                f"precision {self.precision}"
            )

    def encode(self, lat: float, lon: float) -> str:
        """Encode a latitude and longitude into a geohash."""
        return encode(lat, lon, self.precision)

    def decode(self, geohash: str) -> tuple[float, float]:
        """Decode a geohash into the (lat, lon) of its center."""
        self._check_length(geohash)
        lon, lat = decode(geohash).center
        return lat, lon

    def bounds(self, geohash: str) -> BoundingBox:
        self._check_length(geohash)
        return decode(geohash).bounding_box

    def cell_size(self) -> tuple[float, float]:
        """Calculate the size of a geohash cell at this precision.

        Returns:
            (cell height in latitude degrees, cell width in longitude degrees)
        """
        lat_bits, lon_bits = _lat_lon_bit_counts(self.precision * BITS_PER_CHAR)

        lat_size = 180.0 / (1 << lat_bits)
        lon_size = 360.0 / (1 << lon_bits)

        return lat_size, lon_size

    def get_neighbors(self, geohash: str) -> dict[str, str]:
        """
        Compute the 8 neighboring geohashes (N, NE, E, SE, S, SW, W, NW).
        """
        self._check_length(geohash)
        directions = ("n", "ne", "e", "se", "s", "sw", "w", "nw")
        return dict(zip(directions, neighbors(geohash)))

    def steps_between(self, first: str, second: str) -> int:
        self._check_length(first)
        self._check_length(second)
        return steps_between(decode(first), decode(second))


if __name__ == "__main__":
    geo = Geohash(precision=6)
    encoded = geo.encode(41.878738, -87.6359612)  # Willis Tower
    decoded = geo.decode(encoded)
    neighbours = geo.get_neighbors(encoded)

    print(f"Encoded: {encoded}")
    print(f"Decoded: {decoded}")
    print(f"Bounds: {geo.bounds(encoded)}")
    print(f"Neighbors: {neighbours}")
    print(f"Steps to north neighbour: {geo.steps_between(encoded, neighbours['n'])}")
