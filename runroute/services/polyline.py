# runroute/services/polyline.py
import math
from typing import List, Optional, Sequence, Tuple

from runroute.core.logger import logger
from runroute.models.routing import Coordinate

# Longest varint accepted; real deltas need at most 7 groups (35 bits).
MAX_SHIFT = 60


class PolylineCodec:
    """
    Encoded polyline codec (Google algorithm) with an optional third
    elevation dimension, as returned by OpenRouteService.

    Each dimension is delta-encoded independently in the order
    (lat, lon[, elevation]). Every delta is zig-zag folded and written as
    5-bit groups, least significant first, with 0x20 set on every group
    but the last, offset by 63 into printable ASCII.

    Decoding never raises: truncated or malformed input yields whatever was
    decoded before the damage, since callers treat "no route" as valid.
    """

    def __init__(self, precision: int = 5, elevation_precision: int = 2) -> None:
        self.factor = 10 ** precision
        self.elevation_factor = 10 ** elevation_precision

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def decode(self, encoded: Optional[str], dimensions: int = 3) -> List[Coordinate]:
        if dimensions not in (2, 3):
            raise ValueError(f"dimensions must be 2 or 3, got {dimensions}")
        if not encoded:
            return []

        coordinates: List[Coordinate] = []
        index = 0
        lat = lon = ele = 0
        length = len(encoded)

        while index < length:
            read = self._read_value(encoded, index)
            if read is None:
                break
            d_lat, index = read

            read = self._read_value(encoded, index)
            if read is None:
                break
            d_lon, index = read

            # A final record may stop after lon; its elevation is 0.
            has_elevation = False
            if dimensions == 3 and index < length:
                read = self._read_value(encoded, index)
                if read is None:
                    break
                ele += read[0]
                index = read[1]
                has_elevation = True

            lat += d_lat
            lon += d_lon
            if abs(lat) > 90 * self.factor or abs(lon) > 180 * self.factor:
                logger.warning("Polyline decoded to an out-of-range coordinate; truncating")
                break

            coordinates.append(
                Coordinate(
                    lat=lat / self.factor,
                    lon=lon / self.factor,
                    elevation=ele / self.elevation_factor if has_elevation else 0.0,
                )
            )

        if index < length:
            logger.warning(
                "Polyline decode stopped at offset {} of {}; returning {} points",
                index,
                length,
                len(coordinates),
            )

        return coordinates

    def encode(self, coordinates: Sequence[Coordinate], dimensions: int = 3) -> str:
        if dimensions not in (2, 3):
            raise ValueError(f"dimensions must be 2 or 3, got {dimensions}")

        chunks: List[str] = []
        prev = [0, 0, 0]

        for coord in coordinates:
            values = [
                self._scale(coord.lat, self.factor),
                self._scale(coord.lon, self.factor),
                self._scale(coord.elevation, self.elevation_factor),
            ][:dimensions]

            for i, value in enumerate(values):
                chunks.append(self._write_value(value - prev[i]))
                prev[i] = value

        return "".join(chunks)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _scale(value: float, factor: int) -> int:
        # Half-up, not round-half-even
        return int(math.floor(value * factor + 0.5))

    @staticmethod
    def _read_value(encoded: str, index: int) -> Optional[Tuple[int, int]]:
        """
        Read one varint starting at index.

        Returns (value, next_index), or None when the string ends inside the
        value, holds a character outside the encoding alphabet or runs past
        MAX_SHIFT bits.
        """
        result = 0
        shift = 0
        length = len(encoded)

        while True:
            if index >= length:
                return None
            byte = ord(encoded[index]) - 63
            index += 1
            if byte < 0 or byte > 0x3F:
                return None
            result |= (byte & 0x1F) << shift
            shift += 5
            if shift > MAX_SHIFT:
                return None
            if byte < 0x20:
                break

        value = ~(result >> 1) if result & 1 else result >> 1
        return value, index

    @staticmethod
    def _write_value(value: int) -> str:
        value = ~(value << 1) if value < 0 else value << 1
        out = []
        while value >= 0x20:
            out.append(chr((0x20 | (value & 0x1F)) + 63))
            value >>= 5
        out.append(chr(value + 63))
        return "".join(out)


_default_codec = PolylineCodec()


def decode(encoded: Optional[str], dimensions: int = 3) -> List[Coordinate]:
    return _default_codec.decode(encoded, dimensions)


def encode(coordinates: Sequence[Coordinate], dimensions: int = 3) -> str:
    return _default_codec.encode(coordinates, dimensions)
