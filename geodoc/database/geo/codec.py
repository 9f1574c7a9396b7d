"""Conversion between geometries and GeoJSON.

A GeoJSON geometry is a JSON object with a ``type`` discriminator and a ``coordinates`` member whose nesting depends
on the type:

=================  ==============================
type               coordinates
=================  ==============================
Point              ``[x, y]``
LineString         ``[[x, y], ...]``
MultiPoint         ``[[x, y], ...]``
MultiLineString    ``[[[x, y], ...], ...]``
Polygon            ``[[[x, y], ...], ...]``
MultiPolygon       ``[[[[x, y], ...], ...], ...]``
=================  ==============================

Encoded objects always carry exactly ``type`` then ``coordinates``; ``bbox``, ``crs`` and other members are ignored
when decoding.
"""

import json
import math
from collections.abc import Mapping
from functools import cache
from numbers import Real
from typing import Any, TypeVar

from geodoc.core import GeoDoc
from geodoc.database.core.exceptions import (
    GeoJsonDecodeError,
    MalformedNumberError,
    ShapeMismatchError,
    UnknownGeometryTypeError,
)
from geodoc.database.geo.geometry import (
    Geometry,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
    Position,
)

G = TypeVar("G", bound=Geometry)

GEOMETRY_TYPES = ("Point", "LineString", "MultiPoint", "MultiLineString", "Polygon", "MultiPolygon")


def _describe(node: Any) -> str:
    if node is None:
        return "null"
    if isinstance(node, bool):
        return "a boolean"
    if isinstance(node, str):
        return f"the string {node!r}"
    if isinstance(node, (list, tuple)):
        return "an array"
    if isinstance(node, Mapping):
        return "an object"
    if isinstance(node, Real):
        return f"the number {node!r}"
    return type(node).__name__


def _read_number(node: Any, path: str) -> float:
    if isinstance(node, (list, tuple)):
        raise ShapeMismatchError(f"{path}: expected a number, got an array")
    if isinstance(node, bool) or not isinstance(node, Real):
        raise MalformedNumberError(f"{path}: expected a number, got {_describe(node)}")
    try:
        value = float(node)
    except OverflowError:
        raise MalformedNumberError(f"{path}: {node!r} does not fit in a double") from None
    if not math.isfinite(value):
        raise MalformedNumberError(f"{path}: expected a finite number, got {node!r}")
    return value


def _read_array(node: Any, path: str) -> list | tuple:
    if not isinstance(node, (list, tuple)):
        raise ShapeMismatchError(f"{path}: expected an array, got {_describe(node)}")
    return node


def _read_position(node: Any, path: str) -> Position:
    values = _read_array(node, path)
    if len(values) != 2:
        raise ShapeMismatchError(f"{path}: expected a position of two numbers, got {len(values)} values")
    return (_read_number(values[0], f"{path}[0]"), _read_number(values[1], f"{path}[1]"))


def _read_nested(node: Any, depth: int, path: str = "coordinates") -> tuple:
    """Read ``depth`` levels of arrays whose innermost elements are positions."""
    if depth == 0:
        return _read_position(node, path)
    return tuple(_read_nested(item, depth - 1, f"{path}[{i}]") for i, item in enumerate(_read_array(node, path)))


def _points(positions: tuple[Position, ...]) -> list[Point]:
    return [Point(x, y) for x, y in positions]


def _polygon(rings: tuple[tuple[Position, ...], ...]) -> Polygon:
    return Polygon(rings=[_points(ring) for ring in rings])


def _position(point: Point) -> list[float]:
    return [float(point.x), float(point.y)]


def _rings(rings: tuple[tuple[Point, ...], ...]) -> list[list[list[float]]]:
    return [[_position(point) for point in ring] for ring in rings]


def _format_number(value: float) -> str:
    """Shortest round-trip digits, always with a fractional part (``10.0``, ``1.0e-05``)."""
    if not math.isfinite(value):
        raise ValueError(f"Out of range float values are not JSON compliant: {value!r}")
    text = repr(value)
    mantissa, e, exponent = text.partition("e")
    if "." not in mantissa:
        text = f"{mantissa}.0{e}{exponent}"
    return text


def _format_coordinates(node: list | float) -> str:
    if isinstance(node, list):
        return "[" + ",".join(_format_coordinates(item) for item in node) + "]"
    return _format_number(node)


class GeoJsonCodec(GeoDoc):
    """Reads and writes the six GeoJSON geometries.

    The codec holds no state besides its logger, so a single instance (see :func:`default_codec`) can be shared
    freely.

    Example:
        .. code-block:: python

            from geodoc.database.geo import GeoJsonCodec, Point, Polygon

            codec = GeoJsonCodec()
            codec.dumps(Point(10, 20))  # '{"type":"Point","coordinates":[10.0,20.0]}'
            codec.loads('{"type":"Point","coordinates":[10.0,20.0]}')  # Point(x=10.0, y=20.0)

            payload = {"type": "MultiPolygon", "coordinates": [[[[0, 0], [1, 0], [1, 1], [0, 0]]]]}
            codec.decode_as(Polygon, payload)  # raises ShapeMismatchError
    """

    def decode(self, payload: Mapping[str, Any]) -> Geometry:
        """Decode a GeoJSON mapping into the geometry named by its ``type`` member.

        Raises:
            UnknownGeometryTypeError: If ``type`` is missing or is not one of the six supported geometries.
            ShapeMismatchError: If ``coordinates`` is missing or is not nested as the type requires.
            MalformedNumberError: If a coordinate is not a finite number.
        """
        return self.decode_as(Geometry, payload)

    def decode_as(self, geometry_cls: type[G], payload: Mapping[str, Any]) -> G:
        """Decode a GeoJSON mapping into ``geometry_cls``.

        The requested class decides how deeply ``coordinates`` must be nested; the payload's own ``type`` member is
        only consulted when ``geometry_cls`` is :class:`Geometry`. Reading a MultiPolygon payload as a Polygon
        therefore fails with :class:`ShapeMismatchError` instead of misreading the rings.
        """
        if not (isinstance(geometry_cls, type) and issubclass(geometry_cls, Geometry)):
            raise TypeError(f"Expected a Geometry class, got {geometry_cls!r}")
        if not isinstance(payload, Mapping):
            raise ShapeMismatchError(f"Expected a GeoJSON object, got {_describe(payload)}")

        type_tag = payload.get("type") if geometry_cls is Geometry else geometry_cls.type
        try:
            return self._build(type_tag, payload.get("coordinates"))
        except GeoJsonDecodeError as e:
            self.logger.debug(f"Rejected GeoJSON payload as {geometry_cls.__name__}: {e}")
            raise

    def encode(self, geometry: Geometry) -> dict[str, Any]:
        """Encode a geometry as a GeoJSON mapping with ``type`` and ``coordinates`` members, in that order."""
        match geometry:
            case Point():
                coordinates = _position(geometry)
            case LineString(points=points) | MultiPoint(points=points):
                coordinates = [_position(point) for point in points]
            case MultiLineString(lines=lines):
                coordinates = [[_position(point) for point in line.points] for line in lines]
            case Polygon(rings=rings):
                coordinates = _rings(rings)
            case MultiPolygon(polygons=polygons):
                coordinates = [_rings(polygon.rings) for polygon in polygons]
            case _:
                raise TypeError(f"Cannot encode {type(geometry).__name__} as GeoJSON")
        return {"type": geometry.type, "coordinates": coordinates}

    def loads(self, text: str | bytes, geometry_cls: type[Geometry] = Geometry) -> Geometry:
        """Parse GeoJSON text and decode it, by its ``type`` member or as ``geometry_cls``."""
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise GeoJsonDecodeError(f"Invalid GeoJSON text: {e}") from e
        return self.decode_as(geometry_cls, payload)

    def dumps(self, geometry: Geometry) -> str:
        """Encode a geometry as compact GeoJSON text, e.g. ``{"type":"Point","coordinates":[10.0,20.0]}``.

        Coordinates are written with the shortest digits that read back as the same double, and always with a
        fractional part, also in exponent form (``1.0e+16``).
        """
        encoded = self.encode(geometry)
        coordinates = _format_coordinates(encoded["coordinates"])
        return f'{{"type":{json.dumps(encoded["type"])},"coordinates":{coordinates}}}'

    def _build(self, type_tag: Any, coordinates: Any) -> Geometry:
        match type_tag:
            case "Point":
                return Point(*_read_position(coordinates, "coordinates"))
            case "LineString":
                return LineString(_points(_read_nested(coordinates, 1)))
            case "MultiPoint":
                return MultiPoint(_points(_read_nested(coordinates, 1)))
            case "MultiLineString":
                return MultiLineString([LineString(_points(line)) for line in _read_nested(coordinates, 2)])
            case "Polygon":
                return _polygon(_read_nested(coordinates, 2))
            case "MultiPolygon":
                return MultiPolygon([_polygon(polygon) for polygon in _read_nested(coordinates, 3)])
            case None:
                raise UnknownGeometryTypeError("GeoJSON object has no 'type' member")
            case _:
                raise UnknownGeometryTypeError(
                    f"Unsupported GeoJSON geometry type {type_tag!r}, expected one of {', '.join(GEOMETRY_TYPES)}"
                )


@cache
def default_codec() -> GeoJsonCodec:
    """The shared codec used by the geometry models and the module-level functions."""
    return GeoJsonCodec()


def decode(payload: Mapping[str, Any]) -> Geometry:
    return default_codec().decode(payload)


def decode_as(geometry_cls: type[G], payload: Mapping[str, Any]) -> G:
    return default_codec().decode_as(geometry_cls, payload)


def encode(geometry: Geometry) -> dict[str, Any]:
    return default_codec().encode(geometry)


def loads(text: str | bytes, geometry_cls: type[Geometry] = Geometry) -> Geometry:
    return default_codec().loads(text, geometry_cls)


def dumps(geometry: Geometry) -> str:
    return default_codec().dumps(geometry)
