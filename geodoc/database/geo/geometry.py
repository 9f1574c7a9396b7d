"""GeoJSON geometry value types.

The six geometries are frozen pydantic models: they compare and hash by value, and nested sequences are stored as
tuples so a constructed geometry can never change. Every geometry validates from a GeoJSON mapping and serializes back
to one through :mod:`geodoc.database.geo.codec`, which makes them usable as fields of any pydantic model, including
Beanie documents.

Example:
    .. code-block:: python

        from geodoc.database.geo import LineString, Point, Polygon

        Point(10, 20)
        LineString([(10, 20), (30, 40)])
        Polygon([(100, 0), (101, 0), (101, 1), (100, 1), (100, 0)])

        Point.model_validate({"type": "Point", "coordinates": [10.0, 20.0]})  # Point(x=10.0, y=20.0)
        Point(10, 20).model_dump()  # {'type': 'Point', 'coordinates': [10.0, 20.0]}
"""

from collections.abc import Mapping, Sequence
from typing import Annotated, Any, ClassVar

from pydantic import AllowInfNan, BaseModel, ConfigDict, SerializeAsAny, Strict, model_serializer, model_validator

from geodoc.database.core.exceptions import ShapeMismatchError

Position = tuple[float, float]
Coordinate = Annotated[float, Strict(), AllowInfNan(False)]
"""A finite float; ints are widened, booleans and numeric strings are rejected as they are when decoding."""


class Geometry(BaseModel):
    """Base class of the GeoJSON geometries.

    Accepts, wherever a geometry is validated:

    - an instance of the geometry class,
    - a GeoJSON mapping (anything with a ``type`` or ``coordinates`` member), decoded with
      :meth:`GeoJsonCodec.decode_as <geodoc.database.geo.codec.GeoJsonCodec.decode_as>`,
    - a sequence, mapped onto the class's single sequence field (or onto ``x`` and ``y`` for a Point).

    Validating against ``Geometry`` itself dispatches on the GeoJSON ``type`` member.
    """

    model_config = ConfigDict(frozen=True)

    type: ClassVar[str]

    @model_validator(mode="wrap")
    @classmethod
    def _validate_geometry(cls, data: Any, handler):
        if isinstance(data, Geometry):
            return handler(data)
        if isinstance(data, Mapping) and ("coordinates" in data or "type" in data):
            from geodoc.database.geo.codec import default_codec

            return default_codec().decode_as(cls, data)
        if cls is Geometry:
            raise ShapeMismatchError(f"Expected a GeoJSON geometry object, got {type(data).__name__}")
        if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
            data = cls._fields_from_sequence(data)
        return handler(data)

    @model_serializer(mode="plain")
    def _serialize_geometry(self) -> dict[str, Any]:
        from geodoc.database.geo.codec import default_codec

        return default_codec().encode(self)

    @classmethod
    def _fields_from_sequence(cls, data: Sequence) -> dict[str, Any]:
        raise NotImplementedError

    @property
    def coordinates(self) -> tuple:
        """The GeoJSON ``coordinates`` of this geometry as nested tuples of floats."""
        raise NotImplementedError


AnyGeometry = SerializeAsAny[Geometry]
"""Field type accepting any of the six geometries, chosen by the GeoJSON ``type`` member."""


class Point(Geometry):
    """A single position. ``Point(x, y)`` or ``Point(x=..., y=...)``."""

    type: ClassVar[str] = "Point"

    x: Coordinate
    y: Coordinate

    def __init__(self, x: float | None = None, y: float | None = None, /, **data: Any):
        if x is not None:
            data["x"] = x
        if y is not None:
            data["y"] = y
        super().__init__(**data)

    @classmethod
    def _fields_from_sequence(cls, data: Sequence) -> dict[str, Any]:
        if len(data) != 2:
            raise ShapeMismatchError(f"Expected a position of two numbers, got {len(data)} values")
        return {"x": data[0], "y": data[1]}

    @property
    def coordinates(self) -> Position:
        return (self.x, self.y)


class LineString(Geometry):
    """An ordered sequence of points. ``LineString(points)``."""

    type: ClassVar[str] = "LineString"

    points: tuple[Point, ...] = ()

    def __init__(self, points: Sequence[Point | Sequence[float]] | None = None, /, **data: Any):
        if points is not None:
            data["points"] = points
        super().__init__(**data)

    @classmethod
    def _fields_from_sequence(cls, data: Sequence) -> dict[str, Any]:
        return {"points": data}

    @property
    def coordinates(self) -> tuple[Position, ...]:
        return tuple(point.coordinates for point in self.points)


class MultiPoint(Geometry):
    """A set of disconnected points, kept in the order given. ``MultiPoint(points)``.

    Has the same shape as a LineString but never compares equal to one.
    """

    type: ClassVar[str] = "MultiPoint"

    points: tuple[Point, ...] = ()

    def __init__(self, points: Sequence[Point | Sequence[float]] | None = None, /, **data: Any):
        if points is not None:
            data["points"] = points
        super().__init__(**data)

    @classmethod
    def _fields_from_sequence(cls, data: Sequence) -> dict[str, Any]:
        return {"points": data}

    @property
    def coordinates(self) -> tuple[Position, ...]:
        return tuple(point.coordinates for point in self.points)


class MultiLineString(Geometry):
    """``MultiLineString(lines)``, where each line is a LineString or a sequence of points."""

    type: ClassVar[str] = "MultiLineString"

    lines: tuple[LineString, ...] = ()

    def __init__(self, lines: Sequence[LineString | Sequence] | None = None, /, **data: Any):
        if lines is not None:
            data["lines"] = lines
        super().__init__(**data)

    @classmethod
    def _fields_from_sequence(cls, data: Sequence) -> dict[str, Any]:
        return {"lines": data}

    @property
    def coordinates(self) -> tuple[tuple[Position, ...], ...]:
        return tuple(line.coordinates for line in self.lines)


class Polygon(Geometry):
    """A polygon made of linear rings.

    The first ring is the exterior boundary and any further rings are holes. Rings are expected to be closed (first
    point equal to the last) but this is not checked.

    Args:
        exterior: Points of the exterior ring.
        *holes: Points of each interior ring.
        rings: Alternatively, all rings at once as a keyword argument.

    Raises:
        TypeError: If holes are given without an exterior ring.

    Example:
        .. code-block:: python

            square = Polygon([(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)])
            framed = square.with_inner_ring([(4, 4), (6, 4), (6, 6), (4, 6), (4, 4)])
            assert framed.exterior == square.exterior
            assert len(framed.holes) == 1
    """

    type: ClassVar[str] = "Polygon"

    rings: tuple[tuple[Point, ...], ...] = ()

    def __init__(
        self,
        exterior: Sequence[Point | Sequence[float]] | None = None,
        /,
        *holes: Sequence[Point | Sequence[float]],
        **data: Any,
    ):
        if exterior is not None:
            data["rings"] = (exterior, *holes)
        elif holes:
            raise TypeError("Polygon holes given without an exterior ring")
        super().__init__(**data)

    @classmethod
    def _fields_from_sequence(cls, data: Sequence) -> dict[str, Any]:
        return {"rings": data}

    @property
    def exterior(self) -> tuple[Point, ...]:
        """The exterior ring, or an empty tuple for a polygon without rings."""
        return self.rings[0] if self.rings else ()

    @property
    def holes(self) -> tuple[tuple[Point, ...], ...]:
        return self.rings[1:]

    def with_inner_ring(self, points: Sequence[Point | Sequence[float]]) -> "Polygon":
        """Return a copy of this polygon with one more hole appended."""
        return Polygon(rings=(*self.rings, points))

    @property
    def coordinates(self) -> tuple[tuple[Position, ...], ...]:
        return tuple(tuple(point.coordinates for point in ring) for ring in self.rings)


class MultiPolygon(Geometry):
    """``MultiPolygon(polygons)``, where each polygon is a Polygon or a sequence of rings."""

    type: ClassVar[str] = "MultiPolygon"

    polygons: tuple[Polygon, ...] = ()

    def __init__(self, polygons: Sequence[Polygon | Sequence] | None = None, /, **data: Any):
        if polygons is not None:
            data["polygons"] = polygons
        super().__init__(**data)

    @classmethod
    def _fields_from_sequence(cls, data: Sequence) -> dict[str, Any]:
        return {"polygons": data}

    @property
    def coordinates(self) -> tuple[tuple[tuple[Position, ...], ...], ...]:
        return tuple(polygon.coordinates for polygon in self.polygons)
