import math

import pytest
from pydantic import BaseModel, ValidationError

from geodoc.database.geo import (
    AnyGeometry,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)

SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
HOLE = [(4, 4), (6, 4), (6, 6), (4, 6), (4, 4)]


class Site(BaseModel):
    name: str
    location: AnyGeometry


class Parcel(BaseModel):
    boundary: Polygon
    entrance: Point | None = None


class TestConstruction:
    def test_point_positional_and_keyword(self):
        assert Point(10, 20) == Point(x=10, y=20)
        assert Point(10, 20).coordinates == (10.0, 20.0)

    def test_zero_coordinates(self):
        assert Point(0, 0).coordinates == (0.0, 0.0)

    def test_points_accept_pairs(self):
        assert LineString([(1, 2), [3, 4]]) == LineString([Point(1, 2), Point(3, 4)])

    def test_sequences_are_stored_as_tuples(self):
        line = LineString([Point(1, 2)])

        assert isinstance(line.points, tuple)
        assert isinstance(Polygon(SQUARE).rings[0], tuple)

    def test_multi_line_string_accepts_point_sequences(self):
        lines = MultiLineString([[(10, 20), (30, 40)], LineString([(50, 60), (70, 80)])])

        assert lines.lines[0] == LineString([(10, 20), (30, 40)])
        assert lines.coordinates == (((10.0, 20.0), (30.0, 40.0)), ((50.0, 60.0), (70.0, 80.0)))

    def test_polygon_exterior_and_holes(self):
        polygon = Polygon(SQUARE, HOLE)

        assert polygon.exterior == tuple(Point(*p) for p in SQUARE)
        assert polygon.holes == (tuple(Point(*p) for p in HOLE),)
        assert polygon == Polygon(rings=[SQUARE, HOLE])

    def test_polygon_without_rings(self):
        polygon = Polygon()

        assert polygon.rings == ()
        assert polygon.exterior == ()
        assert polygon.holes == ()

    def test_holes_need_an_exterior(self):
        with pytest.raises(TypeError, match="without an exterior"):
            Polygon(None, HOLE)

    def test_with_inner_ring_returns_a_new_polygon(self):
        square = Polygon(SQUARE)
        framed = square.with_inner_ring(HOLE)

        assert square.holes == ()
        assert framed.exterior == square.exterior
        assert framed.holes[0][0] == Point(4, 4)

    def test_unclosed_rings_are_not_rejected(self):
        polygon = Polygon([(0, 0), (1, 0), (1, 1)])

        assert len(polygon.exterior) == 3

    def test_multi_polygon_accepts_ring_sequences(self):
        assert MultiPolygon([[SQUARE], Polygon(SQUARE, HOLE)]).polygons[0] == Polygon(SQUARE)

    def test_coordinates_nesting(self):
        assert MultiPoint([(1, 2)]).coordinates == ((1.0, 2.0),)
        assert Polygon(SQUARE).coordinates[0][1] == (10.0, 0.0)
        assert MultiPolygon([Polygon(SQUARE)]).coordinates[0][0][2] == (10.0, 10.0)


class TestValueSemantics:
    def test_structural_equality(self):
        assert Polygon(SQUARE) == Polygon([Point(*p) for p in SQUARE])
        assert Point(1, 2) == Point(1.0, 2.0)

    def test_order_matters(self):
        assert LineString([(1, 2), (3, 4)]) != LineString([(3, 4), (1, 2)])
        assert MultiPoint([(1, 2), (3, 4)]) != MultiPoint([(3, 4), (1, 2)])

    def test_variants_with_the_same_shape_are_not_equal(self):
        assert LineString([(1, 2), (3, 4)]) != MultiPoint([(1, 2), (3, 4)])

    def test_geometries_are_hashable(self):
        assert len({Point(1, 2), Point(1.0, 2.0), Point(2, 1)}) == 2
        assert hash(Polygon(SQUARE)) == hash(Polygon(SQUARE))

    def test_geometries_are_frozen(self):
        point = Point(1, 2)

        with pytest.raises(ValidationError):
            point.x = 5
        assert point.x == 1.0

    def test_type_names(self):
        assert [cls.type for cls in (Point, LineString, MultiPoint, MultiLineString, Polygon, MultiPolygon)] == [
            "Point",
            "LineString",
            "MultiPoint",
            "MultiLineString",
            "Polygon",
            "MultiPolygon",
        ]


class TestValidation:
    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_coordinates_must_be_finite(self, value):
        with pytest.raises(ValidationError):
            Point(value, 0)

    @pytest.mark.parametrize("x, y", [(True, False), ("10", "20"), (None, 1.0)])
    def test_coordinates_must_be_numbers(self, x, y):
        with pytest.raises(ValidationError):
            Point(x=x, y=y)

    def test_integer_coordinates_are_widened(self):
        point = Point(10, 20)

        assert isinstance(point.x, float)
        assert point == Point(10.0, 20.0)

    def test_positions_need_two_values(self):
        with pytest.raises(ValidationError, match="two numbers"):
            LineString([(1, 2, 3)])

    def test_model_validate_geojson(self):
        payload = {"type": "Polygon", "coordinates": [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]]}

        assert Polygon.model_validate(payload) == Polygon(SQUARE)

    def test_model_validate_json(self):
        assert Point.model_validate_json('{"type":"Point","coordinates":[10.0,20.0]}') == Point(10, 20)

    def test_model_validate_rejects_wrong_depth(self):
        payload = {"type": "MultiPolygon", "coordinates": [[[[0, 0], [1, 0], [1, 1], [0, 0]]]]}

        with pytest.raises(ValidationError, match="two numbers"):
            Polygon.model_validate(payload)

    def test_model_validate_field_mapping(self):
        assert Point.model_validate({"x": 1, "y": 2}) == Point(1, 2)


class TestSerialization:
    def test_model_dump_is_geojson(self):
        assert Point(10, 20).model_dump() == {"type": "Point", "coordinates": [10.0, 20.0]}
        assert Polygon(SQUARE).model_dump()["coordinates"][0][0] == [0.0, 0.0]

    def test_model_dump_json_is_compact_geojson(self):
        assert Point(10, 20).model_dump_json() == '{"type":"Point","coordinates":[10.0,20.0]}'

    def test_geometry_field_in_a_model(self):
        parcel = Parcel.model_validate(
            {
                "boundary": {"type": "Polygon", "coordinates": [SQUARE]},
                "entrance": {"type": "Point", "coordinates": [5, 0]},
            }
        )

        assert parcel.boundary == Polygon(SQUARE)
        assert parcel.entrance == Point(5, 0)
        assert parcel.model_dump()["entrance"] == {"type": "Point", "coordinates": [5.0, 0.0]}

    def test_any_geometry_dispatches_on_type(self):
        site = Site.model_validate(
            {"name": "depot", "location": {"type": "MultiPoint", "coordinates": [[1, 2], [3, 4]]}}
        )

        assert site.location == MultiPoint([(1, 2), (3, 4)])
        assert site.model_dump() == {
            "name": "depot",
            "location": {"type": "MultiPoint", "coordinates": [[1.0, 2.0], [3.0, 4.0]]},
        }

    def test_any_geometry_accepts_instances(self):
        site = Site(name="well", location=Point(3, 4))

        assert site.model_dump()["location"] == {"type": "Point", "coordinates": [3.0, 4.0]}

    def test_any_geometry_rejects_unknown_types(self):
        with pytest.raises(ValidationError, match="Circle"):
            Site.model_validate({"name": "ring", "location": {"type": "Circle", "coordinates": [0, 0]}})

    def test_any_geometry_rejects_non_geometry_values(self):
        with pytest.raises(ValidationError):
            Site.model_validate({"name": "nowhere", "location": [1, 2]})

    def test_json_round_trip_through_a_model(self):
        site = Site(name="field", location=Polygon(SQUARE, HOLE))

        assert Site.model_validate_json(site.model_dump_json()) == site
