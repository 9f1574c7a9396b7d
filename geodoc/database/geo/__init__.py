from geodoc.database.geo.geometry import (
    AnyGeometry,
    Geometry,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from geodoc.database.geo.codec import GeoJsonCodec, decode, decode_as, default_codec, dumps, encode, loads

__all__ = [
    "AnyGeometry",
    "decode",
    "decode_as",
    "default_codec",
    "dumps",
    "encode",
    "GeoJsonCodec",
    "Geometry",
    "LineString",
    "loads",
    "MultiLineString",
    "MultiPoint",
    "MultiPolygon",
    "Point",
    "Polygon",
]
