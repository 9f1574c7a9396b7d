from geodoc.database.backends.mongo_odm_backend import GeoDocument, MongoGeoODMBackend, geosphere_index
from geodoc.database.core.exceptions import (
    GeoJsonDecodeError,
    MalformedNumberError,
    ShapeMismatchError,
    UnknownGeometryTypeError,
)

__all__ = [
    "GeoDocument",
    "GeoJsonDecodeError",
    "geosphere_index",
    "MalformedNumberError",
    "MongoGeoODMBackend",
    "ShapeMismatchError",
    "UnknownGeometryTypeError",
]
