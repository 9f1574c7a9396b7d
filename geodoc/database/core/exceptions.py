class GeoJsonDecodeError(ValueError):
    """Raised when a GeoJSON payload cannot be turned into a geometry."""

    pass


class ShapeMismatchError(GeoJsonDecodeError):
    """Raised when the nesting of ``coordinates`` does not match the geometry type."""

    pass


class UnknownGeometryTypeError(GeoJsonDecodeError):
    """Raised when the ``type`` member does not name a supported geometry."""

    pass


class MalformedNumberError(GeoJsonDecodeError):
    """Raised when a coordinate is not a finite number."""

    pass
