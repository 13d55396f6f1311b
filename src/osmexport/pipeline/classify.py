"""Origin collection lookup for output schemas."""

from ..domain.enums import GeometryKind, OriginCollection
from ..domain.models import OutputSchema


def origin_collection(schema: OutputSchema) -> OriginCollection:
    """
    Pick the source collection a schema draws its features from.

    Point schemas read OSM nodes; every other geometry kind, including
    multi-points and unspecified geometry, reads ways.
    """
    if schema.geometry_kind == GeometryKind.POINT:
        return OriginCollection.NODE
    return OriginCollection.WAY
