# =============================================================================
# Unit Tests: Origin Collection Classification
# =============================================================================

import pytest

from osmexport.domain.enums import GeometryKind, OriginCollection
from osmexport.domain.models import OutputSchema
from osmexport.pipeline.classify import origin_collection


def test_point_schema_reads_nodes(point_schema):
    """Test that a point schema draws from the node collection."""
    assert origin_collection(point_schema) == OriginCollection.NODE


@pytest.mark.parametrize("name", ["pois", "ns:pois", "amenities"])
def test_point_schemas_read_nodes_regardless_of_name(name):
    """Test that classification only depends on the geometry kind."""
    schema = OutputSchema(name=name, geometry_kind=GeometryKind.POINT)
    assert origin_collection(schema) == OriginCollection.NODE


@pytest.mark.parametrize("kind", [
    GeometryKind.LINESTRING,
    GeometryKind.POLYGON,
    GeometryKind.MULTIPOINT,
    GeometryKind.MULTILINESTRING,
    GeometryKind.MULTIPOLYGON,
    GeometryKind.UNKNOWN,
])
def test_non_point_schemas_read_ways(kind):
    """Test that every other geometry kind draws from the way collection."""
    schema = OutputSchema(name="features", geometry_kind=kind)
    assert origin_collection(schema) == OriginCollection.WAY


def test_default_geometry_kind_reads_ways():
    """Test that a schema without a declared kind falls back to ways."""
    assert origin_collection(OutputSchema(name="anything")) == OriginCollection.WAY
