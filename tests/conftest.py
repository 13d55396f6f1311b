"""
Shared pytest fixtures and collaborator fakes.

Provides an in-memory feature repository, a fake destination database whose
connections record every call, and reusable schemas, rules and features.
"""

import fiona
import pytest
from shapely.geometry import LineString, Point

from osmexport.domain.enums import FieldType, GeometryKind, OriginCollection
from osmexport.domain.models import FieldSpec, OutputFeature, OutputSchema, SourceFeature
from osmexport.errors import StoreError
from osmexport.mapping import AttributeDefinition, MappingRule, RuleDefinition
from osmexport.pipeline.source import FeatureRepository
from osmexport.pipeline.store import DataStore, TableHandle


# =============================================================================
# Collaborator Fakes
# =============================================================================

class MemoryRepository(FeatureRepository):
    """Repository serving features from plain lists."""

    def __init__(self, collections):
        self.collections = collections
        self.reads = []

    def has_collection(self, collection):
        return collection.value in self.collections

    def _iter_source(self, collection):
        self.reads.append(collection.value)
        return iter(self.collections[collection.value])


class FakeTable(TableHandle):
    def __init__(self, database, name):
        super().__init__(name)
        self.database = database
        self.rows = []

    @property
    def writable(self):
        return not self.database.read_only

    def remove_all(self):
        self.database.calls.append(("remove_all", self.name))
        if self.database.fail_remove:
            raise OSError("disk I/O error")
        self.rows.clear()

    def write(self, records):
        self.database.calls.append(("write", self.name))
        count = 0
        for record in records:
            if self.database.fail_write:
                raise StoreError("database is locked")
            self.rows.append(record)
            count += 1
        return count


class FakeStore(DataStore):
    """One connection to a FakeDatabase."""

    def __init__(self, database):
        self.database = database
        self.closed = False

    def list_table_names(self):
        self.database.calls.append(("list", None))
        return list(self.database.tables)

    def create_schema(self, schema):
        self.database.calls.append(("create_schema", schema.table_name))
        if self.database.fail_create:
            raise OSError("read-only file system")
        self.database.tables[schema.table_name] = FakeTable(self.database, schema.table_name)

    def get_table(self, name):
        return self.database.tables[name]

    def close(self):
        self.closed = True


class FakeDatabase:
    """Destination state shared by all connections, plus failure switches."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.connections = []
        self.fail_create = False
        self.fail_remove = False
        self.fail_write = False
        self.read_only = False

    def connect(self):
        store = FakeStore(self)
        self.connections.append(store)
        return store

    def add_table(self, name, rows=()):
        table = FakeTable(self, name)
        table.rows.extend(rows)
        self.tables[name] = table
        return table

    def call_names(self):
        return [name for name, _ in self.calls]


# =============================================================================
# Schema and Rule Fixtures
# =============================================================================

@pytest.fixture
def point_schema():
    return OutputSchema(
        name="schools",
        attributes=(FieldSpec(name="id", type=FieldType.LONG), FieldSpec(name="name", type=FieldType.STRING)),
        geometry_kind=GeometryKind.POINT,
    )


@pytest.fixture
def school_rule():
    """Declarative rule mapping amenity=school nodes."""
    definition = RuleDefinition(
        name="schools",
        filter={"amenity": ["school"]},
        fields={
            "geom": AttributeDefinition(name="geom", type=FieldType.POINT),
            "name": AttributeDefinition(name="name", type=FieldType.STRING),
            "capacity": AttributeDefinition(name="capacity", type=FieldType.INTEGER),
        },
    )
    return MappingRule.from_definition(definition)


@pytest.fixture
def road_rule():
    """Declarative rule mapping highway ways."""
    definition = RuleDefinition(
        name="roads",
        filter={"highway": []},
        fields={
            "geom": AttributeDefinition(name="geom", type=FieldType.LINESTRING),
            "highway": AttributeDefinition(name="road_class", type=FieldType.STRING),
        },
    )
    return MappingRule.from_definition(definition)


def identity_rule(schema):
    """Rule mapping every source feature to a record with its name tag."""
    def transform(feature):
        return OutputFeature(
            id=feature.id,
            geometry=feature.geometry,
            properties={"id": feature.id, "name": feature.tags.get("name")},
        )
    return MappingRule(schema, transform)


def write_layer(path, layer, rows, with_id=True):
    """Write `rows` of (id, tags) point features into a GeoPackage layer."""
    properties = {"tags": "str"}
    if with_id:
        properties = {"id": "int", **properties}
    schema = {"geometry": "Point", "properties": properties}

    with fiona.open(str(path), "w", driver="GPKG", layer=layer, schema=schema, crs="EPSG:4326") as dst:
        for fid, tags in rows:
            record_properties = {"tags": tags}
            if with_id:
                record_properties["id"] = fid
            dst.write({
                "geometry": {"type": "Point", "coordinates": (float(fid), float(fid))},
                "properties": record_properties,
            })


# =============================================================================
# Feature Fixtures
# =============================================================================

@pytest.fixture
def nodes():
    return [
        SourceFeature(id=1, tags={"amenity": "school", "name": "North School", "capacity": "300"},
                      geometry=Point(1.0, 1.0)),
        SourceFeature(id=2, tags={"amenity": "cafe", "name": "Corner Cafe"}, geometry=Point(2.0, 2.0)),
        SourceFeature(id=3, tags={"amenity": "school", "name": "South School", "capacity": "many"},
                      geometry=Point(3.0, 3.0)),
    ]


@pytest.fixture
def ways():
    return [
        SourceFeature(id=10, tags={"highway": "primary", "name": "Main Street"},
                      geometry=LineString([(0, 0), (1, 1)])),
        SourceFeature(id=11, tags={"building": "yes"},
                      geometry=LineString([(0, 0), (1, 0), (1, 1), (0, 0)])),
    ]


@pytest.fixture
def repository(nodes, ways):
    return MemoryRepository({OriginCollection.NODE.value: nodes, OriginCollection.WAY.value: ways})


@pytest.fixture
def database():
    return FakeDatabase()
