"""
Pipeline Enumerations

Core enums for type safety and clear interface definitions across the export pipeline.
"""

from enum import Enum


class GeometryKind(str, Enum):
    """Geometry kinds an output schema can declare (OGR type names)."""
    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"
    MULTIPOINT = "MultiPoint"
    MULTILINESTRING = "MultiLineString"
    MULTIPOLYGON = "MultiPolygon"
    UNKNOWN = "Unknown"     # Unspecified / generic geometry


class FieldType(str, Enum):
    """Attribute types accepted in mapping definitions."""
    INTEGER = "INTEGER"
    LONG = "LONG"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    STRING = "STRING"
    DATE = "DATE"
    POINT = "POINT"
    LINESTRING = "LINESTRING"
    POLYGON = "POLYGON"

    @property
    def is_geometry(self) -> bool:
        return self in _GEOMETRY_FIELDS

    @property
    def geometry_kind(self) -> "GeometryKind":
        """Geometry kind for geometry-typed fields."""
        try:
            return _GEOMETRY_FIELDS[self]
        except KeyError:
            raise ValueError(f"{self.value} is not a geometry type") from None

    @property
    def fiona_type(self) -> str:
        """Property type name understood by fiona/OGR."""
        try:
            return _FIONA_TYPES[self]
        except KeyError:
            raise ValueError(f"{self.value} is a geometry type") from None


_GEOMETRY_FIELDS = {
    FieldType.POINT: GeometryKind.POINT,
    FieldType.LINESTRING: GeometryKind.LINESTRING,
    FieldType.POLYGON: GeometryKind.POLYGON,
}

_FIONA_TYPES = {
    FieldType.INTEGER: "int",
    FieldType.LONG: "int",
    FieldType.FLOAT: "float",
    FieldType.DOUBLE: "float",
    FieldType.STRING: "str",
    FieldType.DATE: "date",
}


class OriginCollection(str, Enum):
    """Logical source collections of the OSM repository."""
    NODE = "node"   # Point-like entities
    WAY = "way"     # Line and area entities


class OutcomeStatus(str, Enum):
    """Per-rule export result."""
    SUCCESS = "success"
    TABLE_CONFLICT = "table_conflict"
    SCHEMA_CREATION_FAILURE = "schema_creation_failure"
    UNSUPPORTED_DESTINATION = "unsupported_destination"
    DESTINATION_WRITE_FAILURE = "destination_write_failure"
    INVALID_MAPPING = "invalid_mapping"
    EXPORT_MECHANICS_FAILURE = "export_mechanics_failure"
    CANCELED = "canceled"
    SKIPPED = "skipped"     # Not attempted because an earlier rule stopped the run


class FailurePolicy(str, Enum):
    """What the orchestrator does after a rule fails."""
    CONTINUE = "continue"   # Record the failure and move on to the next rule
    FAIL_FAST = "fail_fast" # Stop at the first failure, skip remaining rules


class StoreFormat(str, Enum):
    """SQLite-based destination store formats."""
    GPKG = "gpkg"
    SPATIALITE = "spatialite"

    @property
    def driver(self) -> str:
        return "GPKG" if self is StoreFormat.GPKG else "SQLite"


class ExportStatus(str, Enum):
    """Status codes reported by the export mechanics."""
    NO_FEATURES_FOUND = "NO_FEATURES_FOUND"
    UNABLE_TO_ADD = "UNABLE_TO_ADD"
    SOURCE_READ_FAILURE = "SOURCE_READ_FAILURE"
