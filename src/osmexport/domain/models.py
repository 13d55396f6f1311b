"""
Pipeline Domain Models

Pydantic models for type safety and validation across the export pipeline,
plus the lightweight feature records that flow from the repository to the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field
from shapely.geometry import mapping as geometry_mapping
from shapely.geometry.base import BaseGeometry

from .enums import FieldType, GeometryKind, OutcomeStatus

ID_FIELD = "id"


class FieldSpec(BaseModel):
    """A single typed attribute of an output schema."""
    name: str = Field(..., description="Output attribute name")
    type: FieldType = Field(..., description="Attribute type")

    class Config:
        """Pydantic configuration."""
        frozen = True


class OutputSchema(BaseModel):
    """Named record schema of one destination table."""
    name: str = Field(..., description="Schema name, optionally namespaced as 'ns:name'")
    attributes: tuple[FieldSpec, ...] = Field(default_factory=tuple, description="Non-geometry attributes in order")
    geometry_name: str = Field(default="geom", description="Designated geometry attribute")
    geometry_kind: GeometryKind = Field(default=GeometryKind.UNKNOWN, description="Declared geometry kind")
    srid: int = Field(default=4326, description="EPSG code of the geometry column")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def table_name(self) -> str:
        """Local part of the schema name, used as destination table name."""
        return self.name.rsplit(":", 1)[-1]

    @property
    def crs(self) -> str:
        return f"EPSG:{self.srid}"

    def property_names(self) -> list[str]:
        return [spec.name for spec in self.attributes]

    def to_fiona_schema(self) -> dict[str, Any]:
        """Schema dictionary in the shape fiona expects for layer creation."""
        return {
            "geometry": self.geometry_kind.value,
            "properties": {spec.name: spec.type.fiona_type for spec in self.attributes},
        }


@dataclass(frozen=True)
class SourceFeature:
    """An OSM entity as read from the repository: id, tags, geometry and metadata."""
    id: int
    tags: dict[str, str] = field(default_factory=dict)
    geometry: Optional[BaseGeometry] = None
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OutputFeature:
    """A typed record conforming to one OutputSchema."""
    id: int
    geometry: Optional[BaseGeometry]
    properties: dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Fiona-style record (GeoJSON-like feature dict)."""
        return {
            "geometry": geometry_mapping(self.geometry) if self.geometry is not None else None,
            "properties": dict(self.properties),
        }


class ExportOutcome(BaseModel):
    """Result of exporting one mapping rule."""
    rule_name: str = Field(..., description="Rule that produced this outcome")
    table_name: str = Field(..., description="Destination table")
    status: OutcomeStatus = Field(..., description="Success or classified failure")
    message: Optional[str] = Field(None, description="Human-readable detail")
    status_code: Optional[str] = Field(None, description="Export mechanics status code, if any")
    features_written: int = Field(default=0, description="Records handed to the destination table")

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS
