"""
Mapping Rules - Declarative Tag-to-Table Mapping

A Mapping is an ordered, immutable collection of MappingRule objects. Each rule
pairs an OutputSchema with a transform callable that turns a loosely-typed OSM
SourceFeature into zero or one typed OutputFeature.

Mapping files are YAML (or JSON) documents:

    rules:
      - name: schools
        filter: {amenity: [school]}
        exclude: {access: [private]}
        fields:
          geom: {name: geom, type: POINT}
          name: {name: name, type: STRING}
        default_fields: [version, timestamp]
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from datetime import date
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from shapely.geometry import LineString, Point, Polygon
from shapely.geometry.base import BaseGeometry

from .domain.enums import FieldType, GeometryKind
from .domain.models import ID_FIELD, FieldSpec, OutputFeature, OutputSchema, SourceFeature
from .errors import MappingLoadError

logger = logging.getLogger(__name__)

Transform = Callable[[SourceFeature], Optional[OutputFeature]]

# OSM metadata columns a rule may copy alongside its tag fields
DEFAULT_FIELDS = {
    "version": FieldType.LONG,
    "timestamp": FieldType.LONG,
    "changeset": FieldType.LONG,
    "user": FieldType.STRING,
}


# =============================================================================
# Mapping definition models
# =============================================================================

class AttributeDefinition(BaseModel):
    """Target attribute of one tag key."""
    name: str = Field(..., min_length=1, description="Output attribute name")
    type: FieldType = Field(..., description="Output attribute type")

    class Config:
        """Pydantic configuration."""
        frozen = True


class RuleDefinition(BaseModel):
    """Parsed form of a single rule entry in a mapping file."""
    name: str = Field(..., min_length=1, description="Output schema and table name")
    filter: dict[str, list[str]] = Field(default_factory=dict, description="Tag values to accept ([] = any)")
    exclude: dict[str, list[str]] = Field(default_factory=dict, description="Tag values to reject ([] = any)")
    fields: dict[str, AttributeDefinition] = Field(..., description="Tag key -> output attribute")
    default_fields: list[str] = Field(default_factory=list, description="OSM metadata columns to copy")

    @model_validator(mode="after")
    def check_fields(self) -> "RuleDefinition":
        geometry_fields = [d for d in self.fields.values() if d.type.is_geometry]
        if len(geometry_fields) != 1:
            raise ValueError(
                f"rule '{self.name}' must define exactly one geometry field, found {len(geometry_fields)}"
            )

        unknown = [f for f in self.default_fields if f not in DEFAULT_FIELDS]
        if unknown:
            raise ValueError(f"rule '{self.name}' has unknown default fields: {unknown}")

        names = [d.name for d in self.fields.values()] + list(self.default_fields)
        if ID_FIELD in names:
            raise ValueError(f"rule '{self.name}' cannot redefine the '{ID_FIELD}' attribute")
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"rule '{self.name}' has duplicate attribute names: {duplicates}")
        return self


class MappingDefinition(BaseModel):
    """Parsed form of a whole mapping file."""
    rules: list[RuleDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_names(self) -> "MappingDefinition":
        names = [rule.name for rule in self.rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate rule names: {duplicates}")
        return self


# =============================================================================
# Declarative transform
# =============================================================================

def convert_value(value: Any, field_type: FieldType) -> Any:
    """Convert a raw tag or metadata value, returning None when it does not parse."""
    if value is None:
        return None
    try:
        if field_type in (FieldType.INTEGER, FieldType.LONG):
            return int(value)
        if field_type in (FieldType.FLOAT, FieldType.DOUBLE):
            return float(value)
        if field_type == FieldType.DATE:
            return date.fromisoformat(str(value)[:10]).isoformat()
    except (TypeError, ValueError):
        logger.debug(f"Cannot convert {value!r} to {field_type.value}, storing null")
        return None
    return str(value)


def _matches(tags: dict[str, str], criteria: dict[str, list[str]]) -> bool:
    for key, value in tags.items():
        if key in criteria:
            accepted = criteria[key]
            if not accepted or value in accepted:
                return True
    return False


class TagTransform:
    """Callable transform built from a RuleDefinition."""

    def __init__(
        self,
        schema: OutputSchema,
        fields: dict[str, FieldSpec],
        filter: Optional[dict[str, list[str]]] = None,
        exclude: Optional[dict[str, list[str]]] = None,
        default_fields: Iterable[str] = (),
    ):
        self.schema = schema
        self.fields = fields
        self.filter = filter or {}
        self.exclude = exclude or {}
        self.default_fields = tuple(default_fields)

    def __call__(self, feature: SourceFeature) -> Optional[OutputFeature]:
        if not feature.tags or not self.has_correct_tags(feature.tags):
            return None

        geometry = self.prepare_geometry(feature.geometry)
        if geometry is None:
            return None

        properties = dict.fromkeys(self.schema.property_names())
        properties[ID_FIELD] = feature.id
        for key, value in feature.tags.items():
            spec = self.fields.get(key)
            if spec is not None:
                properties[spec.name] = convert_value(value, spec.type)
        for name in self.default_fields:
            properties[name] = convert_value(feature.attributes.get(name), DEFAULT_FIELDS[name])

        return OutputFeature(id=feature.id, geometry=geometry, properties=properties)

    def has_correct_tags(self, tags: dict[str, str]) -> bool:
        """Exclude wins over filter; an empty filter accepts any tagged feature."""
        if self.exclude and _matches(tags, self.exclude):
            return False
        if self.filter:
            return _matches(tags, self.filter)
        return True

    def prepare_geometry(self, geometry: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
        """Return the geometry in the schema's kind, or None if it cannot be expressed."""
        if geometry is None or geometry.is_empty:
            return None

        kind = self.schema.geometry_kind
        if kind == GeometryKind.POINT:
            return geometry if isinstance(geometry, Point) else None
        if kind == GeometryKind.LINESTRING:
            return geometry if isinstance(geometry, LineString) else None
        if kind == GeometryKind.POLYGON:
            if isinstance(geometry, Polygon):
                return geometry
            # Closed ways become areas; open ways cannot
            if isinstance(geometry, LineString) and geometry.is_closed and len(geometry.coords) >= 4:
                return Polygon(geometry.coords)
            return None
        return geometry


# =============================================================================
# Rules and mappings
# =============================================================================

class MappingRule:
    """
    One output schema plus the transform that feeds it.

    The transform may be any callable SourceFeature -> Optional[OutputFeature];
    returning None excludes the feature from this rule's output.
    """

    def __init__(self, schema: OutputSchema, transform: Transform, name: Optional[str] = None):
        self._schema = schema
        self._transform = transform
        self._name = name or schema.table_name

    @property
    def name(self) -> str:
        return self._name

    @property
    def schema(self) -> OutputSchema:
        return self._schema

    @property
    def transform(self) -> Transform:
        return self._transform

    def apply(self, feature: SourceFeature) -> Optional[OutputFeature]:
        return self._transform(feature)

    @classmethod
    def from_definition(cls, definition: RuleDefinition) -> "MappingRule":
        """Build the output schema and tag transform for a parsed rule."""
        geometry_name = None
        geometry_kind = GeometryKind.UNKNOWN
        attributes = [FieldSpec(name=ID_FIELD, type=FieldType.LONG)]
        fields: dict[str, FieldSpec] = {}

        for tag_key, attribute in definition.fields.items():
            if attribute.type.is_geometry:
                geometry_name = attribute.name
                geometry_kind = attribute.type.geometry_kind
                continue
            spec = FieldSpec(name=attribute.name, type=attribute.type)
            attributes.append(spec)
            fields[tag_key] = spec

        for name in definition.default_fields:
            attributes.append(FieldSpec(name=name, type=DEFAULT_FIELDS[name]))

        schema = OutputSchema(
            name=definition.name,
            attributes=tuple(attributes),
            geometry_name=geometry_name,
            geometry_kind=geometry_kind,
        )
        transform = TagTransform(
            schema,
            fields,
            filter=definition.filter,
            exclude=definition.exclude,
            default_fields=definition.default_fields,
        )
        return cls(schema, transform, name=definition.name)

    def __repr__(self) -> str:
        return f"MappingRule(name={self.name!r}, geometry={self.schema.geometry_kind.value})"


class Mapping:
    """Ordered, immutable collection of mapping rules."""

    def __init__(self, rules: Iterable[MappingRule]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[MappingRule, ...]:
        return self._rules

    def __iter__(self) -> Iterator[MappingRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @classmethod
    def from_definition(cls, definition: MappingDefinition) -> "Mapping":
        return cls(MappingRule.from_definition(rule) for rule in definition.rules)

    @classmethod
    def from_file(cls, path: str | Path) -> "Mapping":
        """
        Load a mapping definition file.

        Args:
            path: YAML or JSON mapping file

        Returns:
            Mapping with one rule per definition entry, in file order

        Raises:
            MappingLoadError: If the file cannot be read, parsed or validated
        """
        path = Path(path)
        try:
            with open(path, encoding='utf-8') as f:
                # BaseLoader keeps scalars as strings so tag values like 'yes' stay intact
                raw = yaml.load(f, Loader=yaml.BaseLoader)
        except OSError as e:
            raise MappingLoadError(str(path), str(e)) from e
        except yaml.YAMLError as e:
            raise MappingLoadError(str(path), f"invalid YAML: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise MappingLoadError(str(path), "top level must be a mapping with a 'rules' list")

        try:
            definition = MappingDefinition(**raw)
        except ValidationError as e:
            raise MappingLoadError(str(path), str(e)) from e

        mapping = cls.from_definition(definition)
        logger.debug(f"Loaded {len(mapping)} mapping rules from {path}")
        return mapping
