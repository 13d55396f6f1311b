"""
Domain Models and Types

This module contains the core domain models and enumerations used throughout the pipeline.

Models:
- OutputSchema / FieldSpec: Typed schema of one destination table
- SourceFeature / OutputFeature: Records flowing from repository to store
- ExportOutcome: Per-rule export result

Enums:
- GeometryKind: Declared geometry kind of a schema
- FieldType: Attribute types of mapping definitions
- OriginCollection: Source collections (node, way)
- OutcomeStatus / FailurePolicy: Outcome classification and cross-rule policy
- StoreFormat: Destination store formats (gpkg, spatialite)
- ExportStatus: Export mechanics status codes
"""

from .enums import (
    ExportStatus,
    FailurePolicy,
    FieldType,
    GeometryKind,
    OriginCollection,
    OutcomeStatus,
    StoreFormat,
)
from .models import ExportOutcome, FieldSpec, OutputFeature, OutputSchema, SourceFeature

__all__ = [
    "ExportOutcome", "FieldSpec", "OutputFeature", "OutputSchema", "SourceFeature",
    "ExportStatus", "FailurePolicy", "FieldType", "GeometryKind", "OriginCollection",
    "OutcomeStatus", "StoreFormat"
]
