"""
Export Pipeline Components

This module provides the export architecture following the Source → Transform → Store pattern.

Components:
- source: FeatureRepository feeds of the node and way collections
- classify: origin collection lookup for output schemas
- provision: destination table creation and overwrite checks
- export: ExportExecutor for single rules
- orchestrator: ExportOrchestrator for whole mappings
- store: GeoPackage/SpatiaLite destination stores
- progress: progress and cancellation listeners
"""

from .classify import origin_collection
from .export import ExportExecutor
from .orchestrator import ExportOrchestrator
from .progress import LoggingProgressListener, ProgressListener
from .provision import ensure_table
from .source import FeatureRepository, LayerFeatureRepository
from .store import DataStore, OGRDataStore, TableHandle, open_store

__all__ = [
    "origin_collection", "ensure_table", "ExportExecutor", "ExportOrchestrator",
    "FeatureRepository", "LayerFeatureRepository", "DataStore", "OGRDataStore",
    "TableHandle", "open_store", "ProgressListener", "LoggingProgressListener"
]
