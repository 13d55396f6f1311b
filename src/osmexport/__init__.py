"""
osmexport - Mapping-driven OSM export to SpatiaLite/GeoPackage

Exports the node and way collections of an OSM feature repository into
strongly-typed destination tables, one table per mapping rule.
"""

__version__ = "0.1.0"

from .mapping import Mapping, MappingRule
from .pipeline.orchestrator import ExportOrchestrator

__all__ = ["Mapping", "MappingRule", "ExportOrchestrator", "__version__"]
