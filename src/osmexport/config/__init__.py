"""
Configuration module for the OSM export pipeline.
"""

from .settings import (
    Config,
    ConfigurationError,
    ExportConfig,
)

__all__ = [
    'Config',
    'ConfigurationError',
    'ExportConfig',
]
