"""
Exception hierarchy for the export pipeline.

Invocation-level errors (configuration, mapping load) abort a run before any
rule executes. Rule-level errors carry the destination table name and map to
exactly one OutcomeStatus, so the orchestrator can record them per rule.
"""

from __future__ import annotations

from typing import Optional

from .domain.enums import ExportStatus, OutcomeStatus


class ExportError(Exception):
    """Base exception for export operations."""
    pass


class ConfigurationError(ExportError):
    """Raised when configuration is invalid or incomplete."""
    pass


class EmptyMappingError(ConfigurationError):
    """The mapping defines no rules."""
    def __init__(self, message: str = "No rules are defined in the specified mapping"):
        super().__init__(message)


class MappingLoadError(ExportError):
    """Malformed or unreadable mapping definition."""
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Cannot load mapping {path}: {message}")


class StoreError(ExportError):
    """I/O failure reported by the destination store."""
    pass


class RuleError(ExportError):
    """Failure attributed to a single mapping rule."""
    status = OutcomeStatus.DESTINATION_WRITE_FAILURE

    def __init__(self, table_name: Optional[str], message: str):
        self.table_name = table_name
        self.message = message
        super().__init__(message)


class TableConflictError(RuleError):
    """Destination table exists and overwrite was not requested."""
    status = OutcomeStatus.TABLE_CONFLICT

    def __init__(self, table_name: str):
        super().__init__(table_name, "The selected table already exists. Use -o to overwrite")


class SchemaCreationError(RuleError):
    """Destination store could not create the table."""
    status = OutcomeStatus.SCHEMA_CREATION_FAILURE

    def __init__(self, table_name: str, cause: Exception):
        self.cause = cause
        super().__init__(table_name, f"Cannot create new table {table_name}: {cause}")


class UnsupportedDestinationError(RuleError):
    """Table handle does not support writes."""
    status = OutcomeStatus.UNSUPPORTED_DESTINATION

    def __init__(self, table_name: str):
        super().__init__(table_name, f"Could not create feature store for {table_name}: table is read-only")


class DestinationWriteError(RuleError):
    """Clearing or writing the destination table failed."""
    status = OutcomeStatus.DESTINATION_WRITE_FAILURE


class InvalidMappingError(RuleError):
    """A rule or its transform rejected its input during the export."""
    status = OutcomeStatus.INVALID_MAPPING


class ExportMechanicsError(RuleError):
    """The export machinery reported a structured status code."""
    status = OutcomeStatus.EXPORT_MECHANICS_FAILURE

    def __init__(self, status_code: ExportStatus, message: Optional[str] = None,
                 table_name: Optional[str] = None):
        self.status_code = status_code
        super().__init__(table_name, message or f"Could not export. Error: {status_code.value}")


class ExportCanceledError(RuleError):
    """The progress listener requested cancellation."""
    status = OutcomeStatus.CANCELED

    def __init__(self, table_name: Optional[str] = None):
        super().__init__(table_name, "Export canceled")
