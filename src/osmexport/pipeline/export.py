"""
ExportExecutor - Rule-level Export

Streams one origin collection through a rule's transform into a prepared
destination table and classifies whatever goes wrong into an ExportOutcome.

Steps for one rule:
1. Refuse read-only tables
2. Clear the table when overwriting
3. Hand a lazy stream of transformed records to a single table write
4. Observe cancellation between records
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Optional

from ..domain.enums import OutcomeStatus
from ..domain.models import ExportOutcome, OutputFeature
from ..errors import (
    DestinationWriteError,
    ExportCanceledError,
    InvalidMappingError,
    RuleError,
    StoreError,
    UnsupportedDestinationError,
)
from ..mapping import MappingRule
from .progress import ProgressListener
from .source import FeatureRepository
from .store import TableHandle

logger = logging.getLogger(__name__)


class ExportExecutor:
    """
    Exports single mapping rules from a feature repository.

    The executor never opens or closes destination stores; callers own the
    store scope and pass in a table handle obtained from it.
    """

    def __init__(self, repository: FeatureRepository):
        self.repository = repository

    def export(
        self,
        rule: MappingRule,
        path: str,
        table: TableHandle,
        overwrite: bool,
        progress: Optional[ProgressListener] = None,
    ) -> ExportOutcome:
        """
        Export one rule and report the result as an outcome.

        Args:
            rule: Mapping rule providing the transform
            path: Origin collection to read ("node" or "way")
            table: Writable destination table handle
            overwrite: Clear the table before writing
            progress: Listener for progress and cancellation

        Returns:
            ExportOutcome with SUCCESS or the classified failure
        """
        try:
            written = self.run(rule, path, table, overwrite, progress)
        except RuleError as e:
            return failure_outcome(rule, table.name, e)

        logger.info(f"OSM data exported successfully to {table.name} ({written:,} features)")
        return ExportOutcome(
            rule_name=rule.name,
            table_name=table.name,
            status=OutcomeStatus.SUCCESS,
            message=f"OSM data exported successfully to {table.name}",
            features_written=written,
        )

    def run(
        self,
        rule: MappingRule,
        path: str,
        table: TableHandle,
        overwrite: bool,
        progress: Optional[ProgressListener] = None,
    ) -> int:
        """
        Raising variant of `export`.

        Returns:
            Number of records written

        Raises:
            RuleError: Classified failure for this rule
        """
        if not table.writable:
            raise UnsupportedDestinationError(table.name)

        if overwrite:
            try:
                table.remove_all()
            except (OSError, StoreError) as e:
                raise DestinationWriteError(table.name, f"Error truncating table {table.name}: {e}") from e

        progress = progress or ProgressListener(rule.name)
        records = self._stream(rule, path, table.name, progress)

        try:
            return table.write(records)
        except RuleError as e:
            if e.table_name is None:
                e.table_name = table.name
            raise
        except ValueError as e:
            raise InvalidMappingError(table.name, str(e)) from e
        except (OSError, StoreError) as e:
            raise DestinationWriteError(table.name, f"Error writing to table {table.name}: {e}") from e

    def _stream(
        self, rule: MappingRule, path: str, table_name: str, progress: ProgressListener
    ) -> Iterator[OutputFeature]:
        for feature in self.repository.read_features(path, rule.apply, None, progress):
            if progress.is_canceled:
                raise ExportCanceledError(table_name)
            yield feature


def failure_outcome(rule: MappingRule, table_name: str, error: RuleError) -> ExportOutcome:
    """Build the outcome of a rule that failed with `error`."""
    status_code = getattr(error, "status_code", None)
    if error.status == OutcomeStatus.CANCELED:
        logger.warning(f"Export of rule '{rule.name}' to {table_name} canceled")
    else:
        logger.error(f"Export of rule '{rule.name}' to {table_name} failed: {error.message}")
    return ExportOutcome(
        rule_name=rule.name,
        table_name=error.table_name or table_name,
        status=error.status,
        message=error.message,
        status_code=status_code.value if status_code is not None else None,
    )
