"""
ExportOrchestrator - Mapping-level Export

Runs every rule of a Mapping in declaration order. Each rule gets its own
destination store connection, opened before provisioning and released when
the rule finishes, whatever the result. Rule failures become outcomes; the
failure policy decides whether later rules still run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from ..domain.enums import FailurePolicy, OutcomeStatus
from ..domain.models import ExportOutcome
from ..errors import EmptyMappingError, RuleError
from ..mapping import Mapping, MappingRule
from .classify import origin_collection
from .export import ExportExecutor, failure_outcome
from .progress import ProgressListener
from .provision import ensure_table
from .source import FeatureRepository
from .store import DataStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], DataStore]
ProgressFactory = Callable[[MappingRule], ProgressListener]


class ExportOrchestrator:
    """
    Exports all rules of a mapping into a destination store.

    Example:
        orchestrator = ExportOrchestrator(LayerFeatureRepository("osm.gpkg"),
                                          lambda: open_store("out.gpkg"))
        outcomes = orchestrator.run(Mapping.from_file("mapping.yml"), overwrite=True)
    """

    def __init__(
        self,
        repository: FeatureRepository,
        store_factory: StoreFactory,
        policy: FailurePolicy = FailurePolicy.CONTINUE,
    ):
        self.repository = repository
        self.store_factory = store_factory
        self.policy = FailurePolicy(policy)
        self.executor = ExportExecutor(repository)

    def run(
        self,
        mapping: Mapping,
        overwrite: bool = False,
        progress_factory: Optional[ProgressFactory] = None,
    ) -> list[ExportOutcome]:
        """
        Export every rule of `mapping`.

        Args:
            mapping: Rules to export, in order
            overwrite: Clear and reuse existing tables instead of failing
            progress_factory: Builds the progress listener of each rule

        Returns:
            One ExportOutcome per rule, in mapping order

        Raises:
            EmptyMappingError: If the mapping has no rules (before any store is opened)
        """
        if len(mapping) == 0:
            raise EmptyMappingError()

        outcomes: list[ExportOutcome] = []
        stop_reason: Optional[str] = None

        for rule in mapping:
            if stop_reason is not None:
                outcomes.append(ExportOutcome(
                    rule_name=rule.name,
                    table_name=rule.schema.table_name,
                    status=OutcomeStatus.SKIPPED,
                    message=stop_reason,
                ))
                continue

            progress = progress_factory(rule) if progress_factory else ProgressListener(rule.name)
            outcome = self.export_rule(rule, overwrite, progress)
            outcomes.append(outcome)

            if outcome.status == OutcomeStatus.CANCELED:
                stop_reason = f"Not exported: run canceled during rule '{rule.name}'"
            elif not outcome.succeeded and self.policy == FailurePolicy.FAIL_FAST:
                stop_reason = f"Not exported: rule '{rule.name}' failed"

        succeeded = sum(1 for o in outcomes if o.succeeded)
        logger.info(f"Export finished: {succeeded}/{len(outcomes)} rules succeeded")
        return outcomes

    def export_rule(
        self, rule: MappingRule, overwrite: bool, progress: ProgressListener
    ) -> ExportOutcome:
        """Provision and export a single rule inside its own store scope."""
        path = origin_collection(rule.schema)
        table_name = rule.schema.table_name
        logger.info(f"Exporting rule '{rule.name}' from '{path.value}' to table {table_name}")

        with self.store_factory() as store:
            try:
                table = ensure_table(rule.schema, store, overwrite)
            except RuleError as e:
                return failure_outcome(rule, table_name, e)
            return self.executor.export(rule, path.value, table, overwrite, progress)
