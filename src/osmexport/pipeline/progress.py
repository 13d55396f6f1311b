"""
Progress reporting and cancellation channel.

The export step reports progress per processed source feature and checks
`is_canceled` between record writes, so a listener canceled from elsewhere
(e.g. a signal handler) stops the current rule at the next feature.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ProgressListener:
    """Counts processed features and carries the cancellation flag."""

    def __init__(self, description: Optional[str] = None):
        self.description = description
        self.progress = 0
        self._canceled = False
        self._completed = False

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    @property
    def is_completed(self) -> bool:
        return self._completed

    def cancel(self) -> None:
        self._canceled = True

    def started(self) -> None:
        self.progress = 0
        self._completed = False

    def set_progress(self, count: int) -> None:
        self.progress = count

    def complete(self) -> None:
        self._completed = True


class LoggingProgressListener(ProgressListener):
    """Progress listener that logs every `interval` features."""

    def __init__(self, description: Optional[str] = None, interval: int = 1000):
        super().__init__(description)
        self.interval = max(1, interval)

    def started(self) -> None:
        super().started()
        logger.info(f"Exporting {self.description or 'features'}...")

    def set_progress(self, count: int) -> None:
        super().set_progress(count)
        if count % self.interval == 0:
            logger.info(f"{self.description or 'Export'}: {count:,} features processed")

    def complete(self) -> None:
        super().complete()
        logger.info(f"{self.description or 'Export'}: finished after {self.progress:,} features")
