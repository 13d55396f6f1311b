"""
Feature Repository - OSM Source Collections

The repository exposes the two OSM origin collections (``node`` and ``way``)
as a sequential feed. ``read_features`` applies a filter and a per-feature
transform during the feed, reports progress per source feature and yields
only the features the transform produced.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Optional

import fiona
import geopandas as gpd
import pandas as pd
from fiona.errors import FionaError

from ..domain.enums import ExportStatus, OriginCollection
from ..domain.models import OutputFeature, SourceFeature
from ..errors import ExportCanceledError, ExportMechanicsError, InvalidMappingError
from .progress import ProgressListener

logger = logging.getLogger(__name__)

# OSM metadata columns copied into SourceFeature.attributes when present
METADATA_COLUMNS = ("version", "timestamp", "changeset", "user")

DEFAULT_BATCH_SIZE = 10_000

# Failures raised by fiona, pyogrio (RuntimeError subclasses) and row conversion
SOURCE_ERRORS = (OSError, RuntimeError, AttributeError, KeyError, TypeError, ValueError, FionaError)

FeatureFilter = Callable[[SourceFeature], bool]


class FeatureRepository:
    """
    Base class of read-only OSM feature sources.

    Subclasses implement `has_collection` and `_iter_source`; the feed logic
    (filtering, transform, progress) lives here and is shared by all sources.
    """

    def has_collection(self, collection: OriginCollection) -> bool:
        raise NotImplementedError

    def _iter_source(self, collection: OriginCollection) -> Iterator[SourceFeature]:
        raise NotImplementedError

    def read_features(
        self,
        path: str,
        transform: Callable[[SourceFeature], Optional[OutputFeature]],
        feature_filter: Optional[FeatureFilter] = None,
        progress: Optional[ProgressListener] = None,
    ) -> Iterator[OutputFeature]:
        """
        Stream transformed features of one origin collection.

        Args:
            path: Origin collection name ("node" or "way")
            transform: Per-feature mapping; None results are skipped
            feature_filter: Optional predicate applied before the transform
            progress: Listener notified once per source feature

        Yields:
            OutputFeature for every source feature the transform maps

        Raises:
            ValueError: If path is not an origin collection
            ExportMechanicsError: NO_FEATURES_FOUND if the collection does not exist
            InvalidMappingError: If the transform raises
        """
        try:
            collection = OriginCollection(path)
        except ValueError:
            raise ValueError(f"Invalid path '{path}': expected one of node, way") from None

        if not self.has_collection(collection):
            raise ExportMechanicsError(
                ExportStatus.NO_FEATURES_FOUND, f"No features found for path '{collection.value}'"
            )

        progress = progress or ProgressListener()
        progress.started()

        count = 0
        for feature in self._iter_source(collection):
            if progress.is_canceled:
                raise ExportCanceledError()

            count += 1
            progress.set_progress(count)

            if feature_filter is not None and not feature_filter(feature):
                continue

            try:
                mapped = transform(feature)
            except Exception as e:
                raise InvalidMappingError(None, str(e)) from e

            if mapped is not None:
                yield mapped
                # A cancel raised while the consumer handled this feature stops the feed before the next read
                if progress.is_canceled:
                    raise ExportCanceledError()

        progress.complete()
        logger.debug(f"Read {count:,} features from '{collection.value}'")


def _parse_tags(value: Any) -> dict[str, str]:
    if value is None or (not isinstance(value, (dict, str)) and pd.isna(value)):
        return {}
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items()}
    try:
        tags = json.loads(value) if value else {}
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed tags value: {value[:80]!r}")
        return {}
    if not isinstance(tags, dict):
        logger.warning(f"Ignoring non-object tags value: {value[:80]!r}")
        return {}
    return {str(k): str(v) for k, v in tags.items()}


class LayerFeatureRepository(FeatureRepository):
    """
    Repository backed by a layered spatial file (e.g. a GeoPackage snapshot).

    The file holds one layer per origin collection (``node``, ``way``) with an
    ``id`` column, a ``tags`` column containing a JSON object, the geometry and
    optional OSM metadata columns.

    Layers are read in batches of ``batch_size`` rows, so memory stays bounded
    and a canceled listener is seen before the next batch is loaded.
    """

    def __init__(self, path: str | Path, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("Batch size must be positive")
        self.path = Path(path)
        self.batch_size = batch_size

    def has_collection(self, collection: OriginCollection) -> bool:
        if not self.path.exists():
            logger.error(f"Repository file not found: {self.path}")
            return False
        try:
            return collection.value in fiona.listlayers(str(self.path))
        except SOURCE_ERRORS as e:
            raise self._read_error(collection, e) from e

    def _iter_source(self, collection: OriginCollection) -> Iterator[SourceFeature]:
        try:
            with fiona.open(str(self.path), layer=collection.value) as src:
                total = len(src)
        except SOURCE_ERRORS as e:
            raise self._read_error(collection, e) from e
        logger.info(f"Reading {total:,} {collection.value} features from {self.path}")

        for start in range(0, total, self.batch_size):
            try:
                frame = gpd.read_file(
                    self.path, layer=collection.value, rows=slice(start, start + self.batch_size)
                )
                batch = [self._to_feature(frame, row) for _, row in frame.iterrows()]
            except SOURCE_ERRORS as e:
                raise self._read_error(collection, e) from e
            logger.debug(f"Loaded {collection.value} features {start:,}-{start + len(batch):,}")

            yield from batch

    @staticmethod
    def _to_feature(frame: gpd.GeoDataFrame, row: pd.Series) -> SourceFeature:
        attributes = {c: row[c] for c in METADATA_COLUMNS if c in frame.columns and not pd.isna(row[c])}
        geometry = row[frame.geometry.name]
        return SourceFeature(
            id=int(row["id"]),
            tags=_parse_tags(row.get("tags")),
            geometry=None if geometry is None or pd.isna(geometry) else geometry,
            attributes=attributes,
        )

    def _read_error(self, collection: OriginCollection, cause: Exception) -> ExportMechanicsError:
        if isinstance(cause, KeyError):
            cause = f"missing column {cause}"
        return ExportMechanicsError(
            ExportStatus.SOURCE_READ_FAILURE,
            f"Cannot read '{collection.value}' features from {self.path}: {cause}",
        )

    def __repr__(self) -> str:
        return f"LayerFeatureRepository({self.path})"
