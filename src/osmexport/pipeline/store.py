"""
Destination Stores - SQLite-based Spatial Tables

Defines the store/table interface the export core relies on, and the
fiona-backed implementation for GeoPackage and SpatiaLite files.

Store interface:
- list_table_names(): tables currently present
- create_schema(schema): create an empty table for an OutputSchema
- get_table(name): handle with remove_all() and write(records)
- close(): release the store (also via context manager)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from pathlib import Path

import fiona
from fiona.errors import FionaError

from ..domain.enums import ExportStatus, StoreFormat
from ..domain.models import OutputFeature, OutputSchema
from ..errors import ExportMechanicsError, StoreError

logger = logging.getLogger(__name__)


class TableHandle:
    """Handle on one destination table."""

    writable = True

    def __init__(self, name: str):
        self.name = name

    def remove_all(self) -> None:
        raise NotImplementedError

    def write(self, records: Iterable[OutputFeature]) -> int:
        """Append records as one write operation, returning the number written."""
        raise NotImplementedError


class DataStore:
    """A destination store connection. Use as a context manager."""

    def list_table_names(self) -> list[str]:
        raise NotImplementedError

    def create_schema(self, schema: OutputSchema) -> None:
        raise NotImplementedError

    def get_table(self, name: str) -> TableHandle:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class OGRTableHandle(TableHandle):
    """Table inside a GeoPackage or SpatiaLite file."""

    def __init__(self, store: "OGRDataStore", name: str):
        super().__init__(name)
        self.store = store

    def remove_all(self) -> None:
        self.store._check_open()
        try:
            conn = sqlite3.connect(self.store.path)
            try:
                with conn:
                    conn.execute(f'DELETE FROM "{self.name}"')
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreError(f"Error truncating table {self.name}: {e}") from e
        logger.debug(f"Removed all features from {self.name}")

    def write(self, records: Iterable[OutputFeature]) -> int:
        self.store._check_open()
        try:
            dst = fiona.open(
                str(self.store.path), "a", driver=self.store.store_format.driver, layer=self.name
            )
        except (OSError, FionaError) as e:
            raise StoreError(f"Cannot open table {self.name} for writing: {e}") from e

        count = 0
        # Records consumed before an upstream failure stay written
        with dst:
            for feature in records:
                try:
                    dst.write(feature.to_record())
                except (FionaError, ValueError, TypeError) as e:
                    raise ExportMechanicsError(
                        ExportStatus.UNABLE_TO_ADD,
                        f"Unable to add feature {feature.id} to {self.name}: {e}",
                        table_name=self.name,
                    ) from e
                count += 1

        logger.debug(f"Wrote {count:,} features to {self.name}")
        return count


class OGRDataStore(DataStore):
    """GeoPackage / SpatiaLite store accessed through fiona (GDAL/OGR)."""

    def __init__(self, path: str | Path, store_format: StoreFormat = StoreFormat.GPKG):
        self.path = Path(path)
        self.store_format = StoreFormat(store_format)
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StoreError(f"Data store {self.path} is closed")

    def list_table_names(self) -> list[str]:
        self._check_open()
        if not self.path.exists():
            return []
        try:
            return list(fiona.listlayers(str(self.path)))
        except (OSError, FionaError) as e:
            raise StoreError(f"Cannot list tables of {self.path}: {e}") from e

    def create_schema(self, schema: OutputSchema) -> None:
        self._check_open()
        options = {}
        if self.store_format == StoreFormat.SPATIALITE and not self.path.exists():
            options["SPATIALITE"] = "YES"

        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with fiona.open(
                str(self.path),
                "w",
                driver=self.store_format.driver,
                layer=schema.table_name,
                schema=schema.to_fiona_schema(),
                crs=schema.crs,
                **options,
            ):
                pass
        except (OSError, FionaError) as e:
            raise StoreError(str(e)) from e
        logger.info(f"Created table {schema.table_name} in {self.path}")

    def get_table(self, name: str) -> OGRTableHandle:
        self._check_open()
        if name not in self.list_table_names():
            raise StoreError(f"Table {name} does not exist in {self.path}")
        return OGRTableHandle(self, name)

    def close(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        return f"OGRDataStore({self.path}, {self.store_format.value})"


def open_store(path: str | Path, store_format: StoreFormat = StoreFormat.GPKG) -> OGRDataStore:
    """Open (lazily) the destination store file."""
    return OGRDataStore(path, store_format)
