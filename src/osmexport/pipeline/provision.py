"""
Table provisioning for destination stores.

Ensures the table of an output schema exists before an export: creates it
when absent, accepts it as-is when present and overwrite is requested, and
refuses otherwise. Created tables are never dropped again, even if the
following export fails.
"""

import logging

from ..domain.models import OutputSchema
from ..errors import SchemaCreationError, StoreError, TableConflictError
from .store import DataStore, TableHandle

logger = logging.getLogger(__name__)


def ensure_table(schema: OutputSchema, store: DataStore, overwrite: bool) -> TableHandle:
    """
    Make sure the destination table for `schema` exists.

    Args:
        schema: Output schema; its local name is the table name
        store: Open destination store
        overwrite: Whether an existing table may be reused

    Returns:
        Handle of the existing or newly created table

    Raises:
        TableConflictError: Table exists and overwrite is False
        SchemaCreationError: The store could not create the table
    """
    table_name = schema.table_name

    try:
        existing = store.list_table_names()
    except (OSError, StoreError) as e:
        raise SchemaCreationError(table_name, e) from e

    if table_name in existing:
        if not overwrite:
            raise TableConflictError(table_name)
        logger.info(f"Table {table_name} exists, it will be overwritten")
    else:
        try:
            store.create_schema(schema)
        except (OSError, StoreError) as e:
            raise SchemaCreationError(table_name, e) from e

    try:
        return store.get_table(table_name)
    except (OSError, StoreError) as e:
        raise SchemaCreationError(table_name, e) from e
