"""Schema factory for RelMap.

Builds SQLAlchemy `Table` objects from a frozen mapping registry and runs the
one-off schema generation step. Only the owning side of a one-to-one link gets
a foreign-key column.
"""

import logging
from enum import Enum
from functools import lru_cache

from sqlalchemy import Boolean, Column, Date, Engine, ForeignKey, Integer, MetaData, String, Table
from sqlalchemy import Enum as SAEnum
from sqlalchemy.types import TypeEngine

from relmap.mapping.descriptor import FieldType, ScalarField
from relmap.mapping.registry import MappingRegistry

logger = logging.getLogger("RelMap")


class SchemaGeneration(str, Enum):
    """Schema generation mode, read from configuration."""

    CREATE = "create"
    UPDATE = "update"
    NONE = "none"


def make_pk_column(name: str) -> Column:
    """Create an auto-increment integer primary key column."""
    return Column(name, Integer, primary_key=True, autoincrement=True)


def make_fk_column(name: str, ref_table: str, ref_column: str = "id") -> Column:
    """Create a nullable, unique foreign-key column for a one-to-one link."""
    return Column(name, Integer, ForeignKey(f"{ref_table}.{ref_column}"), nullable=True, unique=True)


def _column_type(scalar: ScalarField) -> TypeEngine:
    if scalar.field_type is FieldType.STRING:
        return String(255)
    if scalar.field_type is FieldType.DATE:
        return Date()
    if scalar.field_type is FieldType.BOOLEAN:
        return Boolean()
    if scalar.field_type is FieldType.INTEGER:
        return Integer()
    # enumerated strings store the member name
    return SAEnum(scalar.enum_cls, native_enum=False, validate_strings=True)


def make_scalar_column(scalar: ScalarField) -> Column:
    return Column(scalar.name, _column_type(scalar), nullable=scalar.nullable)


@lru_cache(maxsize=16)
def create_metadata(registry: MappingRegistry) -> MetaData:
    """Create table definitions for every entity in the registry.

    Results are cached per registry, so every session sharing a registry also
    shares its `Table` objects.

    Args:
        registry: The mapping registry. It is frozen if it is not already.

    Returns:
        MetaData holding one table per registered entity.
    """
    owned = {rel.owner_type: rel for rel in registry.relationships()}
    metadata = MetaData()

    for descriptor in registry.descriptors():
        columns = [make_pk_column(descriptor.primary_key_field)]
        columns.extend(make_scalar_column(scalar) for scalar in descriptor.scalar_fields)

        relationship = owned.get(descriptor.type_name)
        if relationship is not None:
            target = registry.resolve(relationship.inverse_type)
            columns.append(make_fk_column(relationship.join_column, target.table_name, target.primary_key_field))

        Table(descriptor.table_name, metadata, *columns)

    return metadata


def get_table(registry: MappingRegistry, type_name: str) -> Table:
    """Return the table mapped to a record type."""
    descriptor = registry.resolve(type_name)
    return create_metadata(registry).tables[descriptor.table_name]


def foreign_key_columns(table: Table) -> list[str]:
    """Return the names of the table's foreign-key columns."""
    return [column.name for column in table.columns if column.foreign_keys]


def create_schema(
    engine: Engine,
    registry: MappingRegistry,
    mode: SchemaGeneration | str = SchemaGeneration.CREATE,
) -> MetaData:
    """Generate the database schema for a registry.

    `create` drops and recreates every mapped table, so existing rows are lost.
    `update` only creates missing tables. `none` leaves the database untouched.

    Args:
        engine: SQLAlchemy engine to run DDL against.
        registry: The mapping registry.
        mode: Generation mode.

    Returns:
        The metadata the schema was generated from.
    """
    mode = SchemaGeneration(mode)
    metadata = create_metadata(registry)

    if mode is SchemaGeneration.NONE:
        logger.info("Schema generation disabled (mode 'none')")
        return metadata

    if mode is SchemaGeneration.CREATE:
        metadata.drop_all(engine)
    metadata.create_all(engine)

    logger.info(f"Schema generated in '{mode.value}' mode: {', '.join(sorted(metadata.tables))}")
    return metadata
