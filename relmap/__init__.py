"""RelMap: a small object-relational mapping layer for one-to-one relationships."""

from relmap.mapping import (
    EntityDeclaration,
    EntityDescriptor,
    FetchMode,
    FieldType,
    IdField,
    LazyReference,
    MappingRegistry,
    OneToOne,
    ScalarField,
)
from relmap.orm.session import MappingSession

__all__ = [
    "EntityDeclaration",
    "EntityDescriptor",
    "FetchMode",
    "FieldType",
    "IdField",
    "LazyReference",
    "MappingRegistry",
    "MappingSession",
    "OneToOne",
    "ScalarField",
]
