"""Declarative mapping metadata: entity and relationship descriptors, the registry, and lazy references."""

from relmap.mapping.descriptor import (
    EntityDeclaration,
    EntityDescriptor,
    FetchMode,
    FieldType,
    IdField,
    OneToOne,
    ScalarField,
)
from relmap.mapping.proxy import LazyReference, ProxyState
from relmap.mapping.registry import MappingRegistry, get_default_registry, reset_default_registry
from relmap.mapping.relationship import RelationshipDescriptor, resolve_ownership, resolve_unidirectional

__all__ = [
    "EntityDeclaration",
    "EntityDescriptor",
    "FetchMode",
    "FieldType",
    "IdField",
    "LazyReference",
    "MappingRegistry",
    "OneToOne",
    "ProxyState",
    "RelationshipDescriptor",
    "ScalarField",
    "get_default_registry",
    "reset_default_registry",
    "resolve_ownership",
    "resolve_unidirectional",
]
