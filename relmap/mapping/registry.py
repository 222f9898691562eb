"""Mapping registry for RelMap.

The registry has two phases. During startup, descriptors are registered. The
first read (or an explicit `freeze()`) validates every relationship, pairs
owning and inverse sides, and freezes the registry. After that no writes are
accepted, so concurrent readers need no locking.
"""

import logging
import threading
from collections.abc import Iterable
from typing import Any

from relmap.exceptions import (
    ConfigurationError,
    DuplicateRegistrationError,
    NoSuchRelationshipError,
    RegistryFrozenError,
    UnknownTypeError,
)
from relmap.mapping.descriptor import EntityDescriptor
from relmap.mapping.relationship import RelationshipDescriptor, resolve_ownership, resolve_unidirectional

logger = logging.getLogger("RelMap")


class MappingRegistry:
    """Process-wide table from record type to entity descriptor."""

    def __init__(self, descriptors: Iterable[EntityDescriptor] | None = None):
        self._descriptors: dict[str, EntityDescriptor] = {}
        self._by_class: dict[type, EntityDescriptor] = {}
        self._relationships: dict[tuple[str, str], RelationshipDescriptor] = {}
        self._write_lock = threading.Lock()
        self._frozen = False

        for descriptor in descriptors or ():
            self.register(descriptor)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, entity_descriptor: EntityDescriptor) -> None:
        """Add a descriptor.

        Raises:
            DuplicateRegistrationError: If the type is already registered.
            RegistryFrozenError: If the registry has already been read or frozen.
        """
        type_name = entity_descriptor.type_name
        with self._write_lock:
            if self._frozen:
                raise RegistryFrozenError(type_name)
            if type_name in self._descriptors:
                raise DuplicateRegistrationError(type_name)
            self._descriptors[type_name] = entity_descriptor
        logger.debug(f"Registered entity '{type_name}' (table '{entity_descriptor.table_name}')")

    def freeze(self) -> None:
        """Validate relationships and forbid further registrations.

        Safe to call more than once.

        Raises:
            ConfigurationError: If a relationship targets an unregistered type or its
                ownership is ambiguous or inconsistent.
        """
        if self._frozen:
            return
        with self._write_lock:
            if self._frozen:
                return
            self._relationships = self._build_relationships()
            self._by_class = {d.entity_cls: d for d in self._descriptors.values() if d.entity_cls is not None}
            self._frozen = True
        logger.info(
            f"Mapping registry frozen with {len(self._descriptors)} entities "
            f"and {len(set(self._relationships.values()))} relationships"
        )

    def _build_relationships(self) -> dict[tuple[str, str], RelationshipDescriptor]:
        tables: dict[str, str] = {}
        for descriptor in self._descriptors.values():
            other = tables.setdefault(descriptor.table_name, descriptor.type_name)
            if other != descriptor.type_name:
                raise ConfigurationError(
                    descriptor.type_name, f"table '{descriptor.table_name}' is already mapped by '{other}'"
                )

        relationships: dict[tuple[str, str], RelationshipDescriptor] = {}
        for descriptor in self._descriptors.values():
            rel_field = descriptor.relationship_field
            if rel_field is None or (descriptor.type_name, rel_field.name) in relationships:
                continue

            target = self._descriptors.get(rel_field.target)
            if target is None:
                raise ConfigurationError(
                    descriptor.type_name,
                    f"relationship field '{rel_field.name}' targets unregistered type '{rel_field.target}'",
                )

            back_field = target.relationship_field
            if back_field is not None and back_field.target == descriptor.type_name:
                relationship = resolve_ownership(descriptor, target)
            else:
                relationship = resolve_unidirectional(descriptor, target)

            relationships[(relationship.owner_type, relationship.owning_field_name)] = relationship
            if relationship.inverse_field_name is not None:
                relationships[(relationship.inverse_type, relationship.inverse_field_name)] = relationship
        return relationships

    def resolve(self, type_name: str) -> EntityDescriptor:
        """Return the descriptor for a record type.

        Raises:
            UnknownTypeError: If the type is not registered.
        """
        self.freeze()
        descriptor = self._descriptors.get(type_name)
        if descriptor is None:
            raise UnknownTypeError(type_name)
        return descriptor

    def resolve_relationship(self, type_name: str, field_name: str) -> RelationshipDescriptor:
        """Return the relationship descriptor behind a field.

        Raises:
            UnknownTypeError: If the type is not registered.
            NoSuchRelationshipError: If the field is not a relationship field of the type.
        """
        self.resolve(type_name)
        relationship = self._relationships.get((type_name, field_name))
        if relationship is None:
            raise NoSuchRelationshipError(type_name, field_name)
        return relationship

    def for_entity(self, entity: Any) -> EntityDescriptor:
        """Return the descriptor mapped to an entity instance's class.

        Raises:
            UnknownTypeError: If the class is not mapped.
        """
        self.freeze()
        for cls in type(entity).__mro__:
            descriptor = self._by_class.get(cls)
            if descriptor is not None:
                return descriptor
        raise UnknownTypeError(type(entity).__name__)

    def descriptors(self) -> list[EntityDescriptor]:
        """Return all descriptors in registration order."""
        self.freeze()
        return list(self._descriptors.values())

    def relationships(self) -> list[RelationshipDescriptor]:
        """Return each relationship descriptor once."""
        self.freeze()
        return list(dict.fromkeys(self._relationships.values()))

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)


_default_registry: MappingRegistry | None = None
_default_lock = threading.Lock()


def get_default_registry() -> MappingRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _default_registry
    if _default_registry is None:
        with _default_lock:
            if _default_registry is None:
                _default_registry = MappingRegistry()
    return _default_registry


def reset_default_registry() -> None:
    """Drop the process-wide registry. Intended for tests."""
    global _default_registry
    with _default_lock:
        _default_registry = None
