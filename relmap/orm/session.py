"""Mapping session: the persistence runtime for RelMap entities.

`MappingSession` turns registry descriptors into SQL with SQLAlchemy Core:
`persist` inserts rows and assigns generated primary keys, `find` loads rows
by primary key and wires up the one-to-one relationship, either inline
(`EAGER`, one outer join) or through a `LazyReference` (`LAZY`).

Entities are plain Python objects. The mapped class must accept its field
names as keyword arguments, which dataclasses do.

    with MappingSession(engine, registry) as session:
        session.begin_transaction()
        session.persist(Student(name="Jack", dob=date(2000, 1, 1), group=StudentGroup.ROSE,
                                id_card=IdCard(active=True)))
        session.commit()
"""

import logging
from typing import Any

from sqlalchemy import Connection, Engine, RootTransaction, Table, insert, select, update
from typing_extensions import Self

from relmap.exceptions import (
    ConfigurationError,
    DanglingReferenceError,
    DetachedEntityError,
    NotFoundError,
    TransactionRequiredError,
)
from relmap.mapping.descriptor import EntityDescriptor, FetchMode
from relmap.mapping.proxy import LazyReference
from relmap.mapping.registry import MappingRegistry, get_default_registry
from relmap.mapping.relationship import RelationshipDescriptor
from relmap.orm.schema_factory import get_table

logger = logging.getLogger("RelMap")

_FK_STATE_KEY = "__foreign_key__"


def _link_back(entity: Any, field_name: str, partner: Any) -> bool:
    """Point `entity.field_name` at `partner` unless it already holds a loaded entity.

    A lazy reference is always replaced, resolved or not.
    """
    current = getattr(entity, field_name, None)
    if current is partner:
        return False
    if current is None or isinstance(current, LazyReference):
        setattr(entity, field_name, partner)
        return True
    return False


class MappingSession:
    """Unit-of-work boundary over one database connection.

    The session keeps an identity map: within one session a primary key maps to
    exactly one entity object. Writes require an explicit transaction.
    """

    def __init__(self, engine: Engine, registry: MappingRegistry | None = None):
        """Initialize the session.

        Args:
            engine: SQLAlchemy engine to connect with.
            registry: Mapping registry. If None, uses the process-wide default registry.
        """
        self.engine = engine
        self.registry = registry if registry is not None else get_default_registry()
        self.registry.freeze()

        self._connection: Connection | None = None
        self._transaction: RootTransaction | None = None
        self._identity_map: dict[tuple[str, Any], Any] = {}
        self._snapshots: dict[tuple[str, Any], dict[str, Any]] = {}
        self._managed: dict[int, tuple[str, Any]] = {}
        self._in_progress: set[int] = set()

    # ------------------------------------------------------------------
    # transaction lifecycle
    # ------------------------------------------------------------------

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            self._connection = self.engine.connect()
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    def begin_transaction(self) -> None:
        """Start an explicit transaction.

        Raises:
            RuntimeError: If a transaction is already active.
        """
        if self.in_transaction:
            raise RuntimeError("A transaction is already active.")  # noqa: TRY003
        connection = self.connection
        if connection.in_transaction():
            # ends the implicit transaction opened by reads
            connection.rollback()
        self._transaction = connection.begin()

    def commit(self) -> None:
        """Flush pending changes and commit the active transaction.

        Raises:
            TransactionRequiredError: If no transaction is active.
        """
        self._require_transaction("commit")
        self.flush()
        assert self._transaction is not None  # noqa: S101
        self._transaction.commit()
        self._transaction = None
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """Roll back the active transaction and detach every managed entity."""
        if self._transaction is not None:
            self._transaction.rollback()
            self._transaction = None
            logger.debug("Transaction rolled back")
        self._clear()

    def close(self) -> None:
        """Roll back any open transaction and release the connection."""
        if self.in_transaction:
            self.rollback()
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        self._transaction = None
        self._clear()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None:
            self.rollback()
        self.close()

    def _require_transaction(self, operation: str) -> None:
        if not self.in_transaction:
            raise TransactionRequiredError(operation)

    def _clear(self) -> None:
        self._identity_map.clear()
        self._snapshots.clear()
        self._managed.clear()
        self._in_progress.clear()

    # ------------------------------------------------------------------
    # identity map
    # ------------------------------------------------------------------

    def __contains__(self, entity: object) -> bool:
        return id(entity) in self._managed

    def _manage(self, descriptor: EntityDescriptor, entity: Any, primary_key: Any) -> None:
        identity = (descriptor.type_name, primary_key)
        self._identity_map[identity] = entity
        self._managed[id(entity)] = identity
        self._snapshots[identity] = self._capture(descriptor, entity)

    def _capture(self, descriptor: EntityDescriptor, entity: Any) -> dict[str, Any]:
        state = {name: getattr(entity, name, None) for name in descriptor.scalar_field_names}
        state[descriptor.primary_key_field] = getattr(entity, descriptor.primary_key_field, None)
        relationship = self._owning_relationship(descriptor)
        if relationship is not None:
            related = getattr(entity, relationship.owning_field_name, None)
            state[_FK_STATE_KEY] = self._foreign_key_of(relationship, related, cascade=False)
        return state

    def _owning_relationship(self, descriptor: EntityDescriptor) -> RelationshipDescriptor | None:
        rel_field = descriptor.relationship_field
        if rel_field is None:
            return None
        relationship = self.registry.resolve_relationship(descriptor.type_name, rel_field.name)
        if relationship.is_owning_side(descriptor.type_name, rel_field.name):
            return relationship
        return None

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def persist(self, entity: Any) -> Any:
        """Insert a new entity and assign its primary key.

        An unmanaged entity on the other side of the one-to-one link is persisted
        too, in the order that lets the owner row store the foreign key.

        Args:
            entity: Instance of a mapped class.

        Returns:
            The same entity, now managed by this session.

        Raises:
            TransactionRequiredError: If no transaction is active.
            DetachedEntityError: If the entity already has a primary key but is not managed here.
        """
        self._require_transaction("persist")
        return self._persist(entity)

    def _persist(self, entity: Any) -> Any:
        descriptor = self.registry.for_entity(entity)
        if entity in self:
            _, primary_key = self._managed[id(entity)]
            if getattr(entity, descriptor.primary_key_field, None) != primary_key:
                raise ConfigurationError(descriptor.type_name, "the primary key of a managed entity cannot change")
            return entity

        existing_pk = getattr(entity, descriptor.primary_key_field, None)
        if existing_pk is not None:
            raise DetachedEntityError(descriptor.type_name, existing_pk)

        self._in_progress.add(id(entity))
        try:
            values = {name: getattr(entity, name, None) for name in descriptor.scalar_field_names}

            relationship = None
            related = None
            rel_field = descriptor.relationship_field
            if rel_field is not None:
                relationship = self.registry.resolve_relationship(descriptor.type_name, rel_field.name)
                related = getattr(entity, rel_field.name, None)
                if relationship.is_owning_side(descriptor.type_name, rel_field.name):
                    values[relationship.join_column] = self._foreign_key_of(relationship, related, cascade=True)

            table = get_table(self.registry, descriptor.type_name)
            result = self.connection.execute(insert(table).values(**values))
            primary_key = result.inserted_primary_key[0]
            setattr(entity, descriptor.primary_key_field, primary_key)
            self._manage(descriptor, entity, primary_key)
            logger.debug(f"Persisted {descriptor.type_name}({primary_key})")

            if relationship is not None and related is not None and rel_field is not None:
                if relationship.is_owning_side(descriptor.type_name, rel_field.name):
                    if not isinstance(related, LazyReference) and relationship.inverse_field_name is not None:
                        _link_back(related, relationship.inverse_field_name, entity)
                else:
                    self._persist_owner_of(relationship, entity, related)
        finally:
            self._in_progress.discard(id(entity))

        return entity

    def _persist_owner_of(self, relationship: RelationshipDescriptor, inverse: Any, owner: Any) -> None:
        """Cascade from the inverse side: make the owner point back and persist it if needed."""
        if isinstance(owner, LazyReference) or id(owner) in self._in_progress:
            return
        current = getattr(owner, relationship.owning_field_name, None)
        if current is None:
            setattr(owner, relationship.owning_field_name, inverse)
        elif current is not inverse:
            logger.warning(
                f"{relationship.inverse_type}.{relationship.inverse_field_name} and "
                f"{relationship.owner_type}.{relationship.owning_field_name} disagree; the owning side is stored"
            )
        if owner not in self:
            self._persist(owner)

    def _foreign_key_of(self, relationship: RelationshipDescriptor, related: Any, cascade: bool) -> Any:
        """Return the key an owner row stores for `related`."""
        if related is None:
            return None
        if isinstance(related, LazyReference):
            return related.key

        target = self.registry.for_entity(related)
        if target.type_name != relationship.inverse_type:
            raise TypeError(  # noqa: TRY003
                f"{relationship.owner_type}.{relationship.owning_field_name} expects "
                f"'{relationship.inverse_type}', got '{target.type_name}'"
            )
        if cascade and related not in self and id(related) not in self._in_progress:
            self._persist(related)
        return getattr(related, target.primary_key_field, None)

    def flush(self) -> None:
        """Write changed scalar fields and owner links of managed entities.

        Raises:
            TransactionRequiredError: If no transaction is active.
            ConfigurationError: If the primary key of a managed entity was changed.
        """
        self._require_transaction("flush")
        for identity, entity in list(self._identity_map.items()):
            type_name, primary_key = identity
            descriptor = self.registry.resolve(type_name)
            if getattr(entity, descriptor.primary_key_field, None) != primary_key:
                raise ConfigurationError(type_name, "the primary key of a managed entity cannot change")

            relationship = self._owning_relationship(descriptor)
            if relationship is not None:
                related = getattr(entity, relationship.owning_field_name, None)
                self._foreign_key_of(relationship, related, cascade=True)

            before = self._snapshots[identity]
            after = self._capture(descriptor, entity)
            changes = {k: v for k, v in after.items() if before.get(k) != v}
            if not changes:
                continue

            if _FK_STATE_KEY in changes:
                assert relationship is not None  # noqa: S101
                changes[relationship.join_column] = changes.pop(_FK_STATE_KEY)

            table = get_table(self.registry, type_name)
            pk_column = table.c[descriptor.primary_key_field]
            self.connection.execute(update(table).where(pk_column == primary_key).values(**changes))
            self._snapshots[identity] = after
            logger.debug(f"Updated {type_name}({primary_key}): {', '.join(sorted(changes))}")

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def find(self, type_name: str, primary_key: Any) -> Any:
        """Load an entity by primary key.

        Args:
            type_name: Registered record type.
            primary_key: Primary key value.

        Returns:
            The entity. Repeated calls in one session return the same object.

        Raises:
            UnknownTypeError: If the type is not registered.
            NotFoundError: If no row has this primary key.
            DanglingReferenceError: If an eager relationship points to a missing row.
        """
        descriptor = self.registry.resolve(type_name)
        cached = self._identity_map.get((type_name, primary_key))
        if cached is not None:
            return cached

        rel_field = descriptor.relationship_field
        if rel_field is not None:
            relationship = self.registry.resolve_relationship(type_name, rel_field.name)
            if relationship.fetch_mode_for(type_name, rel_field.name) is FetchMode.EAGER:
                return self._find_eager(descriptor, relationship, primary_key)

        table = get_table(self.registry, type_name)
        stmt = select(table).where(table.c[descriptor.primary_key_field] == primary_key)
        row = self.connection.execute(stmt).mappings().one_or_none()
        if row is None:
            raise NotFoundError(type_name, primary_key)

        entity = self._hydrate(descriptor, dict(row))
        if rel_field is not None:
            self._attach_lazy(descriptor, relationship, entity, row)
        logger.debug(f"Loaded {type_name}({primary_key})")
        return entity

    def _find_eager(self, descriptor: EntityDescriptor, relationship: RelationshipDescriptor, primary_key: Any) -> Any:
        type_name = descriptor.type_name
        owning = relationship.owner_type == type_name
        partner_type = relationship.inverse_type if owning else relationship.owner_type
        partner = self.registry.resolve(partner_type)

        table = get_table(self.registry, type_name)
        partner_table = get_table(self.registry, partner_type)
        if owning:
            on = table.c[relationship.join_column] == partner_table.c[partner.primary_key_field]
        else:
            on = partner_table.c[relationship.join_column] == table.c[descriptor.primary_key_field]

        stmt = (
            select(table, partner_table)
            .select_from(table.outerjoin(partner_table, on))
            .where(table.c[descriptor.primary_key_field] == primary_key)
        )
        row = self.connection.execute(stmt).one_or_none()
        if row is None:
            raise NotFoundError(type_name, primary_key)

        mapping = row._mapping
        own_values = {column.name: mapping[column] for column in table.columns}
        partner_values = {column.name: mapping[column] for column in partner_table.columns}

        if owning and own_values[relationship.join_column] is not None and partner_values[partner.primary_key_field] is None:
            raise DanglingReferenceError(partner_type, own_values[relationship.join_column])

        entity = self._hydrate(descriptor, own_values)
        related = None
        if partner_values[partner.primary_key_field] is not None:
            related = self._hydrate(partner, partner_values)
            partner_field = relationship.inverse_field_name if owning else relationship.owning_field_name
            if partner_field is not None:
                _link_back(related, partner_field, entity)

        assert descriptor.relationship_field is not None  # noqa: S101
        setattr(entity, descriptor.relationship_field.name, related)
        self._refresh_snapshot(descriptor, entity)
        if related is not None:
            self._refresh_snapshot(partner, related)
        logger.debug(f"Loaded {type_name}({primary_key}) with {partner_type} eagerly")
        return entity

    def _attach_lazy(
        self, descriptor: EntityDescriptor, relationship: RelationshipDescriptor, entity: Any, row: Any
    ) -> None:
        assert descriptor.relationship_field is not None  # noqa: S101
        field_name = descriptor.relationship_field.name
        if getattr(entity, field_name, None) is not None:
            return

        if relationship.is_owning_side(descriptor.type_name, field_name):
            key = row[relationship.join_column]
            if key is None:
                return

            def resolve_owned(target_type: str, target_key: Any) -> Any:
                related = self.find(target_type, target_key)
                if relationship.inverse_field_name is not None:
                    _link_back(related, relationship.inverse_field_name, entity)
                return related

            setattr(entity, field_name, LazyReference(relationship.inverse_type, key, resolve_owned))
        else:
            owner_key = self._owner_key_of(relationship, row[descriptor.primary_key_field])
            if owner_key is None:
                return

            def resolve_owner(owner_type: str, key: Any) -> Any:
                owner = self.find(owner_type, key)
                if _link_back(owner, relationship.owning_field_name, entity):
                    self._refresh_snapshot(self.registry.resolve(owner_type), owner)
                return owner

            setattr(entity, field_name, LazyReference(relationship.owner_type, owner_key, resolve_owner))
        self._refresh_snapshot(descriptor, entity)

    def _owner_key_of(self, relationship: RelationshipDescriptor, inverse_key: Any) -> Any:
        """Return the primary key of the owner whose foreign key points at `inverse_key`, or None."""
        owner_descriptor = self.registry.resolve(relationship.owner_type)
        table = get_table(self.registry, relationship.owner_type)
        stmt = select(table.c[owner_descriptor.primary_key_field]).where(
            table.c[relationship.join_column] == inverse_key
        )
        return self.connection.execute(stmt).scalar_one_or_none()

    def _hydrate(self, descriptor: EntityDescriptor, values: dict[str, Any]) -> Any:
        primary_key = values[descriptor.primary_key_field]
        cached = self._identity_map.get((descriptor.type_name, primary_key))
        if cached is not None:
            return cached

        if descriptor.entity_cls is None:
            raise ConfigurationError(descriptor.type_name, "no entity class mapped, rows cannot be loaded")

        kwargs = {name: values[name] for name in descriptor.scalar_field_names}
        kwargs[descriptor.primary_key_field] = primary_key
        entity = descriptor.entity_cls(**kwargs)
        self._manage(descriptor, entity, primary_key)
        return entity

    def _refresh_snapshot(self, descriptor: EntityDescriptor, entity: Any) -> None:
        identity = self._managed.get(id(entity))
        if identity is not None:
            self._snapshots[identity] = self._capture(descriptor, entity)

    def related_id(self, entity: Any, field_name: str) -> Any:
        """Return the primary key of the entity on the other end of a one-to-one field.

        On the owning side this is the stored foreign key and nothing is loaded.
        On the inverse side the key is the one found when the entity was loaded.

        Raises:
            NoSuchRelationshipError: If the field is not a relationship field.
        """
        descriptor = self.registry.for_entity(entity)
        relationship = self.registry.resolve_relationship(descriptor.type_name, field_name)
        value = getattr(entity, field_name, None)

        if relationship.is_owning_side(descriptor.type_name, field_name):
            return self._foreign_key_of(relationship, value, cascade=False)

        if isinstance(value, LazyReference):
            return value.key
        if value is None:
            return None
        owner = self.registry.resolve(relationship.owner_type)
        return getattr(value, owner.primary_key_field, None)

    def table_for(self, type_name: str) -> Table:
        return get_table(self.registry, type_name)
