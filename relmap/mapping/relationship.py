"""Relationship descriptors and ownership resolution.

A one-to-one link is stored in exactly one table: the owner's. The inverse side
names the owning field through `mapped_by` and has no column of its own.
"""

import logging
from dataclasses import dataclass

from relmap.exceptions import ConfigurationError
from relmap.mapping.descriptor import EntityDescriptor, FetchMode

logger = logging.getLogger("RelMap")


@dataclass(frozen=True)
class RelationshipDescriptor:
    """A resolved one-to-one link between two record types."""

    owner_type: str
    inverse_type: str
    owning_field_name: str
    inverse_field_name: str | None
    join_column: str
    owner_fetch_mode: FetchMode = FetchMode.LAZY
    inverse_fetch_mode: FetchMode | None = None

    @property
    def fetch_mode(self) -> FetchMode:
        return self.owner_fetch_mode

    @property
    def is_bidirectional(self) -> bool:
        return self.inverse_field_name is not None

    def is_owning_side(self, type_name: str, field_name: str) -> bool:
        """Return True if the field is the owning field of this link.

        Raises:
            ValueError: If the field does not take part in this link.
        """
        if type_name == self.owner_type and field_name == self.owning_field_name:
            return True
        if type_name == self.inverse_type and field_name == self.inverse_field_name:
            return False
        raise ValueError(f"'{type_name}.{field_name}' is not part of this relationship.")  # noqa: TRY003

    def fetch_mode_for(self, type_name: str, field_name: str) -> FetchMode:
        if self.is_owning_side(type_name, field_name):
            return self.owner_fetch_mode
        return self.inverse_fetch_mode or FetchMode.LAZY

    def partner_of(self, type_name: str, field_name: str) -> tuple[str, str | None]:
        """Return the (type, field) on the other end of the link."""
        if self.is_owning_side(type_name, field_name):
            return self.inverse_type, self.inverse_field_name
        return self.owner_type, self.owning_field_name


def resolve_ownership(left: EntityDescriptor, right: EntityDescriptor) -> RelationshipDescriptor:
    """Decide which of two mutually referencing entities owns the foreign key.

    Args:
        left: Descriptor whose relationship field targets `right`.
        right: Descriptor whose relationship field targets `left`.

    Returns:
        The resolved relationship descriptor.

    Raises:
        ConfigurationError: If ownership is missing, doubled, or the two fields do not
            point at each other.
    """
    left_field = left.relationship_field
    right_field = right.relationship_field
    if left_field is None or right_field is None:
        missing = left if left_field is None else right
        raise ConfigurationError(missing.type_name, "no relationship field to pair")

    if left_field.target != right.type_name:
        raise ConfigurationError(left.type_name, f"field '{left_field.name}' does not target '{right.type_name}'")
    if right_field.target != left.type_name:
        raise ConfigurationError(right.type_name, f"field '{right_field.name}' does not target '{left.type_name}'")

    if left_field.is_owning and right_field.is_owning:
        raise ConfigurationError(
            left.type_name,
            f"ambiguous one-to-one with '{right.type_name}': neither '{left_field.name}' nor "
            f"'{right_field.name}' is marked as the inverse side (set mapped_by on one of them); "
            "both tables would carry a foreign key",
        )
    if not left_field.is_owning and not right_field.is_owning:
        raise ConfigurationError(
            left.type_name,
            f"one-to-one with '{right.type_name}' has no owning side: both fields declare mapped_by",
        )

    owner, inverse = (left, right) if left_field.is_owning else (right, left)
    owner_field = owner.relationship_field
    inverse_field = inverse.relationship_field
    assert owner_field is not None and inverse_field is not None  # noqa: S101

    if inverse_field.mapped_by != owner_field.name:
        raise ConfigurationError(
            inverse.type_name,
            f"field '{inverse_field.name}' is mapped by '{inverse_field.mapped_by}', "
            f"but the owning field on '{owner.type_name}' is '{owner_field.name}'",
        )

    logger.debug(
        f"Resolved one-to-one {owner.type_name}.{owner_field.name} -> "
        f"{inverse.type_name}.{inverse_field.name} (owner: {owner.type_name})"
    )
    return RelationshipDescriptor(
        owner_type=owner.type_name,
        inverse_type=inverse.type_name,
        owning_field_name=owner_field.name,
        inverse_field_name=inverse_field.name,
        join_column=owner_field.column_name,
        owner_fetch_mode=owner_field.fetch,
        inverse_fetch_mode=inverse_field.fetch,
    )


def resolve_unidirectional(owner: EntityDescriptor, target: EntityDescriptor) -> RelationshipDescriptor:
    """Resolve a one-to-one field whose target declares no field back.

    Raises:
        ConfigurationError: If the field claims to be an inverse side.
    """
    owner_field = owner.relationship_field
    if owner_field is None:
        raise ConfigurationError(owner.type_name, "no relationship field to resolve")
    if not owner_field.is_owning:
        raise ConfigurationError(
            owner.type_name,
            f"field '{owner_field.name}' is mapped by '{owner_field.mapped_by}', "
            f"but '{target.type_name}' declares no relationship field back",
        )
    return RelationshipDescriptor(
        owner_type=owner.type_name,
        inverse_type=target.type_name,
        owning_field_name=owner_field.name,
        inverse_field_name=None,
        join_column=owner_field.column_name,
        owner_fetch_mode=owner_field.fetch,
    )
