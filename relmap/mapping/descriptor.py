"""Entity descriptors for RelMap.

An entity is declared once at startup with an explicit `EntityDeclaration`
and turned into an immutable `EntityDescriptor`:

    student = EntityDescriptor.from_declaration(
        EntityDeclaration(
            type_name="Student",
            table_name="student",
            entity_cls=Student,
            fields=[
                IdField("id"),
                ScalarField("name", FieldType.STRING),
                ScalarField("group", FieldType.ENUM, enum_cls=StudentGroup),
                OneToOne("id_card", target="IdCard"),
            ],
        )
    )

The side of a one-to-one link that leaves `mapped_by` unset owns the foreign key.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from relmap.exceptions import ConfigurationError


class FieldType(Enum):
    """Semantic type of a scalar field."""

    STRING = "string"
    DATE = "date"
    ENUM = "enum"
    BOOLEAN = "boolean"
    INTEGER = "integer"


class FetchMode(Enum):
    """How the related entity of a one-to-one field is loaded."""

    EAGER = "eager"
    LAZY = "lazy"


@dataclass(frozen=True)
class IdField:
    """Identifying field. Its value is generated on insert."""

    name: str


@dataclass(frozen=True)
class ScalarField:
    """A plain column-backed field."""

    name: str
    field_type: FieldType
    enum_cls: type[Enum] | None = None
    nullable: bool = True


@dataclass(frozen=True)
class OneToOne:
    """One-to-one relationship field.

    Attributes:
        name: Attribute name on the declaring entity.
        target: Type name of the related entity.
        mapped_by: Name of the owning field on `target`. Set it on the inverse side only.
        fetch: Whether the related entity is loaded with the declaring entity or on first access.
        join_column: Foreign-key column name on the owning side. Defaults to `<name>_id`.
    """

    name: str
    target: str
    mapped_by: str | None = None
    fetch: FetchMode = FetchMode.LAZY
    join_column: str | None = None

    @property
    def is_owning(self) -> bool:
        return self.mapped_by is None

    @property
    def column_name(self) -> str:
        return self.join_column or f"{self.name}_id"


FieldDeclaration = IdField | ScalarField | OneToOne


@dataclass(frozen=True)
class EntityDeclaration:
    """Explicit configuration struct for one record type."""

    type_name: str
    fields: Sequence[FieldDeclaration]
    table_name: str | None = None
    entity_cls: type | None = None


@dataclass(frozen=True)
class EntityDescriptor:
    """Immutable mapping metadata for one record type."""

    type_name: str
    table_name: str
    primary_key_field: str
    scalar_fields: tuple[ScalarField, ...] = ()
    # relationship values are reachable only through explicit accessors
    relationship_field: OneToOne | None = field(default=None, repr=False)
    entity_cls: type | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_declaration(cls, declaration: EntityDeclaration) -> "EntityDescriptor":
        """Validate a declaration and build its descriptor.

        Args:
            declaration: The record-type declaration.

        Returns:
            The frozen descriptor.

        Raises:
            ConfigurationError: If the declaration has zero or several identifying fields,
                several relationship fields, repeated field names, or an invalid field.
        """
        type_name = declaration.type_name
        id_fields = [f for f in declaration.fields if isinstance(f, IdField)]
        scalars = [f for f in declaration.fields if isinstance(f, ScalarField)]
        relationships = [f for f in declaration.fields if isinstance(f, OneToOne)]

        if len(id_fields) > 1:
            names = ", ".join(f.name for f in id_fields)
            raise ConfigurationError(type_name, f"more than one identifying field declared ({names})")
        if not id_fields:
            raise ConfigurationError(type_name, "no identifying field declared")
        if len(relationships) > 1:
            raise ConfigurationError(type_name, "at most one relationship field may be declared")

        seen: set[str] = set()
        for declared in declaration.fields:
            if declared.name in seen:
                raise ConfigurationError(type_name, f"field '{declared.name}' declared twice")
            seen.add(declared.name)

        for scalar in scalars:
            if scalar.field_type is FieldType.ENUM and scalar.enum_cls is None:
                raise ConfigurationError(type_name, f"enumerated field '{scalar.name}' needs an enum_cls")

        relationship = relationships[0] if relationships else None
        if relationship is not None:
            if relationship.target == type_name:
                raise ConfigurationError(type_name, "a one-to-one field cannot target its own type")
            if not relationship.is_owning and relationship.join_column is not None:
                raise ConfigurationError(
                    type_name, f"inverse field '{relationship.name}' cannot declare a join column"
                )
            if relationship.is_owning and relationship.column_name in seen:
                raise ConfigurationError(
                    type_name, f"join column '{relationship.column_name}' collides with a declared field"
                )

        return cls(
            type_name=type_name,
            table_name=declaration.table_name or type_name,
            primary_key_field=id_fields[0].name,
            scalar_fields=tuple(scalars),
            relationship_field=relationship,
            entity_cls=declaration.entity_cls,
        )

    @property
    def scalar_field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.scalar_fields)

    def has_relationship(self, field_name: str) -> bool:
        return self.relationship_field is not None and self.relationship_field.name == field_name
