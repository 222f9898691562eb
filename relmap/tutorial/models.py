"""Student / IdCard tutorial models.

A student owns the one-to-one link to an id card: the `student` table stores
`id_card_id`, while `IdCard.student` is the inverse side (`mapped_by="id_card"`)
with no column of its own.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from functools import lru_cache
from typing import Any

from relmap.mapping import (
    EntityDeclaration,
    EntityDescriptor,
    FetchMode,
    FieldType,
    IdField,
    MappingRegistry,
    OneToOne,
    ScalarField,
)


class StudentGroup(Enum):
    ROSE = "ROSE"
    LILY = "LILY"
    TULIP = "TULIP"
    DAISY = "DAISY"


@dataclass(eq=False)
class Student:
    name: str
    dob: date | None = None
    group: StudentGroup | None = None
    id: int | None = None
    id_card: Any = field(default=None, repr=False)


@dataclass(eq=False)
class IdCard:
    active: bool = True
    id: int | None = None
    student: Any = field(default=None, repr=False)


def student_declaration(fetch: FetchMode = FetchMode.LAZY) -> EntityDeclaration:
    return EntityDeclaration(
        type_name="Student",
        table_name="student",
        entity_cls=Student,
        fields=[
            IdField("id"),
            ScalarField("name", FieldType.STRING, nullable=False),
            ScalarField("dob", FieldType.DATE),
            ScalarField("group", FieldType.ENUM, enum_cls=StudentGroup),
            OneToOne("id_card", target="IdCard", fetch=fetch),
        ],
    )


def id_card_declaration(fetch: FetchMode = FetchMode.LAZY) -> EntityDeclaration:
    return EntityDeclaration(
        type_name="IdCard",
        table_name="id_card",
        entity_cls=IdCard,
        fields=[
            IdField("id"),
            ScalarField("active", FieldType.BOOLEAN, nullable=False),
            OneToOne("student", target="Student", mapped_by="id_card", fetch=fetch),
        ],
    )


@lru_cache(maxsize=4)
def build_registry(
    student_fetch: FetchMode = FetchMode.LAZY,
    card_fetch: FetchMode = FetchMode.LAZY,
) -> MappingRegistry:
    """Build and freeze the tutorial registry.

    Cached per fetch-mode combination, so sessions created for the same modes
    share one registry and one set of tables.
    """
    registry = MappingRegistry(
        [
            EntityDescriptor.from_declaration(student_declaration(student_fetch)),
            EntityDescriptor.from_declaration(id_card_declaration(card_fetch)),
        ]
    )
    registry.freeze()
    return registry
