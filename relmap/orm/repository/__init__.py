from relmap.orm.repository.base import GenericRepository
from relmap.orm.repository.id_card import IdCardRepository
from relmap.orm.repository.student import StudentRepository

__all__ = [
    "GenericRepository",
    "IdCardRepository",
    "StudentRepository",
]
