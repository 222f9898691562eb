"""Unit of Work (UoW) pattern implementations for RelMap.

Provides transaction management and repository coordination:
- BaseUnitOfWork: Abstract base class with common patterns
- EnrollmentUnitOfWork: For the Student / IdCard tutorial entities
"""

from relmap.orm.uow.base import BaseUnitOfWork
from relmap.orm.uow.enrollment_uow import EnrollmentUnitOfWork

__all__ = [
    "BaseUnitOfWork",
    "EnrollmentUnitOfWork",
]
