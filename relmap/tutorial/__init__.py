"""Student / IdCard one-to-one tutorial: mapped models and the sample programs."""

from relmap.tutorial.models import IdCard, Student, StudentGroup, build_registry

__all__ = ["IdCard", "Student", "StudentGroup", "build_registry"]
