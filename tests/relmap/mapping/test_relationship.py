"""Tests for ownership resolution in relmap.mapping.relationship."""

import pytest

from relmap.exceptions import ConfigurationError
from relmap.mapping import (
    EntityDeclaration,
    EntityDescriptor,
    FetchMode,
    IdField,
    OneToOne,
    resolve_ownership,
    resolve_unidirectional,
)


def _descriptor(type_name: str, relationship: OneToOne | None = None) -> EntityDescriptor:
    fields = [IdField("id")]
    if relationship is not None:
        fields.append(relationship)
    return EntityDescriptor.from_declaration(EntityDeclaration(type_name, fields=fields))


@pytest.fixture
def owner() -> EntityDescriptor:
    return _descriptor("Student", OneToOne("id_card", target="IdCard", fetch=FetchMode.EAGER))


@pytest.fixture
def inverse() -> EntityDescriptor:
    return _descriptor("IdCard", OneToOne("student", target="Student", mapped_by="id_card"))


class TestResolveOwnership:
    def test_owner_is_side_without_mapped_by(self, owner, inverse):
        relationship = resolve_ownership(owner, inverse)

        assert relationship.owner_type == "Student"
        assert relationship.inverse_type == "IdCard"
        assert relationship.owning_field_name == "id_card"
        assert relationship.inverse_field_name == "student"
        assert relationship.join_column == "id_card_id"
        assert relationship.fetch_mode is FetchMode.EAGER
        assert relationship.inverse_fetch_mode is FetchMode.LAZY

    def test_argument_order_does_not_matter(self, owner, inverse):
        assert resolve_ownership(inverse, owner) == resolve_ownership(owner, inverse)

    def test_neither_side_inverse_is_ambiguous(self, owner):
        both_owning = _descriptor("IdCard", OneToOne("student", target="Student"))

        with pytest.raises(ConfigurationError, match="ambiguous"):
            resolve_ownership(owner, both_owning)

    def test_both_sides_inverse_has_no_owner(self, inverse):
        other_inverse = _descriptor("Student", OneToOne("id_card", target="IdCard", mapped_by="student"))

        with pytest.raises(ConfigurationError, match="no owning side"):
            resolve_ownership(other_inverse, inverse)

    def test_mapped_by_must_name_owner_field(self, owner):
        wrong_partner = _descriptor("IdCard", OneToOne("student", target="Student", mapped_by="card"))

        with pytest.raises(ConfigurationError, match="mapped by 'card'"):
            resolve_ownership(owner, wrong_partner)

    def test_target_mismatch_fails(self, inverse):
        stranger = _descriptor("Course", OneToOne("id_card", target="IdCard"))

        with pytest.raises(ConfigurationError, match="does not target"):
            resolve_ownership(stranger, inverse)


class TestSideQueries:
    def test_is_owning_side(self, owner, inverse):
        relationship = resolve_ownership(owner, inverse)

        assert relationship.is_owning_side("Student", "id_card")
        assert not relationship.is_owning_side("IdCard", "student")
        with pytest.raises(ValueError):
            relationship.is_owning_side("IdCard", "id_card")

    def test_partner_and_fetch_mode_per_side(self, owner, inverse):
        relationship = resolve_ownership(owner, inverse)

        assert relationship.partner_of("Student", "id_card") == ("IdCard", "student")
        assert relationship.partner_of("IdCard", "student") == ("Student", "id_card")
        assert relationship.fetch_mode_for("Student", "id_card") is FetchMode.EAGER
        assert relationship.fetch_mode_for("IdCard", "student") is FetchMode.LAZY


class TestResolveUnidirectional:
    def test_owning_field_without_back_reference(self, owner):
        card = _descriptor("IdCard")

        relationship = resolve_unidirectional(owner, card)

        assert relationship.inverse_field_name is None
        assert not relationship.is_bidirectional
        assert relationship.join_column == "id_card_id"

    def test_mapped_by_without_partner_field_fails(self, inverse):
        student = _descriptor("Student")

        with pytest.raises(ConfigurationError, match="declares no relationship field back"):
            resolve_unidirectional(inverse, student)
