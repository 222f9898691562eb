from datetime import date

import pytest
from sqlalchemy import text

from relmap.exceptions import (
    ConfigurationError,
    DanglingReferenceError,
    DetachedEntityError,
    NotFoundError,
    TransactionRequiredError,
    UnknownTypeError,
)
from relmap.mapping import LazyReference, ProxyState
from relmap.orm.session import MappingSession
from relmap.tutorial.models import IdCard, Student, StudentGroup


def _enroll(session_factory, name: str = "Jack", active: bool = True) -> Student:
    with session_factory() as session:
        session.begin_transaction()
        student = Student(
            name=name,
            dob=date(2000, 1, 1),
            group=StudentGroup.ROSE,
            id_card=IdCard(active=active),
        )
        session.persist(student)
        session.commit()
    return student


class TestPersist:
    def test_persist_assigns_keys_and_foreign_key(self, session_factory, db_engine):
        student = _enroll(session_factory)

        assert student.id is not None
        assert student.id_card.id is not None
        assert student.id_card.student is student
        with db_engine.connect() as conn:
            stored = conn.execute(text("SELECT id_card_id FROM student WHERE id = :id"), {"id": student.id}).scalar()
        assert stored == student.id_card.id

    def test_persist_requires_transaction(self, db_session):
        with pytest.raises(TransactionRequiredError):
            db_session.persist(Student(name="Jack"))

    def test_persist_detached_entity_fails(self, db_session):
        db_session.begin_transaction()

        with pytest.raises(DetachedEntityError):
            db_session.persist(Student(name="Jack", id=5))

    def test_persist_is_idempotent_for_managed_entity(self, db_session):
        db_session.begin_transaction()
        student = db_session.persist(Student(name="Jack"))

        assert db_session.persist(student) is student
        assert student in db_session

    def test_persist_from_inverse_side_cascades_to_owner(self, session_factory, db_engine):
        card = IdCard(active=True)
        card.student = Student(name="Ann")
        with session_factory() as session:
            session.begin_transaction()
            session.persist(card)
            session.commit()

        assert card.student.id is not None
        assert card.student.id_card is card
        with db_engine.connect() as conn:
            stored = conn.execute(text("SELECT id_card_id FROM student WHERE name = 'Ann'")).scalar()
        assert stored == card.id

    def test_changed_primary_key_fails(self, db_session):
        db_session.begin_transaction()
        student = db_session.persist(Student(name="Jack"))
        student.id = student.id + 100

        with pytest.raises(ConfigurationError, match="primary key"):
            db_session.persist(student)
        with pytest.raises(ConfigurationError, match="primary key"):
            db_session.flush()

    def test_wrong_related_type_fails(self, db_session):
        db_session.begin_transaction()

        with pytest.raises(TypeError, match="expects 'IdCard'"):
            db_session.persist(Student(name="Jack", id_card=Student(name="Jill")))

    def test_rollback_detaches_entities(self, db_session, session_factory):
        db_session.begin_transaction()
        student = db_session.persist(Student(name="Jack"))

        db_session.rollback()

        assert student not in db_session
        with session_factory() as session, pytest.raises(NotFoundError):
            session.find("Student", student.id)

    def test_double_begin_fails(self, db_session):
        db_session.begin_transaction()

        with pytest.raises(RuntimeError):
            db_session.begin_transaction()


class TestFlush:
    def test_changed_scalars_are_written_on_commit(self, session_factory):
        jack = _enroll(session_factory)

        with session_factory() as session:
            session.begin_transaction()
            student = session.find("Student", jack.id)
            student.name = "Jill"
            student.group = StudentGroup.DAISY
            session.commit()

        with session_factory() as session:
            reloaded = session.find("Student", jack.id)
            assert reloaded.name == "Jill"
            assert reloaded.group is StudentGroup.DAISY

    def test_reassigning_owner_field_updates_foreign_key(self, session_factory):
        jack = _enroll(session_factory)

        with session_factory() as session:
            session.begin_transaction()
            student = session.find("Student", jack.id)
            replacement = IdCard(active=False)
            student.id_card = replacement
            session.commit()

        assert replacement.id is not None
        with session_factory() as session:
            assert session.related_id(session.find("Student", jack.id), "id_card") == replacement.id

    def test_flush_requires_transaction(self, db_session):
        with pytest.raises(TransactionRequiredError):
            db_session.flush()


class TestFind:
    def test_find_round_trip(self, session_factory):
        jack = _enroll(session_factory)

        with session_factory() as session:
            student = session.find("Student", jack.id)

            assert student.name == "Jack"
            assert student.dob == date(2000, 1, 1)
            assert student.group is StudentGroup.ROSE
            assert session.related_id(student, "id_card") == jack.id_card.id

    def test_missing_row(self, db_session):
        with pytest.raises(NotFoundError):
            db_session.find("Student", 999)

    def test_unknown_type(self, db_session):
        with pytest.raises(UnknownTypeError):
            db_session.find("Course", 1)

    def test_identity_map_returns_same_object(self, session_factory):
        jack = _enroll(session_factory)

        with session_factory() as session:
            assert session.find("Student", jack.id) is session.find("Student", jack.id)

    def test_lazy_owner_side_defers_card_query(self, session_factory, statements):
        jack = _enroll(session_factory)
        statements.clear()

        with session_factory() as session:
            student = session.find("Student", jack.id)

            assert isinstance(student.id_card, LazyReference)
            assert student.id_card.state is ProxyState.UNRESOLVED
            assert session.related_id(student, "id_card") == jack.id_card.id
            assert not any("FROM id_card" in s for s in statements)

            assert student.id_card.active is True
            assert any("FROM id_card" in s for s in statements)
            assert student.id_card.student is student

    def test_lazy_inverse_side_resolves_owner(self, session_factory):
        jack = _enroll(session_factory)

        with session_factory() as session:
            card = session.find("IdCard", jack.id_card.id)

            assert isinstance(card.student, LazyReference)
            assert card.student.name == "Jack"
            assert card.student.id_card is card
            assert session.related_id(card, "student") == jack.id

    def test_lazy_inverse_side_without_owner_is_none(self, session_factory):
        with session_factory() as session:
            session.begin_transaction()
            card = session.persist(IdCard(active=True))
            session.commit()

        with session_factory() as session:
            loaded = session.find("IdCard", card.id)

            assert loaded.student is None
            assert session.related_id(loaded, "student") is None

    def test_lazy_inverse_proxy_defers_owner_load(self, session_factory, statements):
        jack = _enroll(session_factory)

        with session_factory() as session:
            card = session.find("IdCard", jack.id_card.id)
            statements.clear()

            assert card.student.key == jack.id
            assert card.student.state is ProxyState.UNRESOLVED
            assert statements == []

            assert card.student.name == "Jack"
            assert card.student.state is ProxyState.RESOLVED

    def test_linking_unowned_card_replaces_its_reference(self, session_factory):
        with session_factory() as session:
            session.begin_transaction()
            card = session.persist(IdCard(active=True))
            session.commit()

        with session_factory() as session:
            session.begin_transaction()
            loaded = session.find("IdCard", card.id)
            assert loaded.student is None

            jack = session.persist(Student(name="Jack", id_card=loaded))
            session.commit()

            assert loaded.student is jack

        with session_factory() as session:
            assert session.find("IdCard", card.id).student.name == "Jack"

    def test_link_back_replaces_resolved_reference(self, session_factory):
        with session_factory() as session:
            session.begin_transaction()
            card = session.persist(IdCard(active=True))
            stale = LazyReference("Student", 99, lambda type_name, key: None)
            assert stale.resolve() is None
            card.student = stale

            jack = session.persist(Student(name="Jack", id_card=card))

            assert card.student is jack
            session.commit()

    def test_eager_owner_side_uses_single_join(self, session_factory, eager_session_factory, statements):
        jack = _enroll(session_factory)
        statements.clear()

        with eager_session_factory() as session:
            student = session.find("Student", jack.id)

            assert len(statements) == 1
            assert "JOIN id_card" in statements[0]
            assert isinstance(student.id_card, IdCard)
            assert student.id_card.active is True
            assert student.id_card.student is student
            assert len(statements) == 1

    def test_eager_inverse_side_loads_owner(self, session_factory, eager_session_factory):
        jack = _enroll(session_factory)

        with eager_session_factory() as session:
            card = session.find("IdCard", jack.id_card.id)

            assert isinstance(card.student, Student)
            assert card.student.name == "Jack"
            assert card.student.id_card is card

    def test_eager_without_card(self, session_factory, eager_session_factory):
        with session_factory() as session:
            session.begin_transaction()
            student = session.persist(Student(name="Solo"))
            session.commit()

        with eager_session_factory() as session:
            assert session.find("Student", student.id).id_card is None


class TestDanglingReference:
    @pytest.fixture
    def orphan(self, session_factory, db_engine) -> Student:
        jack = _enroll(session_factory)
        with db_engine.begin() as conn:
            conn.execute(text("DELETE FROM id_card"))
        return jack

    def test_lazy_access_raises_dangling(self, session_factory, orphan):
        with session_factory() as session:
            student = session.find("Student", orphan.id)

            assert session.related_id(student, "id_card") == orphan.id_card.id
            with pytest.raises(DanglingReferenceError):
                _ = student.id_card.active
            assert student.id_card.state is ProxyState.FAILED

    def test_eager_find_raises_dangling(self, eager_session_factory, orphan):
        with eager_session_factory() as session, pytest.raises(DanglingReferenceError):
            session.find("Student", orphan.id)


def test_session_uses_default_registry_when_none_given(db_engine, monkeypatch, registry):
    monkeypatch.setattr("relmap.orm.session.get_default_registry", lambda: registry)

    session = MappingSession(db_engine)

    assert session.registry is registry
    session.close()
