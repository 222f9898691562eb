from sqlalchemy import inspect

from relmap.orm.schema_factory import (
    SchemaGeneration,
    create_metadata,
    create_schema,
    foreign_key_columns,
    get_table,
)


def test_only_owner_table_has_foreign_key(registry):
    student = get_table(registry, "Student")
    id_card = get_table(registry, "IdCard")

    assert foreign_key_columns(student) == ["id_card_id"]
    assert foreign_key_columns(id_card) == []
    assert "student_id" not in id_card.c


def test_foreign_key_references_inverse_primary_key(registry):
    column = get_table(registry, "Student").c.id_card_id
    (fk,) = column.foreign_keys

    assert fk.target_fullname == "id_card.id"
    assert column.nullable
    assert column.unique


def test_columns_follow_declared_fields(registry):
    student = get_table(registry, "Student")

    assert list(student.c.keys()) == ["id", "name", "dob", "group", "id_card_id"]
    assert student.c.id.primary_key
    assert not student.c.name.nullable


def test_metadata_is_cached_per_registry(registry, eager_registry):
    assert create_metadata(registry) is create_metadata(registry)
    assert create_metadata(registry) is not create_metadata(eager_registry)


def test_create_mode_builds_tables(db_engine, registry):
    create_schema(db_engine, registry, SchemaGeneration.CREATE)

    inspector = inspect(db_engine)
    assert sorted(inspector.get_table_names()) == ["id_card", "student"]
    student_fks = inspector.get_foreign_keys("student")
    assert [fk["constrained_columns"] for fk in student_fks] == [["id_card_id"]]
    assert inspector.get_foreign_keys("id_card") == []


def test_none_mode_leaves_database_untouched(db_engine, registry):
    create_schema(db_engine, registry, "none")

    assert inspect(db_engine).get_table_names() == []


def test_update_mode_keeps_existing_rows(db_engine, registry):
    create_schema(db_engine, registry, "create")
    with db_engine.begin() as conn:
        conn.execute(get_table(registry, "IdCard").insert().values(active=True))

    create_schema(db_engine, registry, "update")
    with db_engine.connect() as conn:
        assert conn.execute(get_table(registry, "IdCard").select()).all() != []

    create_schema(db_engine, registry, "create")
    with db_engine.connect() as conn:
        assert conn.execute(get_table(registry, "IdCard").select()).all() == []
