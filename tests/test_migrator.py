"""
Legacy database migration tests, run against two SQLite files
"""

from datetime import date, datetime
from unittest import mock

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from lms_backend.core.database import Base
from lms_backend.scripts import migrate_mysql_to_postgres as migrator

LEGACY_USER_TABLE = """
CREATE TABLE "User" (
    id VARCHAR(36) PRIMARY KEY,
    fullName VARCHAR(255) NOT NULL,
    phoneNumber VARCHAR(32) NOT NULL,
    email VARCHAR(255) NOT NULL,
    password VARCHAR(255),
    role VARCHAR(16) NOT NULL,
    balance FLOAT NOT NULL,
    isActive BOOLEAN NOT NULL,
    createdAt DATETIME,
    legacyField VARCHAR(16)
)
"""


def legacy_user(n, **overrides):
    row = {
        "id": f"user-{n}",
        "fullName": f"Student {n}",
        "phoneNumber": f"0120000000{n}",
        "email": f"student{n}@example.com",
        "password": "$2b$12$hash",
        "role": "USER",
        "balance": 0,
        "isActive": 1,
        "createdAt": "2024-01-0%d 10:00:00" % n,
        "legacyField": "x",
    }
    row.update(overrides)
    return row


@pytest.fixture
def source_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as conn:
        conn.execute(text(LEGACY_USER_TABLE))
        conn.execute(
            text(
                'INSERT INTO "User" (id, fullName, phoneNumber, email, password, role, balance, isActive, createdAt, legacyField) '
                "VALUES (:id, :fullName, :phoneNumber, :email, :password, :role, :balance, :isActive, :createdAt, :legacyField)"
            ),
            [legacy_user(1), legacy_user(2), legacy_user(3, isActive=0)],
        )
    yield engine
    engine.dispose()


@pytest.fixture
def target_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'target.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


def target_users(engine):
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT id, full_name, phone_number, hashed_password, is_active FROM users ORDER BY id")
        ).mappings().all()
    return [dict(r) for r in rows]


class TestNaming:
    @pytest.mark.parametrize("name,expected", [
        ("fullName", "full_name"),
        ("isActive", "is_active"),
        ("ChapterAttachment", "chapter_attachment"),
        ("userId", "user_id"),
        ("id", "id"),
    ])
    def test_to_snake_case(self, name, expected):
        assert migrator.to_snake_case(name) == expected

    def test_password_maps_to_hash_column(self):
        assert migrator.map_column_name("password") == "hashed_password"
        assert migrator.map_column_name("imageUrl") == "image_url"

    def test_discover_table_name(self):
        assert migrator.discover_table_name(["User", "Course"], "User") == "User"
        assert migrator.discover_table_name(["user"], "User") == "user"
        assert migrator.discover_table_name(["chapter_attachment"], "ChapterAttachment") == "chapter_attachment"
        assert migrator.discover_table_name(["quiz_results"], "QuizResult") == "quiz_results"
        assert migrator.discover_table_name(["USERPROGRESS"], "UserProgress") == "USERPROGRESS"
        assert migrator.discover_table_name(["Course"], "Quiz") is None


class TestConvertValue:
    def test_booleans(self):
        assert migrator.convert_value(1, "TINYINT(1)") is True
        assert migrator.convert_value(0, "tinyint(1)") is False
        assert migrator.convert_value(True, "BOOLEAN") is True

    def test_json_is_serialised(self):
        assert migrator.convert_value(["a", "b"], "JSON") == '["a", "b"]'
        assert migrator.convert_value('["a"]', "JSON") == '["a"]'

    def test_dates_become_iso_strings(self):
        assert migrator.convert_value(datetime(2024, 5, 1, 8, 30), "DATETIME(3)") == "2024-05-01T08:30:00"
        assert migrator.convert_value(date(2024, 5, 1), "DATE") == "2024-05-01"

    def test_passthrough(self):
        assert migrator.convert_value(None, "JSON") is None
        assert migrator.convert_value(12.5, "DOUBLE") == 12.5
        assert migrator.convert_value("abc", "VARCHAR(191)") == "abc"


class TestDatabaseUrls:
    def test_explicit_urls(self):
        env = {"MYSQL_DATABASE_URL": "mysql+pymysql://a", "POSTGRES_DATABASE_URL": "postgresql://b"}
        assert migrator.resolve_database_urls(env) == ("mysql+pymysql://a", "postgresql://b")

    def test_mysql_database_url_is_the_source(self):
        assert migrator.resolve_database_urls({"DATABASE_URL": "mysql://a"}) == ("mysql://a", "mysql://a")

    def test_postgres_database_url_is_the_target(self):
        assert migrator.resolve_database_urls({"DATABASE_URL": "postgresql://b"}) == (None, "postgresql://b")

    def test_nothing_configured(self):
        assert migrator.resolve_database_urls({}) == (None, None)


class TestMigration:
    def test_copies_matching_columns(self, source_engine, target_engine):
        stats = migrator.migrate(source_engine, target_engine, tables=["User"])

        assert stats == [{"table": "User", "rows_exported": 3, "rows_imported": 3, "errors": 0}]
        users = target_users(target_engine)
        assert [u["id"] for u in users] == ["user-1", "user-2", "user-3"]
        assert users[0]["full_name"] == "Student 1"
        assert users[0]["hashed_password"] == "$2b$12$hash"
        assert [bool(u["is_active"]) for u in users] == [True, True, False]

    def test_small_batches(self, source_engine, target_engine):
        stats = migrator.migrate(source_engine, target_engine, tables=["User"], batch_size=2)
        assert stats[0]["rows_imported"] == 3

    def test_existing_rows_are_skipped(self, source_engine, target_engine):
        with target_engine.begin() as conn:
            conn.execute(text(
                "INSERT INTO users (id, full_name, phone_number, email, role, balance, is_active) "
                "VALUES ('user-2', 'Already here', '0999', 'here@example.com', 'USER', 0, 0)"
            ))

        stats = migrator.migrate(source_engine, target_engine, tables=["User"])

        assert stats[0]["rows_exported"] == 3
        assert stats[0]["rows_imported"] == 2
        assert stats[0]["errors"] == 0
        users = {u["id"]: u for u in target_users(target_engine)}
        assert users["user-2"]["full_name"] == "Already here"
        assert set(users) == {"user-1", "user-2", "user-3"}

    def test_missing_source_table_is_skipped(self, source_engine, target_engine):
        stats = migrator.migrate(source_engine, target_engine, tables=["Course", "User"])
        assert [s["table"] for s in stats] == ["User", "Course"]
        assert stats[1] == {"table": "Course", "rows_exported": 0, "rows_imported": 0, "errors": 0}

    def test_failing_table_does_not_stop_the_run(self, source_engine, target_engine):
        with source_engine.begin() as conn:
            conn.execute(text(
                'CREATE TABLE "Course" (id VARCHAR(36) PRIMARY KEY, title VARCHAR(255) NOT NULL, '
                "isFree BOOLEAN NOT NULL, isPublished BOOLEAN NOT NULL)"
            ))
            conn.execute(text("""INSERT INTO "Course" (id, title, isFree, isPublished) VALUES ('course-1', 'Algorithms', 0, 1)"""))

        real_table = migrator.Table

        def reflect(name, *args, **kwargs):
            if name == "User":
                raise OperationalError("SELECT * FROM User", {}, Exception("table is locked"))
            return real_table(name, *args, **kwargs)

        with mock.patch.object(migrator, "Table", side_effect=reflect):
            stats = migrator.migrate(source_engine, target_engine, tables=["User", "Course"])

        assert stats[0] == {"table": "User", "rows_exported": 0, "rows_imported": 0, "errors": 1}
        assert stats[1] == {"table": "Course", "rows_exported": 1, "rows_imported": 1, "errors": 0}
        with target_engine.connect() as conn:
            assert conn.execute(text("SELECT title FROM courses")).scalar() == "Algorithms"


class TestMain:
    def test_requires_source_url(self, monkeypatch):
        monkeypatch.delenv("MYSQL_DATABASE_URL", raising=False)
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/lms")
        assert migrator.main([]) == 1

    def test_runs_with_explicit_urls(self, tmp_path, source_engine, target_engine, capsys):
        exit_code = migrator.main([
            "--source-url", f"sqlite:///{tmp_path / 'legacy.db'}",
            "--target-url", f"sqlite:///{tmp_path / 'target.db'}",
            "--tables", "User",
        ])
        assert exit_code == 0
        assert "TOTAL" in capsys.readouterr().out
        assert len(target_users(target_engine)) == 3
