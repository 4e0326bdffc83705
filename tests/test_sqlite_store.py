"""Tests for the SQLite-backed stores: durability, seeding, failures, cleanup."""

import sqlite3
from pathlib import Path

import pytest

from crmstore.core.sqlite_store import (
    EphemeralSQLitePersonStore,
    SQLitePersonStore,
    _prefix_upper_bound,
    prefix_query,
)
from crmstore.core.store import StorageError


class TestPersistence:
    def test_creates_parent_directories(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path)
        assert sqlite_path.exists()
        store.close()

    def test_survives_reopen(self, sqlite_path):
        first = SQLitePersonStore(sqlite_path)
        added = first.add("Bob", "Stone", 41, skills=["Go"])
        first.close()

        second = SQLitePersonStore(sqlite_path)
        assert second.get_by_id(added.id) == added
        assert second.count() == 4
        second.close()

    def test_deletes_survive_reopen(self, sqlite_path):
        first = SQLitePersonStore(sqlite_path)
        jane = first.get_by_name("Jane")
        first.delete(jane.id)
        first.close()

        second = SQLitePersonStore(sqlite_path)
        assert second.get_by_id(jane.id) is None
        second.close()

    def test_two_instances_share_a_file(self, sqlite_path):
        a = SQLitePersonStore(sqlite_path)
        b = SQLitePersonStore(sqlite_path)
        added = a.add("Bob", "Stone", 41)
        assert b.get_by_id(added.id) == added


class TestSeedOnce:
    def test_reopen_does_not_reseed(self, sqlite_path):
        SQLitePersonStore(sqlite_path).close()
        store = SQLitePersonStore(sqlite_path)
        assert store.count() == 3

    def test_emptied_table_stays_empty(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path)
        for person in store.get_all():
            store.delete(person.id)
        store.close()

        reopened = SQLitePersonStore(sqlite_path)
        assert reopened.count() == 0

    def test_seed_disabled(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path, seed=False)
        assert store.count() == 0

    def test_seed_marker_written(self, sqlite_path):
        SQLitePersonStore(sqlite_path).close()
        with sqlite3.connect(sqlite_path) as conn:
            row = conn.execute("SELECT value FROM store_meta WHERE key = 'seeded_at'").fetchone()
        assert row is not None

    def test_existing_rows_are_not_overwritten(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path, seed=False)
        store.add("Bob", "Stone", 41)
        store.close()

        reopened = SQLitePersonStore(sqlite_path)
        assert [p.name for p in reopened.get_all()] == ["Bob"]


class TestSchema:
    def test_indexes_exist(self, sqlite_path):
        SQLitePersonStore(sqlite_path).close()
        with sqlite3.connect(sqlite_path) as conn:
            names = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
            }
        assert {"idx_people_name", "idx_people_surname"} <= names

    def test_skills_stored_as_json(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path, seed=False)
        added = store.add("Bob", "Stone", 41, skills=["Go", "SQL"])
        with sqlite3.connect(sqlite_path) as conn:
            raw = conn.execute("SELECT skills FROM people WHERE id = ?", (added.id,)).fetchone()[0]
        assert raw == '["Go", "SQL"]'

    @pytest.mark.parametrize(
        "column,index",
        [("name_fold", "idx_people_name"), ("surname_fold", "idx_people_surname")],
    )
    def test_prefix_lookup_uses_index(self, sqlite_path, column, index):
        SQLitePersonStore(sqlite_path).close()
        sql, params = prefix_query(column, "Jo")
        with sqlite3.connect(sqlite_path) as conn:
            plan = " ".join(row[3] for row in conn.execute(f"EXPLAIN QUERY PLAN {sql}", params))
        assert "SCAN people" not in plan
        assert index in plan

    def test_folded_columns_written(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path, seed=False)
        added = store.add("Émile", "Straße", 40)
        with sqlite3.connect(sqlite_path) as conn:
            row = conn.execute(
                "SELECT name_fold, surname_fold FROM people WHERE id = ?", (added.id,)
            ).fetchone()
        assert row == ("émile", "strasse")

    def test_migrates_file_without_folded_columns(self, sqlite_path):
        sqlite_path.parent.mkdir(parents=True)
        with sqlite3.connect(sqlite_path) as conn:
            conn.executescript("""
                CREATE TABLE people (
                    id TEXT PRIMARY KEY, name TEXT NOT NULL, surname TEXT NOT NULL,
                    age INTEGER NOT NULL, sex TEXT, role TEXT NOT NULL DEFAULT '',
                    department TEXT NOT NULL DEFAULT '', cv_summary TEXT NOT NULL DEFAULT '',
                    skills TEXT NOT NULL DEFAULT '[]'
                );
                CREATE INDEX idx_people_name ON people(name);
                INSERT INTO people (id, name, surname, age)
                VALUES ('11111111-1111-4111-8111-111111111111', 'Émile', 'Zola', 40);
            """)

        store = SQLitePersonStore(sqlite_path)
        assert store.count() == 1
        assert store.get_by_name("émi").surname == "Zola"
        assert store.get_by_surname("ZO").name == "Émile"
        store.close()

        with sqlite3.connect(sqlite_path) as conn:
            sql = conn.execute(
                "SELECT sql FROM sqlite_master WHERE name = 'idx_people_name'"
            ).fetchone()[0]
        assert "name_fold" in sql


class TestPrefixBounds:
    def test_increments_last_character(self):
        assert _prefix_upper_bound("jo") == "jp"

    def test_empty_prefix_is_unbounded(self):
        assert _prefix_upper_bound("") is None

    def test_skips_maximum_code_point(self):
        assert _prefix_upper_bound("a\U0010ffff") == "b"
        assert _prefix_upper_bound("\U0010ffff") is None

    def test_steps_over_surrogates(self):
        assert _prefix_upper_bound("\ud7ff") == "\ue000"

    def test_empty_prefix_query_matches_everything(self):
        sql, params = prefix_query("name_fold", "")
        assert params == ("",)
        assert "<" not in sql


class TestFailures:
    def test_closed_store_raises(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path)
        store.close()
        with pytest.raises(StorageError, match="closed"):
            store.get_all()
        with pytest.raises(StorageError):
            store.add("Bob", "Stone", 41)

    def test_close_is_idempotent(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path)
        store.close()
        store.close()

    def test_not_a_database(self, tmp_path):
        bogus = tmp_path / "bogus.db"
        bogus.write_bytes(b"this is not sqlite" * 100)
        with pytest.raises(StorageError):
            SQLitePersonStore(bogus)

    def test_undecodable_row(self, sqlite_path):
        store = SQLitePersonStore(sqlite_path, seed=False)
        added = store.add("Bob", "Stone", 41)
        with sqlite3.connect(sqlite_path) as conn:
            conn.execute("UPDATE people SET sex = 'X' WHERE id = ?", (added.id,))
        with pytest.raises(StorageError):
            store.get_by_id(added.id)

    def test_unusable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageError):
            SQLitePersonStore(blocker / "crm.db")


class TestEphemeral:
    def test_file_removed_on_close(self, tmp_path):
        path = tmp_path / "scratch.db"
        store = EphemeralSQLitePersonStore(path)
        store.add("Bob", "Stone", 41)
        assert path.exists()
        store.close()
        assert not path.exists()

    def test_temp_file_when_no_path(self):
        store = EphemeralSQLitePersonStore()
        path = Path(store.db_path)
        assert path.exists()
        assert store.count() == 3
        store.close()
        assert not path.exists()

    def test_context_manager_removes_file(self, tmp_path):
        path = tmp_path / "scratch.db"
        with EphemeralSQLitePersonStore(path) as store:
            assert store.count() == 3
        assert not path.exists()

    def test_missing_file_on_close_is_ignored(self, tmp_path):
        path = tmp_path / "scratch.db"
        store = EphemeralSQLitePersonStore(path)
        path.unlink()
        store.close()

    def test_deletion_errors_are_swallowed(self, tmp_path, monkeypatch):
        path = tmp_path / "scratch.db"
        store = EphemeralSQLitePersonStore(path)

        def refuse(self, *args, **kwargs):
            raise PermissionError("locked")

        monkeypatch.setattr(Path, "unlink", refuse)
        store.close()
        monkeypatch.undo()
        assert path.exists()

    def test_double_close(self, tmp_path):
        store = EphemeralSQLitePersonStore(tmp_path / "scratch.db")
        store.close()
        store.close()
