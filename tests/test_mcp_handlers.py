"""Tests for crmstore MCP handler functions.

Each handler runs against a seeded in-memory store installed with
handlers.configure().
"""

import pytest

from crmstore import __version__
from crmstore.core.models import new_person_id
from crmstore.core.sqlite_store import SQLitePersonStore
from crmstore.mcp import handlers
from crmstore.mcp.handlers import (
    handle_add_person,
    handle_delete_person,
    handle_get_all_persons,
    handle_get_average_age,
    handle_get_most_skilled_person,
    handle_get_oldest_person,
    handle_get_person_by_id,
    handle_get_person_by_name,
    handle_get_person_by_surname,
    handle_get_persons_by_department,
    handle_get_persons_by_role,
    handle_get_persons_by_skill,
    handle_get_skill_statistics,
    handle_search_persons,
    handle_update_person,
    read_all_persons,
    read_database_info,
    read_departments,
    read_person_schema,
    read_roles,
    read_skill_categories,
)
from crmstore.mcp.validation import is_error_response


# ============================================================================
# Configuration
# ============================================================================


class TestConfigure:
    def test_unconfigured_raises(self, unconfigured):
        assert not handlers.is_configured()
        with pytest.raises(RuntimeError, match="not configured"):
            handle_get_all_persons()

    def test_configure_and_clear(self, configured, obs_logger):
        assert handlers.is_configured()
        assert handlers.store_instance() is configured
        assert handlers.logger_instance() is obs_logger
        handlers.configure(None, obs_logger)
        assert not handlers.is_configured()
        assert handlers.logger_instance() is None


# ============================================================================
# Lookups
# ============================================================================


class TestLookups:
    def test_by_id(self, configured):
        john = configured.get_by_name("John")
        result = handle_get_person_by_id(john.id)
        assert result["name"] == "John"
        assert result["cvSummary"] == john.cv_summary
        assert result["sex"] == "M"

    def test_by_id_unknown(self, configured):
        assert handle_get_person_by_id(new_person_id()) is None

    def test_by_id_malformed(self, configured):
        result = handle_get_person_by_id("not-a-uuid")
        assert is_error_response(result)
        assert result["error_code"] == "validation_error"

    def test_by_name_and_surname(self, configured):
        assert handle_get_person_by_name("ja")["surname"] == "Smith"
        assert handle_get_person_by_surname("JOHN")["name"] == "Alice"
        assert handle_get_person_by_name("Nobody") is None

    def test_lists(self, configured):
        assert [p["name"] for p in handle_get_persons_by_skill("python")] == ["Alice"]
        assert [p["name"] for p in handle_get_persons_by_department("Engineering")] == ["John", "Jane"]
        assert [p["name"] for p in handle_get_persons_by_role("data scientist")] == ["Alice"]
        assert handle_get_persons_by_skill("Cobol") == []

    def test_all(self, configured):
        assert [p["name"] for p in handle_get_all_persons()] == ["John", "Jane", "Alice"]

    def test_search(self, configured):
        assert [p["name"] for p in handle_search_persons("react")] == ["Jane"]
        assert handle_search_persons("  ") == []

    @pytest.mark.parametrize(
        "handler,field",
        [
            (handle_get_person_by_name, "name"),
            (handle_get_person_by_surname, "surname"),
            (handle_get_persons_by_skill, "skill"),
            (handle_get_persons_by_department, "department"),
            (handle_get_persons_by_role, "role"),
            (handle_search_persons, "query"),
        ],
    )
    @pytest.mark.parametrize("value", [5, ["Jo"], {"q": "x"}, True])
    def test_non_string_argument(self, configured, handler, field, value):
        result = handler(value)
        assert is_error_response(result)
        assert result["error_code"] == "validation_error"
        assert result["error"] == f"{field} must be a string"

    def test_empty_prefix_matches_first(self, configured):
        assert handle_get_person_by_name("")["name"] == "John"


# ============================================================================
# Mutations
# ============================================================================


class TestMutations:
    def test_add(self, configured):
        result = handle_add_person("Bob", "Stone", 41, skills=["Go"], sex="m", cv_summary="Ops")
        assert result["id"]
        assert result["sex"] == "M"
        assert result["cvSummary"] == "Ops"
        assert result["role"] == ""
        assert configured.count() == 4

    def test_add_invalid(self, configured):
        result = handle_add_person("Bob", "Stone", -1)
        assert is_error_response(result)
        assert configured.count() == 3

    def test_update(self, configured):
        jane = configured.get_by_name("Jane")
        result = handle_update_person(jane.id, "Jane", "Smith", 26, skills=["Vue"])
        assert result["age"] == 26
        assert result["skills"] == ["Vue"]
        assert result["role"] == ""
        assert result["id"] == jane.id

    def test_update_unknown(self, configured):
        assert handle_update_person(new_person_id(), "A", "B", 1) is None

    def test_update_invalid(self, configured):
        assert is_error_response(handle_update_person("bad", "A", "B", 1))
        jane = configured.get_by_name("Jane")
        assert is_error_response(handle_update_person(jane.id, "A", "B", 1, sex="Q"))

    def test_delete(self, configured):
        jane = configured.get_by_name("Jane")
        assert handle_delete_person(jane.id) == {"id": jane.id, "deleted": True}
        assert handle_delete_person(jane.id) == {"id": jane.id, "deleted": False}

    def test_delete_invalid(self, configured):
        assert is_error_response(handle_delete_person("bad"))


# ============================================================================
# Analytics
# ============================================================================


class TestAnalytics:
    def test_statistics(self, configured):
        stats = handle_get_skill_statistics()
        assert stats["C#"] == 1
        assert len(stats) == 9

    def test_average_age(self, configured):
        assert handle_get_average_age() == pytest.approx(83 / 3)

    def test_rankings(self, configured):
        assert handle_get_oldest_person()["name"] == "John"
        assert handle_get_most_skilled_person()["name"] == "John"

    def test_rankings_empty(self, configured):
        for person in configured.get_all():
            configured.delete(person.id)
        assert handle_get_oldest_person() is None
        assert handle_get_most_skilled_person() is None
        assert handle_get_average_age() == 0.0


# ============================================================================
# Resources
# ============================================================================


class TestResources:
    def test_person_schema(self):
        schema = read_person_schema()
        assert schema["name"] == "Person"
        assert set(schema["fields"]) == {
            "id", "name", "surname", "age", "sex", "role", "department", "cvSummary", "skills",
        }

    def test_lookup_lists(self):
        assert "Engineering" in read_departments()
        assert "Developer" in read_roles()
        assert "SQL" in read_skill_categories()

    def test_lookup_lists_are_copies(self):
        read_departments().append("Legal")
        assert "Legal" not in read_departments()

    def test_database_info_memory(self, configured):
        info = read_database_info()
        assert info["data_source"] == "in-memory"
        assert info["record_count"] == 3
        assert info["version"] == __version__
        assert info["last_updated"].endswith("Z")

    def test_database_info_sqlite(self, tmp_path):
        store = SQLitePersonStore(tmp_path / "crm.db")
        handlers.configure(store)
        try:
            assert read_database_info()["data_source"] == "SQLite local DB"
        finally:
            handlers.configure(None)

    def test_all_persons(self, configured):
        assert len(read_all_persons()) == 3
