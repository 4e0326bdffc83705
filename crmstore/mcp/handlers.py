"""Tool and resource handlers for the crmstore MCP server.

Each handler takes plain JSON-compatible arguments, calls the configured
PersonStore, and returns JSON-compatible data. Lookups that find nothing
return None or an empty list; malformed arguments return a structured
validation error. StorageError from the store propagates to the caller.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from crmstore import __version__
from crmstore.core.memory_store import InMemoryPersonStore
from crmstore.core.models import Person
from crmstore.core.observability import ObservabilityLogger
from crmstore.core.store import PersonStore
from crmstore.mcp.validation import (
    ErrorCode,
    error_response,
    validate_person_fields,
    validate_person_id,
    validate_text,
)

# Installed by configure(); no store is created implicitly
_store: Optional[PersonStore] = None
_logger: Optional[ObservabilityLogger] = None

NOT_INIT_MSG = "crmstore MCP server not configured. Call configure(store) first."


def configure(store: Optional[PersonStore], logger: Optional[ObservabilityLogger] = None) -> None:
    """Install the store (and optional activity logger) the handlers use.

    Passing None clears the configuration.
    """
    global _store, _logger
    _store = store
    _logger = logger if store is not None else None


def is_configured() -> bool:
    return _store is not None


def store_instance() -> PersonStore:
    """Return the configured store, raising if there is none."""
    if _store is None:
        raise RuntimeError(NOT_INIT_MSG)
    return _store


def logger_instance() -> Optional[ObservabilityLogger]:
    return _logger


def _one(person: Optional[Person]) -> Optional[Dict[str, Any]]:
    return person.to_dict() if person else None


def _many(people: List[Person]) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in people]


def _invalid(message: str) -> Dict[str, Any]:
    return error_response(ErrorCode.VALIDATION_ERROR, message)


# ============================================================================
# Lookup Tools
# ============================================================================


def handle_get_person_by_id(id: str) -> Optional[Dict[str, Any]]:
    """Get a person by ID.

    Returns:
        Person dict, None if no person has this ID, or a validation error
        if the ID is not a UUID
    """
    person_id, err = validate_person_id(id)
    if err:
        return _invalid(err)
    return _one(store_instance().get_by_id(person_id))


def handle_get_person_by_name(name: str) -> Optional[Dict[str, Any]]:
    """First person whose first name starts with ``name`` (case-insensitive)."""
    name, err = validate_text("name", name)
    if err:
        return _invalid(err)
    return _one(store_instance().get_by_name(name))


def handle_get_person_by_surname(surname: str) -> Optional[Dict[str, Any]]:
    """First person whose surname starts with ``surname`` (case-insensitive)."""
    surname, err = validate_text("surname", surname)
    if err:
        return _invalid(err)
    return _one(store_instance().get_by_surname(surname))


def handle_get_persons_by_skill(skill: str) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    skill, err = validate_text("skill", skill)
    if err:
        return _invalid(err)
    return _many(store_instance().get_by_skill(skill))


def handle_get_persons_by_department(department: str) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    department, err = validate_text("department", department)
    if err:
        return _invalid(err)
    return _many(store_instance().get_by_department(department))


def handle_get_persons_by_role(role: str) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    role, err = validate_text("role", role)
    if err:
        return _invalid(err)
    return _many(store_instance().get_by_role(role))


def handle_get_all_persons() -> List[Dict[str, Any]]:
    return _many(store_instance().get_all())


def handle_search_persons(query: str) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    """Substring search over name, surname, role, department, CV summary and skills.

    A blank query returns an empty list.
    """
    query, err = validate_text("query", query)
    if err:
        return _invalid(err)
    return _many(store_instance().search(query))


# ============================================================================
# Mutation Tools
# ============================================================================


def handle_add_person(
    name: str,
    surname: str,
    age: int,
    skills: Optional[List[str]] = None,
    sex: Optional[str] = None,
    role: Optional[str] = None,
    department: Optional[str] = None,
    cv_summary: Optional[str] = None,
) -> Dict[str, Any]:
    """Add a person.

    Returns:
        The stored person (with its new ID) or a validation error
    """
    fields, err = validate_person_fields({
        "name": name,
        "surname": surname,
        "age": age,
        "skills": skills,
        "sex": sex,
        "role": role,
        "department": department,
        "cv_summary": cv_summary,
    })
    if err:
        return _invalid(err)
    return store_instance().add(**fields).to_dict()


def handle_update_person(
    id: str,
    name: str,
    surname: str,
    age: int,
    skills: Optional[List[str]] = None,
    sex: Optional[str] = None,
    role: Optional[str] = None,
    department: Optional[str] = None,
    cv_summary: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Replace all fields of an existing person.

    Fields left out are reset to their defaults (empty text, no sex,
    no skills).

    Returns:
        Updated person, None if the ID does not exist, or a validation error
    """
    person_id, err = validate_person_id(id)
    if err:
        return _invalid(err)
    fields, err = validate_person_fields({
        "name": name,
        "surname": surname,
        "age": age,
        "skills": skills,
        "sex": sex,
        "role": role,
        "department": department,
        "cv_summary": cv_summary,
    })
    if err:
        return _invalid(err)
    return _one(store_instance().update(person_id, **fields))


def handle_delete_person(id: str) -> Dict[str, Any]:
    """Delete a person.

    Returns:
        {"id": ..., "deleted": bool}; deleted is False when nothing matched
    """
    person_id, err = validate_person_id(id)
    if err:
        return _invalid(err)
    return {"id": person_id, "deleted": store_instance().delete(person_id)}


# ============================================================================
# Analytics Tools
# ============================================================================


def handle_get_skill_statistics() -> Dict[str, int]:
    """How many times each skill appears across persons (case-insensitive)."""
    return store_instance().get_skill_statistics()


def handle_get_average_age() -> float:
    return store_instance().get_average_age()


def handle_get_oldest_person() -> Optional[Dict[str, Any]]:
    return _one(store_instance().get_oldest_person())


def handle_get_most_skilled_person() -> Optional[Dict[str, Any]]:
    return _one(store_instance().get_most_skilled_person())


# ============================================================================
# Resources
# ============================================================================

PERSON_FIELDS: Dict[str, str] = {
    "id": "Unique identifier (UUID string) for the person.",
    "name": "First name of the person.",
    "surname": "Last name of the person.",
    "age": "Age in years.",
    "sex": "Sex of the person (M/F).",
    "role": "Job title or position.",
    "department": "Department where the person works.",
    "cvSummary": "Short summary of their CV or background.",
    "skills": "List of skills or competencies.",
}

DEPARTMENTS = [
    "Engineering",
    "Sales",
    "Marketing",
    "Finance",
    "HR",
    "Management",
    "Support",
]

ROLES = [
    "Developer",
    "Manager",
    "Analyst",
    "Sales Representative",
    "HR Specialist",
    "Designer",
    "Team Lead",
]

SKILL_CATEGORIES = [
    "C#",
    "JavaScript",
    "SQL",
    "Project Management",
    "Communication",
    "Leadership",
    "Data Analysis",
    "Customer Service",
    "UI/UX Design",
]


def read_person_schema() -> Dict[str, Any]:
    return {
        "name": "Person",
        "description": "Represents a person (employee or contact) in the CRM database.",
        "fields": dict(PERSON_FIELDS),
    }


def read_departments() -> List[str]:
    return list(DEPARTMENTS)


def read_roles() -> List[str]:
    return list(ROLES)


def read_skill_categories() -> List[str]:
    return list(SKILL_CATEGORIES)


def read_database_info() -> Dict[str, Any]:
    """Metadata about the configured store."""
    store = store_instance()
    if isinstance(store, InMemoryPersonStore):
        data_source = "in-memory"
    else:
        data_source = "SQLite local DB"
    return {
        "name": "crmstore",
        "version": __version__,
        "data_source": data_source,
        "record_count": store.count(),
        "last_updated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "description": "CRM person database used for lookups and analytics.",
    }


def read_all_persons() -> List[Dict[str, Any]]:
    return handle_get_all_persons()
