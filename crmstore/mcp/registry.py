"""
Static registration table for MCP tools and resources.

Maps each tool name to its handler, JSON input schema, and descriptive
routing metadata (category, operation, aliases). The metadata is for host
dispatchers; the store never sees it.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from crmstore.mcp import handlers


@dataclass(frozen=True)
class ToolSpec:
    """A tool exposed by the server."""

    name: str  # "get_person_by_id"
    handler: Callable[..., Any]
    description: str
    input_schema: Dict[str, Any]
    category: str = "crm"  # "crm" | "analytics"
    operation: str = "read"  # read | search | aggregate | create | update | delete
    result_type: str = ""  # "Person", "List[Person]", ...
    context: str = ""  # "person-lookup"
    aliases: List[str] = field(default_factory=list)

    @property
    def required(self) -> List[str]:
        return list(self.input_schema.get("required", []))

    @property
    def properties(self) -> List[str]:
        return list(self.input_schema.get("properties", {}).keys())

    def metadata(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "operation": self.operation,
            "resultType": self.result_type,
            "context": self.context,
            "aliases": list(self.aliases),
        }


@dataclass(frozen=True)
class ResourceSpec:
    """A read-only document exposed by the server."""

    uri: str  # "crm://lookup/departments"
    name: str
    description: str
    reader: Callable[[], Any]
    mime_type: str = "application/json"
    category: str = "crm-lookup"
    type: str = "enumeration"
    context: str = ""

    def metadata(self) -> Dict[str, Any]:
        return {"category": self.category, "type": self.type, "context": self.context}


def _schema(properties: Optional[Dict[str, Any]] = None, required: Optional[List[str]] = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


_ID = {"type": "string", "description": "Person ID (UUID string)"}

_PERSON_FIELDS: Dict[str, Any] = {
    "name": {"type": "string", "description": "Person's first name"},
    "surname": {"type": "string", "description": "Person's surname"},
    "age": {"type": "integer", "minimum": 0, "description": "Person's age"},
    "skills": {
        "type": "array",
        "items": {"type": "string"},
        "description": "List of person's skills",
    },
    "sex": {"type": "string", "enum": ["M", "F"], "description": "Person's sex"},
    "role": {"type": "string", "description": "Job title or position"},
    "department": {"type": "string", "description": "Department"},
    "cv_summary": {"type": "string", "description": "Short CV summary"},
}


TOOLS: List[ToolSpec] = [
    ToolSpec(
        name="get_person_by_id",
        handler=handlers.handle_get_person_by_id,
        description="Get personal information by ID.",
        input_schema=_schema({"id": _ID}, ["id"]),
        result_type="Person",
        context="person-lookup",
        aliases=["find-by-id", "lookup-by-id"],
    ),
    ToolSpec(
        name="get_person_by_name",
        handler=handlers.handle_get_person_by_name,
        description="Find a person by their first name (case-insensitive prefix). Returns detailed CRM record.",
        input_schema=_schema({"name": {"type": "string", "description": "Person name or name prefix"}}, ["name"]),
        result_type="Person",
        context="employee-search",
        aliases=["find-person", "lookup-person"],
    ),
    ToolSpec(
        name="get_person_by_surname",
        handler=handlers.handle_get_person_by_surname,
        description="Find a person by their surname (case-insensitive prefix). Returns detailed CRM record.",
        input_schema=_schema(
            {"surname": {"type": "string", "description": "Person surname or surname prefix"}}, ["surname"]
        ),
        result_type="Person",
        context="employee-search",
        aliases=["find-by-surname", "lookup-surname"],
    ),
    ToolSpec(
        name="get_persons_by_skill",
        handler=handlers.handle_get_persons_by_skill,
        description="Get personal information for all persons with given skill.",
        input_schema=_schema({"skill": {"type": "string", "description": "Person skill"}}, ["skill"]),
        operation="search",
        result_type="List[Person]",
        context="skill-search",
        aliases=["find-by-skill", "search-by-skill"],
    ),
    ToolSpec(
        name="get_persons_by_department",
        handler=handlers.handle_get_persons_by_department,
        description="Get all persons working in a department.",
        input_schema=_schema(
            {"department": {"type": "string", "description": "Department name"}}, ["department"]
        ),
        operation="search",
        result_type="List[Person]",
        context="department-search",
        aliases=["find-by-department", "list-department"],
    ),
    ToolSpec(
        name="get_persons_by_role",
        handler=handlers.handle_get_persons_by_role,
        description="Get all persons with a given role or job title.",
        input_schema=_schema({"role": {"type": "string", "description": "Role or job title"}}, ["role"]),
        operation="search",
        result_type="List[Person]",
        context="role-search",
        aliases=["find-by-role", "list-role"],
    ),
    ToolSpec(
        name="get_all_persons",
        handler=handlers.handle_get_all_persons,
        description="Get all persons from the CRM system.",
        input_schema=_schema(),
        operation="search",
        result_type="List[Person]",
        context="list-all",
        aliases=["list-persons", "get-all-contacts"],
    ),
    ToolSpec(
        name="search_persons",
        handler=handlers.handle_search_persons,
        description=(
            "Search for persons by text in name, surname, role, department, CV summary and skills."
        ),
        input_schema=_schema(
            {"query": {"type": "string", "description": "Text to look for (case-insensitive substring)"}},
            ["query"],
        ),
        operation="search",
        result_type="List[Person]",
        context="full-text-search",
        aliases=["find-persons", "search-contacts", "query-persons"],
    ),
    ToolSpec(
        name="add_person",
        handler=handlers.handle_add_person,
        description="Add a new person to the CRM system.",
        input_schema=_schema(dict(_PERSON_FIELDS), ["name", "surname", "age"]),
        operation="create",
        result_type="Person",
        context="person-management",
        aliases=["create-person", "insert-person", "new-contact"],
    ),
    ToolSpec(
        name="update_person",
        handler=handlers.handle_update_person,
        description="Replace an existing person's information. Fields left out are reset.",
        input_schema=_schema({"id": _ID, **_PERSON_FIELDS}, ["id", "name", "surname", "age"]),
        operation="update",
        result_type="Person",
        context="person-management",
        aliases=["modify-person", "edit-person", "update-contact"],
    ),
    ToolSpec(
        name="delete_person",
        handler=handlers.handle_delete_person,
        description="Delete a person from the CRM system by ID.",
        input_schema=_schema({"id": _ID}, ["id"]),
        operation="delete",
        result_type="bool",
        context="person-management",
        aliases=["remove-person", "delete-contact", "remove-contact"],
    ),
    ToolSpec(
        name="get_skill_statistics",
        handler=handlers.handle_get_skill_statistics,
        description="Get skill statistics showing how many people have each skill.",
        input_schema=_schema(),
        category="analytics",
        operation="aggregate",
        result_type="Dict[str, int]",
        context="skill-analytics",
        aliases=["skill-stats", "skill-distribution"],
    ),
    ToolSpec(
        name="get_average_age",
        handler=handlers.handle_get_average_age,
        description="Get the average age of all persons in the CRM system.",
        input_schema=_schema(),
        category="analytics",
        operation="aggregate",
        result_type="float",
        context="age-analytics",
        aliases=["avg-age", "mean-age"],
    ),
    ToolSpec(
        name="get_oldest_person",
        handler=handlers.handle_get_oldest_person,
        description="Get the oldest person in the CRM system.",
        input_schema=_schema(),
        result_type="Person",
        context="age-ranking",
        aliases=["find-oldest", "get-senior"],
    ),
    ToolSpec(
        name="get_most_skilled_person",
        handler=handlers.handle_get_most_skilled_person,
        description="Get the person with the most skills in the CRM system.",
        input_schema=_schema(),
        result_type="Person",
        context="skill-ranking",
        aliases=["find-most-skilled", "get-expert"],
    ),
]


RESOURCES: List[ResourceSpec] = [
    ResourceSpec(
        uri="crm://schema/person",
        name="person-schema",
        description="Describes the structure of a Person entity in the CRM system.",
        reader=handlers.read_person_schema,
        category="crm-schema",
        type="schema",
        context="entity-description",
    ),
    ResourceSpec(
        uri="crm://lookup/departments",
        name="departments",
        description="List of departments available in the CRM system.",
        reader=handlers.read_departments,
        context="department-list",
    ),
    ResourceSpec(
        uri="crm://lookup/roles",
        name="roles",
        description="List of possible roles/job titles used in the CRM system.",
        reader=handlers.read_roles,
        context="role-list",
    ),
    ResourceSpec(
        uri="crm://lookup/skills",
        name="skills",
        description="List of skill categories commonly used in the CRM system.",
        reader=handlers.read_skill_categories,
        context="skills-list",
    ),
    ResourceSpec(
        uri="crm://metadata/database",
        name="database-info",
        description="Describes metadata about the CRM database itself.",
        reader=handlers.read_database_info,
        category="crm-metadata",
        type="system",
        context="system-info",
    ),
    ResourceSpec(
        uri="crm://persons",
        name="persons",
        description="All persons in the CRM system.",
        reader=handlers.read_all_persons,
        category="crm",
        type="data",
        context="list-all",
    ),
]


_TOOLS_BY_NAME: Dict[str, ToolSpec] = {}
for _tool in TOOLS:
    _TOOLS_BY_NAME[_tool.name] = _tool
    for _alias in _tool.aliases:
        _TOOLS_BY_NAME.setdefault(_alias, _tool)

_RESOURCES_BY_URI: Dict[str, ResourceSpec] = {r.uri: r for r in RESOURCES}


def get_tool(name: str) -> Optional[ToolSpec]:
    """Look up a tool by name or alias."""
    return _TOOLS_BY_NAME.get(name)


def list_tool_names() -> List[str]:
    """Canonical tool names in registration order."""
    return [t.name for t in TOOLS]


def get_resource(uri: str) -> Optional[ResourceSpec]:
    return _RESOURCES_BY_URI.get(uri)
