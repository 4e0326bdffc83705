"""Argument validation and structured responses for the crmstore MCP server.

The store itself does not validate field formats; tool arguments coming
from a client are checked here before they reach it.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from crmstore.core.models import normalize_person_id, parse_sex


class ErrorCode(Enum):
    """Structured error codes for MCP responses."""

    VALIDATION_ERROR = "validation_error"  # 400: Bad input
    NOT_FOUND = "not_found"  # 404: Record doesn't exist
    UNKNOWN_TOOL = "unknown_tool"  # 404: No such tool
    NOT_INITIALIZED = "not_initialized"  # 500: Server has no store
    SYSTEM_ERROR = "system_error"  # 500: Storage failure


def error_response(
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    hint: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a structured error response.

    Args:
        code: Error code enum value
        message: Human-readable error message
        details: Optional additional details
        hint: Optional hint for resolving the error

    Returns:
        Structured error response dictionary
    """
    response: Dict[str, Any] = {
        "success": False,
        "error_code": code.value,
        "error": message,
    }
    if details:
        response["details"] = details
    if hint:
        response["hint"] = hint
    return response


def is_error_response(result: Any) -> bool:
    """True if result was built by error_response()."""
    return isinstance(result, dict) and result.get("success") is False and "error_code" in result


def missing_arguments(arguments: Dict[str, Any], required: List[str]) -> List[str]:
    """Names from ``required`` absent from ``arguments`` (None counts as absent)."""
    return [name for name in required if arguments.get(name) is None]


def validate_person_id(value: Any) -> Tuple[Optional[str], Optional[str]]:
    """Validate a person ID argument.

    Returns:
        Tuple of (normalized_id, error_message)
    """
    person_id = normalize_person_id(value)
    if person_id is None:
        return None, f"Invalid person id: {value!r} (expected a UUID string)"
    return person_id, None


def validate_age(value: Any) -> Tuple[Optional[int], Optional[str]]:
    """Age must be a non-negative integer (booleans rejected).

    Integral floats such as 30.0 and numeric strings are accepted.
    """
    if isinstance(value, bool):
        return None, "age must be an integer"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None, f"age must be an integer, got {value!r}"
    if not isinstance(value, int):
        return None, f"age must be an integer, got {value!r}"
    if value < 0:
        return None, f"age must be non-negative, got {value}"
    return value, None


def validate_skills(value: Any) -> Tuple[Optional[List[str]], Optional[str]]:
    """Skills must be a list of strings; None means no skills."""
    if value is None:
        return [], None
    if not isinstance(value, list):
        return None, "skills must be a list of strings"
    for item in value:
        if not isinstance(item, str):
            return None, f"skills must be a list of strings, got item {item!r}"
    return list(value), None


def validate_text(name: str, value: Any, required: bool = False) -> Tuple[Optional[str], Optional[str]]:
    """Validate a free-text argument.

    Required fields must be non-blank strings; optional ones default to "".
    """
    if value is None:
        if required:
            return None, f"{name} is required"
        return "", None
    if not isinstance(value, str):
        return None, f"{name} must be a string"
    if required and not value.strip():
        return None, f"{name} must not be empty"
    return value, None


def validate_person_fields(arguments: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Validate the mutable Person fields of an add/update call.

    Returns:
        Tuple of (store kwargs, error_message). The kwargs map directly
        onto PersonStore.add()/update() parameters.
    """
    name, err = validate_text("name", arguments.get("name"), required=True)
    if err:
        return None, err
    surname, err = validate_text("surname", arguments.get("surname"), required=True)
    if err:
        return None, err
    if arguments.get("age") is None:
        return None, "age is required"
    age, err = validate_age(arguments.get("age"))
    if err:
        return None, err
    skills, err = validate_skills(arguments.get("skills"))
    if err:
        return None, err

    try:
        sex = parse_sex(arguments.get("sex"))
    except ValueError as e:
        return None, str(e)

    fields: Dict[str, Any] = {
        "name": name,
        "surname": surname,
        "age": age,
        "skills": skills,
        "sex": sex,
    }
    for key in ("role", "department", "cv_summary"):
        value, err = validate_text(key, arguments.get(key))
        if err:
            return None, err
        fields[key] = value

    return fields, None
