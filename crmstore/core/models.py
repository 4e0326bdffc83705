"""
Person - the single entity kept by the CRM store.

Also holds the fixed seed set inserted into fresh storage.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Sex(Enum):
    """Sex of a person."""

    M = "M"
    F = "F"


@dataclass
class Person:
    """A person (employee or contact) in the CRM."""

    id: str  # "2f1c5e0a-..." (uuid4)
    name: str  # "John"
    surname: str  # "Doe"
    age: int
    skills: List[str] = field(default_factory=list)  # ["C#", "SQL"]
    sex: Optional[Sex] = None
    role: str = ""  # "Senior Developer"
    department: str = ""  # "Engineering"
    cv_summary: str = ""

    def copy(self) -> "Person":
        """Return a detached copy (the skills list is not shared)."""
        return Person(
            id=self.id,
            name=self.name,
            surname=self.surname,
            age=self.age,
            skills=list(self.skills),
            sex=self.sex,
            role=self.role,
            department=self.department,
            cv_summary=self.cv_summary,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "surname": self.surname,
            "age": self.age,
            "sex": self.sex.value if self.sex else None,
            "role": self.role,
            "department": self.department,
            "cvSummary": self.cv_summary,
            "skills": list(self.skills),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Person":
        """Build a Person from a dictionary produced by to_dict().

        Accepts both ``cvSummary`` and ``cv_summary`` keys.
        """
        return cls(
            id=str(data["id"]),
            name=data["name"],
            surname=data["surname"],
            age=int(data["age"]),
            skills=list(data.get("skills") or []),
            sex=parse_sex(data.get("sex")),
            role=data.get("role") or "",
            department=data.get("department") or "",
            cv_summary=data.get("cvSummary", data.get("cv_summary")) or "",
        )


def new_person_id() -> str:
    """Generate a fresh person ID."""
    return str(uuid.uuid4())


def normalize_person_id(value: Any) -> Optional[str]:
    """Return the canonical string form of a person ID, or None if invalid.

    Examples:
        "2F1C5E0A-0000-4000-8000-000000000000" -> "2f1c5e0a-0000-4000-8000-000000000000"
        "not-an-id" -> None
    """
    if isinstance(value, uuid.UUID):
        return str(value)
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        return None


def parse_sex(value: Any) -> Optional[Sex]:
    """Parse "M"/"F" (any case) or a Sex member; None/"" means absent."""
    if value is None or value == "":
        return None
    if isinstance(value, Sex):
        return value
    try:
        return Sex(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Invalid sex: {value!r}. Must be one of M, F") from None


# Seed rows, in insertion order
SEED_PEOPLE: List[Dict[str, Any]] = [
    {
        "name": "John",
        "surname": "Doe",
        "age": 30,
        "sex": Sex.M,
        "role": "Senior Developer",
        "department": "Engineering",
        "cv_summary": (
            "Experienced software engineer with 10+ years in backend development, "
            "specializing in C# and cloud technologies."
        ),
        "skills": ["C#", "SQL", "Azure"],
    },
    {
        "name": "Jane",
        "surname": "Smith",
        "age": 25,
        "sex": Sex.F,
        "role": "Frontend Developer",
        "department": "Engineering",
        "cv_summary": (
            "Creative frontend developer focused on modern web technologies "
            "and user experience design."
        ),
        "skills": ["JavaScript", "React", "Node.js"],
    },
    {
        "name": "Alice",
        "surname": "Johnson",
        "age": 28,
        "sex": Sex.F,
        "role": "Data Scientist",
        "department": "Data Analytics",
        "cv_summary": (
            "Data scientist with expertise in machine learning and Python-based "
            "data analysis tools."
        ),
        "skills": ["Python", "Django", "Machine Learning"],
    },
]


def seed_people() -> List[Person]:
    """Build the seed set with freshly generated IDs."""
    return [
        Person(id=new_person_id(), **{**row, "skills": list(row["skills"])})
        for row in SEED_PEOPLE
    ]
