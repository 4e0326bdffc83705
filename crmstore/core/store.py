"""
PersonStore - the store interface shared by every backend.

Backends implement the lookup/mutation primitives. Matching and aggregation
rules live here as plain functions so every backend applies them the same way.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from crmstore.core.models import Person, Sex


class StorageError(Exception):
    """The backing storage is unavailable or failed mid-operation."""


# ----------------------------------------------------------------------------
# Matching rules
# ----------------------------------------------------------------------------


def fold_case(value: str) -> str:
    """Unicode case folding used by every case-insensitive comparison."""
    return value.casefold()


def starts_with(value: str, prefix: str) -> bool:
    """Case-insensitive prefix test."""
    return fold_case(value).startswith(fold_case(prefix))


def equals_ignore_case(value: str, other: str) -> bool:
    """Case-insensitive equality test."""
    return fold_case(value) == fold_case(other)


def has_skill(person: Person, skill: str) -> bool:
    """True if any of the person's skills equals ``skill`` ignoring case."""
    return any(equals_ignore_case(s, skill) for s in person.skills)


def is_blank(query: Optional[str]) -> bool:
    """True for None, empty, or all-whitespace queries."""
    return query is None or not query.strip()


def matches_query(person: Person, query: str) -> bool:
    """Case-insensitive substring match over the searchable fields.

    Searched: name, surname, role, department, cv_summary, each skill.
    """
    needle = fold_case(query)
    fields = [person.name, person.surname, person.role, person.department, person.cv_summary]
    fields.extend(person.skills)
    return any(needle in fold_case(value) for value in fields if value)


# ----------------------------------------------------------------------------
# Aggregations
# ----------------------------------------------------------------------------


def skill_statistics(people: Iterable[Person]) -> Dict[str, int]:
    """Count skill occurrences across people, ignoring case.

    Keys keep the casing of the first occurrence seen. A skill listed twice
    by the same person is counted twice.
    """
    display: Dict[str, str] = {}  # folded -> first-seen spelling
    counts: Dict[str, int] = {}
    for person in people:
        for skill in person.skills:
            key = display.setdefault(fold_case(skill), skill)
            counts[key] = counts.get(key, 0) + 1
    return counts


def average_age(people: Iterable[Person]) -> float:
    """Mean age, 0.0 for no people."""
    ages = [p.age for p in people]
    if not ages:
        return 0.0
    return sum(ages) / len(ages)


def oldest_person(people: Iterable[Person]) -> Optional[Person]:
    """Person with the highest age; earliest wins ties."""
    return max(people, key=lambda p: p.age, default=None)


def most_skilled_person(people: Iterable[Person]) -> Optional[Person]:
    """Person with the longest skills list; earliest wins ties."""
    return max(people, key=lambda p: len(p.skills), default=None)


# ----------------------------------------------------------------------------
# Interface
# ----------------------------------------------------------------------------


class PersonStore(ABC):
    """Abstract interface for Person storage.

    Every method returns detached copies: mutating a returned Person or list
    never changes stored state. "Not found" is reported as None, False or an
    empty list, never as an exception. Backend failures raise StorageError.

    Storage order is insertion order. It decides which record wins for
    prefix lookups and for ties in get_oldest_person/get_most_skilled_person.
    """

    @abstractmethod
    def get_by_id(self, person_id: str) -> Optional[Person]:
        """Get a person by exact ID.

        Args:
            person_id: Person ID (UUID string)

        Returns:
            Person if found, None otherwise
        """
        pass

    @abstractmethod
    def get_by_name(self, prefix: str) -> Optional[Person]:
        """First person whose name starts with ``prefix`` (case-insensitive)."""
        pass

    @abstractmethod
    def get_by_surname(self, prefix: str) -> Optional[Person]:
        """First person whose surname starts with ``prefix`` (case-insensitive)."""
        pass

    @abstractmethod
    def get_by_skill(self, skill: str) -> List[Person]:
        """All persons holding ``skill`` (case-insensitive exact match)."""
        pass

    @abstractmethod
    def get_by_department(self, department: str) -> List[Person]:
        """All persons in ``department`` (case-insensitive exact match)."""
        pass

    @abstractmethod
    def get_by_role(self, role: str) -> List[Person]:
        """All persons with ``role`` (case-insensitive exact match)."""
        pass

    @abstractmethod
    def get_all(self) -> List[Person]:
        """Snapshot of every person in storage order."""
        pass

    @abstractmethod
    def search(self, query: str) -> List[Person]:
        """Case-insensitive substring search.

        Matches name, surname, role, department, cv_summary and skills.
        A blank query returns an empty list without touching storage.

        Args:
            query: Text to look for

        Returns:
            Matching persons in storage order (no ranking)
        """
        pass

    @abstractmethod
    def add(
        self,
        name: str,
        surname: str,
        age: int,
        skills: Optional[List[str]] = None,
        sex: Optional[Sex] = None,
        role: str = "",
        department: str = "",
        cv_summary: str = "",
    ) -> Person:
        """Create a person with a freshly assigned ID.

        Field formats are not validated here; callers own that.

        Returns:
            The stored Person
        """
        pass

    @abstractmethod
    def update(
        self,
        person_id: str,
        name: str,
        surname: str,
        age: int,
        skills: Optional[List[str]] = None,
        sex: Optional[Sex] = None,
        role: str = "",
        department: str = "",
        cv_summary: str = "",
    ) -> Optional[Person]:
        """Replace every mutable field of an existing person.

        Omitted optional fields are reset to their defaults; partial updates
        are not supported. The ID never changes.

        Returns:
            The updated Person, or None if no person has this ID
        """
        pass

    @abstractmethod
    def delete(self, person_id: str) -> bool:
        """Hard-delete a person.

        Returns:
            True if a record was removed, False if none matched
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored persons."""
        pass

    def get_skill_statistics(self) -> Dict[str, int]:
        """Skill histogram (see skill_statistics)."""
        return skill_statistics(self.get_all())

    def get_average_age(self) -> float:
        """Mean age across all persons, 0.0 when empty."""
        return average_age(self.get_all())

    def get_oldest_person(self) -> Optional[Person]:
        """Oldest person, None when empty."""
        return oldest_person(self.get_all())

    def get_most_skilled_person(self) -> Optional[Person]:
        """Person with the most skills, None when empty."""
        return most_skilled_person(self.get_all())

    def close(self) -> None:
        """Release storage handles. Safe to call more than once."""

    def __enter__(self) -> "PersonStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
