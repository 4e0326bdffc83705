"""In-memory PersonStore backed by an owned, lock-guarded list."""

import threading
from typing import List, Optional

from crmstore.core.models import Person, Sex, new_person_id, normalize_person_id, seed_people
from crmstore.core.store import (
    PersonStore,
    equals_ignore_case,
    has_skill,
    is_blank,
    matches_query,
    starts_with,
)


class InMemoryPersonStore(PersonStore):
    """Process-local store. Nothing survives the instance.

    One coarse lock serializes every operation on an instance.
    """

    def __init__(self, seed: bool = True):
        """Initialize the store.

        Args:
            seed: Insert the seed set into the (always fresh) list
        """
        self._lock = threading.Lock()
        self._people: List[Person] = seed_people() if seed else []

    def _find_index(self, person_id: str) -> Optional[int]:
        key = normalize_person_id(person_id)
        if key is None:
            return None
        for i, person in enumerate(self._people):
            if person.id == key:
                return i
        return None

    def get_by_id(self, person_id: str) -> Optional[Person]:
        with self._lock:
            i = self._find_index(person_id)
            return self._people[i].copy() if i is not None else None

    def get_by_name(self, prefix: str) -> Optional[Person]:
        with self._lock:
            for person in self._people:
                if starts_with(person.name, prefix):
                    return person.copy()
            return None

    def get_by_surname(self, prefix: str) -> Optional[Person]:
        with self._lock:
            for person in self._people:
                if starts_with(person.surname, prefix):
                    return person.copy()
            return None

    def get_by_skill(self, skill: str) -> List[Person]:
        with self._lock:
            return [p.copy() for p in self._people if has_skill(p, skill)]

    def get_by_department(self, department: str) -> List[Person]:
        with self._lock:
            return [p.copy() for p in self._people if equals_ignore_case(p.department, department)]

    def get_by_role(self, role: str) -> List[Person]:
        with self._lock:
            return [p.copy() for p in self._people if equals_ignore_case(p.role, role)]

    def get_all(self) -> List[Person]:
        with self._lock:
            return [p.copy() for p in self._people]

    def search(self, query: str) -> List[Person]:
        if is_blank(query):
            return []
        with self._lock:
            return [p.copy() for p in self._people if matches_query(p, query)]

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
        person = Person(
            id=new_person_id(),
            name=name,
            surname=surname,
            age=age,
            skills=list(skills or []),
            sex=sex,
            role=role or "",
            department=department or "",
            cv_summary=cv_summary or "",
        )
        with self._lock:
            self._people.append(person)
        return person.copy()

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
        with self._lock:
            i = self._find_index(person_id)
            if i is None:
                return None
            updated = Person(
                id=self._people[i].id,
                name=name,
                surname=surname,
                age=age,
                skills=list(skills or []),
                sex=sex,
                role=role or "",
                department=department or "",
                cv_summary=cv_summary or "",
            )
            self._people[i] = updated
            return updated.copy()

    def delete(self, person_id: str) -> bool:
        with self._lock:
            i = self._find_index(person_id)
            if i is None:
                return False
            del self._people[i]
            return True

    def count(self) -> int:
        with self._lock:
            return len(self._people)
