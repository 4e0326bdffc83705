"""
SQLitePersonStore - durable PersonStore on a local SQLite file.

One table holds the people; skills are kept as a JSON array in a TEXT column.
A small metadata table remembers whether the file was ever seeded.

Names and surnames are also stored case-folded (``name_fold``,
``surname_fold``) and indexed, so prefix lookups are index range scans that
fold case exactly like the in-memory store. Equality lookups use a
``casefold()`` SQL function registered on every connection.
"""

import json
import os
import sqlite3
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from crmstore.core.models import (
    Person,
    Sex,
    new_person_id,
    normalize_person_id,
    parse_sex,
    seed_people,
)
from crmstore.core.store import (
    PersonStore,
    StorageError,
    fold_case,
    has_skill,
    is_blank,
    matches_query,
)

_COLUMNS = "id, name, surname, age, sex, role, department, cv_summary, skills"

_MAX_CODE_POINT = 0x10FFFF


def _sql_fold(value: Any) -> Any:
    return fold_case(value) if isinstance(value, str) else value


def _prefix_upper_bound(prefix: str) -> Optional[str]:
    """Smallest string greater than every string starting with ``prefix``.

    None when no such bound exists (empty prefix, or only U+10FFFF).
    """
    chars = list(prefix)
    while chars:
        code = ord(chars[-1]) + 1
        if code > _MAX_CODE_POINT:
            chars.pop()
            continue
        if 0xD800 <= code <= 0xDFFF:
            code = 0xE000  # surrogates can't be stored as UTF-8
        chars[-1] = chr(code)
        return "".join(chars)
    return None


def prefix_query(column: str, prefix: str) -> Tuple[str, tuple]:
    """SELECT for rows whose folded ``column`` starts with folded ``prefix``.

    The range form (``>= low AND < high``) lets SQLite answer it from the
    column's index. Rows come back with their rowid as ``seq``.
    """
    low = fold_case(prefix)
    high = _prefix_upper_bound(low)
    sql = f"SELECT rowid AS seq, {_COLUMNS} FROM people WHERE {column} >= ?"
    if high is None:
        return sql, (low,)
    return sql + f" AND {column} < ?", (low, high)


class SQLitePersonStore(PersonStore):
    """SQLite-backed person store.

    Every operation opens its own connection and runs in a single
    transaction, so one operation's read and write are never interleaved
    with another's. Sequences of operations issued by a caller are not
    isolated: concurrent updates of the same ID are last-writer-wins.
    """

    def __init__(self, db_path: Union[str, Path], seed: bool = True):
        """Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (created if missing)
            seed: Insert the seed set if this file has never been seeded
        """
        self.db_path = Path(db_path)
        self._closed = False
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create directory for {self.db_path}: {e}") from e
        self._init_db()
        if seed:
            self._seed_if_fresh()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, always close.

        sqlite3 errors and undecodable rows surface as StorageError.
        """
        if self._closed:
            raise StorageError(f"Store is closed: {self.db_path}")
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _sql_fold, deterministic=True)
        try:
            with conn:
                yield conn
        except (sqlite3.Error, ValueError) as e:
            raise StorageError(f"Storage failure on {self.db_path}: {e}") from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create tables if they don't exist.

        Files written before the folded columns existed are migrated in
        place: the columns are added and backfilled, and the old indexes
        on the raw columns are rebuilt on the folded ones.
        """
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS people (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    surname TEXT NOT NULL,
                    age INTEGER NOT NULL,
                    sex TEXT,
                    role TEXT NOT NULL DEFAULT '',
                    department TEXT NOT NULL DEFAULT '',
                    cv_summary TEXT NOT NULL DEFAULT '',
                    skills TEXT NOT NULL DEFAULT '[]',
                    name_fold TEXT NOT NULL DEFAULT '',
                    surname_fold TEXT NOT NULL DEFAULT ''
                );

                CREATE TABLE IF NOT EXISTS store_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
            """)

            columns = {row["name"] for row in conn.execute("PRAGMA table_info(people)")}
            if "name_fold" not in columns:
                conn.execute("ALTER TABLE people ADD COLUMN name_fold TEXT NOT NULL DEFAULT ''")
                conn.execute("ALTER TABLE people ADD COLUMN surname_fold TEXT NOT NULL DEFAULT ''")
                conn.execute(
                    "UPDATE people SET name_fold = casefold(name), surname_fold = casefold(surname)"
                )
                conn.execute("DROP INDEX IF EXISTS idx_people_name")
                conn.execute("DROP INDEX IF EXISTS idx_people_surname")

            conn.execute("CREATE INDEX IF NOT EXISTS idx_people_name ON people(name_fold)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_people_surname ON people(surname_fold)")

    def _seed_if_fresh(self) -> None:
        """Insert the seed set once per database file.

        Seeds only when the table is empty and no seed marker exists.
        The marker is written either way, so a table emptied later
        stays empty.
        """
        with self._connect() as conn:
            marker = conn.execute(
                "SELECT value FROM store_meta WHERE key = 'seeded_at'"
            ).fetchone()
            if marker:
                return

            count = conn.execute("SELECT COUNT(*) FROM people").fetchone()[0]
            if count == 0:
                for person in seed_people():
                    self._insert(conn, person)

            conn.execute(
                "INSERT INTO store_meta (key, value) VALUES ('seeded_at', ?)",
                (datetime.now(timezone.utc).isoformat(),),
            )

    @staticmethod
    def _insert(conn: sqlite3.Connection, person: Person) -> None:
        conn.execute(
            f"""
            INSERT INTO people ({_COLUMNS}, name_fold, surname_fold)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                person.id,
                person.name,
                person.surname,
                person.age,
                person.sex.value if person.sex else None,
                person.role,
                person.department,
                person.cv_summary,
                json.dumps(person.skills),
                fold_case(person.name),
                fold_case(person.surname),
            ),
        )

    @staticmethod
    def _row_to_person(row: sqlite3.Row) -> Person:
        return Person(
            id=row["id"],
            name=row["name"],
            surname=row["surname"],
            age=row["age"],
            skills=json.loads(row["skills"] or "[]"),
            sex=parse_sex(row["sex"]),
            role=row["role"] or "",
            department=row["department"] or "",
            cv_summary=row["cv_summary"] or "",
        )

    def _select_one(self, where: str, params: tuple, order: str = "rowid") -> Optional[Person]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM people WHERE {where} ORDER BY {order} LIMIT 1",
                params,
            ).fetchone()
            return self._row_to_person(row) if row else None

    def _select_many(self, where: str = "1", params: tuple = ()) -> List[Person]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM people WHERE {where} ORDER BY rowid",
                params,
            ).fetchall()
            return [self._row_to_person(row) for row in rows]

    # Lookups

    def get_by_id(self, person_id: str) -> Optional[Person]:
        key = normalize_person_id(person_id)
        if key is None:
            return None
        return self._select_one("id = ?", (key,))

    def _first_with_prefix(self, column: str, prefix: str) -> Optional[Person]:
        sql, params = prefix_query(column, prefix)
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            if not rows:
                return None
            # First in storage order
            return self._row_to_person(min(rows, key=lambda row: row["seq"]))

    def get_by_name(self, prefix: str) -> Optional[Person]:
        return self._first_with_prefix("name_fold", prefix)

    def get_by_surname(self, prefix: str) -> Optional[Person]:
        return self._first_with_prefix("surname_fold", prefix)

    def get_by_skill(self, skill: str) -> List[Person]:
        return [p for p in self._select_many() if has_skill(p, skill)]

    def get_by_department(self, department: str) -> List[Person]:
        return self._select_many("casefold(department) = ?", (fold_case(department),))

    def get_by_role(self, role: str) -> List[Person]:
        return self._select_many("casefold(role) = ?", (fold_case(role),))

    def get_all(self) -> List[Person]:
        return self._select_many()

    def search(self, query: str) -> List[Person]:
        if is_blank(query):
            return []
        return [p for p in self._select_many() if matches_query(p, query)]

    # Mutations

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
        with self._connect() as conn:
            self._insert(conn, person)
        return person

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
        key = normalize_person_id(person_id)
        if key is None:
            return None

        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE people
                SET name = ?, surname = ?, age = ?, sex = ?, role = ?,
                    department = ?, cv_summary = ?, skills = ?,
                    name_fold = ?, surname_fold = ?
                WHERE id = ?
                """,
                (
                    name,
                    surname,
                    age,
                    sex.value if sex else None,
                    role or "",
                    department or "",
                    cv_summary or "",
                    json.dumps(list(skills or [])),
                    fold_case(name),
                    fold_case(surname),
                    key,
                ),
            )
            if cursor.rowcount == 0:
                return None

            row = conn.execute(
                f"SELECT {_COLUMNS} FROM people WHERE id = ?", (key,)
            ).fetchone()
            return self._row_to_person(row)

    def delete(self, person_id: str) -> bool:
        key = normalize_person_id(person_id)
        if key is None:
            return False
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM people WHERE id = ?", (key,))
            return cursor.rowcount > 0

    # Aggregates

    def count(self) -> int:
        with self._connect() as conn:
            result = conn.execute("SELECT COUNT(*) FROM people").fetchone()
            return result[0] if result else 0

    def get_average_age(self) -> float:
        with self._connect() as conn:
            result = conn.execute("SELECT AVG(age) FROM people").fetchone()
            if not result or result[0] is None:
                return 0.0
            return float(result[0])

    def get_oldest_person(self) -> Optional[Person]:
        return self._select_one("1", (), order="age DESC, rowid ASC")

    def get_most_skilled_person(self) -> Optional[Person]:
        return self._select_one("1", (), order="json_array_length(skills) DESC, rowid ASC")

    def close(self) -> None:
        self._closed = True


class EphemeralSQLitePersonStore(SQLitePersonStore):
    """SQLite store for scratch and test locations.

    The database file is deleted on close. Deletion is best-effort:
    failures are ignored.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None, seed: bool = True):
        """Initialize store.

        Args:
            db_path: Database file; a temp file is created when omitted
            seed: Insert the seed set into the fresh file
        """
        if db_path is None:
            fd, name = tempfile.mkstemp(prefix="crmstore_", suffix=".db")
            os.close(fd)
            db_path = name
        super().__init__(db_path, seed=seed)

    def close(self) -> None:
        if self._closed:
            return
        super().close()
        for suffix in ("", "-journal", "-wal", "-shm"):
            try:
                Path(f"{self.db_path}{suffix}").unlink()
            except OSError:
                pass
