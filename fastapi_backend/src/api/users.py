"""Data access for the ``users`` table."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from src.api.db import Database
from src.api.errors import DecodeFailed, QueryFailed
from src.api.schemas import User

logger = logging.getLogger("tierdemo.users")

BASELINE_NAMES: Sequence[str] = (
    "Jabril",
    "Platform Engineer",
    "Go Developer",
    "Kubernetes Master",
)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""
COUNT_SQL = "SELECT COUNT(*) AS count FROM users"
LIST_SQL = "SELECT id, name, created_at FROM users ORDER BY id"
PROBE_SQL = "SELECT NOW() AS now"


def _insert_sql(count: int) -> str:
    values = ", ".join(["(%s)"] * count)
    return f"INSERT INTO users (name) VALUES {values}"


def decode_user(row: Dict[str, Any]) -> User:
    """Validate one result row into a :class:`User`."""
    try:
        return User.model_validate(row)
    except ValidationError as exc:
        raise DecodeFailed(str(exc)) from exc


class UserStore:
    """Issues the fixed user-table statements against an injected :class:`Database`.

    Every read goes to the database; nothing is cached here.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    # PUBLIC_INTERFACE
    def ensure_schema(self) -> None:
        """Create the users table if it does not exist."""
        self.database.execute(CREATE_TABLE_SQL)

    # PUBLIC_INTERFACE
    def count_rows(self) -> int:
        """Return the number of stored users."""
        row = self.database.fetch_one(COUNT_SQL)
        if row is None:
            raise QueryFailed("COUNT(*) returned no row")
        return int(row["count"])

    # PUBLIC_INTERFACE
    def seed_if_empty(self, names: Sequence[str] = BASELINE_NAMES) -> int:
        """Insert the baseline users in one batch when the table is empty.

        Returns the number of rows inserted. The count and the insert are two
        separate statements, so two processes seeding at the same moment can
        both see an empty table and insert the baseline twice.
        """
        if self.count_rows() > 0:
            return 0
        self.database.execute(_insert_sql(len(names)), list(names))
        logger.info("Sample data inserted (%d users)", len(names))
        return len(names)

    # PUBLIC_INTERFACE
    def list_rows(self) -> List[User]:
        """Return all users ordered by id, skipping rows that fail to decode."""
        users: List[User] = []
        for row in self.database.fetch_all(LIST_SQL):
            try:
                users.append(decode_user(row))
            except DecodeFailed as exc:
                logger.warning("Skipping user row id=%s: %s", row.get("id"), exc.detail)
        return users

    # PUBLIC_INTERFACE
    def probe(self) -> datetime:
        """Run a trivial query and return the database's current time."""
        row = self.database.fetch_one(PROBE_SQL)
        if row is None or row.get("now") is None:
            raise QueryFailed("SELECT NOW() returned no row")
        return row["now"]
