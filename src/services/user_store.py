"""User record storage backed by a Supabase (PostgREST) table."""

import logging
from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from src.api.middleware.error_handler import InternalError
from src.models.user import PUBLIC_COLUMNS, UserChanges, UserCreate

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

# Query value that lists every user instead of filtering
MATCH_ALL_QUERY = "~"

# PostgREST rewrites * to % in like/ilike values
LIKE_WILDCARD = "*"

LIKE_SPECIAL_CHARS = "%_\\"

SEARCH_FIELDS = ("username", "name", "email")


class DuplicateRecordError(Exception):
    """The store rejected a write because of a unique constraint."""


def _search_pattern(query: str) -> str:
    """Build a quoted, wildcarded ilike value for a PostgREST or-filter.

    The query is matched literally: LIKE metacharacters are backslash-escaped,
    then backslashes and double quotes are escaped again for PostgREST's
    quoted-value syntax. ``*`` is PostgREST's URL-safe stand-in for ``%``
    and cannot be escaped, so it is dropped.
    """
    cleaned = query.replace(LIKE_WILDCARD, "")
    escaped = "".join(f"\\{ch}" if ch in LIKE_SPECIAL_CHARS else ch for ch in cleaned)
    quoted = escaped.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{quoted}*"'


class UserStore:
    """Durable user records keyed by user_id.

    Uniqueness of user_id, email and username is enforced by the table's
    constraints; callers learn about violations through DuplicateRecordError.
    """

    def __init__(self, client: Client, table: str = "users") -> None:
        """Initialize the store.

        Args:
            client: Supabase client created at application startup.
            table: Name of the users table.
        """
        self.client = client
        self.table = table

    def _execute(self, query: Any) -> Any:
        try:
            return query.execute()
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateRecordError(e.message or "duplicate key") from e
            logger.error("User store request failed (code=%s): %s", e.code, e.message)
            raise InternalError("User store request failed") from e

    def _first(self, column: str, value: str, columns: str) -> dict[str, Any] | None:
        response = self._execute(
            self.client.table(self.table)
            .select(columns)
            .eq(column, value)
            .limit(1)
        )
        return response.data[0] if response.data else None

    async def get_by_id(self, user_id: str, columns: str = PUBLIC_COLUMNS) -> dict[str, Any] | None:
        """Get a user by ID.

        Args:
            user_id: The user's ID.
            columns: Columns to select; defaults to the public projection.

        Returns:
            dict | None: The user row or None if not found.
        """
        return self._first("user_id", str(user_id), columns)

    async def get_by_email(self, email: str, columns: str = "*") -> dict[str, Any] | None:
        """Get a user by email address."""
        return self._first("email", email, columns)

    async def get_by_username(self, username: str, columns: str = "*") -> dict[str, Any] | None:
        """Get a user by username."""
        return self._first("username", username, columns)

    async def insert(self, record: UserCreate) -> dict[str, Any]:
        """Insert a new user row.

        Args:
            record: Complete row to insert.

        Returns:
            dict: The inserted row as returned by the store.

        Raises:
            DuplicateRecordError: If email, username or user_id is taken.
            InternalError: On any other store error.
        """
        response = self._execute(self.client.table(self.table).insert(dict(record)))

        return response.data[0] if response.data else dict(record)

    async def update(self, user_id: str, changes: UserChanges) -> dict[str, Any] | None:
        """Apply a partial update to a user row.

        Args:
            user_id: The user's ID.
            changes: Columns to overwrite.

        Returns:
            dict | None: The updated row or None if no row matched.

        Raises:
            DuplicateRecordError: If a new email or username is taken.
            InternalError: On any other store error.
        """
        response = self._execute(
            self.client.table(self.table)
            .update(dict(changes))
            .eq("user_id", str(user_id))
        )

        return response.data[0] if response.data else None

    async def search(self, query: str, offset: int, limit: int) -> tuple[list[dict[str, Any]], int]:
        """Search users by username, name or email.

        Matching is a case-insensitive substring match. The query ``~``
        skips the filter and lists everyone. Results are ranked by follower
        count, most followed first.

        Args:
            query: Free-text query or ``~``.
            offset: Number of rows to skip.
            limit: Maximum rows to return.

        Returns:
            tuple: (rows in the requested page, total number of matches).
        """
        request = self.client.table(self.table).select(PUBLIC_COLUMNS, count="exact")

        if query != MATCH_ALL_QUERY:
            pattern = _search_pattern(query)
            request = request.or_(",".join(f"{field}.ilike.{pattern}" for field in SEARCH_FIELDS))

        response = self._execute(
            request.order("followers", desc=True)
            .range(offset, offset + limit - 1)
        )

        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return rows, total

    async def ping(self) -> dict[str, Any]:
        """Check that the users table is reachable.

        Returns:
            dict: Connection status with 'healthy' boolean and optional 'error' message.
        """
        try:
            self.client.table(self.table).select("user_id").limit(1).execute()
            return {"healthy": True}
        except Exception as e:
            return {"healthy": False, "error": str(e)}
