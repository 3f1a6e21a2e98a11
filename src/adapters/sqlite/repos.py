import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.components.publicize.models import Connection
from src.domain.entities import Post, PublicizeConnectionRecord, User
from src.rules.models import PublicizeRules

logger = logging.getLogger(__name__)

SKIP_MARKER = "1"
DONE_MARKER = "1"


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


class _SQLiteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn


class SQLiteUserRepo(_SQLiteRepo):
    def save(self, user: User) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO users (
                    id, email, display_name, password_hash, status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email=excluded.email,
                    display_name=excluded.display_name,
                    password_hash=excluded.password_hash,
                    status=excluded.status,
                    updated_at=excluded.updated_at
            """,
                (
                    str(user.id),
                    user.email,
                    user.display_name,
                    user.password_hash,
                    user.status,
                    user.created_at.isoformat(),
                    user.updated_at.isoformat(),
                ),
            )

            # Replace role assignments
            conn.execute("DELETE FROM role_assignments WHERE user_id = ?", (str(user.id),))
            for role in user.roles:
                conn.execute(
                    "INSERT INTO role_assignments (id, user_id, role, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (str(uuid4()), str(user.id), role, datetime.now(UTC).isoformat()),
                )

            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_id(self, user_id: UUID) -> User | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
            if not row:
                return None
            return self._map_row_to_user(conn, row)
        finally:
            conn.close()

    def _map_row_to_user(self, conn: sqlite3.Connection, row: dict[str, Any]) -> User:
        role_rows = conn.execute(
            "SELECT role FROM role_assignments WHERE user_id = ?", (row["id"],)
        ).fetchall()
        roles = [r["role"] for r in role_rows]

        return User(
            id=UUID(row["id"]),
            email=row["email"],
            display_name=row["display_name"],
            password_hash=row["password_hash"],
            roles=roles,
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLitePostRepo(_SQLiteRepo):
    def save(self, post: Post) -> Post:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO posts (
                    id, type, title, status, author_user_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    type=excluded.type,
                    title=excluded.title,
                    status=excluded.status,
                    author_user_id=excluded.author_user_id,
                    updated_at=excluded.updated_at
            """,
                (
                    str(post.id),
                    post.type,
                    post.title,
                    post.status,
                    str(post.author_user_id),
                    post.created_at.isoformat(),
                    post.updated_at.isoformat(),
                ),
            )
            conn.commit()
            return post
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_id(self, post_id: UUID) -> Post | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (str(post_id),)).fetchone()
            if not row:
                return None
            return Post(
                id=UUID(row["id"]),
                type=row["type"],
                title=row["title"],
                status=row["status"],
                author_user_id=UUID(row["author_user_id"]),
                created_at=datetime.fromisoformat(row["created_at"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
        finally:
            conn.close()


class SQLitePublicizeRepo(_SQLiteRepo):
    """
    Stored Publicize connections plus the per-post meta that tracks skip and
    done state.

    Implements ConnectionReaderPort and SkipStatePort. The snapshot it returns
    is computed for `actor_id`: connections owned by another user are visible
    but not toggleable.
    """

    def __init__(
        self,
        db_path: str,
        rules: PublicizeRules | None = None,
        actor_id: UUID | None = None,
    ):
        super().__init__(db_path)
        self.rules = rules or PublicizeRules()
        self.actor_id = actor_id

    # --- Connections ---

    def save_connection(self, record: PublicizeConnectionRecord) -> PublicizeConnectionRecord:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO publicize_connections (
                    unique_id, service_name, display_name, external_id,
                    access_token, owner_user_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(unique_id) DO UPDATE SET
                    service_name=excluded.service_name,
                    display_name=excluded.display_name,
                    external_id=excluded.external_id,
                    access_token=excluded.access_token,
                    owner_user_id=excluded.owner_user_id
            """,
                (
                    record.unique_id,
                    record.service_name,
                    record.display_name,
                    record.external_id,
                    record.access_token,
                    str(record.owner_user_id) if record.owner_user_id else None,
                    record.created_at.isoformat(),
                ),
            )
            conn.commit()
            return record
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def list_records(self) -> list[PublicizeConnectionRecord]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM publicize_connections ORDER BY created_at, unique_id"
            ).fetchall()
            return [
                PublicizeConnectionRecord(
                    unique_id=row["unique_id"],
                    service_name=row["service_name"],
                    display_name=row["display_name"] or "",
                    external_id=row["external_id"],
                    access_token=row["access_token"],
                    owner_user_id=UUID(row["owner_user_id"]) if row["owner_user_id"] else None,
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in rows
            ]
        finally:
            conn.close()

    def list_connections(self, post_id: UUID) -> list[Connection]:
        """Snapshot of every stored connection's state for the post."""
        records = self.list_records()
        meta = self.get_post_meta(post_id)

        done_all = self.rules.done_all_meta_key in meta

        connections: list[Connection] = []
        for record in records:
            done_for_connection = f"{self.rules.done_meta_prefix}{record.unique_id}" in meta
            skipped = f"{self.rules.skip_meta_prefix}{record.unique_id}" in meta
            done = done_all or done_for_connection

            if done:
                # Once shared, enabled reports whether this connection was used
                enabled = done_for_connection or (done_all and not skipped)
            else:
                enabled = not skipped

            owned_by_other = (
                record.owner_user_id is not None
                and (self.actor_id is None or record.owner_user_id != self.actor_id)
            )

            # Credentials and ownership ride along in the row; from_record drops them
            row = record.model_dump()
            row.update(enabled=enabled, done=done, toggleable=not done and not owned_by_other)
            connections.append(Connection.from_record(row))
        return connections

    # --- Post meta ---

    def get_post_meta(self, post_id: UUID) -> dict[str, str]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT meta_key, meta_value FROM post_meta WHERE post_id = ?",
                (str(post_id),),
            ).fetchall()
            return {row["meta_key"]: row["meta_value"] for row in rows}
        finally:
            conn.close()

    def _set_meta(self, post_id: UUID, meta_key: str, meta_value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO post_meta (post_id, meta_key, meta_value)
                VALUES (?, ?, ?)
                ON CONFLICT(post_id, meta_key) DO UPDATE SET
                    meta_value=excluded.meta_value
            """,
                (str(post_id), meta_key, meta_value),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _delete_meta(self, post_id: UUID, meta_key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM post_meta WHERE post_id = ? AND meta_key = ?",
                (str(post_id), meta_key),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def set_skip(self, post_id: UUID, connection_id: str) -> None:
        self._set_meta(post_id, f"{self.rules.skip_meta_prefix}{connection_id}", SKIP_MARKER)

    def clear_skip(self, post_id: UUID, connection_id: str) -> None:
        self._delete_meta(post_id, f"{self.rules.skip_meta_prefix}{connection_id}")

    def mark_done(self, post_id: UUID, connection_id: str) -> None:
        """Record that the post was shared to the connection."""
        logger.debug("Marking post %s done for connection %s", post_id, connection_id)
        self._set_meta(post_id, f"{self.rules.done_meta_prefix}{connection_id}", DONE_MARKER)
