"""ptc_roster.store

Store contract consumed by the reconciler and the read path, and its
PostgreSQL implementation.

The contract is four capabilities:

  - get / put of a single document by (kind, key)
  - key-only range scans over a kind (optionally under a key prefix)
  - projected range scans returning one document field per key
  - an all-or-nothing batch of insert / update / delete mutations

All of them run inside ``RecordStore.transaction()``, which commits on
normal exit and rolls back on any exception.  A read of a missing document
returns None; genuine store failures raise.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Protocol

import psycopg

from ptc_roster.shared import StoreConflictError

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


@dataclass(frozen=True)
class Mutation:
    op: str
    kind: str
    key: str
    doc: dict[str, Any] | None = None


class StoreTransaction(Protocol):
    def keys(self, kind: str, prefix: str | None = None) -> list[str]: ...

    def project(self, kind: str, field: str, prefix: str | None = None) -> dict[str, Any]: ...

    def get(self, kind: str, key: str) -> dict[str, Any] | None: ...

    def put(self, kind: str, key: str, doc: dict[str, Any]) -> None: ...

    def mutate(self, mutations: list[Mutation]) -> int: ...


class RecordStore(Protocol):
    def transaction(self) -> Any:
        """Return a context manager yielding a StoreTransaction."""
        ...


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------

def _prefix_clause(prefix: str | None) -> tuple[str, tuple[Any, ...]]:
    if prefix is None:
        return "", ()
    return " AND starts_with(key, %s)", (prefix,)


class PostgresTransaction:
    """StoreTransaction over the ``record`` table.  Caller manages commit."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def keys(self, kind: str, prefix: str | None = None) -> list[str]:
        clause, params = _prefix_clause(prefix)
        rows = self._conn.execute(
            f"SELECT key FROM record WHERE kind = %s{clause} ORDER BY key",
            (kind, *params),
        ).fetchall()
        return [r[0] for r in rows]

    def project(self, kind: str, field: str, prefix: str | None = None) -> dict[str, Any]:
        clause, params = _prefix_clause(prefix)
        rows = self._conn.execute(
            f"SELECT key, doc -> %s::text FROM record WHERE kind = %s{clause} ORDER BY key",
            (field, kind, *params),
        ).fetchall()
        return {r[0]: r[1] for r in rows}

    def get(self, kind: str, key: str) -> dict[str, Any] | None:
        row = self._conn.execute(
            "SELECT doc FROM record WHERE kind = %s AND key = %s",
            (kind, key),
        ).fetchone()
        return row[0] if row else None

    def put(self, kind: str, key: str, doc: dict[str, Any]) -> None:
        self._conn.execute(
            """
            INSERT INTO record (kind, key, doc)
            VALUES (%s, %s, %s::jsonb)
            ON CONFLICT (kind, key) DO UPDATE SET
              doc = EXCLUDED.doc,
              updated_at = now()
            """,
            (kind, key, json.dumps(doc)),
        )

    def mutate(self, mutations: list[Mutation]) -> int:
        for m in mutations:
            if m.op == INSERT:
                row = self._conn.execute(
                    """
                    INSERT INTO record (kind, key, doc)
                    VALUES (%s, %s, %s::jsonb)
                    ON CONFLICT (kind, key) DO NOTHING
                    RETURNING key
                    """,
                    (m.kind, m.key, json.dumps(m.doc)),
                ).fetchone()
                if row is None:
                    raise StoreConflictError(f"insert {m.kind}/{m.key}: already exists")
            elif m.op == UPDATE:
                cur = self._conn.execute(
                    "UPDATE record SET doc = %s::jsonb, updated_at = now() WHERE kind = %s AND key = %s",
                    (json.dumps(m.doc), m.kind, m.key),
                )
                if cur.rowcount != 1:
                    raise StoreConflictError(f"update {m.kind}/{m.key}: not found")
            elif m.op == DELETE:
                self._conn.execute(
                    "DELETE FROM record WHERE kind = %s AND key = %s",
                    (m.kind, m.key),
                )
            else:
                raise ValueError(f"unknown mutation op {m.op!r}")
        return len(mutations)


class PostgresStore:
    """RecordStore over a psycopg connection (autocommit must be off)."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self.conn = conn

    @classmethod
    def connect(cls, dsn: str) -> PostgresStore:
        conn = psycopg.connect(dsn, autocommit=False)
        # Every transaction reads one consistent snapshot.
        conn.isolation_level = psycopg.IsolationLevel.REPEATABLE_READ
        return cls(conn)

    @contextmanager
    def transaction(self) -> Iterator[PostgresTransaction]:
        try:
            yield PostgresTransaction(self.conn)
            self.conn.commit()
        except BaseException:
            self.conn.rollback()
            raise

    def close(self) -> None:
        self.conn.close()
