"""Postgres schema management for the locale-aware document store.

Schema creation is idempotent (CREATE IF NOT EXISTS). Each document row keeps
its shared fields as JSONB; each locale slice is its own row so that
translation write-backs merge into one locale without touching the others.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg

from vibepulse.errors import StoreUnavailableError


SCHEMA_STATEMENTS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS documents (
      id BIGSERIAL PRIMARY KEY,
      kind TEXT NOT NULL,
      unique_key TEXT,
      shared JSONB NOT NULL DEFAULT '{}'::jsonb,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (kind, unique_key)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_documents_kind_created ON documents (kind, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS document_locales (
      document_id BIGINT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
      locale TEXT NOT NULL,
      fields JSONB NOT NULL DEFAULT '{}'::jsonb,
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      PRIMARY KEY (document_id, locale)
    );
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    try:
        with psycopg.connect(pg_dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                for s in stmts:
                    cur.execute(s)
    except psycopg.OperationalError as e:
        raise StoreUnavailableError(f"cannot reach Postgres: {e}") from e
