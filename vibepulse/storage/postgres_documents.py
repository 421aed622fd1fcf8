"""Postgres-backed document store.

Plain psycopg + SQL. Locale slices are merged with the JSONB `||` operator,
which makes every write a field-scoped merge rather than a replacement. The
shared row and the locale slice of one write commit in a single transaction.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg import errors as pg_errors
from psycopg.types.json import Jsonb

from vibepulse.config import SOURCE_LOCALE
from vibepulse.errors import DocumentNotFoundError, DuplicateKeyError, StoreUnavailableError
from vibepulse.storage.documents import DEFAULT_COLLECTIONS, CollectionSchema, DocumentStore


class PostgresDocumentStore(DocumentStore):
    def __init__(self, pg_dsn: str, collections: Sequence[CollectionSchema] = DEFAULT_COLLECTIONS):
        super().__init__(collections)
        self.pg_dsn = pg_dsn

    def _connect(self):
        try:
            return psycopg.connect(self.pg_dsn, autocommit=True)
        except psycopg.OperationalError as e:
            raise StoreUnavailableError(f"cannot reach Postgres: {e}") from e

    def _insert(self, schema, unique, shared, locale, localized):
        with self._connect() as conn:
            with conn.transaction(), conn.cursor() as cur:
                try:
                    cur.execute(
                        """
                        INSERT INTO documents (kind, unique_key, shared)
                        VALUES (%s, %s, %s)
                        RETURNING id
                        """,
                        (schema.kind, unique, Jsonb(shared)),
                    )
                except pg_errors.UniqueViolation:
                    raise DuplicateKeyError(schema.kind, str(unique))
                doc_id = int(cur.fetchone()[0])
                cur.execute(
                    """
                    INSERT INTO document_locales (document_id, locale, fields)
                    VALUES (%s, %s, %s)
                    """,
                    (doc_id, locale, Jsonb(localized)),
                )
        return doc_id

    def _merge(self, schema, doc_id, shared, locale, localized):
        with self._connect() as conn:
            with conn.transaction(), conn.cursor() as cur:
                try:
                    cur.execute(
                        """
                        UPDATE documents
                        SET shared = shared || %(shared)s,
                            unique_key = COALESCE(%(unique)s, unique_key),
                            updated_at = now()
                        WHERE id = %(id)s AND kind = %(kind)s
                        """,
                        {
                            "shared": Jsonb(shared),
                            "unique": shared.get(schema.unique_key) if schema.unique_key else None,
                            "id": doc_id,
                            "kind": schema.kind,
                        },
                    )
                except pg_errors.UniqueViolation:
                    raise DuplicateKeyError(schema.kind, str(shared.get(schema.unique_key)))
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"{schema.kind}/{doc_id}")
                if localized:
                    cur.execute(
                        """
                        INSERT INTO document_locales (document_id, locale, fields)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (document_id, locale) DO UPDATE SET
                          fields = document_locales.fields || EXCLUDED.fields,
                          updated_at = now()
                        """,
                        (doc_id, locale, Jsonb(localized)),
                    )

    def _select(self, where: str, params: List[Any], locale: str) -> List[Dict[str, Any]]:
        sql = f"""
        SELECT d.id, d.shared, l.fields
        FROM documents d
        LEFT JOIN document_locales l ON l.document_id = d.id AND l.locale = %s
        WHERE {where}
        ORDER BY d.id
        """
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, [locale] + params)
                rows = cur.fetchall()
        return [self.compose(int(doc_id), shared or {}, fields or {}) for doc_id, shared, fields in rows]

    def find_by_id(self, kind, doc_id, locale=SOURCE_LOCALE):
        self.schema(kind)
        docs = self._select("d.kind = %s AND d.id = %s", [kind, doc_id], locale)
        if not docs:
            raise DocumentNotFoundError(f"{kind}/{doc_id}")
        return docs[0]

    def find_by_unique_key(self, kind, key, locale=SOURCE_LOCALE) -> Optional[Dict[str, Any]]:
        self.schema(kind)
        docs = self._select("d.kind = %s AND d.unique_key = %s", [kind, key], locale)
        return docs[0] if docs else None

    def find_all(self, kind, locale=SOURCE_LOCALE):
        self.schema(kind)
        return self._select("d.kind = %s", [kind], locale)
