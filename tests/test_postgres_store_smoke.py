import os
import unittest
import uuid

import psycopg

from vibepulse.errors import DuplicateKeyError, StoreUnavailableError
from vibepulse.storage.postgres_documents import PostgresDocumentStore
from vibepulse.storage.postgres_schema import ensure_postgres_schema


PG_DSN = os.environ.get("PG_DSN", "dbname=vibepulse user=vibepulse password=vibepulse host=localhost port=5432")


class TestPostgresDocumentStoreSmoke(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        try:
            ensure_postgres_schema(PG_DSN)
        except StoreUnavailableError as e:
            raise unittest.SkipTest(f"Postgres not reachable: {e}")
        cls.store = PostgresDocumentStore(PG_DSN)
        cls.slug = f"smoke-{uuid.uuid4().hex[:12]}"

    @classmethod
    def tearDownClass(cls):
        with psycopg.connect(PG_DSN, autocommit=True) as conn:
            conn.execute("DELETE FROM documents WHERE kind = 'tools' AND unique_key = %s", (cls.slug,))

    def test_locale_slices_merge_independently(self):
        doc = self.store.create("tools", "nl", {"slug": self.slug, "name": "Smoke", "description": "Hallo"})
        self.store.update("tools", doc["id"], "en", {"description": "Hello"})
        self.store.update("tools", doc["id"], "en", {"shortOneLiner": "Hi"})

        en = self.store.find_by_id("tools", doc["id"], "en")
        self.assertEqual(en["description"], "Hello")
        self.assertEqual(en["shortOneLiner"], "Hi")
        self.assertEqual(en["name"], "Smoke")
        self.assertEqual(self.store.find_by_id("tools", doc["id"], "nl")["description"], "Hallo")
        self.assertEqual(self.store.find_by_unique_key("tools", self.slug)["id"], doc["id"])

        with self.assertRaises(DuplicateKeyError):
            self.store.create("tools", "nl", {"slug": self.slug})

    def test_failed_locale_write_rolls_back_shared_fields(self):
        slug = f"{self.slug}-rb"
        self.addCleanup(self._delete, slug)
        doc = self.store.create("tools", "nl", {"slug": slug, "name": "Before"})

        # A NULL locale violates the locale row's NOT NULL after the shared row was updated.
        with self.assertRaises(psycopg.IntegrityError):
            self.store.update("tools", doc["id"], None, {"name": "After", "description": "x"})

        self.assertEqual(self.store.find_by_id("tools", doc["id"], "nl")["name"], "Before")

    @staticmethod
    def _delete(slug):
        with psycopg.connect(PG_DSN, autocommit=True) as conn:
            conn.execute("DELETE FROM documents WHERE kind = 'tools' AND unique_key = %s", (slug,))


if __name__ == "__main__":
    unittest.main()
