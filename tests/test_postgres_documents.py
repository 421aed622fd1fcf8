import unittest
from unittest import mock

from vibepulse.errors import DocumentNotFoundError
from vibepulse.storage.documents import TOOLS
from vibepulse.storage.postgres_documents import PostgresDocumentStore


def _fake_connection(cursor):
    conn = mock.MagicMock()
    conn.__enter__.return_value = conn
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn


class TestPostgresMergeTransaction(unittest.TestCase):
    def setUp(self):
        self.cursor = mock.MagicMock(rowcount=1)
        self.conn = _fake_connection(self.cursor)
        patcher = mock.patch("vibepulse.storage.postgres_documents.psycopg.connect", return_value=self.conn)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.store = PostgresDocumentStore("dbname=test")

    def test_both_statements_run_inside_one_transaction(self):
        self.store._merge(TOOLS, 7, {"name": "Cursor"}, "en", {"description": "Editor"})

        self.conn.transaction.assert_called_once_with()
        self.assertEqual(self.cursor.execute.call_count, 2)
        self.conn.transaction.return_value.__exit__.assert_called_once_with(None, None, None)

    def test_locale_failure_leaves_transaction_with_the_error(self):
        self.cursor.execute.side_effect = [None, RuntimeError("connection lost")]

        with self.assertRaises(RuntimeError):
            self.store._merge(TOOLS, 7, {"name": "Cursor"}, "en", {"description": "Editor"})

        exc_type = self.conn.transaction.return_value.__exit__.call_args[0][0]
        self.assertIs(exc_type, RuntimeError)

    def test_missing_document(self):
        self.cursor.rowcount = 0
        with self.assertRaises(DocumentNotFoundError):
            self.store._merge(TOOLS, 999, {}, "en", {"description": "x"})
        self.assertEqual(self.cursor.execute.call_count, 1)


if __name__ == "__main__":
    unittest.main()
