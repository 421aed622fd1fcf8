import unittest

from vibepulse.errors import DocumentNotFoundError, DuplicateKeyError, StoreError
from vibepulse.storage.documents import (
    OPERATION_CREATE,
    OPERATION_UPDATE,
    InMemoryDocumentStore,
    SyncOptions,
)


class TestInMemoryDocumentStore(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.events = []
        self.store.after_change("tools", self.events.append)

    def test_locales_are_separate_and_shared_fields_are_common(self):
        doc = self.store.create("tools", "nl", {"slug": "cursor", "name": "Cursor", "description": "Editor"})
        self.store.update("tools", doc["id"], "en", {"description": "Code editor"})

        nl = self.store.find_by_id("tools", doc["id"], "nl")
        en = self.store.find_by_id("tools", doc["id"], "en")
        es = self.store.find_by_id("tools", doc["id"], "es")
        self.assertEqual(nl["description"], "Editor")
        self.assertEqual(en["description"], "Code editor")
        self.assertNotIn("description", es)
        self.assertEqual(es["name"], "Cursor")

    def test_update_merges_only_given_fields(self):
        doc = self.store.create("tools", "en", {"slug": "v0", "shortOneLiner": "UI gen", "description": "Long"})
        self.store.update("tools", doc["id"], "en", {"shortOneLiner": "UI generator"})
        en = self.store.find_by_id("tools", doc["id"], "en")
        self.assertEqual(en["shortOneLiner"], "UI generator")
        self.assertEqual(en["description"], "Long")

    def test_events_carry_previous_doc_and_options(self):
        doc = self.store.create("tools", "nl", {"slug": "bolt", "description": "Oud"})
        self.store.update("tools", doc["id"], "nl", {"description": "Nieuw"}, SyncOptions(skip_synchronization=True))

        created, updated = self.events
        self.assertEqual(created.operation, OPERATION_CREATE)
        self.assertIsNone(created.previous_doc)
        self.assertFalse(created.options.skip_synchronization)
        self.assertEqual(updated.operation, OPERATION_UPDATE)
        self.assertEqual(updated.previous_doc["description"], "Oud")
        self.assertEqual(updated.doc["description"], "Nieuw")
        self.assertTrue(updated.options.skip_synchronization)

    def test_unique_key(self):
        self.store.create("tools", "nl", {"slug": "lovable"})
        with self.assertRaises(DuplicateKeyError):
            self.store.create("tools", "nl", {"slug": "lovable"})
        self.assertEqual(len(self.events), 1)
        self.assertIsNotNone(self.store.find_by_unique_key("tools", "lovable"))
        self.assertIsNone(self.store.find_by_unique_key("tools", "unknown"))

    def test_returned_documents_are_copies(self):
        doc = self.store.create("tools", "nl", {"slug": "x", "bestFor": [{"point": "Snel"}]})
        doc["bestFor"][0]["point"] = "gewijzigd"
        self.assertEqual(self.store.find_by_id("tools", doc["id"])["bestFor"], [{"point": "Snel"}])

    def test_missing_document_and_unknown_kind(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.find_by_id("tools", 999)
        with self.assertRaises(DocumentNotFoundError):
            self.store.update("tools", 999, "nl", {"description": "x"})
        with self.assertRaises(StoreError):
            self.store.create("podcasts", "nl", {})

    def test_find_all_in_locale(self):
        a = self.store.create("cases", "nl", {"slug": "a", "title": "Eerste"})
        self.store.create("cases", "nl", {"slug": "b", "title": "Tweede"})
        self.store.update("cases", a["id"], "en", {"title": "First"})
        titles = [d.get("title") for d in self.store.find_all("cases", "en")]
        self.assertEqual(titles, ["First", None])


if __name__ == "__main__":
    unittest.main()
