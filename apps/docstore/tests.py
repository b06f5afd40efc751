from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from .client import Query, store
from .exceptions import DocumentConflict, DocumentNotFound, TransportError
from .models import Document


class DocumentStoreTests(TestCase):

    def setUp(self):
        self.ids = [
            store.create_document("things", {"owner": "a" if i % 2 else "b", "n": i}, doc_id=f"t{i}")["id"]
            for i in range(7)
        ]

    def test_create_and_get(self):
        """
        Test that a created document comes back with its id and data.
        """
        doc = store.get_document("things", "t3")
        self.assertEqual(doc["id"], "t3")
        self.assertEqual(doc["n"], 3)
        self.assertIn("created_at", doc)

    def test_duplicate_id_conflicts(self):
        with self.assertRaises(DocumentConflict):
            store.create_document("things", {}, doc_id="t0")

    def test_same_id_in_another_collection_is_allowed(self):
        store.create_document("others", {}, doc_id="t0")
        self.assertEqual(Document.objects.filter(doc_id="t0").count(), 2)

    def test_missing_document_raises_not_found(self):
        with self.assertRaises(DocumentNotFound):
            store.get_document("things", "nope")
        with self.assertRaises(DocumentNotFound):
            store.delete_document("things", "nope")

    def test_equal_filter_and_limit_zero_count(self):
        """
        Test that limit(0) returns the total without any documents.
        """
        result = store.list_documents("things", [Query.equal("owner", "a"), Query.limit(0)])
        self.assertEqual(result.total, 3)
        self.assertEqual(result.documents, [])

    def test_equal_with_many_values(self):
        result = store.list_documents("things", [Query.equal("n", [1, 2, 5])])
        self.assertEqual(sorted(d["n"] for d in result.documents), [1, 2, 5])

    def test_cursor_pagination_walks_every_document_once(self):
        first = store.list_documents("things", [Query.limit(4)]).documents
        rest = store.list_documents("things", [Query.limit(4), Query.cursor_after(first[-1]["id"])]).documents
        self.assertEqual([d["id"] for d in first + rest], self.ids)

    def test_cursor_after_deleted_anchor_raises_not_found(self):
        store.delete_document("things", "t2")
        with self.assertRaises(DocumentNotFound):
            store.list_documents("things", [Query.cursor_after("t2")])

    def test_iter_documents_pages_through_everything(self):
        seen = [d["id"] for d in store.iter_documents("things", page_size=3)]
        self.assertEqual(seen, self.ids)

    def test_update_merges_fields(self):
        store.update_document("things", "t1", {"extra": True})
        doc = store.get_document("things", "t1")
        self.assertTrue(doc["extra"])
        self.assertEqual(doc["owner"], "a")

    def test_grant_read_is_a_set_union(self):
        """
        Test that repeated grants never duplicate principals and ignore blanks.
        """
        store.grant_read("things", "t0", ["p1", "p2"])
        store.grant_read("things", "t0", ["p2", "", None, "p3"])
        self.assertEqual(store.get_read_principals("things", "t0"), ["p1", "p2", "p3"])

    def test_grant_read_locks_the_row(self):
        """
        Test that grants read the principals under a row lock.
        """
        with mock.patch.object(
            Document.objects, "select_for_update", wraps=Document.objects.select_for_update
        ) as locked:
            store.grant_read("things", "t1", ["p1"])
        locked.assert_called_once_with()
        self.assertEqual(store.get_read_principals("things", "t1"), ["p1"])

        with self.assertRaises(DocumentNotFound):
            store.grant_read("things", "missing", ["p1"])

    def test_database_errors_become_transport_errors(self):
        with mock.patch.object(Document.objects, "filter", side_effect=DatabaseError("down")):
            with self.assertRaises(TransportError):
                store.get_document("things", "t0")
