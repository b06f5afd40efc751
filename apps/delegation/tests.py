import json
from unittest import mock

from django.test import TestCase

from apps.docstore.client import store
from apps.docstore.config import collection_id
from .executor import create_execution, delegate_read, grant_payload
from .functions import function_id, get_function, resolve_function
from .tasks import execute_permission_function


class GrantPayloadTests(TestCase):

    def test_blank_and_repeated_principals_are_dropped(self):
        payload = grant_payload("doc1", ["p1", None, "", "p2", "p1"])
        self.assertEqual(payload, {"documentId": "doc1", "principalIds": ["p1", "p2"]})


class FunctionRegistryTests(TestCase):

    def test_function_resolves_to_its_collection(self):
        fn = get_function("feedback_reply_parent")
        self.assertEqual(fn.collection, collection_id("comments", "feedback_reply"))
        self.assertEqual(resolve_function(fn.function_id), fn)

    def test_unknown_function_id(self):
        self.assertIsNone(resolve_function("doesNotExist"))


class DelegateReadTests(TestCase):

    def setUp(self):
        self.collection = collection_id("comments", "comment")
        self.comment = store.create_document(self.collection, {"content": "hi"})

    def test_grant_lands_on_the_record(self):
        """
        Test that a delegated grant (run eagerly in tests) adds the principals.
        """
        self.assertTrue(delegate_read("comment", self.comment["id"], "p1", "p2"))
        self.assertEqual(store.get_read_principals(self.collection, self.comment["id"]), ["p1", "p2"])

    def test_nothing_dispatched_without_principals(self):
        with mock.patch.object(execute_permission_function, "delay") as delay:
            self.assertFalse(delegate_read("comment", self.comment["id"], None, ""))
        delay.assert_not_called()

    def test_dispatch_failure_is_swallowed(self):
        """
        Test that a broker failure is logged and reported as False, never raised.
        """
        with mock.patch.object(execute_permission_function, "delay", side_effect=ConnectionError("broker down")):
            with self.assertLogs("apps.delegation.executor", level="WARNING"):
                self.assertFalse(delegate_read("comment", self.comment["id"], "p1"))

    def test_synchronous_execution(self):
        payload = grant_payload(self.comment["id"], ["p9"])
        self.assertTrue(create_execution("comment", payload, is_async=False))
        self.assertIn("p9", store.get_read_principals(self.collection, self.comment["id"]))


class ExecutePermissionFunctionTests(TestCase):

    def test_missing_target_is_not_an_error(self):
        body = json.dumps({"documentId": "gone", "principalIds": ["p1"]})
        self.assertFalse(execute_permission_function(function_id("comment"), body))

    def test_malformed_body(self):
        self.assertFalse(execute_permission_function(function_id("comment"), "{not json"))
