import threading

from django.test import SimpleTestCase, TestCase

from apps.docstore.client import store
from apps.docstore.exceptions import TransportError
from apps.docstore.testing import StoreFixturesMixin, failing_deletes
from apps.interactions.services import check_subject_like, count_subject_likes
from apps.profiles.services import check_supporting_user
from .cascade import CascadeReport, delete_many
from .exceptions import PartialCascadeFailure, custom_exception_handler
from .optimistic import (
    ControlBusy,
    InteractionStateCache,
    OptimisticCommand,
    ToggleState,
    toggle_like,
    toggle_support,
)
from .responses import result_response
from .results import ErrorCode, OperationResult


class ToggleStateTests(SimpleTestCase):

    def test_toggle_moves_both_fields(self):
        self.assertEqual(ToggleState(False, 3).toggled(), ToggleState(True, 4))
        self.assertEqual(ToggleState(True, 0).toggled(), ToggleState(False, 0))


class OptimisticCommandTests(SimpleTestCase):

    def setUp(self):
        self.cache = InteractionStateCache()
        self.key = ("like", "s1", "u1")
        self.cache.set(self.key, ToggleState(False, 7))
        self.errors = []

    def _command(self, execute, reconcile=None):
        return OptimisticCommand(
            self.cache, self.key, apply=ToggleState.toggled, execute=execute,
            on_error=self.errors.append, reconcile=reconcile,
        )

    def test_failure_restores_both_fields(self):
        """
        Test that a rejected mutation brings back the exact snapshot.
        """
        seen = []

        def execute(previous):
            seen.append(self.cache.get(self.key))
            return OperationResult.fail(ErrorCode.DUPLICATE_INTERACTION)

        result = self._command(execute).run()
        self.assertFalse(result.success)
        self.assertEqual(seen, [ToggleState(True, 8)])
        self.assertEqual(self.cache.get(self.key), ToggleState(False, 7))
        self.assertEqual(self.errors, [ErrorCode.DUPLICATE_INTERACTION])

    def test_exception_restores_and_propagates(self):
        def execute(previous):
            raise TransportError("down")

        with self.assertRaises(TransportError):
            self._command(execute).run()
        self.assertEqual(self.cache.get(self.key), ToggleState(False, 7))
        self.assertIsInstance(self.errors[0], TransportError)

    def test_success_reconciles_server_count(self):
        command = self._command(
            lambda previous: OperationResult.ok(likes_count=12),
            reconcile=lambda result: result.get("likes_count"),
        )
        self.assertTrue(command.run().success)
        self.assertEqual(self.cache.get(self.key), ToggleState(True, 12))

    def test_second_mutation_while_in_flight_is_rejected(self):
        started, release = threading.Event(), threading.Event()

        def slow(previous):
            started.set()
            release.wait(5)
            return OperationResult.ok()

        worker = threading.Thread(target=self._command(slow).run)
        worker.start()
        started.wait(5)
        try:
            self.assertTrue(self.cache.is_busy(self.key))
            with self.assertRaises(ControlBusy):
                self._command(lambda previous: OperationResult.ok()).run()
        finally:
            release.set()
            worker.join(5)
        self.assertFalse(self.cache.is_busy(self.key))
        self.assertEqual(self.cache.get(self.key), ToggleState(True, 8))


class ToggleHelperTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        _, self.fan_id, _ = self.make_creator("fan")
        self.creation = self.make_creation(self.author_id)
        self.cache = InteractionStateCache()

    def test_toggle_like_round_trip(self):
        key = ("like", self.creation["id"], self.fan_id)
        toggle_like(self.cache, self.creation["id"], self.fan_id, self.author_principal)
        self.assertEqual(self.cache.get(key), ToggleState(True, 1))
        self.assertTrue(check_subject_like(self.creation["id"], self.fan_id))

        toggle_like(self.cache, self.creation["id"], self.fan_id, self.author_principal)
        self.assertEqual(self.cache.get(key), ToggleState(False, 0))
        self.assertEqual(count_subject_likes(self.creation["id"]), 0)

    def test_stale_cache_reverts_on_duplicate(self):
        """
        Test that a like already stored server-side reverts the optimistic state.
        """
        toggle_like(InteractionStateCache(), self.creation["id"], self.fan_id, self.author_principal)
        errors = []
        result = toggle_like(self.cache, self.creation["id"], self.fan_id, self.author_principal, on_error=errors.append)
        self.assertEqual(result.error, ErrorCode.DUPLICATE_INTERACTION)
        self.assertEqual(self.cache.get(("like", self.creation["id"], self.fan_id)), ToggleState(False, 0))
        self.assertEqual(errors, [ErrorCode.DUPLICATE_INTERACTION])

    def test_toggle_support(self):
        toggle_support(self.cache, self.fan_id, self.author_id)
        self.assertTrue(check_supporting_user(self.fan_id, self.author_id))
        self.assertEqual(self.cache.get(("support", self.fan_id, self.author_id)), ToggleState(True, 1))


class CascadeReportTests(TestCase):

    def test_missing_records_count_as_done(self):
        store.create_document("things", {}, doc_id="a")
        report = CascadeReport(root_id="root")
        self.assertTrue(delete_many("things", ["a", "b"], report))
        self.assertEqual((report.deleted, report.already_gone), (1, 1))
        self.assertTrue(report.complete)

    def test_transport_failure_is_recorded(self):
        store.create_document("things", {}, doc_id="a")
        report = CascadeReport(root_id="root")
        with failing_deletes("a"):
            self.assertFalse(delete_many("things", ["a"], report))
        with self.assertRaises(PartialCascadeFailure) as ctx:
            report.raise_if_failed()
        self.assertEqual(ctx.exception.failed_ids, ["a"])


class ResponseMappingTests(SimpleTestCase):

    def test_error_codes_map_to_statuses(self):
        self.assertEqual(result_response(OperationResult.fail(ErrorCode.DUPLICATE_INTERACTION)).status_code, 409)
        self.assertEqual(result_response(OperationResult.fail(ErrorCode.NOT_FOUND)).status_code, 404)
        self.assertEqual(result_response(OperationResult.fail(ErrorCode.INVALID_REQUEST)).status_code, 400)
        self.assertEqual(result_response(OperationResult.ok(), success_status=201).status_code, 201)

    def test_store_outage_maps_to_503(self):
        response = custom_exception_handler(TransportError("down"), {})
        self.assertEqual(response.status_code, 503)
