from unittest import mock

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from apps.comments.constants import comment_collection
from apps.comments.services import add_discussion_comment
from apps.core.exceptions import PartialCascadeFailure
from apps.core.results import ErrorCode
from apps.docstore.client import DocumentStore, Query, store
from apps.docstore.exceptions import TransportError
from apps.docstore.testing import StoreFixturesMixin, failing_deletes
from apps.interactions.services import like_subject
from .constants import ADMIN, PingScope, discussion_collection, member_collection, ping_collection
from .discussions import create_discussion, delete_discussion, get_discussion, normalize_tags
from .membership import check_membership_status, count_members, get_admin_account_ids, join_community, leave_community
from .pings import (
    FanOutInterrupted,
    fan_out_ping,
    get_community_pings,
    get_topic_pings,
    get_user_pings,
    mark_all_pings_read,
    mark_ping_read,
    sum_pings,
    upsert_ping,
)
from .tasks import fan_out_ping_task


def ping_records(topic_id):
    return store.list_documents(ping_collection(), [Query.equal("topic_id", topic_id), Query.limit(1000)]).documents


class MembershipTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        self.community = self.make_community(admins=["p-admin-1", "p-admin-2"])

    def test_join_and_leave(self):
        self.assertTrue(join_community("u1", self.community["id"]).success)
        self.assertEqual(join_community("u1", self.community["id"]).error, ErrorCode.DUPLICATE_INTERACTION)
        self.assertTrue(check_membership_status("u1", self.community["id"]))
        self.assertEqual(count_members(self.community["id"]), 1)

        self.assertTrue(leave_community("u1", self.community["id"]).success)
        self.assertEqual(leave_community("u1", self.community["id"]).error, ErrorCode.NOT_FOUND)

    def test_join_missing_community(self):
        self.assertEqual(join_community("u1", "nope").error, ErrorCode.NOT_FOUND)

    def test_every_admin_is_returned(self):
        self.assertEqual(get_admin_account_ids(self.community["id"]), ["p-admin-1", "p-admin-2"])
        self.assertEqual(get_admin_account_ids("nope"), [])


class PingAccumulatorTests(TestCase):

    def test_upsert_increments(self):
        self.assertEqual(upsert_ping("u1", "c1", "t1"), 1)
        self.assertEqual(upsert_ping("u1", "c1", "t1"), 2)
        self.assertEqual(len(ping_records("t1")), 1)

    def test_mark_read_at_one_deletes_the_record(self):
        upsert_ping("u1", "c1", "t1")
        result = mark_ping_read("u1", "c1", "t1")
        self.assertTrue(result.success)
        self.assertTrue(result.get("deleted"))
        self.assertEqual(ping_records("t1"), [])

    def test_mark_read_at_five_leaves_four(self):
        for _ in range(5):
            upsert_ping("u1", "c1", "t1")
        result = mark_ping_read("u1", "c1", "t1")
        self.assertEqual(result.get("ping_count"), 4)
        self.assertFalse(result.get("deleted"))
        self.assertEqual(get_topic_pings("u1", "t1"), 4)

    def test_mark_read_without_record(self):
        result = mark_ping_read("u1", "c1", "t1")
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertEqual(result.get("ping_count"), 0)

    def test_sums_per_scope(self):
        """
        Test that topic, community and user totals are live sums over the records.
        """
        upsert_ping("u1", "c1", "t1")
        upsert_ping("u1", "c1", "t1")
        upsert_ping("u1", "c1", "t2")
        upsert_ping("u1", "c2", "t3")
        upsert_ping("u2", "c1", "t1")

        self.assertEqual(get_topic_pings("u1", "t1"), 2)
        self.assertEqual(get_community_pings("u1", "c1"), 3)
        self.assertEqual(get_user_pings("u1"), 4)
        self.assertEqual(sum_pings(PingScope.TOPIC, "u1"), 0)

    def test_mark_all_read(self):
        upsert_ping("u1", "c1", "t1")
        upsert_ping("u1", "c1", "t2")
        upsert_ping("u1", "c2", "t3")
        report = mark_all_pings_read("u1", "c1")
        self.assertEqual(report.deleted, 2)
        self.assertEqual(get_user_pings("u1"), 1)


class FanOutTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        self.community = self.make_community()
        self.topic = self.make_topic(self.community["id"])
        self.member_ids = [f"member-{i:03d}" for i in range(250)]
        for creator_id in self.member_ids:
            self.add_member(creator_id, self.community["id"])
        self.author_id = self.member_ids[17]

    def test_everyone_but_the_author_is_pinged_in_batches(self):
        """
        Test that 250 members yield 249 pings over three batches of at most 100.
        """
        report = fan_out_ping(self.community["id"], self.topic["id"], self.author_id)

        self.assertEqual(report.batches, 3)
        self.assertEqual(report.delivered, 249)
        self.assertEqual(report.failed, [])
        pinged = {p["user_id"] for p in ping_records(self.topic["id"])}
        self.assertEqual(len(pinged), 249)
        self.assertNotIn(self.author_id, pinged)

    @override_settings(PING_BATCH_SIZE=40)
    def test_batch_size_is_configurable(self):
        report = fan_out_ping(self.community["id"], self.topic["id"], self.author_id)
        self.assertEqual(report.batches, 7)
        self.assertEqual(report.delivered, 249)

    def test_failing_member_does_not_stop_the_batch(self):
        real_upsert = upsert_ping

        def flaky(user_id, community_id, topic_id):
            if user_id == "member-005":
                raise TransportError("write failed")
            return real_upsert(user_id, community_id, topic_id)

        with mock.patch("apps.communities.pings.upsert_ping", side_effect=flaky):
            report = fan_out_ping(self.community["id"], self.topic["id"], self.author_id)

        self.assertEqual(report.failed, ["member-005"])
        self.assertEqual(report.delivered, 248)

    def test_interrupted_fan_out_resumes_without_double_pings(self):
        """
        Test that an outage while listing members can be resumed from the reported cursor.
        """
        real_list = DocumentStore.list_documents
        calls = {"n": 0}

        def list_documents(self_, collection, queries=()):
            if collection == member_collection():
                calls["n"] += 1
                if calls["n"] == 2:
                    raise TransportError("store unreachable")
            return real_list(self_, collection, queries)

        with mock.patch.object(DocumentStore, "list_documents", autospec=True, side_effect=list_documents):
            with self.assertRaises(FanOutInterrupted) as ctx:
                fan_out_ping(self.community["id"], self.topic["id"], self.author_id)

        self.assertEqual(ctx.exception.report.batches, 1)
        self.assertEqual(len(ping_records(self.topic["id"])), 99)

        fan_out_ping(self.community["id"], self.topic["id"], self.author_id, start_after=ctx.exception.resume_cursor)
        records = ping_records(self.topic["id"])
        self.assertEqual(len(records), 249)
        self.assertTrue(all(p["ping_count"] == 1 for p in records))

    def test_task_returns_report(self):
        result = fan_out_ping_task.delay(self.community["id"], self.topic["id"], self.author_id)
        self.assertEqual(result.get()["delivered"], 249)


class DiscussionTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        _, self.fan_id, self.fan_principal = self.make_creator("fan")
        self.community = self.make_community(admins=["p-admin-1", "p-admin-2"])
        self.topic = self.make_topic(self.community["id"])
        self.add_member(self.author_id, self.community["id"], role=ADMIN)
        self.add_member(self.fan_id, self.community["id"])

    def _create(self, author_id=None):
        return create_discussion(
            self.community["id"], self.topic["id"], author_id or self.author_id, "What glaze do you use?", tags="glaze, kiln"
        )

    def test_create_grants_admins_and_pings_members(self):
        result = self._create()
        self.assertTrue(result.success)
        self.assertTrue(result.get("pings_scheduled"))

        discussion = result.get("discussion")
        self.assertEqual(discussion["tags"], ["glaze", "kiln"])
        self.assertEqual(
            store.get_read_principals(discussion_collection(), discussion["id"]), ["p-admin-1", "p-admin-2"]
        )
        self.assertEqual(get_topic_pings(self.fan_id, self.topic["id"]), 1)
        self.assertEqual(get_topic_pings(self.author_id, self.topic["id"]), 0)

    def test_topic_of_another_community_is_rejected(self):
        other = self.make_community(name="Other")
        topic = self.make_topic(other["id"])
        result = create_discussion(self.community["id"], topic["id"], self.author_id, "hello")
        self.assertEqual(result.error, ErrorCode.INVALID_REQUEST)

    def test_missing_topic(self):
        self.assertEqual(
            create_discussion(self.community["id"], "nope", self.author_id, "hello").error, ErrorCode.NOT_FOUND
        )

    def test_ping_dispatch_failure_does_not_fail_creation(self):
        with mock.patch.object(fan_out_ping_task, "delay", side_effect=ConnectionError("broker down")):
            result = self._create()
        self.assertTrue(result.success)
        self.assertFalse(result.get("pings_scheduled"))

    def test_discussion_comment_pings_and_grants_admins(self):
        discussion = self._create().get("discussion")
        comment = add_discussion_comment(discussion["id"], self.fan_id, self.author_principal, "Celadon!").get("comment")

        self.assertEqual(
            store.get_read_principals(comment_collection(), comment["id"]),
            sorted([self.author_principal, "p-admin-1", "p-admin-2"]),
        )
        # one ping from the discussion, one from the comment by the fan
        self.assertEqual(get_topic_pings(self.fan_id, self.topic["id"]), 1)
        self.assertEqual(get_topic_pings(self.author_id, self.topic["id"]), 1)

    def test_delete_cascades_and_keeps_root_on_failure(self):
        discussion = self._create().get("discussion")
        comment = add_discussion_comment(discussion["id"], self.fan_id, self.author_principal, "nice").get("comment")
        like_subject(discussion["id"], self.fan_id, self.author_principal)

        with failing_deletes(comment["id"]):
            with self.assertRaises(PartialCascadeFailure):
                delete_discussion(discussion["id"])
        self.assertIsNotNone(get_discussion(discussion["id"]))

        report = delete_discussion(discussion["id"])
        self.assertTrue(report.complete)
        self.assertIsNone(get_discussion(discussion["id"]))

    def test_normalize_tags(self):
        self.assertEqual(normalize_tags(" a, b ,, c"), ["a", "b", "c"])
        self.assertEqual(normalize_tags(None), [])


class CommunityApiTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        self.author_user, self.author_id, self.author_principal = self.make_creator("author")
        self.fan_user, self.fan_id, _ = self.make_creator("fan")
        self.community = self.make_community(admins=[self.author_principal])
        self.topic = self.make_topic(self.community["id"])
        self.add_member(self.author_id, self.community["id"], role=ADMIN)
        self.client = APIClient()

    def test_join_post_and_read_pings(self):
        self.client.force_authenticate(user=self.fan_user)
        response = self.client.post(
            "/api/communities/membership/join/", {"community_id": self.community["id"]}, format="json"
        )
        self.assertEqual(response.status_code, 201)

        self.client.force_authenticate(user=self.author_user)
        response = self.client.post(
            "/api/communities/discussions/",
            {"community_id": self.community["id"], "topic_id": self.topic["id"], "content": "Show your kilns"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)

        self.client.force_authenticate(user=self.fan_user)
        params = {"community_id": self.community["id"], "topic_id": self.topic["id"]}
        response = self.client.get("/api/communities/pings/summary/", params)
        self.assertEqual(response.data["topic"], 1)
        self.assertEqual(response.data["total"], 1)

        response = self.client.post("/api/communities/pings/mark_read/", params, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["deleted"])

    def test_non_member_cannot_post(self):
        self.client.force_authenticate(user=self.fan_user)
        response = self.client.post(
            "/api/communities/discussions/",
            {"community_id": self.community["id"], "topic_id": self.topic["id"], "content": "hi"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_only_author_or_admin_deletes(self):
        discussion = create_discussion(self.community["id"], self.topic["id"], self.author_id, "hi").get("discussion")
        self.client.force_authenticate(user=self.fan_user)
        response = self.client.delete(f"/api/communities/discussions/{discussion['id']}/")
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(user=self.author_user)
        response = self.client.delete(f"/api/communities/discussions/{discussion['id']}/")
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(get_discussion(discussion["id"]))
