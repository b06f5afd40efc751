from django.test import TestCase
from rest_framework.test import APIClient

from apps.core.exceptions import PartialCascadeFailure
from apps.core.results import ErrorCode
from apps.docstore.client import Query, store
from apps.docstore.testing import StoreFixturesMixin, failing_deletes
from apps.interactions.constants import ItemType, item_like_collection
from apps.interactions.services import count_item_likes, like_item
from apps.notifications.constants import (
    MESSAGE_REPLIED_FEEDBACK,
    MESSAGE_REPLIED_FEEDBACK_ON_CREATION,
    NotificationScope,
    notification_collection,
)
from .constants import comment_collection, comment_reply_collection, feedback_collection, feedback_reply_collection
from .services import (
    add_comment,
    add_comment_reply,
    add_feedback,
    add_feedback_reply,
    delete_all_for_subject,
    delete_comment,
    delete_comment_reply,
    delete_feedback,
    get_comment_replies,
    get_feedbacks,
    get_record,
    get_subject_comments_count,
    get_subject_replies_count,
)


def messages_for(principal):
    docs = store.list_documents(
        notification_collection(NotificationScope.USER), [Query.equal("receiver_id", principal)]
    ).documents
    return [d["message"] for d in docs]


class CommentCreationTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        _, self.fan_id, self.fan_principal = self.make_creator("fan")
        self.creation = self.make_creation(self.author_id)

    def test_comment_grants_author_and_counts_live(self):
        result = add_comment(self.creation["id"], self.fan_id, self.author_principal, "  love it  ")
        self.assertTrue(result.success)
        comment = result.get("comment")
        self.assertEqual(comment["content"], "love it")
        self.assertEqual(store.get_read_principals(comment_collection(), comment["id"]), [self.author_principal])
        self.assertEqual(get_subject_comments_count(self.creation["id"]), 1)

    def test_blank_or_oversized_content_is_invalid(self):
        self.assertEqual(
            add_comment(self.creation["id"], self.fan_id, self.author_principal, "   ").error,
            ErrorCode.INVALID_REQUEST,
        )
        self.assertEqual(
            add_comment(self.creation["id"], self.fan_id, self.author_principal, "x" * 5000).error,
            ErrorCode.INVALID_REQUEST,
        )

    def test_comment_reply_grants_parent_author(self):
        comment = add_comment(self.creation["id"], self.fan_id, self.author_principal, "first").get("comment")
        _, other_id, _ = self.make_creator("other")

        reply = add_comment_reply(comment["id"], other_id, self.author_principal, "agreed", self.creation["id"]).get("reply")

        self.assertEqual(
            store.get_read_principals(comment_reply_collection(), reply["id"]),
            sorted([self.author_principal, self.fan_principal]),
        )
        self.assertEqual(get_comment_replies(comment["id"])[0]["id"], reply["id"])
        self.assertEqual(get_subject_replies_count(self.creation["id"]), 1)

    def test_reply_to_missing_parent(self):
        result = add_comment_reply("missing", self.fan_id, self.author_principal, "hi", self.creation["id"])
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)


class FeedbackReplyRoutingTests(StoreFixturesMixin, TestCase):
    """
    Author A owns the creation, user B submitted the feedback.
    """

    def setUp(self):
        _, self.a_id, self.a_principal = self.make_creator("creator_a")
        _, self.b_id, self.b_principal = self.make_creator("user_b")
        self.creation = self.make_creation(self.a_id)
        self.feedback = add_feedback(self.creation["id"], self.b_id, self.a_principal, "try warmer tones").get("feedback")

    def test_author_reply_grants_feedback_submitter(self):
        """
        Test that A replying routes the grant and the notification to B.
        """
        result = add_feedback_reply(
            self.feedback["id"], self.a_id, self.a_principal, self.a_id, "thanks!", self.creation["id"]
        )
        self.assertTrue(result.get("is_author_replying"))
        self.assertEqual(result.get("grant_target"), self.b_principal)
        reply_id = result.get("reply")["id"]
        self.assertEqual(store.get_read_principals(feedback_reply_collection(), reply_id), [self.b_principal])
        self.assertIn(MESSAGE_REPLIED_FEEDBACK, messages_for(self.b_principal))

    def test_submitter_reply_grants_subject_author(self):
        """
        Test that B replying routes the grant and the notification to A.
        """
        result = add_feedback_reply(
            self.feedback["id"], self.a_id, self.a_principal, self.b_id, "one more thing", self.creation["id"]
        )
        self.assertFalse(result.get("is_author_replying"))
        self.assertEqual(result.get("grant_target"), self.a_principal)
        reply_id = result.get("reply")["id"]
        self.assertEqual(store.get_read_principals(feedback_reply_collection(), reply_id), [self.a_principal])
        self.assertIn(MESSAGE_REPLIED_FEEDBACK_ON_CREATION, messages_for(self.a_principal))

    def test_feedback_visibility(self):
        _, c_id, c_principal = self.make_creator("user_c")
        self.assertEqual(len(get_feedbacks(self.creation["id"], viewer_id=self.b_id)), 1)
        self.assertEqual(len(get_feedbacks(self.creation["id"], viewer_principal=self.a_principal)), 1)
        self.assertEqual(get_feedbacks(self.creation["id"], viewer_id=c_id, viewer_principal=c_principal), [])


class CascadeDeleteTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        _, self.fan_id, _ = self.make_creator("fan")
        self.creation = self.make_creation(self.author_id)
        self.comment = add_comment(self.creation["id"], self.fan_id, self.author_principal, "nice").get("comment")
        self.replies = [
            add_comment_reply(self.comment["id"], self.author_id, self.author_principal, f"r{i}", self.creation["id"]).get("reply")
            for i in range(2)
        ]
        like_item(self.comment["id"], ItemType.COMMENT, self.author_id)
        like_item(self.replies[0]["id"], ItemType.COMMENT_REPLY, self.fan_id)

    def test_delete_comment_removes_replies_and_likes(self):
        report = delete_comment(self.comment["id"], self.creation["id"])
        self.assertTrue(report.complete)
        self.assertEqual(report.deleted, 5)
        self.assertIsNone(get_record(comment_collection(), self.comment["id"]))
        self.assertEqual(get_comment_replies(self.comment["id"]), [])
        self.assertEqual(store.list_documents(item_like_collection(), [Query.limit(0)]).total, 0)

    def test_delete_is_idempotent(self):
        delete_comment(self.comment["id"])
        again = delete_comment(self.comment["id"])
        self.assertTrue(again.complete)
        self.assertEqual(again.deleted, 0)
        self.assertEqual(again.already_gone, 1)

    def test_partial_failure_keeps_parent_and_can_resume(self):
        """
        Test that a reply that cannot be deleted keeps the comment, and a re-run finishes the job.
        """
        with failing_deletes(self.replies[1]["id"]):
            with self.assertRaises(PartialCascadeFailure) as ctx:
                delete_comment(self.comment["id"])

        self.assertEqual(ctx.exception.failed_ids, [self.replies[1]["id"]])
        self.assertIsNotNone(get_record(comment_collection(), self.comment["id"]))
        self.assertIsNotNone(get_record(comment_reply_collection(), self.replies[1]["id"]))
        self.assertIsNone(get_record(comment_reply_collection(), self.replies[0]["id"]))

        report = delete_comment(self.comment["id"])
        self.assertTrue(report.complete)
        self.assertIsNone(get_record(comment_collection(), self.comment["id"]))

    def test_delete_single_reply(self):
        report = delete_comment_reply(self.replies[0]["id"], self.comment["id"])
        self.assertEqual(report.deleted, 2)
        self.assertEqual(count_item_likes(self.replies[0]["id"]), 0)

    def test_delete_all_for_subject_covers_feedback_too(self):
        feedback = add_feedback(self.creation["id"], self.fan_id, self.author_principal, "hmm").get("feedback")
        add_feedback_reply(feedback["id"], self.author_id, self.author_principal, self.author_id, "ok", self.creation["id"])

        report = delete_all_for_subject(self.creation["id"])
        self.assertTrue(report.complete)
        self.assertEqual(store.list_documents(feedback_collection(), [Query.limit(0)]).total, 0)
        self.assertEqual(store.list_documents(feedback_reply_collection(), [Query.limit(0)]).total, 0)
        self.assertEqual(get_subject_comments_count(self.creation["id"]), 0)

    def test_delete_feedback_without_replies(self):
        feedback = add_feedback(self.creation["id"], self.fan_id, self.author_principal, "hmm").get("feedback")
        self.assertEqual(delete_feedback(feedback["id"]).deleted, 1)


class CommentApiTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        self.author_user, self.author_id, self.author_principal = self.make_creator("author")
        self.fan_user, self.fan_id, _ = self.make_creator("fan")
        self.stranger_user, _, _ = self.make_creator("stranger")
        self.creation = self.make_creation(self.author_id)
        self.client = APIClient()

    def _comment_as_fan(self):
        self.client.force_authenticate(user=self.fan_user)
        response = self.client.post(
            "/api/comments/", {"subject_id": self.creation["id"], "content": "so good"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        return response.data["comment"]

    def test_list_comments_with_like_counts(self):
        comment = self._comment_as_fan()
        response = self.client.get("/api/comments/", {"subject_id": self.creation["id"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data[0]["id"], comment["id"])
        self.assertEqual(response.data[0]["likes_count"], 0)

    def test_feedback_only_on_creations(self):
        project = self.make_project(self.author_id)
        self.client.force_authenticate(user=self.fan_user)
        response = self.client.post(
            "/api/comments/",
            {"kind": "feedback", "subject_id": project["id"], "subject_type": "project", "content": "x"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_subject_author_may_delete_others_comment(self):
        comment = self._comment_as_fan()
        self.client.force_authenticate(user=self.author_user)
        response = self.client.delete(f"/api/comments/{comment['id']}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["deleted"], 1)

    def test_stranger_may_not_delete(self):
        comment = self._comment_as_fan()
        self.client.force_authenticate(user=self.stranger_user)
        response = self.client.delete(f"/api/comments/{comment['id']}/")
        self.assertEqual(response.status_code, 403)

    def test_failed_cascade_maps_to_500(self):
        comment = self._comment_as_fan()
        self.client.force_authenticate(user=self.author_user)
        reply = self.client.post(
            "/api/comments/reply/",
            {"parent_id": comment["id"], "subject_id": self.creation["id"], "content": "thanks"},
            format="json",
        ).data["reply"]

        with failing_deletes(reply["id"]):
            response = self.client.delete(f"/api/comments/{comment['id']}/")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["error"]["failed_ids"], [reply["id"]])
