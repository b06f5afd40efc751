from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from apps.comments.constants import comment_collection, feedback_collection
from apps.core.results import ErrorCode
from apps.docstore.client import Query, store
from apps.docstore.testing import StoreFixturesMixin
from apps.notifications.constants import (
    MESSAGE_LIKED_CREATION,
    MESSAGE_LIKED_ITEM,
    NotificationScope,
    notification_collection,
)
from .constants import ItemType, SubjectType, item_like_collection, post_like_collection
from .services import (
    check_subject_like,
    count_item_likes,
    count_subject_likes,
    count_subject_saves,
    delete_item_likes,
    get_saved_subject_ids,
    like_item,
    like_subject,
    resolve_item_type,
    save_subject,
    unlike_item,
    unlike_subject,
    unsave_subject,
)


def notifications_for(principal, scope=NotificationScope.USER):
    return store.list_documents(notification_collection(scope), [Query.equal("receiver_id", principal)]).documents


class SubjectLikeTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        _, self.fan_id, self.fan_principal = self.make_creator("fan")
        self.creation = self.make_creation(self.author_id)

    def test_like_creates_record_grant_and_notification(self):
        result = like_subject(self.creation["id"], self.fan_id, self.author_principal)

        self.assertTrue(result.success)
        self.assertEqual(result.get("likes_count"), 1)
        self.assertIn(
            self.author_principal,
            store.get_read_principals(post_like_collection(), result.get("like")["id"]),
        )
        notes = notifications_for(self.author_principal)
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0]["message"], MESSAGE_LIKED_CREATION)
        self.assertEqual(notes[0]["sender_id"], self.fan_id)

    def test_duplicate_like_is_rejected(self):
        """
        Test that a second like from the same actor leaves exactly one record.
        """
        like_subject(self.creation["id"], self.fan_id, self.author_principal)
        result = like_subject(self.creation["id"], self.fan_id, self.author_principal)

        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorCode.DUPLICATE_INTERACTION)
        self.assertEqual(count_subject_likes(self.creation["id"]), 1)
        self.assertEqual(len(notifications_for(self.author_principal)), 1)

    def test_self_like_is_not_notified(self):
        """
        Test that the author liking their own creation produces no notification.
        """
        result = like_subject(self.creation["id"], self.author_id, self.author_principal)
        self.assertTrue(result.success)
        self.assertEqual(notifications_for(self.author_principal), [])

    def test_notification_failure_keeps_the_like(self):
        with mock.patch("apps.notifications.services.create_notification", side_effect=RuntimeError("boom")):
            result = like_subject(self.creation["id"], self.fan_id, self.author_principal)
        self.assertTrue(result.success)
        self.assertTrue(check_subject_like(self.creation["id"], self.fan_id))

    def test_unlike(self):
        like_subject(self.creation["id"], self.fan_id, self.author_principal)
        result = unlike_subject(self.creation["id"], self.fan_id)
        self.assertTrue(result.success)
        self.assertEqual(result.get("likes_count"), 0)

        like_subject(self.creation["id"], self.author_id, self.author_principal)
        before = count_subject_likes(self.creation["id"])
        self.assertEqual(unlike_subject(self.creation["id"], self.fan_id).error, ErrorCode.NOT_FOUND)
        self.assertEqual(count_subject_likes(self.creation["id"]), before)

    def test_unlike_clears_a_duplicate_left_by_a_race(self):
        """
        Test that one unlike removes every record of the actor, so the count returns to where it was.
        """
        before = count_subject_likes(self.creation["id"])
        like_subject(self.creation["id"], self.fan_id, self.author_principal)
        store.create_document(post_like_collection(), {"subject_id": self.creation["id"], "actor_id": self.fan_id})
        self.assertEqual(count_subject_likes(self.creation["id"]), before + 2)

        self.assertTrue(unlike_subject(self.creation["id"], self.fan_id).success)
        self.assertEqual(count_subject_likes(self.creation["id"]), before)
        self.assertFalse(check_subject_like(self.creation["id"], self.fan_id))

    def test_discussion_like_goes_to_community_scope(self):
        result = like_subject("disc-1", self.fan_id, self.author_principal, SubjectType.DISCUSSION)
        self.assertTrue(result.success)
        self.assertEqual(notifications_for(self.author_principal), [])
        self.assertEqual(len(notifications_for(self.author_principal, NotificationScope.COMMUNITY)), 1)


class SaveTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        _, self.fan_id, _ = self.make_creator("fan")
        self.project = self.make_project(self.author_id)

    def test_save_and_unsave(self):
        saved = save_subject(self.project["id"], self.fan_id, self.author_principal, SubjectType.PROJECT)
        self.assertTrue(saved.success)
        self.assertEqual(get_saved_subject_ids(self.fan_id, SubjectType.PROJECT), [self.project["id"]])
        self.assertEqual(
            save_subject(self.project["id"], self.fan_id, self.author_principal).error,
            ErrorCode.DUPLICATE_INTERACTION,
        )
        self.assertTrue(unsave_subject(self.project["id"], self.fan_id).success)
        self.assertEqual(count_subject_saves(self.project["id"]), 0)

    def test_saves_do_not_notify(self):
        save_subject(self.project["id"], self.fan_id, self.author_principal, SubjectType.PROJECT)
        self.assertEqual(notifications_for(self.author_principal), [])


class ItemLikeTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.commenter_id, self.commenter_principal = self.make_creator("commenter")
        _, self.fan_id, _ = self.make_creator("fan")
        self.comment = store.create_document(
            comment_collection(), {"subject_id": "c1", "actor_id": self.commenter_id, "content": "nice"}
        )

    def test_like_item_notifies_item_author(self):
        result = like_item(self.comment["id"], ItemType.COMMENT, self.fan_id)
        self.assertTrue(result.success)
        notes = notifications_for(self.commenter_principal)
        self.assertEqual([n["message"] for n in notes], [MESSAGE_LIKED_ITEM])

    def test_item_must_exist_in_its_declared_collection(self):
        """
        Test that an item id is never liked under the wrong type.
        """
        result = like_item(self.comment["id"], ItemType.FEEDBACK, self.fan_id)
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertEqual(count_item_likes(self.comment["id"]), 0)

    def test_probe_order_prefers_comments(self):
        store.create_document(feedback_collection(), {"actor_id": self.fan_id}, doc_id=self.comment["id"])
        self.assertIs(resolve_item_type(self.comment["id"]), ItemType.COMMENT)
        self.assertIsNone(resolve_item_type("missing"))

    def test_duplicate_and_unlike(self):
        like_item(self.comment["id"], ItemType.COMMENT, self.fan_id)
        self.assertEqual(
            like_item(self.comment["id"], ItemType.COMMENT, self.fan_id).error,
            ErrorCode.DUPLICATE_INTERACTION,
        )
        self.assertTrue(unlike_item(self.comment["id"], self.fan_id).success)
        self.assertEqual(count_item_likes(self.comment["id"]), 0)

    def test_delete_item_likes_removes_every_like(self):
        for i in range(3):
            store.create_document(item_like_collection(), {"item_id": self.comment["id"], "actor_id": f"a{i}"})
        report = delete_item_likes(self.comment["id"])
        self.assertEqual(report.deleted, 3)
        self.assertEqual(count_item_likes(self.comment["id"]), 0)


class InteractionApiTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        self.fan_user, self.fan_id, _ = self.make_creator("fan")
        self.creation = self.make_creation(self.author_id)
        self.client = APIClient()
        self.client.force_authenticate(user=self.fan_user)

    def test_like_endpoint(self):
        response = self.client.post("/api/interactions/like/", {"subject_id": self.creation["id"]}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["likes_count"], 1)

        response = self.client.post("/api/interactions/like/", {"subject_id": self.creation["id"]}, format="json")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"], ErrorCode.DUPLICATE_INTERACTION.value)

    def test_like_missing_subject(self):
        response = self.client.post("/api/interactions/like/", {"subject_id": "nope"}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_summary(self):
        like_subject(self.creation["id"], self.fan_id, self.author_principal)
        response = self.client.get("/api/interactions/summary/", {"subject_id": self.creation["id"]})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["liked"])
        self.assertEqual(response.data["likes_count"], 1)
        self.assertFalse(response.data["saved"])

    def test_support_endpoint(self):
        response = self.client.post("/api/interactions/support/", {"creator_id": self.author_id}, format="json")
        self.assertEqual(response.status_code, 200)
        response = self.client.get("/api/interactions/supporting/", {"creator_id": self.author_id})
        self.assertTrue(response.data["supporting"])

    def test_user_without_creator_profile_is_forbidden(self):
        stranger = get_user_model().objects.create_user(username="stranger", password="pass1234")
        self.client.force_authenticate(user=stranger)
        response = self.client.post("/api/interactions/like/", {"subject_id": self.creation["id"]}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)
        response = self.client.get("/api/interactions/summary/", {"subject_id": self.creation["id"]})
        self.assertIn(response.status_code, (401, 403))
