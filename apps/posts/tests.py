from django.test import TestCase

from apps.comments.services import (
    add_comment,
    add_comment_reply,
    get_subject_comments_count,
    get_subject_replies_count,
)
from apps.core.exceptions import PartialCascadeFailure
from apps.core.results import ErrorCode
from apps.docstore.client import Query, store
from apps.docstore.testing import StoreFixturesMixin, failing_deletes
from apps.interactions.constants import ItemType, SubjectType, item_like_collection
from apps.interactions.services import count_subject_likes, count_subject_saves, like_item, like_subject, save_subject
from apps.profiles.constants import CREATIONS_COUNT, PROJECTS_COUNT, SUPPORTING_COUNT, creator_collection
from apps.profiles.services import support
from .constants import creation_collection
from .services import add_creation, add_project, delete_creation, delete_project, recompute_user_counters
from .tasks import reconcile_user_counters


class PostLifecycleTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, self.author_principal = self.make_creator("author")
        _, self.fan_id, _ = self.make_creator("fan")

    def counter(self, field):
        return store.get_document(creator_collection(), self.author_id).get(field)

    def add_thread(self, subject_id, subject_type=SubjectType.CREATION, comments=2, replies=3):
        for c in range(comments):
            comment = add_comment(subject_id, self.fan_id, self.author_principal, f"c{c}", subject_type).get("comment")
            like_item(comment["id"], ItemType.COMMENT, self.author_id)
            for r in range(replies):
                reply = add_comment_reply(
                    comment["id"], self.author_id, self.author_principal, f"c{c}r{r}", subject_id
                ).get("reply")
                like_item(reply["id"], ItemType.COMMENT_REPLY, self.fan_id)

    def assertThreadGone(self, subject_id):
        self.assertEqual(get_subject_comments_count(subject_id), 0)
        self.assertEqual(get_subject_replies_count(subject_id), 0)
        self.assertEqual(store.list_documents(item_like_collection(), [Query.limit(0)]).total, 0)

    def test_add_creation_bumps_counter(self):
        result = add_creation(self.author_id, "Spring collection", tags="clay, wheel", media_urls=["a.jpg"])
        self.assertTrue(result.success)
        self.assertEqual(result.get("creation")["tags"], ["clay", "wheel"])
        self.assertEqual(self.counter(CREATIONS_COUNT), 1)

    def test_unknown_author(self):
        self.assertEqual(add_creation("creator-ghost", "x").error, ErrorCode.NOT_FOUND)
        self.assertEqual(add_project(self.author_id, "  ").error, ErrorCode.INVALID_REQUEST)

    def test_delete_creation_cascades_and_decrements_once(self):
        """
        Test that deleting a creation removes its dependents, and a repeat does not decrement again.
        """
        creation = add_creation(self.author_id, "Bowl").get("creation")
        add_comment(creation["id"], self.fan_id, self.author_principal, "lovely")
        like_subject(creation["id"], self.fan_id, self.author_principal)
        save_subject(creation["id"], self.fan_id, self.author_principal)

        report = delete_creation(creation["id"])
        self.assertTrue(report.complete)
        self.assertEqual(get_subject_comments_count(creation["id"]), 0)
        self.assertEqual(count_subject_likes(creation["id"]), 0)
        self.assertEqual(count_subject_saves(creation["id"]), 0)
        self.assertEqual(self.counter(CREATIONS_COUNT), 0)

        add_creation(self.author_id, "Vase")
        again = delete_creation(creation["id"])
        self.assertEqual(again.already_gone, 1)
        self.assertEqual(self.counter(CREATIONS_COUNT), 1)

    def test_delete_creation_removes_every_comment_reply_and_item_like(self):
        creation = add_creation(self.author_id, "Bowl").get("creation")
        self.add_thread(creation["id"])
        self.assertEqual(get_subject_replies_count(creation["id"]), 6)

        self.assertTrue(delete_creation(creation["id"]).complete)
        self.assertThreadGone(creation["id"])

    def test_failed_dependent_keeps_the_creation(self):
        creation = add_creation(self.author_id, "Bowl").get("creation")
        like = like_subject(creation["id"], self.fan_id, self.author_principal).get("like")

        with failing_deletes(like["id"]):
            with self.assertRaises(PartialCascadeFailure):
                delete_creation(creation["id"])

        self.assertIsNotNone(store.get_document(creation_collection(), creation["id"]))
        self.assertEqual(self.counter(CREATIONS_COUNT), 1)

    def test_delete_project(self):
        project = add_project(self.author_id, "Studio build", links="https://a.example https://b.example").get("project")
        like_subject(project["id"], self.fan_id, self.author_principal, SubjectType.PROJECT)
        self.assertEqual(project["links"], ["https://a.example", "https://b.example"])

        delete_project(project["id"])
        self.assertEqual(self.counter(PROJECTS_COUNT), 0)
        self.assertEqual(count_subject_likes(project["id"]), 0)

    def test_delete_project_removes_its_comments_and_replies(self):
        project = add_project(self.author_id, "Studio build").get("project")
        self.add_thread(project["id"], SubjectType.PROJECT)
        self.assertEqual(get_subject_comments_count(project["id"]), 2)

        report = delete_project(project["id"])
        self.assertTrue(report.complete)
        self.assertThreadGone(project["id"])
        self.assertEqual(self.counter(PROJECTS_COUNT), 0)


class CounterRepairTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.author_id, _ = self.make_creator("author")
        _, self.other_id, _ = self.make_creator("other")

    def test_recompute_from_source_records(self):
        self.make_creation(self.author_id)
        self.make_creation(self.author_id)
        self.make_project(self.author_id)
        support(self.author_id, self.other_id)
        store.update_document(creator_collection(), self.author_id, {CREATIONS_COUNT: 40, SUPPORTING_COUNT: 0})

        counters = recompute_user_counters(self.author_id)
        self.assertEqual(counters, {CREATIONS_COUNT: 2, PROJECTS_COUNT: 1, SUPPORTING_COUNT: 1})

    def test_missing_creator(self):
        self.assertIsNone(recompute_user_counters("creator-ghost"))

    def test_nightly_task_repairs_everyone(self):
        self.assertEqual(reconcile_user_counters.delay().get(), 2)
