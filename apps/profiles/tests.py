from django.test import TestCase

from apps.core.results import ErrorCode
from apps.docstore.client import store
from apps.docstore.exceptions import DocumentNotFound
from apps.docstore.testing import StoreFixturesMixin
from .constants import SUPPORTING_COUNT, creator_collection
from .services import (
    adjust_counter,
    check_supporting_user,
    get_creator_by_account,
    get_user_account_id,
    recompute_supporting_count,
    support,
    unsupport,
)


def supporting_count(creator_id):
    return store.get_document(creator_collection(), creator_id).get(SUPPORTING_COUNT, 0)


class CreatorLookupTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        self.user, self.creator_id, self.principal = self.make_creator("maya")

    def test_internal_id_translates_to_principal(self):
        self.assertEqual(get_user_account_id(self.creator_id), self.principal)
        self.assertEqual(get_creator_by_account(self.principal)["id"], self.creator_id)

    def test_unknown_creator_raises(self):
        with self.assertRaises(DocumentNotFound):
            get_user_account_id("creator-ghost")

    def test_counter_is_clamped_at_zero(self):
        self.assertEqual(adjust_counter(self.creator_id, "creations_count", -1), 0)
        self.assertIsNone(adjust_counter("creator-ghost", "creations_count", 1))


class SupportTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.follower, _ = self.make_creator("follower")
        _, self.artist, _ = self.make_creator("artist")
        _, self.other, _ = self.make_creator("other")

    def test_support_bumps_counter_once(self):
        """
        Test that the counter only moves when the supporting set changes.
        """
        first = support(self.follower, self.artist)
        self.assertTrue(first.success)
        self.assertTrue(first.get("changed"))
        self.assertEqual(supporting_count(self.follower), 1)

        again = support(self.follower, self.artist)
        self.assertTrue(again.success)
        self.assertFalse(again.get("changed"))
        self.assertEqual(supporting_count(self.follower), 1)
        self.assertTrue(check_supporting_user(self.follower, self.artist))

    def test_unsupport_of_a_non_supported_creator_fails_without_touching_counter(self):
        support(self.follower, self.artist)
        result = unsupport(self.follower, self.other)
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertEqual(supporting_count(self.follower), 1)

    def test_unsupport_decrements(self):
        support(self.follower, self.artist)
        support(self.follower, self.other)
        self.assertTrue(unsupport(self.follower, self.artist).success)
        self.assertEqual(supporting_count(self.follower), 1)
        self.assertFalse(check_supporting_user(self.follower, self.artist))

    def test_cannot_support_self(self):
        self.assertEqual(support(self.follower, self.follower).error, ErrorCode.INVALID_REQUEST)

    def test_recompute_repairs_drift(self):
        support(self.follower, self.artist)
        store.update_document(creator_collection(), self.follower, {SUPPORTING_COUNT: 9})
        self.assertEqual(recompute_supporting_count(self.follower), 1)
        self.assertEqual(supporting_count(self.follower), 1)
