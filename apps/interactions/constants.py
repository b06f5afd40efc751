# apps/interactions/constants.py

from enum import Enum

from apps.docstore.config import collection_id
from apps.notifications.constants import (
    MESSAGE_LIKED_CREATION,
    MESSAGE_LIKED_DISCUSSION,
    MESSAGE_LIKED_PROJECT,
    NotificationScope,
)


# SUBJECT TYPES ----------------------------------------------------------------------------
class SubjectType(str, Enum):
    CREATION = "creation"
    PROJECT = "project"
    DISCUSSION = "discussion"

    @property
    def is_community(self) -> bool:
        return self is SubjectType.DISCUSSION

    @property
    def like_function(self) -> str:
        return "discussion_like" if self.is_community else "post_like"

    @property
    def save_function(self) -> str:
        return "discussion_save" if self.is_community else "save"

    @property
    def item_like_function(self) -> str:
        return "discussion_item_like" if self.is_community else "item_like"

    @property
    def notification_scope(self) -> NotificationScope:
        return NotificationScope.COMMUNITY if self.is_community else NotificationScope.USER

    @property
    def like_message(self) -> str:
        return SUBJECT_LIKE_MESSAGES[self]

    @property
    def collection(self) -> str:
        database, name = SUBJECT_COLLECTIONS[self]
        return collection_id(database, name)


SUBJECT_COLLECTIONS = {
    SubjectType.CREATION: ("posts", "creation"),
    SubjectType.PROJECT: ("posts", "project"),
    SubjectType.DISCUSSION: ("communities", "discussion"),
}

SUBJECT_LIKE_MESSAGES = {
    SubjectType.CREATION: MESSAGE_LIKED_CREATION,
    SubjectType.PROJECT: MESSAGE_LIKED_PROJECT,
    SubjectType.DISCUSSION: MESSAGE_LIKED_DISCUSSION,
}


# ITEM TYPES (likeable children of a subject) ----------------------------------------------
class ItemType(str, Enum):
    COMMENT = "comment"
    FEEDBACK = "feedback"
    COMMENT_REPLY = "comment_reply"
    FEEDBACK_REPLY = "feedback_reply"

    @property
    def collection(self) -> str:
        return collection_id("comments", self.value)


# Fixed probe order for legacy callers that send a bare item id
ITEM_PROBE_ORDER = (
    ItemType.COMMENT,
    ItemType.FEEDBACK,
    ItemType.COMMENT_REPLY,
    ItemType.FEEDBACK_REPLY,
)


def post_like_collection() -> str:
    return collection_id("interactions", "post_like")


def item_like_collection() -> str:
    return collection_id("interactions", "item_like")


def save_collection() -> str:
    return collection_id("interactions", "save")
