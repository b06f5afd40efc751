# apps/notifications/constants.py

from enum import Enum

from apps.docstore.config import collection_id


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FEEDBACK = "feedback"
    REPLY = "reply"


class NotificationScope(str, Enum):
    """
    Two structurally identical notification spaces. Resources that belong to
    a community go to COMMUNITY, everything else to USER.
    """
    USER = "user"
    COMMUNITY = "community"


# scope → (collection name, permission function key)
SCOPE_TARGETS = {
    NotificationScope.USER: ("notification", "user_notification"),
    NotificationScope.COMMUNITY: ("community_notification", "community_notification"),
}


def notification_collection(scope: NotificationScope) -> str:
    return collection_id("notifications", SCOPE_TARGETS[NotificationScope(scope)][0])


def notification_function(scope: NotificationScope) -> str:
    return SCOPE_TARGETS[NotificationScope(scope)][1]


# User-facing message templates ------------------------------------------------------------------
MESSAGE_LIKED_CREATION = "liked your creation."
MESSAGE_LIKED_PROJECT = "liked your project."
MESSAGE_LIKED_DISCUSSION = "liked your discussion."
MESSAGE_LIKED_ITEM = "liked your comment."
MESSAGE_COMMENTED_CREATION = "commented on your creation."
MESSAGE_COMMENTED_PROJECT = "commented on your project."
MESSAGE_COMMENTED_DISCUSSION = "commented on your discussion."
MESSAGE_GAVE_FEEDBACK = "gave feedback on your creation."
MESSAGE_REPLIED_COMMENT = "replied to your comment."
MESSAGE_REPLIED_FEEDBACK = "replied to your feedback."
MESSAGE_REPLIED_FEEDBACK_ON_CREATION = "replied to feedback on your creation."

# Realtime group prefix (one group per receiver principal)
REALTIME_GROUP_PREFIX = "notif_user_"
