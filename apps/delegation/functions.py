# apps/delegation/functions.py

from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from apps.docstore.config import collection_id


@dataclass(frozen=True)
class PermissionFunction:
    key: str
    function_id: str
    collection: str


# key → (database, collection) the granted record lives in
FUNCTION_TARGETS = {
    "post_like":                ("interactions", "post_like"),
    "item_like":                ("interactions", "item_like"),
    "save":                     ("interactions", "save"),
    "comment":                  ("comments", "comment"),
    "feedback":                 ("comments", "feedback"),
    "comment_reply":            ("comments", "comment_reply"),
    "feedback_reply":           ("comments", "feedback_reply"),
    "feedback_reply_parent":    ("comments", "feedback_reply"),
    "user_notification":        ("notifications", "notification"),
    "community_notification":   ("notifications", "community_notification"),
    "community_discussion":     ("communities", "discussion"),
    "discussion_like":          ("interactions", "post_like"),
    "discussion_save":          ("interactions", "save"),
    "discussion_item_like":     ("interactions", "item_like"),
    "discussion_comment":       ("comments", "comment"),
    "discussion_comment_reply": ("comments", "comment_reply"),
}


def function_id(key: str) -> str:
    return settings.PERMISSION_FUNCTIONS[key]


def get_function(key: str) -> PermissionFunction:
    database, name = FUNCTION_TARGETS[key]
    return PermissionFunction(key=key, function_id=function_id(key), collection=collection_id(database, name))


def resolve_function(fn_id: str) -> Optional[PermissionFunction]:
    """Reverse lookup from a configured function id (what travels in the task)."""
    for key in FUNCTION_TARGETS:
        if settings.PERMISSION_FUNCTIONS.get(key) == fn_id:
            return get_function(key)
    return None
