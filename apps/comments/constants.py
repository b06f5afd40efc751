# apps/comments/constants.py

from apps.docstore.config import collection_id


def comment_collection() -> str:
    return collection_id("comments", "comment")


def feedback_collection() -> str:
    return collection_id("comments", "feedback")


def comment_reply_collection() -> str:
    return collection_id("comments", "comment_reply")


def feedback_reply_collection() -> str:
    return collection_id("comments", "feedback_reply")


CONTENT_MAX_LENGTH = 2200
