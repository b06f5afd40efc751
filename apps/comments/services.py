# apps/comments/services.py

import logging
from typing import List, Optional

from apps.communities.constants import discussion_collection
from apps.communities.membership import get_admin_account_ids
from apps.communities.tasks import schedule_ping_fan_out
from apps.core.cascade import CascadeReport, delete_one
from apps.core.results import ErrorCode, OperationResult
from apps.delegation.executor import delegate_read
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound
from apps.interactions.constants import SubjectType
from apps.interactions.services import delete_item_likes
from apps.notifications.constants import (
    MESSAGE_COMMENTED_CREATION,
    MESSAGE_COMMENTED_DISCUSSION,
    MESSAGE_COMMENTED_PROJECT,
    MESSAGE_GAVE_FEEDBACK,
    MESSAGE_REPLIED_COMMENT,
    MESSAGE_REPLIED_FEEDBACK,
    MESSAGE_REPLIED_FEEDBACK_ON_CREATION,
    NotificationScope,
    NotificationType,
)
from apps.notifications.services import notify_comment, notify_reply, notify_safely
from apps.profiles.services import get_user_account_id
from .constants import (
    CONTENT_MAX_LENGTH,
    comment_collection,
    comment_reply_collection,
    feedback_collection,
    feedback_reply_collection,
)

logger = logging.getLogger(__name__)

COMMENT_MESSAGES = {
    SubjectType.CREATION: MESSAGE_COMMENTED_CREATION,
    SubjectType.PROJECT: MESSAGE_COMMENTED_PROJECT,
}


# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------
def _clean_content(content) -> Optional[str]:
    content = (content or "").strip()
    if not content or len(content) > CONTENT_MAX_LENGTH:
        return None
    return content


def _principal_of(user_id: str) -> Optional[str]:
    """Author principal of a record, or None when the creator is gone."""
    try:
        return get_user_account_id(user_id)
    except DocumentNotFound:
        logger.warning("[Cascade] creator %s has no principal", user_id)
        return None


def get_record(collection: str, doc_id: str) -> Optional[dict]:
    if not doc_id:
        return None
    try:
        return store.get_document(collection, doc_id)
    except DocumentNotFound:
        return None


def can_delete(record: dict, actor_id: str, subject_author_id: Optional[str] = None) -> bool:
    """A comment, feedback or reply may be removed by its author or by the subject's author."""
    if not record or not actor_id:
        return False
    return actor_id == record.get("actor_id") or (subject_author_id is not None and actor_id == subject_author_id)


# =========================================================================
# CREATION
# =========================================================================
def add_comment(
    subject_id: str,
    actor_id: str,
    author_principal: str,
    content: str,
    subject_type: SubjectType = SubjectType.CREATION,
) -> OperationResult:
    """
    Comment on a creation or project. Discussions go through
    add_discussion_comment, which also needs the community.
    """
    subject_type = SubjectType(subject_type)
    content = _clean_content(content)
    if not subject_id or not actor_id or not author_principal or not content or subject_type.is_community:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    comment = store.create_document(
        comment_collection(),
        {"subject_id": subject_id, "subject_type": subject_type.value, "actor_id": actor_id, "content": content},
    )
    delegate_read("comment", comment["id"], author_principal)

    notify_safely(notify_comment, author_principal, actor_id, subject_id, COMMENT_MESSAGES[subject_type])
    return OperationResult.ok(comment=comment)


def add_feedback(subject_id: str, actor_id: str, author_principal: str, content: str) -> OperationResult:
    """Feedback is private between its submitter and the subject author."""
    content = _clean_content(content)
    if not subject_id or not actor_id or not author_principal or not content:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    feedback = store.create_document(
        feedback_collection(),
        {"subject_id": subject_id, "actor_id": actor_id, "content": content},
    )
    delegate_read("feedback", feedback["id"], author_principal)

    notify_safely(
        notify_comment, author_principal, actor_id, subject_id, MESSAGE_GAVE_FEEDBACK,
        notif_type=NotificationType.FEEDBACK,
    )
    return OperationResult.ok(feedback=feedback)


def add_comment_reply(
    parent_id: str,
    actor_id: str,
    author_principal: str,
    content: str,
    subject_id: str,
) -> OperationResult:
    content = _clean_content(content)
    if not parent_id or not actor_id or not content:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    parent = get_record(comment_collection(), parent_id)
    if parent is None:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    receiver_principal = _principal_of(parent.get("actor_id"))

    reply = store.create_document(
        comment_reply_collection(),
        {"parent_id": parent_id, "subject_id": subject_id, "actor_id": actor_id, "content": content},
    )
    delegate_read("comment_reply", reply["id"], author_principal, receiver_principal)

    notify_safely(notify_reply, receiver_principal, actor_id, subject_id, MESSAGE_REPLIED_COMMENT)
    return OperationResult.ok(reply=reply)


def add_feedback_reply(
    parent_id: str,
    post_author_id: str,
    author_principal: str,
    actor_id: str,
    content: str,
    subject_id: str,
) -> OperationResult:
    """
    The grant follows who is replying:
      - the subject author replying → the feedback submitter gets access
      - anyone else replying        → the subject author gets access
    The notification goes to that same counterpart.
    """
    content = _clean_content(content)
    if not parent_id or not actor_id or not content:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    parent = get_record(feedback_collection(), parent_id)
    if parent is None:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    reply = store.create_document(
        feedback_reply_collection(),
        {"parent_id": parent_id, "subject_id": subject_id, "actor_id": actor_id, "content": content},
    )

    is_author_replying = actor_id == post_author_id
    if is_author_replying:
        function_key = "feedback_reply_parent"
        grant_target = _principal_of(parent.get("actor_id"))
        message = MESSAGE_REPLIED_FEEDBACK
    else:
        function_key = "feedback_reply"
        grant_target = author_principal
        message = MESSAGE_REPLIED_FEEDBACK_ON_CREATION

    delegate_read(function_key, reply["id"], grant_target)

    notify_safely(notify_reply, grant_target, actor_id, subject_id, message)
    return OperationResult.ok(reply=reply, is_author_replying=is_author_replying, grant_target=grant_target)


# -------------------------------------------------------------------------
# Discussion variants (community scope)
# -------------------------------------------------------------------------
def add_discussion_comment(
    discussion_id: str,
    actor_id: str,
    author_principal: str,
    content: str,
    community_id: Optional[str] = None,
) -> OperationResult:
    content = _clean_content(content)
    if not discussion_id or not actor_id or not author_principal or not content:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    discussion = get_record(discussion_collection(), discussion_id)
    if discussion is None:
        return OperationResult.fail(ErrorCode.NOT_FOUND)
    community_id = community_id or discussion.get("community_id")

    comment = store.create_document(
        comment_collection(),
        {
            "subject_id": discussion_id,
            "subject_type": SubjectType.DISCUSSION.value,
            "actor_id": actor_id,
            "content": content,
        },
    )
    delegate_read("discussion_comment", comment["id"], author_principal, *get_admin_account_ids(community_id))

    notify_safely(
        notify_comment, author_principal, actor_id, discussion_id, MESSAGE_COMMENTED_DISCUSSION,
        scope=NotificationScope.COMMUNITY,
    )
    schedule_ping_fan_out(community_id, discussion.get("topic_id"), actor_id)
    return OperationResult.ok(comment=comment)


def add_discussion_comment_reply(
    parent_id: str,
    actor_id: str,
    author_principal: str,
    content: str,
    discussion_id: str,
    community_id: Optional[str] = None,
) -> OperationResult:
    content = _clean_content(content)
    if not parent_id or not actor_id or not discussion_id or not content:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    parent = get_record(comment_collection(), parent_id)
    discussion = get_record(discussion_collection(), discussion_id)
    if parent is None or discussion is None:
        return OperationResult.fail(ErrorCode.NOT_FOUND)
    community_id = community_id or discussion.get("community_id")

    receiver_principal = _principal_of(parent.get("actor_id"))

    reply = store.create_document(
        comment_reply_collection(),
        {"parent_id": parent_id, "subject_id": discussion_id, "actor_id": actor_id, "content": content},
    )
    delegate_read(
        "discussion_comment_reply",
        reply["id"],
        author_principal,
        receiver_principal,
        *get_admin_account_ids(community_id),
    )

    notify_safely(
        notify_reply, receiver_principal, actor_id, discussion_id, MESSAGE_REPLIED_COMMENT,
        scope=NotificationScope.COMMUNITY,
    )
    schedule_ping_fan_out(community_id, discussion.get("topic_id"), actor_id)
    return OperationResult.ok(reply=reply)


# =========================================================================
# READS
# =========================================================================
def get_comments(subject_id: str) -> List[dict]:
    return list(store.iter_documents(comment_collection(), [Query.equal("subject_id", subject_id)]))


def get_feedbacks(subject_id: str, viewer_id: Optional[str] = None, viewer_principal: Optional[str] = None) -> List[dict]:
    """
    Without a viewer every feedback is returned. With one, only those the
    viewer submitted or was granted read access to.
    """
    feedbacks = list(store.iter_documents(feedback_collection(), [Query.equal("subject_id", subject_id)]))
    if viewer_id is None and viewer_principal is None:
        return feedbacks

    visible = []
    for feedback in feedbacks:
        if viewer_id and feedback.get("actor_id") == viewer_id:
            visible.append(feedback)
        elif viewer_principal and viewer_principal in store.get_read_principals(feedback_collection(), feedback["id"]):
            visible.append(feedback)
    return visible


def get_comment_replies(comment_id: str) -> List[dict]:
    return list(store.iter_documents(comment_reply_collection(), [Query.equal("parent_id", comment_id)]))


def get_feedback_replies(feedback_id: str) -> List[dict]:
    return list(store.iter_documents(feedback_reply_collection(), [Query.equal("parent_id", feedback_id)]))


def _count(collection: str, field: str, value: str) -> int:
    if not value:
        return 0
    return store.list_documents(collection, [Query.equal(field, value), Query.limit(0)]).total


def get_subject_comments_count(subject_id: str) -> int:
    return _count(comment_collection(), "subject_id", subject_id)


def get_subject_feedbacks_count(subject_id: str) -> int:
    return _count(feedback_collection(), "subject_id", subject_id)


def get_subject_replies_count(subject_id: str) -> int:
    """Replies to the subject's comments (feedback replies are private and not counted)."""
    return _count(comment_reply_collection(), "subject_id", subject_id)


# =========================================================================
# DELETION (leaves → root, every step tolerates an already-missing record)
# =========================================================================
def _cascade_reply(collection: str, reply_id: str, report: CascadeReport) -> None:
    likes = delete_item_likes(reply_id)
    report.merge(likes)
    if likes.complete:
        delete_one(collection, reply_id, report)


def _cascade_replies(reply_collection: str, parent_id: str, report: CascadeReport) -> None:
    # Snapshot ids first, the pass below deletes from the same collection
    for reply_id in store.collect_ids(reply_collection, [Query.equal("parent_id", parent_id)]):
        _cascade_reply(reply_collection, reply_id, report)


def _cascade_parent(parent_collection: str, reply_collection: str, parent_id: str) -> CascadeReport:
    report = CascadeReport(root_id=parent_id)
    _cascade_replies(reply_collection, parent_id, report)
    report.merge(delete_item_likes(parent_id))

    if report.complete:
        delete_one(parent_collection, parent_id, report)
    else:
        logger.warning("[Cascade] %s kept: %s dependents left behind", parent_id, len(report.failed))
    return report


def delete_comment(comment_id: str, subject_id: Optional[str] = None) -> CascadeReport:
    """
    Replies (and their likes), then the comment's likes, then the comment.
    If any dependent survives the comment is kept and PartialCascadeFailure
    is raised; running it again picks up where it stopped.
    """
    report = _cascade_parent(comment_collection(), comment_reply_collection(), comment_id)
    report.raise_if_failed()
    logger.debug("[Cascade] comment %s on %s removed (%s records)", comment_id, subject_id, report.deleted)
    return report


def delete_feedback(feedback_id: str, subject_id: Optional[str] = None) -> CascadeReport:
    report = _cascade_parent(feedback_collection(), feedback_reply_collection(), feedback_id)
    report.raise_if_failed()
    logger.debug("[Cascade] feedback %s on %s removed (%s records)", feedback_id, subject_id, report.deleted)
    return report


def delete_comment_reply(reply_id: str, comment_id: Optional[str] = None) -> CascadeReport:
    report = CascadeReport(root_id=reply_id)
    _cascade_reply(comment_reply_collection(), reply_id, report)
    report.raise_if_failed()
    return report


def delete_feedback_reply(reply_id: str, feedback_id: Optional[str] = None) -> CascadeReport:
    report = CascadeReport(root_id=reply_id)
    _cascade_reply(feedback_reply_collection(), reply_id, report)
    report.raise_if_failed()
    return report


def delete_all_comment_replies(comment_id: str) -> CascadeReport:
    report = CascadeReport(root_id=comment_id)
    _cascade_replies(comment_reply_collection(), comment_id, report)
    report.raise_if_failed()
    return report


def delete_all_feedback_replies(feedback_id: str) -> CascadeReport:
    report = CascadeReport(root_id=feedback_id)
    _cascade_replies(feedback_reply_collection(), feedback_id, report)
    report.raise_if_failed()
    return report


def delete_all_for_subject(subject_id: str) -> CascadeReport:
    """
    Every comment, then every feedback, each as its own cascade.
    Does not raise: the caller decides whether the subject itself may go.
    """
    report = CascadeReport(root_id=subject_id)
    if not subject_id:
        return report

    for comment_id in store.collect_ids(comment_collection(), [Query.equal("subject_id", subject_id)]):
        report.merge(_cascade_parent(comment_collection(), comment_reply_collection(), comment_id))

    for feedback_id in store.collect_ids(feedback_collection(), [Query.equal("subject_id", subject_id)]):
        report.merge(_cascade_parent(feedback_collection(), feedback_reply_collection(), feedback_id))

    logger.info(
        "[Cascade] subject %s: %s removed, %s already gone, %s failed",
        subject_id, report.deleted, report.already_gone, len(report.failed),
    )
    return report
