# apps/interactions/services.py

import logging
from typing import Optional

from apps.core.cascade import CascadeReport, delete_many
from apps.core.results import ErrorCode, OperationResult
from apps.delegation.executor import delegate_read
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound
from apps.notifications.constants import MESSAGE_LIKED_ITEM, NotificationScope
from apps.notifications.services import notify_like, notify_safely
from apps.profiles.services import get_user_account_id
from .constants import (
    ITEM_PROBE_ORDER,
    ItemType,
    SubjectType,
    item_like_collection,
    post_like_collection,
    save_collection,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Helpers (generic over like / save / item-like collections)
# ------------------------------------------------------------
def _find_interaction(collection: str, target_field: str, target_id: str, actor_id: str) -> Optional[dict]:
    result = store.list_documents(
        collection,
        [Query.equal(target_field, target_id), Query.equal("actor_id", actor_id), Query.limit(1)],
    )
    return result.documents[0] if result.documents else None


def _count(collection: str, target_field: str, target_id: str) -> int:
    if not target_id:
        return 0
    return store.list_documents(collection, [Query.equal(target_field, target_id), Query.limit(0)]).total


def _remove_interaction(collection: str, target_field: str, target_id: str, actor_id: str) -> bool:
    """
    Delete every record the actor has on a target, so a duplicate left by
    a concurrent insert goes too. Returns False when there was nothing to delete.
    """
    ids = store.collect_ids(collection, [Query.equal(target_field, target_id), Query.equal("actor_id", actor_id)])
    if not ids:
        return False
    for doc_id in ids:
        try:
            store.delete_document(collection, doc_id)
        except DocumentNotFound:
            # Removed concurrently; the end state is the one asked for
            pass
    return True


def _delete_all(collection: str, target_field: str, target_id: str) -> CascadeReport:
    report = CascadeReport(root_id=target_id)
    if not target_id:
        return report
    ids = store.collect_ids(collection, [Query.equal(target_field, target_id)])
    delete_many(collection, ids, report)
    return report


# ============================================================
# SUBJECT LIKES
# ============================================================
def count_subject_likes(subject_id: str) -> int:
    """Always a live query; likes never trust a denormalized counter."""
    return _count(post_like_collection(), "subject_id", subject_id)


def check_subject_like(subject_id: str, actor_id: str) -> bool:
    if not subject_id or not actor_id:
        return False
    return _find_interaction(post_like_collection(), "subject_id", subject_id, actor_id) is not None


def like_subject(
    subject_id: str,
    actor_id: str,
    author_principal: str,
    subject_type: SubjectType = SubjectType.CREATION,
) -> OperationResult:
    """
    Check-then-create. Two simultaneous requests from the same actor can
    both pass the check; that window is accepted.
    """
    if not subject_id or not actor_id or not author_principal:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)
    subject_type = SubjectType(subject_type)

    if _find_interaction(post_like_collection(), "subject_id", subject_id, actor_id):
        return OperationResult.fail(
            ErrorCode.DUPLICATE_INTERACTION, liked=True, likes_count=count_subject_likes(subject_id)
        )

    like = store.create_document(
        post_like_collection(),
        {"subject_id": subject_id, "subject_type": subject_type.value, "actor_id": actor_id},
    )
    delegate_read(subject_type.like_function, like["id"], author_principal)

    notify_safely(
        notify_like,
        author_principal,
        actor_id,
        subject_id,
        subject_type.like_message,
        scope=subject_type.notification_scope,
    )

    logger.debug("[Ledger] %s liked %s %s", actor_id, subject_type.value, subject_id)
    return OperationResult.ok(like=like, liked=True, likes_count=count_subject_likes(subject_id))


def unlike_subject(subject_id: str, actor_id: str) -> OperationResult:
    """No notification is sent for unlikes."""
    if not subject_id or not actor_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    if not _remove_interaction(post_like_collection(), "subject_id", subject_id, actor_id):
        return OperationResult.fail(ErrorCode.NOT_FOUND, liked=False, likes_count=count_subject_likes(subject_id))

    return OperationResult.ok(liked=False, likes_count=count_subject_likes(subject_id))


def get_subject_likers(subject_id: str) -> list:
    return [
        doc["actor_id"]
        for doc in store.iter_documents(post_like_collection(), [Query.equal("subject_id", subject_id)])
    ]


def delete_all_subject_likes(subject_id: str) -> CascadeReport:
    return _delete_all(post_like_collection(), "subject_id", subject_id)


# ============================================================
# SAVES
# ============================================================
def count_subject_saves(subject_id: str) -> int:
    return _count(save_collection(), "subject_id", subject_id)


def check_subject_save(subject_id: str, actor_id: str) -> bool:
    if not subject_id or not actor_id:
        return False
    return _find_interaction(save_collection(), "subject_id", subject_id, actor_id) is not None


def save_subject(
    subject_id: str,
    actor_id: str,
    author_principal: str,
    subject_type: SubjectType = SubjectType.CREATION,
) -> OperationResult:
    if not subject_id or not actor_id or not author_principal:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)
    subject_type = SubjectType(subject_type)

    if _find_interaction(save_collection(), "subject_id", subject_id, actor_id):
        return OperationResult.fail(
            ErrorCode.DUPLICATE_INTERACTION, saved=True, saves_count=count_subject_saves(subject_id)
        )

    saved = store.create_document(
        save_collection(),
        {"subject_id": subject_id, "subject_type": subject_type.value, "actor_id": actor_id},
    )
    delegate_read(subject_type.save_function, saved["id"], author_principal)

    return OperationResult.ok(save=saved, saved=True, saves_count=count_subject_saves(subject_id))


def unsave_subject(subject_id: str, actor_id: str) -> OperationResult:
    if not subject_id or not actor_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    if not _remove_interaction(save_collection(), "subject_id", subject_id, actor_id):
        return OperationResult.fail(ErrorCode.NOT_FOUND, saved=False, saves_count=count_subject_saves(subject_id))

    return OperationResult.ok(saved=False, saves_count=count_subject_saves(subject_id))


def get_saved_subject_ids(actor_id: str, subject_type: Optional[SubjectType] = None) -> list:
    queries = [Query.equal("actor_id", actor_id)]
    if subject_type:
        queries.append(Query.equal("subject_type", SubjectType(subject_type).value))
    return [doc["subject_id"] for doc in store.iter_documents(save_collection(), queries)]


def delete_all_subject_saves(subject_id: str) -> CascadeReport:
    return _delete_all(save_collection(), "subject_id", subject_id)


# ============================================================
# ITEM LIKES (comments, feedback, replies)
# ============================================================
def resolve_item_type(item_id: str) -> Optional[ItemType]:
    """
    Probe the item collections in fixed priority order.
    Only for legacy clients that do not send an item type.
    """
    for item_type in ITEM_PROBE_ORDER:
        try:
            store.get_document(item_type.collection, item_id)
            return item_type
        except DocumentNotFound:
            continue
    return None


def count_item_likes(item_id: str) -> int:
    return _count(item_like_collection(), "item_id", item_id)


def check_item_like(item_id: str, actor_id: str) -> bool:
    if not item_id or not actor_id:
        return False
    return _find_interaction(item_like_collection(), "item_id", item_id, actor_id) is not None


def like_item(
    item_id: str,
    item_type: ItemType,
    actor_id: str,
    author_principal: Optional[str] = None,
    *,
    resource_id: Optional[str] = None,
    community: bool = False,
) -> OperationResult:
    """
    Like a comment / feedback / reply. The item must exist in the
    collection of its declared type. `author_principal` defaults to the
    item author's principal.
    """
    if not item_id or not actor_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)
    item_type = ItemType(item_type)

    try:
        item = store.get_document(item_type.collection, item_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    if _find_interaction(item_like_collection(), "item_id", item_id, actor_id):
        return OperationResult.fail(
            ErrorCode.DUPLICATE_INTERACTION, liked=True, likes_count=count_item_likes(item_id)
        )

    if not author_principal:
        try:
            author_principal = get_user_account_id(item["actor_id"])
        except DocumentNotFound:
            logger.warning("[Ledger] Item %s author has no principal", item_id)

    like = store.create_document(
        item_like_collection(),
        {"item_id": item_id, "item_type": item_type.value, "actor_id": actor_id},
    )
    delegate_read("discussion_item_like" if community else "item_like", like["id"], author_principal)

    notify_safely(
        notify_like,
        author_principal,
        actor_id,
        resource_id or item_id,
        MESSAGE_LIKED_ITEM,
        scope=NotificationScope.COMMUNITY if community else NotificationScope.USER,
    )

    return OperationResult.ok(like=like, liked=True, likes_count=count_item_likes(item_id))


def unlike_item(item_id: str, actor_id: str) -> OperationResult:
    if not item_id or not actor_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    if not _remove_interaction(item_like_collection(), "item_id", item_id, actor_id):
        return OperationResult.fail(ErrorCode.NOT_FOUND, liked=False, likes_count=count_item_likes(item_id))

    return OperationResult.ok(liked=False, likes_count=count_item_likes(item_id))


def delete_item_likes(item_id: str) -> CascadeReport:
    """Remove every like on an item (not just the first one found)."""
    return _delete_all(item_like_collection(), "item_id", item_id)


# ============================================================
# SUBJECT LOOKUPS
# ============================================================
def get_subject(subject_id: str, subject_type: SubjectType = SubjectType.CREATION) -> Optional[dict]:
    try:
        return store.get_document(SubjectType(subject_type).collection, subject_id)
    except DocumentNotFound:
        return None


def get_subject_author_principal(subject: dict) -> Optional[str]:
    """Subjects store the author's internal id; grants and notifications need the principal."""
    try:
        return get_user_account_id(subject.get("author_id"))
    except DocumentNotFound:
        logger.warning("[Ledger] author of %s has no principal", subject.get("id"))
        return None
