# apps/notifications/services.py

import logging
import re
from typing import Any, Dict, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.utils import timezone

from apps.core.results import ErrorCode, OperationResult
from apps.delegation.executor import delegate_read
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound
from apps.profiles.services import get_user_account_id
from .constants import (
    REALTIME_GROUP_PREFIX,
    NotificationScope,
    NotificationType,
    notification_collection,
    notification_function,
)

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Realtime helpers
# -------------------------------------------------------------------------
def realtime_group(principal_id: str) -> str:
    # Channels group names: ASCII alnum, hyphen, underscore, period; < 100 chars
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", str(principal_id))
    return f"{REALTIME_GROUP_PREFIX}{safe}"[:99]


def _push_realtime(notification: Dict[str, Any]) -> None:
    """
    Send WS event safely (won't break the write path if Redis/Channels is down).
    """
    try:
        layer = get_channel_layer()
        if not layer:
            logger.debug("[Notif] Channel layer not configured; skip WS send.")
            return
        async_to_sync(layer.group_send)(
            realtime_group(notification["receiver_id"]),
            {"type": "send_notification", "payload": notification},
        )
    except Exception:
        logger.warning("[Notif] WS delivery failed for %s", notification.get("receiver_id"), exc_info=True)


def _sender_principal(sender_id: str) -> Optional[str]:
    try:
        return get_user_account_id(sender_id)
    except DocumentNotFound:
        logger.warning("[Notif] Sender %s has no principal; self-check skipped", sender_id)
        return None


# -------------------------------------------------------------------------
# Creation
# -------------------------------------------------------------------------
def create_notification(
    *,
    scope: NotificationScope,
    receiver_principal: str,
    sender_id: str,
    notif_type: NotificationType,
    resource_id: str,
    message: str,
) -> Dict[str, Any]:
    """
    Create an unread notification, then hand the receiver read access.
    Store failures propagate; the grant is fire-and-forget.
    """
    notification = store.create_document(
        notification_collection(scope),
        {
            "receiver_id": receiver_principal,
            "sender_id": sender_id,
            "type": NotificationType(notif_type).value,
            "resource_id": resource_id,
            "message": message,
            "is_read": False,
        },
    )

    delegate_read(notification_function(scope), notification["id"], receiver_principal)
    _push_realtime(notification)

    logger.debug(
        "[Notif] %s → %s | type=%s resource=%s",
        sender_id, receiver_principal, notification["type"], resource_id,
    )
    return notification


def notify(
    *,
    receiver_principal: Optional[str],
    sender_id: str,
    notif_type: NotificationType,
    resource_id: str,
    message: str,
    scope: NotificationScope = NotificationScope.USER,
) -> Optional[Dict[str, Any]]:
    """
    Create a notification unless the sender is the receiver.
    The sender acts under an internal id, so it is translated to its
    principal before being compared to the receiver's principal.
    """
    if not receiver_principal:
        logger.debug("[Notif] skipped: no receiver for %s", resource_id)
        return None

    if _sender_principal(sender_id) == receiver_principal:
        logger.debug("[Notif] skipped self-notification → %s", receiver_principal)
        return None

    return create_notification(
        scope=scope,
        receiver_principal=receiver_principal,
        sender_id=sender_id,
        notif_type=notif_type,
        resource_id=resource_id,
        message=message,
    )


def notify_like(receiver_principal, sender_id, resource_id, message, scope=NotificationScope.USER):
    return notify(
        receiver_principal=receiver_principal, sender_id=sender_id, notif_type=NotificationType.LIKE,
        resource_id=resource_id, message=message, scope=scope,
    )


def notify_comment(receiver_principal, sender_id, resource_id, message,
                   scope=NotificationScope.USER, notif_type=NotificationType.COMMENT):
    return notify(
        receiver_principal=receiver_principal, sender_id=sender_id, notif_type=notif_type,
        resource_id=resource_id, message=message, scope=scope,
    )


def notify_reply(receiver_principal, sender_id, resource_id, message, scope=NotificationScope.USER):
    return notify(
        receiver_principal=receiver_principal, sender_id=sender_id, notif_type=NotificationType.REPLY,
        resource_id=resource_id, message=message, scope=scope,
    )


def notify_safely(func, *args, **kwargs) -> Optional[Dict[str, Any]]:
    """
    Run a notify_* call as a secondary write: the primary record already
    exists, so a failure here is logged instead of undoing the action.
    """
    try:
        return func(*args, **kwargs)
    except Exception:
        logger.exception("[Notif] Failed to dispatch %s", getattr(func, "__name__", func))
        return None


# -------------------------------------------------------------------------
# Reading
# -------------------------------------------------------------------------
def get_notifications(
    receiver_principal: str,
    cursor: Optional[str] = None,
    scope: NotificationScope = NotificationScope.USER,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Newest first, cursor-paginated."""
    limit = limit or getattr(settings, "NOTIFICATIONS_PAGE_SIZE", 15)
    queries = [
        Query.equal("receiver_id", receiver_principal),
        Query.order_desc("created_at"),
        Query.limit(limit),
    ]
    if cursor:
        queries.append(Query.cursor_after(cursor))

    try:
        documents = store.list_documents(notification_collection(scope), queries).documents
    except DocumentNotFound:
        logger.warning("[Notif] Cursor %s no longer exists for %s", cursor, receiver_principal)
        return {"documents": [], "next_cursor": None}

    next_cursor = documents[-1]["id"] if len(documents) == limit else None
    return {"documents": documents, "next_cursor": next_cursor}


def get_notification(notification_id: str, scope: NotificationScope = NotificationScope.USER) -> Optional[Dict[str, Any]]:
    try:
        return store.get_document(notification_collection(scope), notification_id)
    except DocumentNotFound:
        return None


def count_unread(receiver_principal: str, scope: NotificationScope = NotificationScope.USER) -> int:
    return store.list_documents(
        notification_collection(scope),
        [Query.equal("receiver_id", receiver_principal), Query.equal("is_read", False), Query.limit(0)],
    ).total


# -------------------------------------------------------------------------
# Receiver-side mutations
# -------------------------------------------------------------------------
def mark_read(notification_id: str, scope: NotificationScope = NotificationScope.USER) -> OperationResult:
    """Idempotent: marking an already-read notification is a no-op success."""
    collection = notification_collection(scope)
    try:
        notification = store.get_document(collection, notification_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    if notification.get("is_read"):
        return OperationResult.ok(notification=notification, changed=False)

    try:
        notification = store.update_document(
            collection, notification_id, {"is_read": True, "read_at": timezone.now().isoformat()}
        )
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)
    return OperationResult.ok(notification=notification, changed=True)


def mark_all_read(receiver_principal: str, scope: NotificationScope = NotificationScope.USER) -> int:
    collection = notification_collection(scope)
    unread = store.collect_ids(
        collection, [Query.equal("receiver_id", receiver_principal), Query.equal("is_read", False)]
    )
    read_at = timezone.now().isoformat()
    marked = 0
    for notification_id in unread:
        try:
            store.update_document(collection, notification_id, {"is_read": True, "read_at": read_at})
            marked += 1
        except DocumentNotFound:
            continue
    return marked


def delete_notification(notification_id: str, scope: NotificationScope = NotificationScope.USER) -> OperationResult:
    """Hard delete. Receiver-only access is enforced upstream."""
    try:
        store.delete_document(notification_collection(scope), notification_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)
    return OperationResult.ok(notification_id=notification_id)
