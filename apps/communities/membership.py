# apps/communities/membership.py

import logging
from typing import List, Optional

from apps.core.results import ErrorCode, OperationResult
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound
from .constants import MEMBER, community_collection, member_collection, topic_collection

logger = logging.getLogger(__name__)


def _get_membership(user_id: str, community_id: str) -> Optional[dict]:
    result = store.list_documents(
        member_collection(),
        [Query.equal("creator_id", user_id), Query.equal("community_id", community_id), Query.limit(1)],
    )
    return result.documents[0] if result.documents else None


def check_membership_status(user_id: str, community_id: str) -> bool:
    if not user_id or not community_id:
        return False
    return _get_membership(user_id, community_id) is not None


def join_community(user_id: str, community_id: str, role: str = MEMBER) -> OperationResult:
    if not user_id or not community_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    try:
        store.get_document(community_collection(), community_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    if _get_membership(user_id, community_id):
        return OperationResult.fail(ErrorCode.DUPLICATE_INTERACTION, member=True)

    member = store.create_document(
        member_collection(),
        {"creator_id": user_id, "community_id": community_id, "role": role},
    )
    logger.info("[Community] %s joined %s", user_id, community_id)
    return OperationResult.ok(member=member)


def leave_community(user_id: str, community_id: str) -> OperationResult:
    membership = _get_membership(user_id, community_id) if user_id and community_id else None
    if membership is None:
        return OperationResult.fail(ErrorCode.NOT_FOUND, member=False)

    try:
        store.delete_document(member_collection(), membership["id"])
    except DocumentNotFound:
        pass
    logger.info("[Community] %s left %s", user_id, community_id)
    return OperationResult.ok(member=False)


def count_members(community_id: str) -> int:
    return store.list_documents(
        member_collection(), [Query.equal("community_id", community_id), Query.limit(0)]
    ).total


# -------------------------------------------------------------------------
# Lookups used by the write paths
# -------------------------------------------------------------------------
def get_admin_account_ids(community_id: str) -> List[str]:
    """
    Community documents store admin principals directly, so no
    internal-id translation is needed here. Returns every admin.
    """
    try:
        community = store.get_document(community_collection(), community_id)
    except DocumentNotFound:
        logger.warning("[Community] %s not found while resolving admins", community_id)
        return []
    return [admin for admin in (community.get("admins") or []) if admin]


def get_community_id_from_topic_id(topic_id: str) -> Optional[str]:
    try:
        return store.get_document(topic_collection(), topic_id).get("community_id")
    except DocumentNotFound:
        return None
