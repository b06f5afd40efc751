# apps/communities/discussions.py

import logging
from typing import Iterable, List, Optional, Union

from apps.comments.services import delete_all_for_subject
from apps.core.cascade import CascadeReport, delete_one
from apps.core.results import ErrorCode, OperationResult
from apps.delegation.executor import delegate_read
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound
from apps.interactions.services import delete_all_subject_likes, delete_all_subject_saves
from .constants import GENERAL, community_collection, discussion_collection
from .membership import get_admin_account_ids, get_community_id_from_topic_id
from .tasks import schedule_ping_fan_out

logger = logging.getLogger(__name__)


def normalize_tags(tags: Union[str, Iterable[str], None]) -> List[str]:
    """'a, b,c' → ['a', 'b', 'c']; lists are stripped the same way."""
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [t.replace(" ", "") for t in tags if t and t.strip()]


def get_discussion(discussion_id: str) -> Optional[dict]:
    try:
        return store.get_document(discussion_collection(), discussion_id)
    except DocumentNotFound:
        return None


def get_discussions(topic_id: str, limit: int = 20, cursor: Optional[str] = None) -> dict:
    queries = [Query.equal("topic_id", topic_id), Query.order_desc("created_at"), Query.limit(limit)]
    if cursor:
        queries.append(Query.cursor_after(cursor))
    documents = store.list_documents(discussion_collection(), queries).documents
    return {"documents": documents, "next_cursor": documents[-1]["id"] if len(documents) == limit else None}


def create_discussion(
    community_id: str,
    topic_id: str,
    author_id: str,
    content: str,
    tags=None,
    discussion_type: str = GENERAL,
) -> OperationResult:
    """
    Create the discussion, give the community admins read access, then
    schedule the ping fan-out. The fan-out never holds up the request.
    """
    content = (content or "").strip()
    if not community_id or not topic_id or not author_id or not content:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    try:
        store.get_document(community_collection(), community_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    topic_community = get_community_id_from_topic_id(topic_id)
    if topic_community is None:
        return OperationResult.fail(ErrorCode.NOT_FOUND)
    if topic_community != community_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    discussion = store.create_document(
        discussion_collection(),
        {
            "community_id": community_id,
            "topic_id": topic_id,
            "author_id": author_id,
            "content": content,
            "tags": normalize_tags(tags),
            "type": discussion_type,
        },
    )
    delegate_read("community_discussion", discussion["id"], *get_admin_account_ids(community_id))

    scheduled = schedule_ping_fan_out(community_id, topic_id, author_id)
    logger.info("[Community] discussion %s created in topic %s (pings scheduled=%s)", discussion["id"], topic_id, scheduled)
    return OperationResult.ok(discussion=discussion, pings_scheduled=scheduled)


def delete_discussion(discussion_id: str) -> CascadeReport:
    """
    Comments (with their replies and likes), likes, saves, then the
    discussion itself. The discussion is kept while anything is left behind.
    """
    report = CascadeReport(root_id=discussion_id)
    report.merge(delete_all_for_subject(discussion_id))
    report.merge(delete_all_subject_likes(discussion_id))
    report.merge(delete_all_subject_saves(discussion_id))

    if report.complete:
        delete_one(discussion_collection(), discussion_id, report)
    report.raise_if_failed()
    return report
