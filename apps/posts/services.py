# apps/posts/services.py

import logging
from typing import Dict, List, Optional

from apps.comments.services import delete_all_for_subject
from apps.core.cascade import CascadeReport, delete_one
from apps.core.results import ErrorCode, OperationResult
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound
from apps.interactions.services import delete_all_subject_likes, delete_all_subject_saves
from apps.profiles.constants import CREATIONS_COUNT, PROJECTS_COUNT, SUPPORTING_COUNT, creator_collection
from apps.profiles.services import adjust_counter, get_creator, recompute_supporting_count
from .constants import LIST_SPLIT_RE, creation_collection, project_collection

logger = logging.getLogger(__name__)


def _as_list(value) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v]
    return [v for v in LIST_SPLIT_RE.split(str(value)) if v]


# -------------------------------------------------------------------------
# Creation / Project
# -------------------------------------------------------------------------
def add_creation(author_id: str, content: str, tags=None, media_urls=None) -> OperationResult:
    if not author_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)
    try:
        get_creator(author_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    creation = store.create_document(
        creation_collection(),
        {
            "author_id": author_id,
            "content": (content or "").strip(),
            "media_url": _as_list(media_urls),
            "tags": _as_list(tags),
        },
    )
    count = adjust_counter(author_id, CREATIONS_COUNT, +1)
    return OperationResult.ok(creation=creation, creations_count=count)


def add_project(author_id: str, title: str, description: str = "", links=None, tags=None) -> OperationResult:
    if not author_id or not (title or "").strip():
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)
    try:
        get_creator(author_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    project = store.create_document(
        project_collection(),
        {
            "author_id": author_id,
            "title": title.strip(),
            "description": description or "",
            "links": _as_list(links),
            "tags": _as_list(tags),
        },
    )
    count = adjust_counter(author_id, PROJECTS_COUNT, +1)
    return OperationResult.ok(project=project, projects_count=count)


def _delete_subject(collection: str, subject_id: str, counter: str, report: CascadeReport) -> CascadeReport:
    """Delete the subject last and only decrement its author's counter if this call removed it."""
    try:
        author_id = store.get_document(collection, subject_id).get("author_id")
    except DocumentNotFound:
        author_id = None

    report.raise_if_failed()

    deleted_before = report.deleted
    delete_one(collection, subject_id, report)
    report.raise_if_failed()

    if author_id and report.deleted > deleted_before:
        adjust_counter(author_id, counter, -1)
    return report


def delete_creation(creation_id: str) -> CascadeReport:
    """Comments, feedback, likes, saves, then the creation and its author's counter."""
    report = CascadeReport(root_id=creation_id)
    report.merge(delete_all_for_subject(creation_id))
    report.merge(delete_all_subject_likes(creation_id))
    report.merge(delete_all_subject_saves(creation_id))
    return _delete_subject(creation_collection(), creation_id, CREATIONS_COUNT, report)


def delete_project(project_id: str) -> CascadeReport:
    """Comments and their replies, likes, saves, then the project and its author's counter."""
    report = CascadeReport(root_id=project_id)
    report.merge(delete_all_for_subject(project_id))
    report.merge(delete_all_subject_likes(project_id))
    report.merge(delete_all_subject_saves(project_id))
    return _delete_subject(project_collection(), project_id, PROJECTS_COUNT, report)


# -------------------------------------------------------------------------
# Counter read-repair
# -------------------------------------------------------------------------
def _count_authored(collection: str, user_id: str) -> int:
    return store.list_documents(collection, [Query.equal("author_id", user_id), Query.limit(0)]).total


def recompute_user_counters(user_id: str) -> Optional[Dict[str, int]]:
    """Rebuild the creator's denormalized counters from source records."""
    counters = {
        CREATIONS_COUNT: _count_authored(creation_collection(), user_id),
        PROJECTS_COUNT: _count_authored(project_collection(), user_id),
    }
    try:
        store.update_document(creator_collection(), user_id, counters)
    except DocumentNotFound:
        logger.warning("[Counters] creator %s missing, counters not repaired", user_id)
        return None

    counters[SUPPORTING_COUNT] = recompute_supporting_count(user_id)
    return counters
