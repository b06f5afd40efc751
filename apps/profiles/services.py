# apps/profiles/services.py

import logging
from typing import Optional

from apps.core.results import ErrorCode, OperationResult
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound
from .constants import SUPPORTING_COUNT, creator_collection, support_collection

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Creator lookups (internal user id ↔ principal id)
# -------------------------------------------------------------------------
def get_creator(user_id: str) -> dict:
    return store.get_document(creator_collection(), user_id)


def get_user_account_id(user_id: str) -> str:
    """
    Translate an internal creator id into the principal (account) id used
    for access checks. Raises DocumentNotFound when either is missing.
    """
    creator = get_creator(user_id)
    account_id = creator.get("account_id")
    if not account_id:
        raise DocumentNotFound(creator_collection(), f"{user_id}#account_id")
    return account_id


def get_creator_by_account(account_id: str) -> Optional[dict]:
    result = store.list_documents(
        creator_collection(),
        [Query.equal("account_id", account_id), Query.limit(1)],
    )
    return result.documents[0] if result.documents else None


def adjust_counter(user_id: str, field: str, delta: int) -> Optional[int]:
    """
    Best-effort read-modify-write on a creator counter, clamped at 0.
    Not transactional with the change it mirrors; drift is repaired by
    the reconciliation routines.
    """
    try:
        creator = get_creator(user_id)
        updated = max(int(creator.get(field) or 0) + delta, 0)
        store.update_document(creator_collection(), user_id, {field: updated})
        return updated
    except DocumentNotFound:
        logger.warning("[Counters] creator %s missing, %s not adjusted", user_id, field)
        return None


# -------------------------------------------------------------------------
# Support edges
# -------------------------------------------------------------------------
def _get_support_edge(creator_id: str) -> Optional[dict]:
    result = store.list_documents(support_collection(), [Query.equal("creator_id", creator_id), Query.limit(1)])
    return result.documents[0] if result.documents else None


def check_supporting_user(creator_id: str, supporting_id: str) -> bool:
    if not creator_id or not supporting_id:
        return False
    edge = _get_support_edge(creator_id)
    if not edge:
        return False
    return supporting_id in (edge.get("supporting_ids") or [])


def support(creator_id: str, supporting_id: str) -> OperationResult:
    """
    Add `supporting_id` to the follower's set, then bump supporting_count.
    The counter is only touched when the set actually changed.
    """
    if not creator_id or not supporting_id or creator_id == supporting_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    try:
        get_creator(creator_id)
    except DocumentNotFound:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    edge = _get_support_edge(creator_id)
    if edge is None:
        store.create_document(support_collection(), {"creator_id": creator_id, "supporting_ids": [supporting_id]})
        changed = True
    else:
        current = list(edge.get("supporting_ids") or [])
        changed = supporting_id not in current
        if changed:
            store.update_document(support_collection(), edge["id"], {"supporting_ids": current + [supporting_id]})

    count = adjust_counter(creator_id, SUPPORTING_COUNT, +1) if changed else None
    return OperationResult.ok(supporting=True, changed=changed, supporting_count=count)


def unsupport(creator_id: str, supporting_id: str) -> OperationResult:
    if not creator_id or not supporting_id:
        return OperationResult.fail(ErrorCode.INVALID_REQUEST)

    edge = _get_support_edge(creator_id)
    current = list(edge.get("supporting_ids") or []) if edge else []
    if supporting_id not in current:
        return OperationResult.fail(ErrorCode.NOT_FOUND)

    store.update_document(
        support_collection(),
        edge["id"],
        {"supporting_ids": [sid for sid in current if sid != supporting_id]},
    )
    count = adjust_counter(creator_id, SUPPORTING_COUNT, -1)
    return OperationResult.ok(supporting=False, changed=True, supporting_count=count)


def recompute_supporting_count(creator_id: str) -> int:
    """Read-repair: supporting_count := |supporting_ids|."""
    edge = _get_support_edge(creator_id)
    actual = len(set(edge.get("supporting_ids") or [])) if edge else 0
    try:
        store.update_document(creator_collection(), creator_id, {SUPPORTING_COUNT: actual})
    except DocumentNotFound:
        logger.warning("[Counters] creator %s missing during supporting repair", creator_id)
    return actual
