# apps/communities/pings.py

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings
from django.db import close_old_connections

from apps.core.cascade import CascadeReport, delete_many
from apps.core.results import ErrorCode, OperationResult
from apps.docstore.client import Query, store
from apps.docstore.exceptions import DocumentNotFound, TransportError
from .constants import PingScope, member_collection, ping_collection

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Fan-out bookkeeping
# ------------------------------------------------------------
@dataclass
class FanOutReport:
    community_id: str
    topic_id: str
    batches: int = 0
    delivered: int = 0
    failed: List[str] = field(default_factory=list)
    last_cursor: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "community_id": self.community_id,
            "topic_id": self.topic_id,
            "batches": self.batches,
            "delivered": self.delivered,
            "failed": list(self.failed),
        }


class FanOutInterrupted(Exception):
    """
    Listing a member batch failed. Batches before `resume_cursor` are done;
    resuming from it will not ping those members twice.
    """

    def __init__(self, resume_cursor: Optional[str], report: FanOutReport, cause: Exception = None):
        self.resume_cursor = resume_cursor
        self.report = report
        self.cause = cause
        super().__init__(f"Ping fan-out interrupted after {report.batches} batches: {cause}")


def batch_size() -> int:
    return getattr(settings, "PING_BATCH_SIZE", 100)


def max_workers() -> int:
    return getattr(settings, "PING_FANOUT_MAX_WORKERS", 16)


# ------------------------------------------------------------
# Single ping record
# ------------------------------------------------------------
def _find_ping(user_id: str, community_id: str, topic_id: str) -> Optional[dict]:
    result = store.list_documents(
        ping_collection(),
        [
            Query.equal("community_id", community_id),
            Query.equal("topic_id", topic_id),
            Query.equal("user_id", user_id),
            Query.limit(1),
        ],
    )
    return result.documents[0] if result.documents else None


def upsert_ping(user_id: str, community_id: str, topic_id: str) -> int:
    """Create with ping_count=1 or increment the existing record. Returns the new count."""
    current = _find_ping(user_id, community_id, topic_id)
    if current:
        count = int(current.get("ping_count") or 0) + 1
        store.update_document(ping_collection(), current["id"], {"ping_count": count})
        return count

    store.create_document(
        ping_collection(),
        {"community_id": community_id, "topic_id": topic_id, "user_id": user_id, "ping_count": 1},
    )
    return 1


def _ping_member_in_thread(user_id, community_id, topic_id):
    try:
        return upsert_ping(user_id, community_id, topic_id)
    finally:
        close_old_connections()


# ------------------------------------------------------------
# Fan-out
# ------------------------------------------------------------
def _ping_batch(community_id: str, topic_id: str, recipients: List[str], report: FanOutReport) -> None:
    """
    Ping one batch of members. A failing member is logged and counted,
    the rest of the batch still gets its ping.
    """
    workers = min(max_workers(), len(recipients))

    if workers <= 1:
        for user_id in recipients:
            try:
                upsert_ping(user_id, community_id, topic_id)
                report.delivered += 1
            except Exception:
                logger.exception("[Ping] member %s not pinged (topic=%s)", user_id, topic_id)
                report.failed.append(user_id)
        return

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ping-fanout") as pool:
        futures = {
            pool.submit(_ping_member_in_thread, user_id, community_id, topic_id): user_id
            for user_id in recipients
        }
        for future in as_completed(futures):
            user_id = futures[future]
            try:
                future.result()
                report.delivered += 1
            except Exception:
                logger.exception("[Ping] member %s not pinged (topic=%s)", user_id, topic_id)
                report.failed.append(user_id)


def fan_out_ping(
    community_id: str,
    topic_id: str,
    author_id: str,
    start_after: Optional[str] = None,
) -> FanOutReport:
    """
    Ping every member of a community except the author.

    Members are walked with cursor pagination in batches of PING_BATCH_SIZE.
    Batches run one after another; members inside a batch run concurrently
    on a bounded pool.
    """
    report = FanOutReport(community_id=community_id, topic_id=topic_id, last_cursor=start_after)
    size = batch_size()
    cursor = start_after

    while True:
        queries = [Query.equal("community_id", community_id), Query.limit(size)]
        if cursor:
            queries.append(Query.cursor_after(cursor))

        try:
            members = store.list_documents(member_collection(), queries).documents
        except DocumentNotFound:
            # The resume anchor left the community; nothing reliable to continue from
            logger.warning("[Ping] cursor %s vanished, fan-out for %s stopped", cursor, topic_id)
            break
        except TransportError as e:
            raise FanOutInterrupted(cursor, report, e) from e

        if not members:
            break

        report.batches += 1
        recipients = [
            m["creator_id"] for m in members
            if m.get("creator_id") and m["creator_id"] != author_id
        ]
        _ping_batch(community_id, topic_id, recipients, report)

        cursor = members[-1]["id"]
        report.last_cursor = cursor
        if len(members) < size:
            break

    logger.info(
        "[Ping] topic=%s community=%s batches=%s delivered=%s failed=%s",
        topic_id, community_id, report.batches, report.delivered, len(report.failed),
    )
    return report


# ------------------------------------------------------------
# Read side
# ------------------------------------------------------------
def mark_ping_read(user_id: str, community_id: str, topic_id: str) -> OperationResult:
    """Acknowledge one unseen item. A count that reaches 0 deletes the record."""
    current = _find_ping(user_id, community_id, topic_id)
    if current is None:
        return OperationResult.fail(ErrorCode.NOT_FOUND, ping_count=0)

    count = int(current.get("ping_count") or 1) - 1
    if count <= 0:
        try:
            store.delete_document(ping_collection(), current["id"])
        except DocumentNotFound:
            pass
        return OperationResult.ok(ping_count=0, deleted=True)

    store.update_document(ping_collection(), current["id"], {"ping_count": count})
    return OperationResult.ok(ping_count=count, deleted=False)


def mark_all_pings_read(user_id: str, community_id: str, topic_id: Optional[str] = None) -> CascadeReport:
    """Bulk variant: deletes in one pass instead of looping decrements."""
    queries = [Query.equal("user_id", user_id), Query.equal("community_id", community_id)]
    if topic_id:
        queries.append(Query.equal("topic_id", topic_id))

    report = CascadeReport(root_id=topic_id or community_id)
    delete_many(ping_collection(), store.collect_ids(ping_collection(), queries), report)
    return report


def sum_pings(scope: PingScope, user_id: str, scope_id: Optional[str] = None) -> int:
    """Live aggregation over the member's ping records; there is no cached total."""
    scope = PingScope(scope)
    if not user_id:
        return 0

    queries = [Query.equal("user_id", user_id)]
    if scope.field:
        if not scope_id:
            return 0
        queries.append(Query.equal(scope.field, scope_id))

    return sum(int(doc.get("ping_count") or 0) for doc in store.iter_documents(ping_collection(), queries))


def get_topic_pings(user_id: str, topic_id: str) -> int:
    return sum_pings(PingScope.TOPIC, user_id, topic_id)


def get_community_pings(user_id: str, community_id: str) -> int:
    return sum_pings(PingScope.COMMUNITY, user_id, community_id)


def get_user_pings(user_id: str) -> int:
    return sum_pings(PingScope.USER, user_id)
