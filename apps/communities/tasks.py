# apps/communities/tasks.py
import logging

from celery import shared_task

from .pings import FanOutInterrupted, fan_out_ping

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=5)
def fan_out_ping_task(self, community_id, topic_id, author_id, start_after=None):
    """Ping every community member except the author, resuming from `start_after` on retries."""
    try:
        report = fan_out_ping(community_id, topic_id, author_id, start_after=start_after)
    except FanOutInterrupted as e:
        logger.warning(
            "[Ping] fan-out for topic %s interrupted, resuming after %s: %s",
            topic_id, e.resume_cursor, e.cause,
        )
        raise self.retry(
            exc=e,
            countdown=30,
            args=(community_id, topic_id, author_id),
            kwargs={"start_after": e.resume_cursor},
        )
    return report.as_dict()


def schedule_ping_fan_out(community_id: str, topic_id: str, author_id: str) -> bool:
    """
    Fire-and-continue: the triggering request never waits for the fan-out.
    A dispatch failure is logged; the authoritative write already happened.
    """
    if not community_id or not topic_id:
        logger.debug("[Ping] skipped: community=%s topic=%s", community_id, topic_id)
        return False
    try:
        fan_out_ping_task.delay(community_id, topic_id, author_id)
        return True
    except Exception:
        logger.exception("[Ping] could not schedule fan-out for topic %s", topic_id)
        return False
