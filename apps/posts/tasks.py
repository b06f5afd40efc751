# apps/posts/tasks.py
import logging

from celery import shared_task

from apps.docstore.client import store
from apps.docstore.exceptions import TransportError
from apps.profiles.constants import creator_collection
from .services import recompute_user_counters

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def reconcile_user_counters(self):
    """
    Nightly read-repair of every creator's denormalized counters.
    Counters drift when the write they mirror succeeds but the increment does not.
    """
    try:
        user_ids = store.collect_ids(creator_collection())
    except TransportError as e:
        logger.warning("[Counters] could not list creators, retrying: %s", e)
        raise self.retry(exc=e, countdown=60)

    repaired = 0
    for user_id in user_ids:
        try:
            if recompute_user_counters(user_id) is not None:
                repaired += 1
        except TransportError:
            logger.exception("[Counters] repair failed for %s", user_id)

    logger.info("[Counters] reconciled %s/%s creators", repaired, len(user_ids))
    return repaired
