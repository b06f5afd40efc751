# apps/delegation/tasks.py
import json
import logging

from celery import shared_task

from apps.docstore.client import store
from apps.docstore.exceptions import DocumentNotFound, TransportError
from .functions import resolve_function

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def execute_permission_function(self, function_id, body):
    """
    Grant read access on a freshly created record.
    Runs at-least-once: the grant is a set union, so repeats are harmless.
    """
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        logger.error("[Delegation] %s received a malformed payload: %r", function_id, body)
        return False

    fn = resolve_function(function_id)
    if fn is None:
        logger.error("[Delegation] Unknown permission function %s", function_id)
        return False

    document_id = payload.get("documentId")
    principals = [p for p in payload.get("principalIds", []) if p]
    if not document_id or not principals:
        logger.warning("[Delegation] %s skipped: nothing to grant (%s)", function_id, payload)
        return False

    try:
        store.grant_read(fn.collection, document_id, principals)
    except DocumentNotFound:
        # Record deleted before the grant landed; nothing left to protect
        logger.warning("[Delegation] %s target %s/%s is gone", function_id, fn.collection, document_id)
        return False
    except TransportError as e:
        logger.warning("[Delegation] %s retrying after store failure: %s", function_id, e)
        raise self.retry(exc=e, countdown=10)

    logger.debug("[Delegation] %s granted %s on %s/%s", function_id, principals, fn.collection, document_id)
    return True
