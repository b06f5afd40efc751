# apps/delegation/executor.py
import json
import logging
from typing import Iterable, List, Optional

from apps.core.exceptions import PermissionDelegationFailed
from .functions import function_id
from .tasks import execute_permission_function

logger = logging.getLogger(__name__)


def grant_payload(document_id: str, principal_ids: Iterable[Optional[str]]) -> dict:
    """Build {documentId, principalIds} keeping first-seen order, dropping blanks."""
    seen: List[str] = []
    for principal in principal_ids:
        if principal and principal not in seen:
            seen.append(principal)
    return {"documentId": document_id, "principalIds": seen}


def create_execution(key: str, payload: dict, is_async: bool = True) -> bool:
    """
    Dispatch a permission function. Fire-and-forget:
    a failure is logged as PermissionDelegationFailed and never raised.
    """
    fn_id = function_id(key)

    if not payload.get("principalIds"):
        logger.debug("[Delegation] %s skipped: no principals for %s", fn_id, payload.get("documentId"))
        return False

    body = json.dumps(payload)
    try:
        if is_async:
            execute_permission_function.delay(fn_id, body)
        else:
            execute_permission_function(fn_id, body)
        return True
    except Exception as e:
        failure = PermissionDelegationFailed(fn_id, payload, e)
        logger.warning("[Delegation] %s", failure, exc_info=True)
        return False


def delegate_read(key: str, document_id: str, *principal_ids: Optional[str]) -> bool:
    return create_execution(key, grant_payload(document_id, principal_ids))
