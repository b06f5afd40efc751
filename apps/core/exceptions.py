# apps/core/exceptions.py
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status

from apps.docstore.exceptions import TransportError


class PermissionDelegationFailed(Exception):
    """
    The asynchronous read-grant could not be dispatched.
    Logged by the executor and never raised to callers: the only visible
    effect is a receiver who cannot read their record yet.
    """

    def __init__(self, function_id: str, payload: dict, cause: Exception = None):
        self.function_id = function_id
        self.payload = payload
        self.cause = cause
        super().__init__(f"Permission function {function_id} failed: {cause}")


class PartialCascadeFailure(Exception):
    """
    Some dependents of a cascading delete could not be removed.
    The root record is kept so the whole cascade can be re-run.
    """

    def __init__(self, root_id: str, failed_ids, deleted: int = 0):
        self.root_id = root_id
        self.failed_ids = list(failed_ids)
        self.deleted = deleted
        super().__init__(
            f"Cascade for {root_id} incomplete: {len(self.failed_ids)} dependents failed, {deleted} removed"
        )


def custom_exception_handler(exc, context):
    """
    Thin wrapper around DRF's default handler:
    - Uses default mapping
    - Maps store outages to 503 and partial cascades to 500
    - Normalizes payload to {"message": "...", "error": ...}
    """
    if isinstance(exc, TransportError):
        return Response(
            {"message": "The data store is temporarily unreachable.", "error": str(exc)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if isinstance(exc, PartialCascadeFailure):
        return Response(
            {
                "message": "Delete did not complete. Retry the request.",
                "error": {"root_id": exc.root_id, "failed_ids": exc.failed_ids},
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    resp = drf_exception_handler(exc, context)
    if resp is None:
        # Not handled by DRF default (e.g., plain Exception)
        return Response(
            {"message": "An unexpected error occurred.", "error": str(exc)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    data = resp.data
    # Normalize common shapes
    message = None
    if isinstance(data, dict):
        message = data.get("detail") or data.get("message")
    elif isinstance(data, list) and data:
        message = data[0]

    normalized = {
        "message": message or "Request failed.",
        "error": data,
    }
    return Response(normalized, status=resp.status_code)
