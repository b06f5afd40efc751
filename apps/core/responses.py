# apps/core/responses.py
from rest_framework import status
from rest_framework.response import Response

from .results import ErrorCode, OperationResult

ERROR_STATUS = {
    ErrorCode.DUPLICATE_INTERACTION: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
}


def result_response(result: OperationResult, success_status=status.HTTP_200_OK) -> Response:
    """Map an OperationResult onto an HTTP response; expected failures keep their data."""
    if result.success:
        return Response(result.as_dict(), status=success_status)
    return Response(result.as_dict(), status=ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST))
