# apps/notifications/views.py

import logging
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.permissions import principal_of
from apps.core.responses import result_response
from apps.core.results import ErrorCode, OperationResult
from .serializers import NotificationQuerySerializer, NotificationSerializer
from .services import (
    count_unread,
    delete_notification,
    get_notification,
    get_notifications,
    mark_all_read,
    mark_read,
)

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Notification ViewSet  (receiver-only list + read helpers)
# -------------------------------------------------------------------
class NotificationViewSet(viewsets.ViewSet):
    """
    Notifications of the requesting principal, in either scope.
    - GET    /api/notifications/?scope=user|community&cursor=..
    - PATCH  /api/notifications/<id>/mark_read/?scope=..
    - POST   /api/notifications/mark_all_read/?scope=..
    - GET    /api/notifications/unread_count/?scope=..
    - DELETE /api/notifications/<id>/?scope=..
    """
    permission_classes = [IsAuthenticated]

    def _query(self, request):
        ser = NotificationQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        return ser.validated_data

    def _own(self, request, pk, scope):
        """The notification, if it belongs to the requester. Others' look missing."""
        notification = get_notification(pk, scope)
        if notification is None or notification.get("receiver_id") != principal_of(request.user):
            return None
        return notification

    def list(self, request):
        query = self._query(request)
        page = get_notifications(
            principal_of(request.user),
            cursor=query.get("cursor") or None,
            scope=query["scope"],
            limit=query.get("limit"),
        )
        return Response({
            "results": NotificationSerializer(page["documents"], many=True).data,
            "next_cursor": page["next_cursor"],
        })

    # ---------------------- Actions ----------------------

    @action(detail=True, methods=["patch"])
    def mark_read(self, request, pk=None):
        scope = self._query(request)["scope"]
        if self._own(request, pk, scope) is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))

        result = mark_read(pk, scope)
        if result.success:
            return Response(NotificationSerializer(result.get("notification")).data)
        return result_response(result)

    @action(detail=False, methods=["post"])
    def mark_all_read(self, request):
        scope = self._query(request)["scope"]
        updated = mark_all_read(principal_of(request.user), scope)
        return Response({"updated": updated})

    @action(detail=False, methods=["get"])
    def unread_count(self, request):
        scope = self._query(request)["scope"]
        return Response({"unread": count_unread(principal_of(request.user), scope)})

    def destroy(self, request, pk=None):
        scope = self._query(request)["scope"]
        if self._own(request, pk, scope) is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))

        result = delete_notification(pk, scope)
        if result.success:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return result_response(result)
