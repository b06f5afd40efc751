# apps/communities/views.py
import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.api_exceptions import DeleteNotAllowed
from apps.core.permissions import HasCreatorProfile
from apps.core.responses import result_response
from apps.core.results import ErrorCode, OperationResult
from .discussions import create_discussion, delete_discussion, get_discussion, get_discussions
from .membership import check_membership_status, get_admin_account_ids, join_community, leave_community
from .pings import get_community_pings, get_topic_pings, get_user_pings, mark_all_pings_read, mark_ping_read
from .serializers import CommunityRefSerializer, DiscussionWriteSerializer, PingReadSerializer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------
class MembershipViewSet(viewsets.ViewSet):
    """
    - POST /api/communities/membership/join/     {community_id}
    - POST /api/communities/membership/leave/    {community_id}
    - GET  /api/communities/membership/status/?community_id=..
    """
    permission_classes = [IsAuthenticated, HasCreatorProfile]

    def _community_id(self, data):
        ser = CommunityRefSerializer(data=data)
        ser.is_valid(raise_exception=True)
        return ser.validated_data["community_id"]

    @action(detail=False, methods=["post"])
    def join(self, request):
        result = join_community(request.creator["id"], self._community_id(request.data))
        return result_response(result, success_status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def leave(self, request):
        return result_response(leave_community(request.creator["id"], self._community_id(request.data)))

    @action(detail=False, methods=["get"], url_path="status")
    def membership_status(self, request):
        community_id = self._community_id(request.query_params)
        return Response({
            "community_id": community_id,
            "member": check_membership_status(request.creator["id"], community_id),
        })


# ---------------------------------------------------------------------
# Pings
# ---------------------------------------------------------------------
class PingViewSet(viewsets.ViewSet):
    """
    - GET  /api/communities/pings/summary/?community_id=..&topic_id=..
    - POST /api/communities/pings/mark_read/       {community_id, topic_id}
    - POST /api/communities/pings/mark_all_read/   {community_id, topic_id?}
    """
    permission_classes = [IsAuthenticated, HasCreatorProfile]

    def _refs(self, data):
        ser = PingReadSerializer(data=data)
        ser.is_valid(raise_exception=True)
        return ser.validated_data["community_id"], ser.validated_data.get("topic_id") or None

    @action(detail=False, methods=["get"])
    def summary(self, request):
        community_id, topic_id = self._refs(request.query_params)
        user_id = request.creator["id"]
        return Response({
            "community_id": community_id,
            "topic_id": topic_id,
            "topic": get_topic_pings(user_id, topic_id) if topic_id else 0,
            "community": get_community_pings(user_id, community_id),
            "total": get_user_pings(user_id),
        })

    @action(detail=False, methods=["post"])
    def mark_read(self, request):
        community_id, topic_id = self._refs(request.data)
        if not topic_id:
            return result_response(OperationResult.fail(ErrorCode.INVALID_REQUEST))
        return result_response(mark_ping_read(request.creator["id"], community_id, topic_id))

    @action(detail=False, methods=["post"])
    def mark_all_read(self, request):
        community_id, topic_id = self._refs(request.data)
        report = mark_all_pings_read(request.creator["id"], community_id, topic_id)
        return Response({"cleared": report.deleted + report.already_gone})


# ---------------------------------------------------------------------
# Discussions
# ---------------------------------------------------------------------
class DiscussionViewSet(viewsets.ViewSet):
    """
    - GET    /api/communities/discussions/?topic_id=..&cursor=..
    - POST   /api/communities/discussions/        {community_id, topic_id, content, tags, type}
    - DELETE /api/communities/discussions/<id>/   author or community admin
    """
    permission_classes = [IsAuthenticated, HasCreatorProfile]

    def list(self, request):
        topic_id = request.query_params.get("topic_id")
        if not topic_id:
            return Response({"detail": "topic_id required"}, status=status.HTTP_400_BAD_REQUEST)
        page = get_discussions(topic_id, cursor=request.query_params.get("cursor") or None)
        return Response({"results": page["documents"], "next_cursor": page["next_cursor"]})

    def create(self, request):
        ser = DiscussionWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        if not check_membership_status(request.creator["id"], data["community_id"]):
            return Response({"detail": "Join the community to start a discussion."}, status=status.HTTP_403_FORBIDDEN)

        result = create_discussion(
            data["community_id"],
            data["topic_id"],
            request.creator["id"],
            data["content"],
            tags=data.get("tags"),
            discussion_type=data["type"],
        )
        return result_response(result, success_status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        discussion = get_discussion(pk)
        if discussion is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))

        is_author = discussion.get("author_id") == request.creator["id"]
        is_admin = request.principal in get_admin_account_ids(discussion.get("community_id"))
        if not (is_author or is_admin):
            raise DeleteNotAllowed()

        report = delete_discussion(pk)
        logger.info("[Community] discussion %s deleted by %s", pk, request.creator["id"])
        return Response(report.as_dict())
