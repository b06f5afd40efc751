# apps/interactions/views.py
import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.permissions import HasCreatorProfile
from apps.core.responses import result_response
from apps.core.results import ErrorCode, OperationResult
from apps.profiles.services import check_supporting_user, support, unsupport
from .serializers import ItemActionSerializer, SubjectActionSerializer, SupportSerializer
from .services import (
    check_item_like,
    check_subject_like,
    check_subject_save,
    count_item_likes,
    count_subject_likes,
    count_subject_saves,
    get_subject,
    get_subject_author_principal,
    like_item,
    like_subject,
    resolve_item_type,
    save_subject,
    unlike_item,
    unlike_subject,
    unsave_subject,
)

logger = logging.getLogger(__name__)


class InteractionViewSet(viewsets.ViewSet):
    """
    Likes, saves and support for the acting creator.
    - POST /api/interactions/like/           {subject_id, subject_type}
    - POST /api/interactions/unlike/         {subject_id, subject_type}
    - POST /api/interactions/save/           {subject_id, subject_type}
    - POST /api/interactions/unsave/         {subject_id, subject_type}
    - GET  /api/interactions/summary/?subject_id=..&subject_type=..
    - POST /api/interactions/like_item/      {item_id, item_type?, resource_id?, community?}
    - POST /api/interactions/unlike_item/    {item_id}
    - GET  /api/interactions/item_summary/?item_id=..
    - POST /api/interactions/support/        {creator_id}
    - POST /api/interactions/unsupport/      {creator_id}
    """
    permission_classes = [IsAuthenticated, HasCreatorProfile]

    # -----------------------------------------------------------------
    def _subject_input(self, data):
        ser = SubjectActionSerializer(data=data)
        ser.is_valid(raise_exception=True)
        return ser.validated_data["subject_id"], ser.validated_data["subject_type"]

    def _subject_with_author(self, data):
        subject_id, subject_type = self._subject_input(data)
        subject = get_subject(subject_id, subject_type)
        if subject is None:
            return subject_id, subject_type, None
        return subject_id, subject_type, get_subject_author_principal(subject)

    # -----------------------------------------------------------------
    # SUBJECT LIKES / SAVES
    @action(detail=False, methods=["post"])
    def like(self, request):
        subject_id, subject_type, author_principal = self._subject_with_author(request.data)
        if author_principal is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))
        result = like_subject(subject_id, request.creator["id"], author_principal, subject_type)
        return result_response(result, success_status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def unlike(self, request):
        subject_id, _ = self._subject_input(request.data)
        return result_response(unlike_subject(subject_id, request.creator["id"]))

    @action(detail=False, methods=["post"])
    def save(self, request):
        subject_id, subject_type, author_principal = self._subject_with_author(request.data)
        if author_principal is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))
        result = save_subject(subject_id, request.creator["id"], author_principal, subject_type)
        return result_response(result, success_status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def unsave(self, request):
        subject_id, _ = self._subject_input(request.data)
        return result_response(unsave_subject(subject_id, request.creator["id"]))

    @action(detail=False, methods=["get"])
    def summary(self, request):
        subject_id, _ = self._subject_input(request.query_params)
        actor_id = request.creator["id"]
        return Response({
            "subject_id": subject_id,
            "likes_count": count_subject_likes(subject_id),
            "liked": check_subject_like(subject_id, actor_id),
            "saves_count": count_subject_saves(subject_id),
            "saved": check_subject_save(subject_id, actor_id),
        })

    # -----------------------------------------------------------------
    # ITEM LIKES
    @action(detail=False, methods=["post"])
    def like_item(self, request):
        ser = ItemActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        item_type = data.get("item_type")
        if item_type is None:
            item_type = resolve_item_type(data["item_id"])
            if item_type is None:
                return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))
            logger.info("[Ledger] item %s typed by probing as %s", data["item_id"], item_type.value)

        result = like_item(
            data["item_id"],
            item_type,
            request.creator["id"],
            resource_id=data.get("resource_id") or None,
            community=data["community"],
        )
        return result_response(result, success_status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def unlike_item(self, request):
        ser = ItemActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return result_response(unlike_item(ser.validated_data["item_id"], request.creator["id"]))

    @action(detail=False, methods=["get"])
    def item_summary(self, request):
        item_id = request.query_params.get("item_id")
        if not item_id:
            return Response({"detail": "item_id required"}, status=status.HTTP_400_BAD_REQUEST)
        return Response({
            "item_id": item_id,
            "likes_count": count_item_likes(item_id),
            "liked": check_item_like(item_id, request.creator["id"]),
        })

    # -----------------------------------------------------------------
    # SUPPORT
    @action(detail=False, methods=["post"])
    def support(self, request):
        ser = SupportSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return result_response(support(request.creator["id"], ser.validated_data["creator_id"]))

    @action(detail=False, methods=["post"])
    def unsupport(self, request):
        ser = SupportSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return result_response(unsupport(request.creator["id"], ser.validated_data["creator_id"]))

    @action(detail=False, methods=["get"])
    def supporting(self, request):
        creator_id = request.query_params.get("creator_id")
        if not creator_id:
            return Response({"detail": "creator_id required"}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"creator_id": creator_id, "supporting": check_supporting_user(request.creator["id"], creator_id)})
