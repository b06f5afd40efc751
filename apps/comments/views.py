# apps/comments/views.py
import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.api_exceptions import DeleteNotAllowed
from apps.core.permissions import HasCreatorProfile
from apps.core.responses import result_response
from apps.core.results import ErrorCode, OperationResult
from apps.interactions.constants import SubjectType
from apps.interactions.services import count_item_likes, get_subject, get_subject_author_principal
from .constants import comment_collection, comment_reply_collection, feedback_collection, feedback_reply_collection
from .serializers import (
    COMMENT,
    FEEDBACK,
    CommentDeleteSerializer,
    CommentReadSerializer,
    CommentWriteSerializer,
    ReplyWriteSerializer,
)
from . import services

logger = logging.getLogger(__name__)

COLLECTIONS = {
    (COMMENT, False): comment_collection,
    (FEEDBACK, False): feedback_collection,
    (COMMENT, True): comment_reply_collection,
    (FEEDBACK, True): feedback_reply_collection,
}


def _with_likes(documents):
    return [{**doc, "likes_count": count_item_likes(doc["id"])} for doc in documents]


class CommentViewSet(viewsets.ViewSet):
    """
    Comments, feedback and their replies.
    - GET    /api/comments/?subject_id=..&kind=comment|feedback
    - POST   /api/comments/                {kind, subject_id, subject_type, content}
    - GET    /api/comments/replies/?parent_id=..&kind=..
    - POST   /api/comments/reply/          {kind, parent_id, subject_id, subject_type, content}
    - GET    /api/comments/summary/?subject_id=..
    - DELETE /api/comments/<id>/?kind=..&subject_type=..&reply=true|false
    """
    permission_classes = [IsAuthenticated, HasCreatorProfile]

    def _load_subject(self, subject_id, subject_type):
        subject = get_subject(subject_id, subject_type)
        if subject is None:
            return None, None
        return subject, get_subject_author_principal(subject)

    # -----------------------------------------------------------------
    # LIST
    def list(self, request):
        subject_id = request.query_params.get("subject_id")
        kind = request.query_params.get("kind", COMMENT)
        if not subject_id:
            return Response({"detail": "subject_id required"}, status=status.HTTP_400_BAD_REQUEST)

        if kind == FEEDBACK:
            documents = services.get_feedbacks(
                subject_id, viewer_id=request.creator["id"], viewer_principal=request.principal
            )
        else:
            documents = services.get_comments(subject_id)
        return Response(CommentReadSerializer(_with_likes(documents), many=True).data)

    # -----------------------------------------------------------------
    # CREATE
    def create(self, request):
        ser = CommentWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        subject, author_principal = self._load_subject(data["subject_id"], data["subject_type"])
        if subject is None or author_principal is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))

        actor_id = request.creator["id"]
        if data["subject_type"] is SubjectType.DISCUSSION:
            result = services.add_discussion_comment(
                subject["id"], actor_id, author_principal, data["content"], subject.get("community_id")
            )
        elif data["kind"] == FEEDBACK:
            result = services.add_feedback(subject["id"], actor_id, author_principal, data["content"])
        else:
            result = services.add_comment(subject["id"], actor_id, author_principal, data["content"], data["subject_type"])
        return result_response(result, success_status=status.HTTP_201_CREATED)

    # -----------------------------------------------------------------
    # REPLIES
    @action(detail=False, methods=["get"])
    def replies(self, request):
        parent_id = request.query_params.get("parent_id")
        if not parent_id:
            return Response({"detail": "parent_id required"}, status=status.HTTP_400_BAD_REQUEST)

        if request.query_params.get("kind") == FEEDBACK:
            documents = services.get_feedback_replies(parent_id)
        else:
            documents = services.get_comment_replies(parent_id)
        return Response(CommentReadSerializer(_with_likes(documents), many=True).data)

    @action(detail=False, methods=["post"])
    def reply(self, request):
        ser = ReplyWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        subject, author_principal = self._load_subject(data["subject_id"], data["subject_type"])
        if subject is None or author_principal is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))

        actor_id = request.creator["id"]
        if data["subject_type"] is SubjectType.DISCUSSION:
            result = services.add_discussion_comment_reply(
                data["parent_id"], actor_id, author_principal, data["content"], subject["id"], subject.get("community_id")
            )
        elif data["kind"] == FEEDBACK:
            result = services.add_feedback_reply(
                data["parent_id"], subject.get("author_id"), author_principal, actor_id, data["content"], subject["id"]
            )
        else:
            result = services.add_comment_reply(data["parent_id"], actor_id, author_principal, data["content"], subject["id"])
        return result_response(result, success_status=status.HTTP_201_CREATED)

    # -----------------------------------------------------------------
    # SUMMARY: live counts
    @action(detail=False, methods=["get"])
    def summary(self, request):
        subject_id = request.query_params.get("subject_id")
        if not subject_id:
            return Response({"detail": "subject_id required"}, status=status.HTTP_400_BAD_REQUEST)
        return Response({
            "subject_id": subject_id,
            "comments": services.get_subject_comments_count(subject_id),
            "replies": services.get_subject_replies_count(subject_id),
            "feedbacks": services.get_subject_feedbacks_count(subject_id),
        })

    # -----------------------------------------------------------------
    # DELETE: author of the record or author of the subject
    def destroy(self, request, pk=None):
        ser = CommentDeleteSerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        kind, is_reply = ser.validated_data["kind"], ser.validated_data["reply"]

        record = services.get_record(COLLECTIONS[(kind, is_reply)](), pk)
        if record is None:
            return result_response(OperationResult.fail(ErrorCode.NOT_FOUND))

        subject = get_subject(record.get("subject_id"), ser.validated_data["subject_type"])
        subject_author_id = subject.get("author_id") if subject else None
        if not services.can_delete(record, request.creator["id"], subject_author_id):
            raise DeleteNotAllowed()

        if is_reply:
            delete = services.delete_feedback_reply if kind == FEEDBACK else services.delete_comment_reply
            report = delete(pk, record.get("parent_id"))
        else:
            delete = services.delete_feedback if kind == FEEDBACK else services.delete_comment
            report = delete(pk, record.get("subject_id"))

        logger.info("[Cascade] %s %s deleted by %s", kind, pk, request.creator["id"])
        return Response(report.as_dict(), status=status.HTTP_200_OK)
