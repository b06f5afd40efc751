# apps/comments/serializers.py
from rest_framework import serializers

from apps.interactions.constants import SubjectType
from .constants import CONTENT_MAX_LENGTH

COMMENT = "comment"
FEEDBACK = "feedback"
KIND_CHOICES = [COMMENT, FEEDBACK]


class CommentWriteSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=KIND_CHOICES, default=COMMENT)
    subject_id = serializers.CharField(max_length=64)
    subject_type = serializers.ChoiceField(choices=[t.value for t in SubjectType], default=SubjectType.CREATION.value)
    content = serializers.CharField(max_length=CONTENT_MAX_LENGTH, trim_whitespace=True)

    def validate_subject_type(self, value):
        return SubjectType(value)

    def validate(self, attrs):
        if attrs["kind"] == FEEDBACK and attrs["subject_type"] is not SubjectType.CREATION:
            raise serializers.ValidationError({"kind": "Feedback can only be given on creations."})
        return attrs


class ReplyWriteSerializer(CommentWriteSerializer):
    parent_id = serializers.CharField(max_length=64)


class CommentDeleteSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=KIND_CHOICES, default=COMMENT)
    subject_type = serializers.ChoiceField(choices=[t.value for t in SubjectType], default=SubjectType.CREATION.value)
    reply = serializers.BooleanField(default=False)

    def validate_subject_type(self, value):
        return SubjectType(value)


class CommentReadSerializer(serializers.Serializer):
    id = serializers.CharField()
    subject_id = serializers.CharField(required=False, allow_null=True)
    parent_id = serializers.CharField(required=False, allow_null=True)
    actor_id = serializers.CharField()
    content = serializers.CharField()
    created_at = serializers.CharField()
    likes_count = serializers.IntegerField(required=False)
