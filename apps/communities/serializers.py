# apps/communities/serializers.py
from rest_framework import serializers

from .constants import DISCUSSION_TYPE_CHOICES, GENERAL


class CommunityRefSerializer(serializers.Serializer):
    community_id = serializers.CharField(max_length=64)


class PingReadSerializer(serializers.Serializer):
    community_id = serializers.CharField(max_length=64)
    topic_id = serializers.CharField(max_length=64, required=False, allow_blank=True)


class DiscussionWriteSerializer(serializers.Serializer):
    community_id = serializers.CharField(max_length=64)
    topic_id = serializers.CharField(max_length=64)
    content = serializers.CharField(max_length=5000)
    tags = serializers.CharField(required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=[c[0] for c in DISCUSSION_TYPE_CHOICES], default=GENERAL)
