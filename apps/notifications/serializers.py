# apps/notifications/serializers.py
from rest_framework import serializers

from .constants import NotificationScope, NotificationType


# -------------------------------------------------------------------
# Notification (read shape of a stored notification document)
# -------------------------------------------------------------------
class NotificationSerializer(serializers.Serializer):
    id = serializers.CharField()
    receiver_id = serializers.CharField()
    sender_id = serializers.CharField()
    type = serializers.ChoiceField(choices=[t.value for t in NotificationType])
    resource_id = serializers.CharField()
    message = serializers.CharField()
    is_read = serializers.BooleanField()
    read_at = serializers.CharField(required=False, allow_null=True)
    created_at = serializers.CharField()


class NotificationQuerySerializer(serializers.Serializer):
    scope = serializers.ChoiceField(choices=[s.value for s in NotificationScope], default=NotificationScope.USER.value)
    cursor = serializers.CharField(required=False, allow_blank=True)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=50)

    def validate_scope(self, value):
        return NotificationScope(value)
