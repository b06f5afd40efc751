# apps/interactions/serializers.py
from rest_framework import serializers

from .constants import ItemType, SubjectType


# SUBJECT ACTIONS (like / save) ----------------------------------------------------------------
class SubjectActionSerializer(serializers.Serializer):
    subject_id = serializers.CharField(max_length=64)
    subject_type = serializers.ChoiceField(
        choices=[t.value for t in SubjectType],
        default=SubjectType.CREATION.value,
    )

    def validate_subject_type(self, value):
        return SubjectType(value)


# ITEM ACTIONS (like a comment / feedback / reply) ---------------------------------------------
class ItemActionSerializer(serializers.Serializer):
    item_id = serializers.CharField(max_length=64)
    # Older clients omit the type; the view falls back to probing for those
    item_type = serializers.ChoiceField(choices=[t.value for t in ItemType], required=False, allow_null=True)
    resource_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    community = serializers.BooleanField(default=False)

    def validate_item_type(self, value):
        return ItemType(value) if value else None


# SUPPORT ---------------------------------------------------------------------------------------
class SupportSerializer(serializers.Serializer):
    creator_id = serializers.CharField(max_length=64)
