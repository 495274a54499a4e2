# backend/folders/serializers.py
from rest_framework import serializers
from .models import Folder, DEFAULT_FOLDER_COLOR


class FolderSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source="user_id", max_length=255)
    systemPrompt = serializers.CharField(source="system_prompt", required=False, allow_blank=True, allow_null=True)
    color = serializers.CharField(max_length=32, required=False, allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Folder
        fields = ("id", "userId", "name", "systemPrompt", "color", "createdAt", "updatedAt")
        read_only_fields = ("id", "createdAt", "updatedAt")

    def validate_color(self, value):
        return value or DEFAULT_FOLDER_COLOR


class FolderUpdateSerializer(serializers.Serializer):
    # omitted or null fields keep their current value
    name = serializers.CharField(max_length=200, required=False, allow_null=True)
    systemPrompt = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    color = serializers.CharField(max_length=32, required=False, allow_null=True)
