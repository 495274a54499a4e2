from rest_framework import serializers
from .models import Document


class UploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class IndexRequestSerializer(serializers.Serializer):
    file = serializers.FileField()
    category = serializers.CharField(max_length=255)
    userId = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    folderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class KnowledgeSearchSerializer(serializers.Serializer):
    query = serializers.CharField(allow_blank=True)
    topK = serializers.IntegerField(required=False, default=10, min_value=1, max_value=100)
    category = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class DocumentSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source="user_id", max_length=255)
    folderId = serializers.UUIDField(source="folder_id", read_only=True, allow_null=True)
    parsedContent = serializers.JSONField(source="parsed_content", required=False, allow_null=True)
    filePath = serializers.CharField(source="file_path", required=False, allow_blank=True, default="")
    indexStatus = serializers.CharField(source="index_status", read_only=True)
    indexProgress = serializers.IntegerField(source="index_progress", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Document
        fields = (
            "id", "userId", "folderId", "name", "type", "size", "content", "parsedContent",
            "filePath", "category", "indexStatus", "indexProgress", "createdAt", "updatedAt",
        )
        read_only_fields = ("id",)
        extra_kwargs = {
            "type": {"required": False},
            "size": {"required": False},
            "content": {"required": False},
            "category": {"required": False},
        }


class IndexStatusSerializer(serializers.ModelSerializer):
    status = serializers.CharField(source="index_status")
    progress = serializers.IntegerField(source="index_progress")
    message = serializers.CharField(source="index_message")

    class Meta:
        model = Document
        fields = ("id", "name", "category", "status", "progress", "message")
