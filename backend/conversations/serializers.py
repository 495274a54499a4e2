# backend/conversations/serializers.py
from rest_framework import serializers

from .models import DEFAULT_TITLE, Conversation, FileAttachment, Message


class ConversationSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source="user_id", read_only=True)
    folderId = serializers.UUIDField(source="folder_id", read_only=True, allow_null=True)
    folderName = serializers.SerializerMethodField()
    folderColor = serializers.SerializerMethodField()
    messageCount = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Conversation
        fields = (
            "id", "userId", "folderId", "title", "folderName", "folderColor",
            "messageCount", "createdAt", "updatedAt",
        )

    def get_folderName(self, obj):
        return obj.folder.name if obj.folder_id else None

    def get_folderColor(self, obj):
        return obj.folder.color if obj.folder_id else None

    def get_messageCount(self, obj):
        # annotated by the list view, counted otherwise
        count = getattr(obj, "message_count", None)
        return count if count is not None else obj.messages.count()


class ConversationCreateSerializer(serializers.Serializer):
    id = serializers.UUIDField(required=False, allow_null=True)
    userId = serializers.CharField(max_length=255)
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    folderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ConversationUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False, allow_null=True)
    folderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AttachmentSerializer(serializers.ModelSerializer):
    parsedContent = serializers.JSONField(source="parsed_content", required=False, allow_null=True)

    class Meta:
        model = FileAttachment
        fields = ("id", "name", "type", "size", "content", "parsedContent")


class MessageSerializer(serializers.ModelSerializer):
    conversationId = serializers.UUIDField(source="conversation_id", read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = Message
        fields = ("id", "conversationId", "role", "content", "model", "timestamp", "attachments", "artifact")


class AttachmentInputSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    name = serializers.CharField(max_length=512)
    type = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    size = serializers.IntegerField(required=False, default=0)
    content = serializers.CharField(required=False, allow_blank=True, default="")
    parsedContent = serializers.JSONField(required=False, allow_null=True)


class MessageCreateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=[c[0] for c in Message.ROLE_CHOICES])
    content = serializers.CharField(allow_blank=True)
    model = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    attachments = AttachmentInputSerializer(many=True, required=False)
    artifact = serializers.JSONField(required=False, allow_null=True)


class ChatRequestSerializer(serializers.Serializer):
    content = serializers.CharField()
    model = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    ragMode = serializers.BooleanField(required=False, default=False)
    visualize = serializers.BooleanField(required=False, allow_null=True, default=None)
    attachments = AttachmentInputSerializer(many=True, required=False)
    # used when the conversation is not stored yet
    userId = serializers.CharField(required=False, allow_blank=True)
    title = serializers.CharField(required=False, allow_blank=True, default=DEFAULT_TITLE)
    folderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
