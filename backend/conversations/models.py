# backend/conversations/models.py
import uuid
from django.db import models
from django.utils import timezone

DEFAULT_TITLE = "New Chat"


class Conversation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=255, db_index=True)
    folder = models.ForeignKey(
        "folders.Folder", null=True, blank=True, on_delete=models.SET_NULL, related_name="conversations"
    )
    title = models.CharField(max_length=200, default=DEFAULT_TITLE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-updated_at",)

    def __str__(self):
        return self.title


class Message(models.Model):
    ROLE_CHOICES = (("user", "user"), ("assistant", "assistant"), ("system", "system"))
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    conversation = models.ForeignKey(Conversation, related_name="messages", on_delete=models.CASCADE)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES)
    content = models.TextField()
    model = models.CharField(max_length=200, blank=True, null=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    # declarative chart spec, see conversations.visualization
    artifact = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ("timestamp",)


class FileAttachment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    message = models.ForeignKey(Message, related_name="attachments", on_delete=models.CASCADE)
    name = models.CharField(max_length=512)
    type = models.CharField(max_length=255)
    size = models.BigIntegerField(default=0)
    content = models.TextField(blank=True, default="")
    parsed_content = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.id})"
