# backend/folders/models.py
import uuid
from django.db import models

from chatbrain.utils import parse_uuid

DEFAULT_FOLDER_COLOR = "#6b7280"


class Folder(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=255, db_index=True)
    name = models.CharField(max_length=200)
    # replaces the default assistant prompt for conversations in this folder
    system_prompt = models.TextField(blank=True, null=True)
    color = models.CharField(max_length=32, default=DEFAULT_FOLDER_COLOR)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return self.name


def resolve_folder(folder_id):
    """Folder for an id sent by a client, or None when absent, unknown or malformed."""
    folder_uuid = parse_uuid(folder_id)
    if folder_uuid is None:
        return None
    return Folder.objects.filter(id=folder_uuid).first()
