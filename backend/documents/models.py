import uuid

from django.db import models


class Document(models.Model):
    INDEX_STATUS_CHOICES = (
        ("none", "none"),
        ("queued", "queued"),
        ("parsing", "parsing"),
        ("chunking", "chunking"),
        ("embedding", "embedding"),
        ("uploading", "uploading"),
        ("complete", "complete"),
        ("error", "error"),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=255, db_index=True)
    folder = models.ForeignKey(
        "folders.Folder", null=True, blank=True, on_delete=models.SET_NULL, related_name="documents"
    )
    name = models.CharField(max_length=512)
    type = models.CharField(max_length=255, blank=True, default="")
    size = models.BigIntegerField(default=0)
    content = models.TextField(blank=True, default="")
    parsed_content = models.JSONField(null=True, blank=True)
    # relative to MEDIA_ROOT
    file_path = models.CharField(max_length=1024, blank=True, default="")
    category = models.CharField(max_length=255, blank=True, default="")
    index_status = models.CharField(max_length=32, choices=INDEX_STATUS_CHOICES, default="none")
    index_progress = models.IntegerField(default=0)
    index_message = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"{self.name} ({self.id})"
