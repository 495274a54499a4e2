# backend/users/models.py
import uuid
from django.db import models


class User(models.Model):
    """A chat user, keyed by the id the external auth provider (Clerk) issues."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clerk_user_id = models.CharField(max_length=255, unique=True)
    email = models.CharField(max_length=320, blank=True, default="")
    first_name = models.CharField(max_length=150, blank=True, default="")
    last_name = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.email or self.clerk_user_id
