# backend/documents/admin.py
from django.contrib import admin
from .models import Document


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "user_id", "category", "index_status", "index_progress", "created_at")
    list_filter = ("index_status", "category")
    search_fields = ("name", "user_id")
    readonly_fields = ("created_at", "updated_at")
