# backend/folders/admin.py
from django.contrib import admin
from .models import Folder

@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "user_id", "color", "created_at")
    search_fields = ("name", "user_id")
