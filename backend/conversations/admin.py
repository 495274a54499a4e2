# backend/conversations/admin.py
from django.contrib import admin
from .models import Conversation, FileAttachment, Message


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    readonly_fields = ("id", "role", "content", "timestamp", "model")
    can_delete = False
    show_change_link = True


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "user_id", "folder", "updated_at")
    list_filter = ("created_at",)
    search_fields = ("id", "title", "user_id")
    readonly_fields = ("created_at", "updated_at")
    inlines = [MessageInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "conversation", "role", "timestamp", "model")
    list_filter = ("role", "timestamp")
    search_fields = ("id", "content", "conversation__id")


@admin.register(FileAttachment)
class FileAttachmentAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "type", "size", "message")
    search_fields = ("name", "message__id")
