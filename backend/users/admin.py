# backend/users/admin.py
from django.contrib import admin
from .models import User

@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "clerk_user_id", "email", "first_name", "last_name", "updated_at")
    search_fields = ("clerk_user_id", "email")
