from rest_framework import serializers
from .models import User


class UserUpsertSerializer(serializers.Serializer):
    clerkUserId = serializers.CharField(max_length=255)
    email = serializers.CharField(max_length=320, required=False, allow_blank=True, allow_null=True)
    firstName = serializers.CharField(max_length=150, required=False, allow_blank=True, allow_null=True)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True, allow_null=True)


class UserSerializer(serializers.ModelSerializer):
    clerkUserId = serializers.CharField(source="clerk_user_id")
    firstName = serializers.CharField(source="first_name")
    lastName = serializers.CharField(source="last_name")

    class Meta:
        model = User
        fields = ("id", "clerkUserId", "email", "firstName", "lastName")
