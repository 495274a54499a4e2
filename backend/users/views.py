# backend/users/views.py
import logging
from django.db import transaction
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import User
from .serializers import UserSerializer, UserUpsertSerializer

logger = logging.getLogger(__name__)


class UserUpsertView(APIView):
    """
    POST /api/users
    Create the user on first sign-in, refresh the profile fields afterwards.
    """
    permission_classes = [permissions.AllowAny]

    @transaction.atomic
    def post(self, request):
        serializer = UserUpsertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user, created = User.objects.update_or_create(
            clerk_user_id=data["clerkUserId"],
            defaults={
                "email": data.get("email") or "",
                "first_name": data.get("firstName") or "",
                "last_name": data.get("lastName") or "",
            },
        )
        if created:
            logger.info("Registered user %s", user.clerk_user_id)

        return Response(
            UserSerializer(user).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
