# backend/folders/views.py
import logging
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from chatbrain.utils import is_missing_id, parse_uuid
from .models import Folder
from .serializers import FolderSerializer, FolderUpdateSerializer

logger = logging.getLogger(__name__)


class FolderListCreateView(APIView):
    """
    POST /api/folders   → create folder {userId, name, systemPrompt?, color?}
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = FolderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        folder = serializer.save()
        return Response(FolderSerializer(folder).data, status=status.HTTP_201_CREATED)


class FolderDetailView(APIView):
    """
    GET    /api/folders/<user_id>    → folders of a user, newest first
    PUT    /api/folders/<folder_id>  → partial update
    DELETE /api/folders/<folder_id>  → delete; its conversations are kept, unfoldered
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request, key):
        if is_missing_id(key):
            logger.info("Invalid userId in folder listing: %r", key)
            return Response([])
        qs = Folder.objects.filter(user_id=key).order_by("-created_at")
        return Response(FolderSerializer(qs, many=True).data)

    @transaction.atomic
    def put(self, request, key):
        folder = get_object_or_404(Folder, id=parse_uuid(key))

        serializer = FolderUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get("name") is not None:
            folder.name = data["name"]
        if data.get("systemPrompt") is not None:
            folder.system_prompt = data["systemPrompt"]
        if data.get("color") is not None:
            folder.color = data["color"]
        folder.save()

        return Response(FolderSerializer(folder).data)

    @transaction.atomic
    def delete(self, request, key):
        folder = get_object_or_404(Folder, id=parse_uuid(key))
        # conversations and documents point here with on_delete=SET_NULL
        detached = folder.conversations.update(folder=None)
        folder.delete()
        logger.info("Deleted folder %s, detached %d conversations", key, detached)
        return Response({"message": "Folder deleted successfully"})
