# backend/conversations/views.py
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from chatbrain.utils import MISSING_ID_VALUES, is_missing_id, parse_uuid
from documents.azure_client import configured_models
from folders.models import resolve_folder
from .domain import Attachment, ChatConversation, ChatMessage
from .models import DEFAULT_TITLE, Conversation, Message
from .orchestrator import build_orchestrator, cancel_send
from .serializers import (
    ChatRequestSerializer,
    ConversationCreateSerializer,
    ConversationSerializer,
    ConversationUpdateSerializer,
    MessageCreateSerializer,
    MessageSerializer,
)
from .store import DatabaseConversationStore, LocalConversationStore

logger = logging.getLogger(__name__)


def _error_response(exc, detail="internal error"):
    if settings.DEBUG:
        return Response({"detail": detail, "error": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({"detail": detail}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _attachments_from(data) -> list[Attachment]:
    attachments = []
    for a in data or []:
        att = Attachment(
            name=a["name"],
            type=a.get("type") or "application/octet-stream",
            size=a.get("size") or 0,
            content=a.get("content") or "",
            parsed_content=a.get("parsedContent"),
        )
        if a.get("id"):
            att.id = a["id"]
        attachments.append(att)
    return attachments


class ConversationCreateView(APIView):
    """
    POST /api/conversations   {userId, title?, folderId?, id?}
    A client-generated id is kept so locally created conversations keep
    their identity once stored.
    """
    permission_classes = [permissions.AllowAny]

    @transaction.atomic
    def post(self, request):
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        kwargs = {
            "user_id": data["userId"],
            "title": data.get("title") or DEFAULT_TITLE,
            "folder": resolve_folder(data.get("folderId")),
        }
        if data.get("id"):
            existing = Conversation.objects.filter(id=data["id"]).first()
            if existing is not None:
                return Response(ConversationSerializer(existing).data)
            kwargs["id"] = data["id"]

        conv = Conversation.objects.create(**kwargs)
        logger.info("Created conversation %s for user %s", conv.id, conv.user_id)
        return Response(ConversationSerializer(conv).data, status=status.HTTP_201_CREATED)


class ConversationDetailView(APIView):
    """
    GET    /api/conversations/<user_id>?folderId=   → conversations of a user, most recent first
           folderId=null|undefined selects conversations outside any folder
    PUT    /api/conversations/<conversation_id>     → {title?, folderId?}
    DELETE /api/conversations/<conversation_id>     → removes messages and attachments too
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request, key):
        if is_missing_id(key):
            logger.info("Invalid userId in conversation listing: %r", key)
            return Response([])

        qs = (
            Conversation.objects.filter(user_id=key)
            .select_related("folder")
            .annotate(message_count=Count("messages"))
            .order_by("-updated_at")
        )
        folder_id = request.query_params.get("folderId")
        if folder_id is not None and folder_id.strip().lower() in MISSING_ID_VALUES:
            qs = qs.filter(folder__isnull=True)
        elif folder_id:
            folder_uuid = parse_uuid(folder_id)
            if folder_uuid is None:
                return Response([])
            qs = qs.filter(folder_id=folder_uuid)

        return Response(ConversationSerializer(qs, many=True).data)

    @transaction.atomic
    def put(self, request, key):
        conv = get_object_or_404(Conversation, id=parse_uuid(key))
        serializer = ConversationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get("title") is not None:
            conv.title = data["title"]
        if "folderId" in data:
            conv.folder = resolve_folder(data["folderId"])
        conv.save()
        return Response({"message": "Conversation updated successfully",
                         "conversation": ConversationSerializer(conv).data})

    @transaction.atomic
    def delete(self, request, key):
        conv = get_object_or_404(Conversation, id=parse_uuid(key))
        # messages and their attachments go with it (on_delete=CASCADE)
        conv.delete()
        logger.info("Deleted conversation %s", key)
        return Response({"message": "Conversation deleted successfully"})


class ConversationMessagesView(APIView):
    """
    GET  /api/conversations/<conv_id>/messages   → messages oldest first, with attachments
    POST /api/conversations/<conv_id>/messages   → {role, content, model?, attachments?, artifact?}
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request, conv_id):
        conv_uuid = parse_uuid(conv_id)
        if conv_uuid is None:
            logger.info("Invalid conversationId in message listing: %r", conv_id)
            return Response([])
        try:
            qs = (
                Message.objects.filter(conversation_id=conv_uuid)
                .prefetch_related("attachments")
                .order_by("timestamp")
            )
            return Response(MessageSerializer(qs, many=True).data)
        except Exception as exc:
            logger.exception("Error in ConversationMessagesView")
            return _error_response(exc)

    def post(self, request, conv_id):
        conv = get_object_or_404(Conversation, id=parse_uuid(conv_id))
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        message = ChatMessage(
            role=data["role"],
            content=data["content"],
            model=data.get("model") or None,
            attachments=_attachments_from(data.get("attachments")),
            artifact=data.get("artifact"),
            timestamp=timezone.now(),
        )
        saved = DatabaseConversationStore().add_message(conv.id, message)
        row = Message.objects.prefetch_related("attachments").get(id=saved.id)
        return Response(MessageSerializer(row).data, status=status.HTTP_201_CREATED)


class ChatView(APIView):
    """
    POST   /api/conversations/<conv_id>/chat
        {content, model?, ragMode?, visualize?, attachments?, userId?, title?, folderId?}
    DELETE /api/conversations/<conv_id>/chat    → cancel the send in flight

    Runs one send: stores the user message, answers it (optionally with
    knowledge search) and stores the reply. A conversation that is not
    stored yet is created under conv_id, which then needs userId.
    """
    permission_classes = [permissions.AllowAny]

    def _load_conversation(self, conv_id, data) -> ChatConversation | None:
        try:
            conv = DatabaseConversationStore().get_conversation(conv_id)
        except Exception:
            logger.exception("Database unavailable loading conversation %s, trying local store", conv_id)
            conv = LocalConversationStore().get_conversation(conv_id)
        if conv is not None:
            return conv
        if not data.get("userId"):
            return None
        return ChatConversation(
            id=str(conv_id),
            user_id=data["userId"],
            title=data.get("title") or DEFAULT_TITLE,
            folder_id=data.get("folderId") or None,
        )

    def post(self, request, conv_id):
        conv_uuid = parse_uuid(conv_id)
        if conv_uuid is None:
            return Response({"detail": "invalid conversation id"}, status=status.HTTP_400_BAD_REQUEST)

        serializer = ChatRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            conversation = self._load_conversation(conv_uuid, data)
            if conversation is None:
                return Response({"detail": "conversation not found and no userId given"},
                                status=status.HTTP_404_NOT_FOUND)

            exchange = build_orchestrator().send_message(
                conversation,
                data["content"],
                attachments=_attachments_from(data.get("attachments")),
                model=data.get("model") or None,
                rag_mode=data.get("ragMode", False),
                visualize=data.get("visualize"),
            )
            if exchange is None:
                return Response({"cancelled": True}, status=status.HTTP_409_CONFLICT)

            return Response({
                "conversationId": exchange.conversation.id,
                "title": exchange.conversation.title,
                "userMessage": exchange.user_message.to_dict(),
                "assistantMessage": exchange.assistant_message.to_dict(),
                "usedKnowledgeBase": exchange.used_context,
                "persisted": exchange.persisted,
            })
        except Exception as exc:
            logger.exception("Error in ChatView")
            return _error_response(exc)

    def delete(self, request, conv_id):
        """Cancel the send in flight for this conversation, if any."""
        return Response({"cancelled": cancel_send(str(parse_uuid(conv_id) or conv_id))})


class ModelsView(APIView):
    """GET /api/models → chat models that can be picked per send."""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response([
            {
                "id": m.id,
                "name": m.name,
                "description": m.description,
                "maxTokens": m.max_tokens,
                "default": m.id == settings.DEFAULT_CHAT_MODEL,
            }
            for m in configured_models()
        ])
