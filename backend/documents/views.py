import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from chatbrain.utils import MISSING_ID_VALUES, is_missing_id, parse_uuid
from folders.models import resolve_folder
from .models import Document
from .parsers import parse_file
from .search import KnowledgeSearch
from .serializers import (
    DocumentSerializer,
    IndexRequestSerializer,
    IndexStatusSerializer,
    KnowledgeSearchSerializer,
    UploadSerializer,
)
from .tasks import index_document_task

logger = logging.getLogger(__name__)


def get_knowledge_search():
    return KnowledgeSearch()


def _too_large():
    return Response(
        {"error": f"File too large, limit is {settings.UPLOAD_MAX_BYTES // (1024 * 1024)}MB"},
        status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    )


def _store_upload(uploaded_file) -> str:
    """Save an uploaded file under MEDIA_ROOT/uploads; returns the storage path."""
    storage_path = f"uploads/{uuid.uuid4()}-{os.path.basename(uploaded_file.name)}"
    return default_storage.save(storage_path, uploaded_file)


class HealthView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({"status": "OK", "timestamp": timezone.now().isoformat()})


class UploadView(APIView):
    """
    POST /api/upload   multipart `file`
    Stores the file and returns its metadata together with the parsed text.
    """
    permission_classes = [permissions.AllowAny]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = UploadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "No file uploaded"}, status=status.HTTP_400_BAD_REQUEST)

        uploaded_file = serializer.validated_data["file"]
        if uploaded_file.size > settings.UPLOAD_MAX_BYTES:
            return _too_large()

        data = uploaded_file.read()
        uploaded_file.seek(0)
        saved_path = _store_upload(uploaded_file)
        parsed = parse_file(uploaded_file.name, data, uploaded_file.content_type)

        return Response({
            "id": str(uuid.uuid4()),
            "name": uploaded_file.name,
            "type": uploaded_file.content_type or "application/octet-stream",
            "size": uploaded_file.size,
            "path": f"{settings.MEDIA_URL.rstrip('/')}/{saved_path.split('/', 1)[-1]}",
            "filename": os.path.basename(saved_path),
            "filePath": saved_path,
            "parsedContent": parsed.to_dict(),
        })


class DocumentCreateView(APIView):
    """POST /api/documents   {userId, folderId?, name, type, size, content, parsedContent, filePath}"""
    permission_classes = [permissions.AllowAny]

    @transaction.atomic
    def post(self, request):
        serializer = DocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        doc = serializer.save(folder=resolve_folder(request.data.get("folderId")))
        return Response(DocumentSerializer(doc).data, status=status.HTTP_201_CREATED)


class DocumentDetailView(APIView):
    """
    GET    /api/documents/<user_id>?folderId=   → documents of a user, newest first
    DELETE /api/documents/<document_id>         → removes the row and the stored file
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request, key):
        if is_missing_id(key):
            return Response([])
        qs = Document.objects.filter(user_id=key).order_by("-created_at")
        folder_id = request.query_params.get("folderId")
        if folder_id is not None and folder_id.strip().lower() in MISSING_ID_VALUES:
            qs = qs.filter(folder__isnull=True)
        elif folder_id:
            folder_uuid = parse_uuid(folder_id)
            if folder_uuid is None:
                return Response([])
            qs = qs.filter(folder_id=folder_uuid)
        return Response(DocumentSerializer(qs, many=True).data)

    def delete(self, request, key):
        doc = get_object_or_404(Document, id=parse_uuid(key))
        if doc.file_path and default_storage.exists(doc.file_path):
            default_storage.delete(doc.file_path)
        doc.delete()
        logger.info("Deleted document %s", key)
        return Response({"message": "Document deleted successfully"})


class KnowledgeSearchView(APIView):
    """POST /api/knowledge/search   {query, topK=10, category?}"""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = KnowledgeSearchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        query = (data.get("query") or "").strip()
        if not query:
            return Response({"error": "Query is required"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            results = get_knowledge_search().search(query, top_k=data["topK"], category=data.get("category") or None)
        except Exception:
            logger.exception("Error searching knowledge base")
            return Response({"error": "Failed to search knowledge base"},
                            status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response([r.to_dict() for r in results])


class KnowledgeIndexView(APIView):
    """
    POST /api/knowledge/index   multipart {file, category, userId?, folderId?}
    Stores the file as a Document and queues it for indexing.
    """
    permission_classes = [permissions.AllowAny]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request):
        serializer = IndexRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        uploaded_file = data["file"]
        if uploaded_file.size > settings.UPLOAD_MAX_BYTES:
            return _too_large()
        if data["category"] not in settings.KNOWLEDGE_CATEGORIES:
            return Response({"error": "Unknown category"}, status=status.HTTP_400_BAD_REQUEST)

        saved_path = _store_upload(uploaded_file)
        doc = Document.objects.create(
            user_id=data.get("userId") or "",
            folder=resolve_folder(data.get("folderId")),
            name=uploaded_file.name,
            type=uploaded_file.content_type or "",
            size=uploaded_file.size,
            file_path=saved_path,
            category=data["category"],
            index_status="queued",
            index_message="Queued for indexing",
        )
        # after commit so the worker can see the row
        transaction.on_commit(lambda: index_document_task.delay(str(doc.id)))
        logger.info("Queued %s for indexing as document %s", doc.name, doc.id)

        return Response(
            {"id": str(doc.id), "status": doc.index_status, "progress": doc.index_progress},
            status=status.HTTP_202_ACCEPTED,
        )


class IndexStatusView(APIView):
    """GET /api/knowledge/index/<document_id>"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, doc_id):
        doc = get_object_or_404(Document, id=parse_uuid(doc_id))
        return Response(IndexStatusSerializer(doc).data)


class CategoriesView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(list(settings.KNOWLEDGE_CATEGORIES))
