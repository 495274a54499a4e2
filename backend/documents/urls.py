from django.urls import path
from .views import (
    CategoriesView,
    DocumentCreateView,
    DocumentDetailView,
    IndexStatusView,
    KnowledgeIndexView,
    KnowledgeSearchView,
    UploadView,
)

urlpatterns = [
    path("upload", UploadView.as_view(), name="upload"),
    path("documents", DocumentCreateView.as_view(), name="documents-create"),
    # GET takes a user id, DELETE takes a document id
    path("documents/<str:key>", DocumentDetailView.as_view(), name="documents-detail"),
    path("knowledge/search", KnowledgeSearchView.as_view(), name="knowledge-search"),
    path("knowledge/index", KnowledgeIndexView.as_view(), name="knowledge-index"),
    path("knowledge/index/<str:doc_id>", IndexStatusView.as_view(), name="knowledge-index-status"),
    path("knowledge/categories", CategoriesView.as_view(), name="knowledge-categories"),
]
