# backend/folders/urls.py
from django.urls import path
from .views import FolderListCreateView, FolderDetailView

urlpatterns = [
    path("folders", FolderListCreateView.as_view(), name="folders-create"),
    # GET takes a user id, PUT/DELETE take a folder id
    path("folders/<str:key>", FolderDetailView.as_view(), name="folders-detail"),
]
