# backend/conversations/urls.py
from django.urls import path
from .views import ChatView, ConversationCreateView, ConversationDetailView, ConversationMessagesView, ModelsView

urlpatterns = [
    path("models", ModelsView.as_view(), name="chat-models"),
    path("conversations", ConversationCreateView.as_view(), name="conversations-create"),  # POST
    path("conversations/<str:conv_id>/messages", ConversationMessagesView.as_view(), name="conversation-messages"),
    path("conversations/<str:conv_id>/chat", ChatView.as_view(), name="conversation-chat"),
    # GET by user id, PUT/DELETE by conversation id
    path("conversations/<str:key>", ConversationDetailView.as_view(), name="conversation-detail"),
]
