from django.urls import path
from .views import UserUpsertView

urlpatterns = [
    path("users", UserUpsertView.as_view(), name="users-upsert"),
]
