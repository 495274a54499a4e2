from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from documents.views import HealthView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health", HealthView.as_view(), name="health"),
    path("api/", include("users.urls")),
    path("api/", include("folders.urls")),
    path("api/", include("conversations.urls")),
    path("api/", include("documents.urls")),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
