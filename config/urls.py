from django.contrib import admin
from django.urls import path, include
from django.views import defaults as default_views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("api.urls")),
]

# Custom error handlers
handler403 = default_views.permission_denied
