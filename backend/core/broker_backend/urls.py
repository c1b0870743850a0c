from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path
from rest_framework.authtoken.views import obtain_auth_token

from accounts.views import AuthenticatedUserAPIView, SecurityContextAPIView


def healthcheck(_request):
    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", healthcheck, name="healthcheck"),
    path("api/auth/token/", obtain_auth_token, name="auth-token"),
    path("api/auth/me/", AuthenticatedUserAPIView.as_view(), name="auth-me"),
    path("api/auth/context/", SecurityContextAPIView.as_view(), name="auth-context"),
    path("api/commission/", include("commission.urls")),
    path("api/audit/", include("audit.urls")),
]
