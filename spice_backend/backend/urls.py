# backend/urls.py
"""
PROJECT URLS

All API routes live under /api/

- /api/inventory/...  FEFO batch planning
- /api/billing/...    caterer bills (quote, mix, submit, lookups)

No admin site and no auth routes: the desk sits behind the back office's
own authentication, and persistence lives there too.

Operational maturity:
- /api/health/ (AllowAny) checks DB connectivity and reports whether the
  back-office base URL is configured.
"""

from __future__ import annotations

from django.conf import settings
from django.db import connections
from django.db.utils import OperationalError
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response


# ------------------ API ROOT (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "message": {"type": "string"},
                "docs": {"type": "object"},
                "modules": {"type": "object"},
            },
        }
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "message": "Spice Billing Desk API is running",
            "docs": {
                "swagger": "/api/docs/",
                "schema": "/api/schema/",
            },
            "modules": {
                "inventory": "/api/inventory/",
                "billing": "/api/billing/",
            },
        }
    )


# ------------------ HEALTH CHECK (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "status": {"type": "string"},
                "db": {"type": "string"},
                "backoffice": {"type": "string"},
            },
        },
        503: {
            "type": "object",
            "properties": {
                "status": {"type": "string"},
                "db": {"type": "string"},
                "backoffice": {"type": "string"},
                "error": {"type": "string"},
            },
        },
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Minimal operational endpoint:
    - Confirms app is responding
    - Confirms DB connection + simple query works
    - Reports whether the back-office API is configured (not reachability)
    """
    base_url = (getattr(settings, "BACKOFFICE_API", {}) or {}).get("BASE_URL") or ""
    backoffice = "configured" if base_url.strip() else "missing"

    try:
        conn = connections["default"]
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except OperationalError as e:
        return Response(
            {"status": "degraded", "db": "down", "backoffice": backoffice, "error": str(e)},
            status=503,
        )

    if backoffice != "configured":
        return Response({"status": "degraded", "db": "ok", "backoffice": backoffice}, status=503)
    return Response({"status": "ok", "db": "ok", "backoffice": backoffice})


# ------------------ API ROUTES (ALL UNDER /api/) ------------------
api_urlpatterns = [
    # Health check / root
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    # OpenAPI / Swagger
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    # App modules
    path("inventory/", include("inventory.urls")),
    path("billing/", include("billing.urls")),
]

urlpatterns = [
    # Root convenience: visiting / takes you to Swagger docs
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
