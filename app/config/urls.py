"""
Root URL configuration for the chat service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/chat/                  - Chat endpoints
        chats/                     - List my chats / create chat
        chats/{id}/                - Chat detail / update / delete
        chats/{id}/read/           - Mark chat as read
        chats/members/             - Attach / detach a member
        chats/pairs/{partner_id}/  - Delete the chat shared with a partner

WebSocket routes live in chat/routing.py and are mounted in config/asgi.py.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# All routes here are prefixed with /api/v1/
api_v1_patterns = [
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Chat Service Admin"
admin.site.site_title = "Chat Admin"
admin.site.index_title = "Chats and members"
