"""
URL configuration for chat API.

URL Structure:
    Chats:
        /chats/                        GET, POST
        /chats/{id}/                   GET, PATCH, DELETE
        /chats/{id}/read/              POST

    Members:
        /chats/members/                POST, DELETE

    Pairs:
        /chats/pairs/{partner_id}/     DELETE

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import path

from chat.views import (
    ChatDetailView,
    ChatListCreateView,
    ChatMembershipView,
    ChatPairView,
    ChatReadView,
)

app_name = "chat"

urlpatterns = [
    path("chats/", ChatListCreateView.as_view(), name="chat-list"),
    path("chats/members/", ChatMembershipView.as_view(), name="chat-members"),
    path("chats/pairs/<str:partner_id>/", ChatPairView.as_view(), name="chat-pair"),
    path("chats/<int:chat_id>/", ChatDetailView.as_view(), name="chat-detail"),
    path("chats/<int:chat_id>/read/", ChatReadView.as_view(), name="chat-read"),
]
