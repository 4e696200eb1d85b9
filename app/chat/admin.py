"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Chat management with inline memberships
- Cached directory users
"""

from django.contrib import admin

from chat.models import Chat, ChatMembership, ChatUser


class ChatMembershipInline(admin.TabularInline):
    """Inline display of memberships in chat admin."""

    model = ChatMembership
    extra = 0
    readonly_fields = ["joined_at"]
    raw_id_fields = ["user"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    """Admin interface for Chat model."""

    list_display = ["id", "title", "room_id", "status", "member_count", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["title", "id"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [ChatMembershipInline]
    ordering = ["-created_at"]

    @admin.display(description="Members")
    def member_count(self, obj: Chat) -> int:
        return obj.memberships.count()


@admin.register(ChatUser)
class ChatUserAdmin(admin.ModelAdmin):
    """Admin interface for the local user cache."""

    list_display = ["user_id", "name", "created_at", "updated_at"]
    search_fields = ["user_id", "name"]
    readonly_fields = ["created_at", "updated_at"]
