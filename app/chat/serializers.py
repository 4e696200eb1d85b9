"""
Serializers for chat API.

This module provides serializers for the chat system:
- Request serializers validating query parameters and bodies, each able
  to build the typed input the service layer expects
- Response serializers rendering chat views and acknowledgments

Serializer Hierarchy:
    ChatFilterSerializer: List query parameters -> ChatFilter
    ChatCreateSerializer: Create body -> ChatCreateSpec
    ChatUpdateSerializer: Patch body -> ChatPatch
    MembershipSerializer: Attach/detach body -> MembershipRef

    MemberSerializer: One member of a chat
    PublicChatSerializer: PublicChatView
    SelfChatSerializer: SelfChatView (adds partner)
    ChatListSerializer: {"data": [...], "meta": {...}}
    SuccessSerializer: {"success": true}

Design Decisions:
    - Read and write serializers are separate for clarity
    - Response serializers read attributes of the frozen view dataclasses
"""

from __future__ import annotations

from rest_framework import serializers

from chat.constants import CHAT_CONFIG
from chat.models import ChatStatus
from chat.types import ChatCreateSpec, ChatFilter, ChatPatch, MembershipRef

# =============================================================================
# Request Serializers
# =============================================================================


class ChatFilterSerializer(serializers.Serializer):
    """Query parameters for listing chats."""

    room_id = serializers.IntegerField(required=False, min_value=1)
    title = serializers.CharField(
        required=False, allow_blank=True, max_length=CHAT_CONFIG.TITLE_MAX_LENGTH
    )
    status = serializers.ChoiceField(choices=ChatStatus.choices, required=False)
    page = serializers.IntegerField(
        required=False, min_value=1, default=CHAT_CONFIG.DEFAULT_PAGE
    )
    limit = serializers.IntegerField(
        required=False,
        min_value=1,
        max_value=CHAT_CONFIG.MAX_LIMIT,
        default=CHAT_CONFIG.DEFAULT_LIMIT,
    )

    def to_filter(self) -> ChatFilter:
        return ChatFilter(**self.validated_data)


class ChatCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=CHAT_CONFIG.TITLE_MAX_LENGTH)
    room_id = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=ChatStatus.choices, required=False)

    def to_spec(self) -> ChatCreateSpec:
        return ChatCreateSpec(**self.validated_data)


class ChatUpdateSerializer(serializers.Serializer):
    """
    Partial update body.

    Only title and status are accepted; any other key (id, created_at,
    room_id) is ignored.
    """

    title = serializers.CharField(required=False, max_length=CHAT_CONFIG.TITLE_MAX_LENGTH)
    status = serializers.ChoiceField(choices=ChatStatus.choices, required=False)

    def to_patch(self) -> ChatPatch:
        return ChatPatch(**self.validated_data)


class MembershipSerializer(serializers.Serializer):
    chat_id = serializers.IntegerField(min_value=1)
    user_id = serializers.CharField(max_length=CHAT_CONFIG.USER_ID_MAX_LENGTH)

    def to_ref(self) -> MembershipRef:
        return MembershipRef(**self.validated_data)


# =============================================================================
# Response Serializers
# =============================================================================


class MemberSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    name = serializers.CharField()
    avatar = serializers.CharField(allow_null=True)
    joined_at = serializers.DateTimeField()


class PublicChatSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    title = serializers.CharField()
    room_id = serializers.IntegerField()
    status = serializers.CharField()
    created_at = serializers.DateTimeField()
    members = MemberSerializer(many=True)


class SelfChatSerializer(PublicChatSerializer):
    """Requester perspective: the requester is absent from ``members``."""

    partner = MemberSerializer(allow_null=True)


class PageMetaSerializer(serializers.Serializer):
    current_page = serializers.IntegerField()
    last_page = serializers.IntegerField()
    per_page = serializers.IntegerField()
    # "from" is a keyword; declared below
    to = serializers.IntegerField()
    total = serializers.IntegerField()
    path = serializers.CharField()

    def get_fields(self):
        fields = super().get_fields()
        fields["from"] = serializers.IntegerField()
        return fields


class ChatListSerializer(serializers.Serializer):
    data = SelfChatSerializer(many=True, source="items")
    meta = PageMetaSerializer()


class SuccessSerializer(serializers.Serializer):
    success = serializers.BooleanField()
