"""
API views for the chat lifecycle.

URL Structure:
    /api/v1/chat/chats/                       GET (list), POST (create)
    /api/v1/chat/chats/{id}/                  GET, PATCH, DELETE
    /api/v1/chat/chats/{id}/read/             POST
    /api/v1/chat/chats/members/               POST (attach), DELETE (detach)
    /api/v1/chat/chats/pairs/{partner_id}/    DELETE

Design Decisions:
    - Views only validate input and render output; every rule lives in
      chat.services
    - Chat errors propagate as exceptions and are rendered by
      core.exception_handlers.api_exception_handler
    - The requester is the external user id carried by the access token
      (request.user.id); the raw bearer token is forwarded to the
      relationship-graph service on delete
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.authentication import JWTStatelessUserAuthentication

from chat.serializers import (
    ChatCreateSerializer,
    ChatFilterSerializer,
    ChatListSerializer,
    ChatUpdateSerializer,
    MembershipSerializer,
    PublicChatSerializer,
    SelfChatSerializer,
    SuccessSerializer,
)
from chat.services import ChatService, PairTeardownService


def requester_id(request) -> str | None:
    user_id = getattr(request.user, "id", None)
    return str(user_id) if user_id is not None else None


def bearer_token(request) -> str | None:
    """Raw access token from the Authorization header, if any."""
    authenticator = JWTStatelessUserAuthentication()
    header = authenticator.get_header(request)
    if header is None:
        return None
    raw = authenticator.get_raw_token(header)
    return raw.decode() if raw else None


class ChatListCreateView(APIView):
    """
    get:
        List the requester's chats. An empty page answers 404.

    post:
        Create a chat in an existing room. The chat starts without members.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_chats",
        summary="List my chats",
        tags=["Chat"],
        parameters=[ChatFilterSerializer],
        responses={
            200: ChatListSerializer,
            404: OpenApiResponse(description="No chats on this page"),
        },
    )
    def get(self, request):
        serializer = ChatFilterSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        result = ChatService.list_chats(
            serializer.to_filter(),
            requester_id(request),
            path=request.build_absolute_uri(request.path),
        )
        return Response(ChatListSerializer(result.data).data)

    @extend_schema(
        operation_id="create_chat",
        summary="Create chat",
        tags=["Chat"],
        request=ChatCreateSerializer,
        responses={
            201: PublicChatSerializer,
            404: OpenApiResponse(description="Room not found"),
            409: OpenApiResponse(description="Title already taken"),
        },
    )
    def post(self, request):
        serializer = ChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChatService.create_chat(serializer.to_spec())
        return Response(PublicChatSerializer(result.data).data, status=status.HTTP_201_CREATED)


class ChatDetailView(APIView):
    """
    get:
        Chat as seen by the requester (partner set, self filtered out).

    patch:
        Update title and/or status.

    delete:
        Delete the chat, then detach the partner tie.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_chat",
        summary="Get chat",
        tags=["Chat"],
        responses={
            200: SelfChatSerializer,
            403: OpenApiResponse(description="Not a member"),
            404: OpenApiResponse(description="Chat not found"),
        },
    )
    def get(self, request, chat_id: int):
        result = ChatService.get_chat(chat_id, requester_id(request))
        return Response(SelfChatSerializer(result.data).data)

    @extend_schema(
        operation_id="update_chat",
        summary="Update chat",
        tags=["Chat"],
        request=ChatUpdateSerializer,
        responses={200: SuccessSerializer},
    )
    def patch(self, request, chat_id: int):
        serializer = ChatUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChatService.update_chat(
            chat_id=chat_id,
            patch=serializer.to_patch(),
            requester_id=requester_id(request),
        )
        return Response(result.to_response())

    @extend_schema(
        operation_id="delete_chat",
        summary="Delete chat",
        tags=["Chat"],
        responses={200: SuccessSerializer},
    )
    def delete(self, request, chat_id: int):
        result = ChatService.delete_chat(
            chat_id,
            requester_id(request),
            auth_token=bearer_token(request),
        )
        return Response(result.to_response())


class ChatReadView(APIView):
    """Mark every message of the chat read for the requester."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="read_chat",
        summary="Mark chat read",
        tags=["Chat"],
        request=None,
        responses={200: SuccessSerializer},
    )
    def post(self, request, chat_id: int):
        result = ChatService.mark_read(chat_id=chat_id, requester_id=requester_id(request))
        return Response(result.to_response())


class ChatMembershipView(APIView):
    """
    post:
        Attach a user to a chat. Unknown users are fetched from the user
        directory and cached.

    delete:
        Detach a user from a chat.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="attach_chat_user",
        summary="Attach user",
        tags=["Chat - Members"],
        request=MembershipSerializer,
        responses={
            201: SuccessSerializer,
            404: OpenApiResponse(description="Chat or user not found"),
            409: OpenApiResponse(description="Already a member"),
        },
    )
    def post(self, request):
        serializer = MembershipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChatService.attach_user(serializer.to_ref(), requester_id(request))
        return Response(result.to_response(), status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="detach_chat_user",
        summary="Detach user",
        tags=["Chat - Members"],
        request=MembershipSerializer,
        responses={200: SuccessSerializer},
    )
    def delete(self, request):
        serializer = MembershipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChatService.detach_user(serializer.to_ref(), requester_id(request))
        return Response(result.to_response())


class ChatPairView(APIView):
    """Ensure no chat exists between the requester and partner_id."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="delete_chat_between_pair",
        summary="Delete chat with partner",
        tags=["Chat"],
        parameters=[
            OpenApiParameter("partner_id", OpenApiTypes.STR, OpenApiParameter.PATH),
        ],
        responses={200: SuccessSerializer},
    )
    def delete(self, request, partner_id: str):
        result = PairTeardownService.delete_between_pair(requester_id(request), partner_id)
        return Response(result.to_response())
