"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Chat, ChatMembership, ChatUser constraints
- test_store.py: ChatStore queries and transaction-scope guards
- test_authorization.py: MembershipValidator and require_chat_member
- test_user_sync.py: Local user cache and directory synchronization
- test_clients.py: Remote collaborator clients (httpx.MockTransport)
- test_services.py: ChatService and PairTeardownService
- test_notifications.py: chat.read emission
- test_tasks.py: Partner tie detach retry task
- test_consumers.py: WebSocket consumer
- test_serializers.py / test_views.py: REST boundary

Usage:
    pytest app/chat/tests/
    pytest app/chat/tests/test_services.py
"""
