"""
Chat app: chat lifecycle and membership consistency.

This app handles:
- Chat CRUD and listing scoped to the requester's memberships
- Attaching/detaching members, synchronizing unknown users from the
  remote user directory
- Mark-read delegation to the message store with a real-time event
- Pairwise teardown of the chat shared by two users

Related services (remote, see clients.py):
    - room registry, user directory, message store, relationship graph

WebSocket Support:
    Uses Django Channels for real-time delivery.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import ChatService

    result = ChatService.create_chat(ChatCreateSpec(title="Support", room_id=7))
    ChatService.attach_user(MembershipRef(chat_id=result.data.id, user_id="u-1"), "u-1")
"""
