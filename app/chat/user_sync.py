"""
Local user cache and its synchronization with the remote user directory.

Services:
    UserCacheService: CRUD over ChatUser rows (the local cache)
    UserSyncService: Resolves a user id against the cache and, on a miss,
        the remote directory

The directory is only ever read. Resolution is split in two so the
remote lookup can run before the caller opens its transaction scope:

    record = UserSyncService.resolve(user_id)      # may call the directory
    with ChatService.atomic() as scope:
        UserSyncService.store(scope, user_id, record)
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat.clients import get_user_directory_client
from chat.exceptions import UserNotFoundError
from chat.models import ChatUser
from core.services import BaseService

if TYPE_CHECKING:
    from chat.clients import UserDirectoryClient
    from chat.types import RemoteUser
    from core.services import TransactionScope


class UserCacheService(BaseService):
    """
    Local projection of directory users.

    Methods:
        check_user: True if a cache row exists
        create_user: Idempotent upsert of a cache row
        get_user: Fetch a cache row or raise UserNotFoundError
    """

    @classmethod
    def check_user(cls, user_id: str) -> bool:
        return ChatUser.objects.filter(user_id=user_id).exists()

    @classmethod
    def create_user(
        cls,
        scope: TransactionScope,
        user_id: str,
        name: str = "",
        avatar: str | None = None,
    ) -> ChatUser:
        """
        Create the cache row for user_id unless it already exists.

        A concurrent create of the same row is tolerated: get_or_create
        re-reads after losing the unique-constraint race. An existing row
        is returned unchanged.
        """
        scope.require_active()
        user, created = ChatUser.objects.using(scope.using).get_or_create(
            user_id=user_id,
            defaults={"name": name or "", "avatar": avatar},
        )
        if created:
            cls.get_logger().info(f"Cached directory user {user_id}")
        return user

    @classmethod
    def get_user(cls, user_id: str) -> ChatUser:
        """
        Raises:
            UserNotFoundError: No cache row for user_id
        """
        try:
            return ChatUser.objects.get(user_id=user_id)
        except ChatUser.DoesNotExist:
            raise UserNotFoundError(details={"user_id": user_id}) from None


class UserSyncService(BaseService):
    """
    Reconciles the local cache against the remote user directory.

    Methods:
        resolve: Cache hit returns None; a miss returns the directory record
        store: Write a resolved record into the cache inside a scope
        ensure_user: resolve + store in one call
    """

    @classmethod
    def resolve(
        cls,
        user_id: str,
        directory: UserDirectoryClient | None = None,
    ) -> RemoteUser | None:
        """
        Find what must be cached for user_id.

        Returns:
            None if the cache already has the user, else the directory record

        Raises:
            UserNotFoundError: The directory has no such user, or answered
                with a record for a different id
            CollaboratorUnavailableError: The directory could not answer
        """
        if UserCacheService.check_user(user_id):
            cls.get_logger().debug(f"User {user_id} already cached")
            return None

        directory = directory or get_user_directory_client()
        record = directory.get_user(user_id)
        if record is None:
            cls.get_logger().info(f"User {user_id} not found in directory")
            raise UserNotFoundError(details={"user_id": user_id})
        if record.id != user_id:
            # The cache must only hold identities the directory issued
            cls.get_logger().warning(
                f"Directory answered {record.id!r} for user {user_id!r}",
                extra={"user_id": user_id},
            )
            raise UserNotFoundError(details={"user_id": user_id})
        return record

    @classmethod
    def store(
        cls,
        scope: TransactionScope,
        user_id: str,
        record: RemoteUser | None,
    ) -> None:
        """Cache a record returned by resolve(); no-op for a cache hit."""
        if record is None:
            return
        UserCacheService.create_user(scope, user_id, record.name, record.avatar)

    @classmethod
    def ensure_user(
        cls,
        user_id: str,
        directory: UserDirectoryClient | None = None,
    ) -> ChatUser:
        record = cls.resolve(user_id, directory=directory)
        with cls.atomic() as scope:
            cls.store(scope, user_id, record)
        return UserCacheService.get_user(user_id)
