"""
Celery tasks for chat app.

This module defines async tasks for:
- Retrying the partner tie detach that follows a chat deletion

Related files:
    - services.py: ChatService.delete_chat, ChatService.detach_partner_tie
    - clients.py: TiesServiceClient

Usage:
    from chat.tasks import detach_partner_tie

    detach_partner_tie.delay(auth_token, partner_id, chat_id)
"""

import logging

from celery import shared_task

from chat.clients import get_ties_client
from chat.constants import TIES_RETRY_CONFIG
from chat.exceptions import AccessDeniedError, CollaboratorUnavailableError

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(CollaboratorUnavailableError,),
    retry_backoff=True,
    retry_backoff_max=TIES_RETRY_CONFIG.BACKOFF_MAX_SECONDS,
    retry_jitter=True,
    retry_kwargs={"max_retries": TIES_RETRY_CONFIG.MAX_RETRIES},
)
def detach_partner_tie(self, auth_token: str, partner_id: str, chat_id: int | None = None) -> bool:
    """
    Detach the partner tie in the relationship-graph service.

    The chat is already deleted locally; this only closes the gap in the
    ties service. A 404 from the service counts as done and a rejected
    token is dropped without retrying. Unavailability is retried with
    exponential backoff until the retry budget runs out.

    Args:
        auth_token: Bearer token of the user who deleted the chat
        partner_id: The other participant of the deleted chat
        chat_id: Deleted chat, for logging only

    Returns:
        True once the service confirmed the detach, False when the service
        rejected the token (never retried)
    """
    try:
        get_ties_client().detach_partner(auth_token, partner_id)
    except AccessDeniedError:
        logger.warning(
            f"Ties service rejected the token, partner tie to {partner_id} dropped",
            extra={"chat_id": chat_id, "partner_id": partner_id},
        )
        return False
    logger.info(
        f"Partner tie to {partner_id} detached (attempt {self.request.retries + 1})",
        extra={"chat_id": chat_id, "partner_id": partner_id},
    )
    return True
