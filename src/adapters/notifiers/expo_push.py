"""Expo push notifications for price alerts."""

import re
from uuid import UUID

import httpx

from src.domain.interfaces.notifier import Notifier
from src.domain.interfaces.repositories import UserRepository
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"

# Expo accepts at most 100 messages per request
EXPO_CHUNK_SIZE = 100

_TOKEN_PATTERN = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[[^\]]+\]$")


def is_expo_push_token(token: str) -> bool:
    """Check a token has the ExponentPushToken[...] shape."""
    return bool(_TOKEN_PATTERN.match(token or ""))


class ExpoPushNotifier(Notifier):
    """Delivers notifications to a user's registered Expo devices.

    Invalid tokens are skipped, messages are sent in chunks of 100, and
    ticket errors are logged. Nothing raises into the caller.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        access_token: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        """Initialize notifier.

        Args:
            user_repo: Source of push tokens
            access_token: Optional Expo access token (enhanced security)
            client: Shared AsyncClient (a short-lived one is used if not provided)
            timeout: Request timeout in seconds
        """
        self._user_repo = user_repo
        self._access_token = access_token
        self._client = client
        self._timeout = timeout

    async def notify_user(
        self,
        user_id: UUID,
        title: str,
        body: str,
        metadata: dict | None = None,
    ) -> bool:
        """Send a notification to every device of a user."""
        try:
            tokens = await self._user_repo.get_push_tokens(user_id)
        except Exception as e:
            logger.error(f"Could not load push tokens for user {user_id}: {e}")
            return False

        if not tokens:
            logger.warning(f"No push tokens found for user {user_id}")
            return False

        return await self.send_to_tokens(tokens, title, body, metadata) > 0

    async def send_to_tokens(
        self,
        tokens: list[str],
        title: str,
        body: str,
        metadata: dict | None = None,
    ) -> int:
        """Send to a list of tokens.

        Returns:
            Number of messages Expo accepted.
        """
        valid_tokens = [t for t in tokens if is_expo_push_token(t)]
        if not valid_tokens:
            return 0

        messages = [
            {
                "to": token,
                "sound": "default",
                "title": title,
                "body": body,
                "data": metadata or {},
            }
            for token in valid_tokens
        ]

        accepted = 0
        for start in range(0, len(messages), EXPO_CHUNK_SIZE):
            chunk = messages[start : start + EXPO_CHUNK_SIZE]
            try:
                tickets = await self._send_chunk(chunk)
            except Exception as e:
                logger.error(f"Error sending push notification chunk: {e}")
                continue
            accepted += self._handle_tickets(tickets, valid_tokens[start : start + EXPO_CHUNK_SIZE])

        return accepted

    async def _send_chunk(self, chunk: list[dict]) -> list[dict]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        if self._client is not None:
            response = await self._client.post(
                EXPO_PUSH_URL, json=chunk, headers=headers, timeout=self._timeout
            )
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(EXPO_PUSH_URL, json=chunk, headers=headers)
        response.raise_for_status()

        tickets = response.json().get("data", [])
        return tickets if isinstance(tickets, list) else []

    def _handle_tickets(self, tickets: list[dict], tokens: list[str]) -> int:
        accepted = 0
        for index, ticket in enumerate(tickets):
            if ticket.get("status") == "ok":
                accepted += 1
                continue
            token = tokens[index] if index < len(tokens) else "?"
            logger.error(f"Error sending notification to {token}: {ticket.get('message')}")
            details = ticket.get("details") or {}
            if details.get("error") == "DeviceNotRegistered":
                logger.info(f"Push token no longer registered: {token}")
        return accepted
