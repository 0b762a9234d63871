"""
Discord REST Client

Thin wrapper around the two Discord API v10 endpoints the purge needs:
- GET    /channels/{channel_id}/messages              - list newest messages
- DELETE /channels/{channel_id}/messages/{message_id} - delete one message

Authenticates with a bot token. No gateway connection, no bulk delete.
"""

import httpx
import logging
from typing import Optional

from channel_purge.errors import ConfigError, MessageFetchError

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
USER_AGENT = "DiscordBot (https://github.com/channel-purge, 0.1.0)"


class DiscordAPI:
    """
    Async client for listing and deleting channel messages

    One request at a time; callers are expected to pace themselves.
    """

    def __init__(
        self,
        bot_token: str,
        base_url: str = DISCORD_API_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not bot_token:
            raise ConfigError("DISCORD_BOT_TOKEN environment variable not set")

        self.bot_token = bot_token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client"""
        if self._client is None or self._client.is_closed:
            headers = {
                'Authorization': f"Bot {self.bot_token}",
                'User-Agent': USER_AGENT,
            }
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "DiscordAPI":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def list_messages(
        self,
        channel_id: str,
        limit: int = 100,
        before: Optional[str] = None,
    ) -> list[dict]:
        """
        Fetch up to `limit` of the most recent messages, newest first.

        Args:
            channel_id: Channel snowflake
            limit: Page size (Discord caps this at 100)
            before: Only return messages older than this message id

        Raises MessageFetchError if the response is not a list of messages.
        Discord error bodies ({"message": ..., "code": ...}) land here too.
        """
        params = {'limit': limit}
        if before:
            params['before'] = before

        client = await self._get_client()
        try:
            response = await client.get(f"/channels/{channel_id}/messages", params=params)
        except httpx.TransportError as e:
            raise MessageFetchError(
                f"Failed to reach Discord API: {e}",
                transient=True,
            ) from e
        except httpx.HTTPError as e:
            raise MessageFetchError(f"Discord API request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise MessageFetchError(
                f"Failed to parse Discord API response (HTTP {response.status_code})",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(data, list):
            raise MessageFetchError(
                f"Failed to parse Discord API response (HTTP {response.status_code}). "
                f"Check token and channel ID.",
                status_code=response.status_code,
                body=response.text,
            )

        for item in data:
            if not isinstance(item, dict) or not isinstance(item.get('id'), str):
                raise MessageFetchError(
                    "Discord API returned a message without an id",
                    status_code=response.status_code,
                    body=response.text,
                )

        logger.debug(f"Listed {len(data)} messages (before={before})")
        return data

    async def delete_message(self, channel_id: str, message_id: str) -> int:
        """
        Delete a single message.

        Returns the HTTP status code (204 on success, 429 when rate limited).
        Transport failures propagate as httpx.HTTPError.
        """
        client = await self._get_client()
        response = await client.delete(f"/channels/{channel_id}/messages/{message_id}")
        return response.status_code
