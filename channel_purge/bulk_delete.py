"""
Bulk Channel Deletion

Deletes every message in a Discord channel, one REST call per message.

Discord only bulk-deletes messages younger than 14 days, so this walks the
whole history instead:
1. Fetch the newest page (100 messages), then older pages via `before`
2. Delete each message individually, pausing between deletions
3. Back off once on 429, then give up on that message
4. Stop when a page comes back short
"""

import asyncio
import httpx
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from channel_purge.discord_api import DiscordAPI
from channel_purge.errors import InvalidChannelIdError, MessageFetchError

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
RATE_LIMIT_COOLDOWN = 5.0
DEFAULT_DELETE_DELAY = 0.5  # Discord allows ~5 deletes/sec per channel
DELETE_SUCCESS_STATUS = 204
RATE_LIMIT_STATUS = 429

SNOWFLAKE_PATTERN = re.compile(r'^[0-9]{17,19}$')

MessageFilter = Callable[[dict], bool]


def is_valid_snowflake(value) -> bool:
    """True for 17-19 ASCII digit strings"""
    return isinstance(value, str) and SNOWFLAKE_PATTERN.fullmatch(value) is not None


def validate_channel_id(channel_id) -> str:
    if not is_valid_snowflake(channel_id):
        raise InvalidChannelIdError(channel_id)
    return channel_id


def embed_title_filter(pattern: str) -> MessageFilter:
    """
    Match messages whose first embed title matches `pattern`.

    Used to clear out test notifications (e.g. 'test-proj-') while leaving
    everything else in the channel alone.
    """
    regex = re.compile(pattern)

    def _matches(message: dict) -> bool:
        embeds = message.get('embeds') or []
        if not embeds:
            return False
        title = embeds[0].get('title') or ""
        return regex.search(title) is not None

    return _matches


@dataclass
class RetryPolicy:
    """Bounded retry for single deletes: one retry, only after a 429"""
    max_attempts: int = 2
    retry_statuses: frozenset = field(default_factory=lambda: frozenset({RATE_LIMIT_STATUS}))
    cooldown_seconds: float = RATE_LIMIT_COOLDOWN

    def should_retry(self, status: int, attempt: int) -> bool:
        return status in self.retry_statuses and attempt < self.max_attempts


@dataclass
class SweepStats:
    """Counters for one sweep"""
    deleted: int = 0
    failed: int = 0
    skipped: int = 0
    batches: int = 0
    fetched: int = 0
    cancelled: bool = False

    @property
    def nothing_to_delete(self) -> bool:
        return self.batches == 1 and self.fetched == 0


class BulkDeleter:
    """
    Sweeps a channel, deleting messages newest first.

    Features:
    - Paginates with the `before` cursor until a short page is returned
    - Fixed delay after every delete to stay under the channel rate limit
    - One retry after a cooldown when Discord answers 429
    - Optional message filter; unmatched messages are skipped
    - Cooperative stop between messages and before each page fetch

    Strictly sequential: one outstanding request at a time.
    """

    def __init__(
        self,
        api: DiscordAPI,
        channel_id: str,
        delete_delay: float = DEFAULT_DELETE_DELAY,
        retry_policy: Optional[RetryPolicy] = None,
        message_filter: Optional[MessageFilter] = None,
        fetch_retries: int = 0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not math.isfinite(delete_delay) or delete_delay < 0:
            raise ValueError(f"delete_delay must be a finite non-negative number, got {delete_delay}")
        if fetch_retries < 0:
            raise ValueError(f"fetch_retries must be non-negative, got {fetch_retries}")

        self.api = api
        self.channel_id = validate_channel_id(channel_id)
        self.delete_delay = delete_delay
        self.retry_policy = retry_policy or RetryPolicy()
        self.message_filter = message_filter
        self.fetch_retries = fetch_retries
        self._sleep = sleep

        self._stop_requested = False

    def stop(self):
        """Ask the sweep to stop before the next message or page"""
        if not self._stop_requested:
            logger.info("Stop requested, finishing current message")
        self._stop_requested = True

    async def run(self) -> SweepStats:
        """
        Delete every (matching) message in the channel.

        Raises MessageFetchError if a page cannot be fetched; messages deleted
        before that point stay deleted.
        """
        stats = SweepStats()
        before: Optional[str] = None

        while True:
            if self._stop_requested:
                stats.cancelled = True
                break

            stats.batches += 1
            logger.info(f"Batch {stats.batches}: fetching up to {PAGE_SIZE} messages...")
            page = await self._fetch_page(before)
            stats.fetched += len(page)

            if not page:
                if stats.batches == 1:
                    logger.info("No messages found, nothing to delete")
                break

            logger.info(f"Batch {stats.batches}: found {len(page)} messages")

            last_id = before
            for message in page:
                if self._stop_requested:
                    stats.cancelled = True
                    break

                message_id = message['id']
                last_id = message_id

                if self.message_filter and not self.message_filter(message):
                    stats.skipped += 1
                    continue

                if await self._delete_with_retry(message_id):
                    stats.deleted += 1
                else:
                    stats.failed += 1

                await self._sleep(self.delete_delay)

            if stats.cancelled or len(page) < PAGE_SIZE:
                break

            before = last_id

        logger.info(
            f"Sweep {'cancelled' if stats.cancelled else 'complete'}: "
            f"deleted={stats.deleted}, failed={stats.failed}, "
            f"skipped={stats.skipped}, batches={stats.batches}"
        )
        return stats

    async def _fetch_page(self, before: Optional[str]) -> list[dict]:
        """List one page; only transport failures are retried, and only if configured"""
        attempt = 0
        while True:
            try:
                return await self.api.list_messages(self.channel_id, limit=PAGE_SIZE, before=before)
            except MessageFetchError as e:
                if not e.transient or attempt >= self.fetch_retries:
                    logger.error(f"Message fetch failed: {e}")
                    raise
                attempt += 1
                logger.warning(
                    f"Message fetch failed ({e}), retry {attempt}/{self.fetch_retries} "
                    f"in {self.retry_policy.cooldown_seconds}s"
                )
                await self._sleep(self.retry_policy.cooldown_seconds)

    async def _delete_with_retry(self, message_id: str) -> bool:
        """Delete one message. Returns True on success."""
        attempt = 0
        while True:
            attempt += 1
            try:
                status = await self.api.delete_message(self.channel_id, message_id)
            except httpx.HTTPError as e:
                logger.warning(f"Failed to delete message {message_id}: {e}")
                return False

            if status == DELETE_SUCCESS_STATUS:
                logger.info(f"Deleted message {message_id}")
                return True

            if self.retry_policy.should_retry(status, attempt):
                logger.warning(
                    f"Rate limited deleting {message_id}, "
                    f"retrying in {self.retry_policy.cooldown_seconds}s"
                )
                await self._sleep(self.retry_policy.cooldown_seconds)
                continue

            logger.warning(f"Failed to delete message {message_id} (HTTP {status})")
            return False
