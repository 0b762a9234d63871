"""
Discord Channel Purge

Paginated, rate-limited bulk deletion of a Discord channel's messages.
"""

from channel_purge.bulk_delete import (
    BulkDeleter,
    RetryPolicy,
    SweepStats,
    embed_title_filter,
    is_valid_snowflake,
    validate_channel_id,
)
from channel_purge.discord_api import DiscordAPI
from channel_purge.errors import (
    ConfigError,
    InvalidChannelIdError,
    MessageFetchError,
    PurgeError,
)

__all__ = [
    'BulkDeleter',
    'RetryPolicy',
    'SweepStats',
    'embed_title_filter',
    'is_valid_snowflake',
    'validate_channel_id',
    'DiscordAPI',
    'ConfigError',
    'InvalidChannelIdError',
    'MessageFetchError',
    'PurgeError',
]
