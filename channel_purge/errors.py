"""
Channel purge exceptions
"""

from typing import Optional


class PurgeError(Exception):
    """Base class for purge failures"""


class ConfigError(PurgeError):
    """Missing or invalid configuration, raised before any network call"""


class InvalidChannelIdError(ConfigError, ValueError):
    """Channel id is not a 17-19 digit snowflake"""

    def __init__(self, channel_id):
        self.channel_id = channel_id
        super().__init__(f"Invalid channel ID '{channel_id}' (must be 17-19 digits)")


class MessageFetchError(PurgeError):
    """
    The message listing could not be used.

    Usually means a bad token or channel id rather than a transient problem,
    so the sweep aborts instead of retrying.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
        transient: bool = False,
    ):
        self.status_code = status_code
        self.body = body[:500]
        self.transient = transient
        super().__init__(message)
