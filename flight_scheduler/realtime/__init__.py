"""In-process change feed, channel bindings and cache-invalidation subscribers."""

from .channels import (
    Binding,
    ChannelSpec,
    admin_channel,
    channel_for_user,
    instructor_channel,
    server_cache_channel,
    user_channel,
)
from .debounce import Debouncer
from .feed import (
    ChangeEvent,
    ChangeFeed,
    ChannelClosedError,
    FeedSubscription,
    change_feed,
    install_change_capture,
)
from .subscriber import (
    ChannelError,
    ConnectionStatus,
    LocalFeedTransport,
    RealtimeSubscriber,
)

__all__ = [
    "Binding",
    "ChangeEvent",
    "ChangeFeed",
    "ChannelClosedError",
    "ChannelError",
    "ChannelSpec",
    "ConnectionStatus",
    "Debouncer",
    "FeedSubscription",
    "LocalFeedTransport",
    "RealtimeSubscriber",
    "admin_channel",
    "change_feed",
    "channel_for_user",
    "install_change_capture",
    "instructor_channel",
    "server_cache_channel",
    "user_channel",
]
