"""Feed adapters.

Every adapter implements :class:`forestwatch.feed.base.FeedSubscription`.
The MQTT and Firebase adapters are imported from their own modules so that
using one does not require the other's dependencies at import time.
"""

from forestwatch.feed.base import (
    DeviceControl,
    DeviceMapping,
    FeedSubscription,
    ManualFeed,
    SubscriberSet,
    Unsubscribe,
)

__all__ = [
    "DeviceControl",
    "DeviceMapping",
    "FeedSubscription",
    "ManualFeed",
    "SubscriberSet",
    "Unsubscribe",
]
