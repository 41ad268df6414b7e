"""Custom exception hierarchy for forestwatch."""

from __future__ import annotations


class ForestWatchError(Exception):
    """Base exception for all forestwatch errors."""


class ForestWatchConfigError(ForestWatchError):
    """Invalid or missing configuration."""


class FeedError(ForestWatchError):
    """The sensor feed subscription failed."""


class FeedTransportError(FeedError):
    """Network-level feed failure (connect, non-200, broken stream)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FeedCancelledError(FeedError):
    """The feed provider revoked or cancelled the subscription.

    Firebase sends ``cancel`` / ``auth_revoked`` stream events when the
    security rules stop allowing reads of the watched path.
    """


class AlarmSinkError(ForestWatchError):
    """The audible alarm could not be started or stopped."""


class DeviceControlError(ForestWatchError):
    """An actuator write (flame sensor / servo toggle) was rejected."""

    def __init__(
        self,
        message: str,
        *,
        device_id: str = "",
        status_code: int | None = None,
    ) -> None:
        self.device_id = device_id
        self.status_code = status_code
        super().__init__(message)
