"""forestwatch - Real-time hazard alerting and rolling history for forest IoT sensor feeds."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("forestwatch")
except PackageNotFoundError:
    __version__ = "0+local"
from forestwatch.alarm import AlarmSink, IdempotentAlarm, LoggingAlarm, SubprocessPlayer
from forestwatch.config import ForestWatchConfig
from forestwatch.exceptions import (
    AlarmSinkError,
    DeviceControlError,
    FeedCancelledError,
    FeedError,
    FeedTransportError,
    ForestWatchConfigError,
    ForestWatchError,
)
from forestwatch.feed.base import DeviceControl, FeedSubscription, ManualFeed
from forestwatch.hazard import DEFAULT_THRESHOLDS, HazardThresholds, card_status, evaluate, map_marker, map_region
from forestwatch.ingestion.snapshot import normalize, normalize_feed
from forestwatch.models import (
    CardStatus,
    ControlCommand,
    HazardAssessment,
    MapMarker,
    MapRegion,
    Metric,
    SensorSnapshot,
)
from forestwatch.monitor import HazardMonitor
from forestwatch.state.alerts import AlertLevel, AlertStateMachine, AlertTracker, DeviceAlertState
from forestwatch.state.events import AlertEvent, AlertKind, Connectivity
from forestwatch.state.history import HistoryAggregator, HistoryBuffer

__all__ = [
    "__version__",
    "AlarmSink",
    "AlarmSinkError",
    "AlertEvent",
    "AlertKind",
    "AlertLevel",
    "AlertStateMachine",
    "AlertTracker",
    "CardStatus",
    "Connectivity",
    "ControlCommand",
    "DEFAULT_THRESHOLDS",
    "DeviceAlertState",
    "DeviceControl",
    "DeviceControlError",
    "FeedCancelledError",
    "FeedError",
    "FeedSubscription",
    "FeedTransportError",
    "ForestWatchConfig",
    "ForestWatchConfigError",
    "ForestWatchError",
    "HazardAssessment",
    "HazardMonitor",
    "HazardThresholds",
    "HistoryAggregator",
    "HistoryBuffer",
    "IdempotentAlarm",
    "LoggingAlarm",
    "ManualFeed",
    "MapMarker",
    "MapRegion",
    "Metric",
    "SensorSnapshot",
    "SubprocessPlayer",
    "card_status",
    "evaluate",
    "map_marker",
    "map_region",
    "normalize",
    "normalize_feed",
]
