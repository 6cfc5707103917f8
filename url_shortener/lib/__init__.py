"""Core business logic for URL shortener."""

from .activity_log import ActivityLog
from .analytics import AnalyticsAggregator
from .clock import Clock, ManualClock, SystemClock
from .errors import ErrorKind, URLShortenerError
from .records import URLRecordManager
from .shortcode import ShortCodeGenerator
from .service import URLShortenerService

__all__ = [
    "ActivityLog",
    "AnalyticsAggregator",
    "Clock",
    "ManualClock",
    "SystemClock",
    "ErrorKind",
    "URLShortenerError",
    "URLRecordManager",
    "ShortCodeGenerator",
    "URLShortenerService",
]
