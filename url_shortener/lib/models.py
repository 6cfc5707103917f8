"""Data models for URL shortener."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class ShortenedURL(BaseModel):
    """A short code mapped to an original URL with an expiry time."""

    id: str
    original_url: str
    short_code: str
    custom_code: Optional[str] = None
    created_at: int
    expires_at: int
    is_active: bool = True
    deactivated_at: Optional[int] = None

    @model_validator(mode="after")
    def _check_window(self) -> "ShortenedURL":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        return self

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.expires_at

    def is_live(self, now_ms: int) -> bool:
        """True if the record is neither expired nor deactivated at now_ms."""
        return self.deactivated_at is None and not self.is_expired(now_ms)

    def with_status(self, now_ms: int) -> "ShortenedURL":
        """Return a copy whose is_active flag is evaluated at now_ms."""
        return self.model_copy(update={"is_active": self.is_live(now_ms)})


class GeoInfo(BaseModel):
    """Approximate location of a visitor."""

    country: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None


class ClickEvent(BaseModel):
    """One recorded visit to a short code."""

    timestamp: int
    referrer: str = ""
    user_agent: str = ""
    geo: Optional[GeoInfo] = None


class URLAnalytics(BaseModel):
    """Click history for a single shortened URL."""

    url_id: str
    click_count: int = 0
    clicks: List[ClickEvent] = Field(default_factory=list)
    last_clicked: Optional[int] = None


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogEntry(BaseModel):
    """An activity log entry. Never mutated once written."""

    id: str
    timestamp: int
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    level: LogLevel = LogLevel.INFO


@dataclass
class AnalyticsSummary:
    """Click summary for one URL."""

    click_count: int = 0
    last_clicked: Optional[int] = None
    clicks: List[ClickEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "click_count": self.click_count,
            "last_clicked": self.last_clicked,
            "clicks": [c.model_dump(mode="json", exclude_none=True) for c in self.clicks],
        }


@dataclass
class DashboardTotals:
    """Totals across a set of URLs."""

    total_clicks: int = 0
    active_count: int = 0
    expired_count: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_clicks": self.total_clicks,
            "active_count": self.active_count,
            "expired_count": self.expired_count,
        }
