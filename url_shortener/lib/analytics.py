"""Click analytics for shortened URLs."""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, Optional

from .clock import Clock, SystemClock
from .models import (
    AnalyticsSummary,
    ClickEvent,
    DashboardTotals,
    GeoInfo,
    ShortenedURL,
    URLAnalytics,
)
from .storage import ANALYTICS_KEY, StoreAdapter


class AnalyticsAggregator:
    """Record click events and summarize them per URL.

    Analytics are keyed by ShortenedURL.id and may outlive the URL record
    they describe; an unknown id is never an error.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
        key: str = ANALYTICS_KEY,
    ):
        self.adapter = adapter
        self.clock = clock or SystemClock()
        self.logger = logger or logging.getLogger(__name__)
        self.key = key

    def record_click(
        self,
        url_id: str,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None,
        geo: Optional[GeoInfo] = None,
    ) -> ClickEvent:
        """Append a click event for url_id.

        Args:
            url_id: Id of the clicked ShortenedURL
            referrer: Referring page, empty if direct
            user_agent: Visitor user agent string
            geo: Optional visitor location

        Returns:
            The recorded ClickEvent
        """
        with self.adapter.locked(self.key):
            stats = self._load()
            event = ClickEvent(
                timestamp=self.clock.now_ms(),
                referrer=referrer or "",
                user_agent=user_agent or "",
                geo=geo,
            )
            entry = stats.get(url_id) or URLAnalytics(url_id=url_id)
            stats[url_id] = entry.model_copy(update={
                "clicks": [*entry.clicks, event],
                "click_count": entry.click_count + 1,
                "last_clicked": event.timestamp,
            })
            self.adapter.save_map(self.key, stats)

        self.logger.debug(f"Recorded click for {url_id} (total {stats[url_id].click_count})")
        return event

    def summary(self, url_id: str) -> AnalyticsSummary:
        """Click summary for url_id; zero values if it was never clicked."""
        entry = self._load().get(url_id)
        if entry is None:
            return AnalyticsSummary()
        return AnalyticsSummary(
            click_count=entry.click_count,
            last_clicked=entry.last_clicked,
            clicks=list(entry.clicks),
        )

    def breakdown(self, url_id: str) -> Dict[str, Any]:
        """Count clicks for url_id by referrer and by country."""
        clicks = self.summary(url_id).clicks
        referrers = Counter(c.referrer or "direct" for c in clicks)
        countries = Counter(c.geo.country for c in clicks if c.geo and c.geo.country)
        return {
            "referrers": dict(referrers.most_common()),
            "countries": dict(countries.most_common()),
        }

    def aggregate(self, urls: Iterable[ShortenedURL]) -> DashboardTotals:
        """Fold click totals and active/expired counts over urls.

        Uses each record's is_active flag as evaluated when it was read.
        """
        stats = self._load()
        totals = DashboardTotals()
        for url in urls:
            entry = stats.get(url.id)
            totals.total_clicks += entry.click_count if entry else 0
            if url.is_active:
                totals.active_count += 1
            else:
                totals.expired_count += 1
        return totals

    def forget(self, url_id: str) -> bool:
        """Drop all analytics for url_id.

        Returns:
            True if anything was removed
        """
        with self.adapter.locked(self.key):
            stats = self._load()
            if url_id not in stats:
                return False
            del stats[url_id]
            self.adapter.save_map(self.key, stats)
        return True

    def _load(self) -> Dict[str, URLAnalytics]:
        return self.adapter.read_map(self.key, URLAnalytics)
