"""Tests for click analytics."""

from url_shortener.lib.models import GeoInfo, ShortenedURL
from url_shortener.lib.storage import ANALYTICS_KEY


def make_url(url_id: str, active: bool) -> ShortenedURL:
    return ShortenedURL(
        id=url_id,
        original_url="https://example.com",
        short_code=f"c{url_id}",
        created_at=0,
        expires_at=1,
        is_active=active,
    )


class TestAnalyticsAggregator:
    """Test click recording and summaries."""

    def test_summary_defaults(self, analytics):
        summary = analytics.summary("unknown")

        assert summary.click_count == 0
        assert summary.last_clicked is None
        assert summary.clicks == []

    def test_click_accumulation(self, analytics, clock):
        for i in range(5):
            analytics.record_click("url1", f"https://ref{i}.example", "UA/1.0")
            clock.advance(ms=100)

        summary = analytics.summary("url1")
        assert summary.click_count == 5
        assert len(summary.clicks) == 5
        timestamps = [c.timestamp for c in summary.clicks]
        assert timestamps == sorted(timestamps)
        assert summary.last_clicked == timestamps[-1]
        assert [c.referrer for c in summary.clicks] == [f"https://ref{i}.example" for i in range(5)]

    def test_clicks_kept_per_url(self, analytics):
        analytics.record_click("a", "", "UA")
        analytics.record_click("b", "", "UA")
        analytics.record_click("b", "", "UA")

        assert analytics.summary("a").click_count == 1
        assert analytics.summary("b").click_count == 2

    def test_geo_is_optional(self, analytics, store):
        analytics.record_click("url1", None, None)
        analytics.record_click("url1", "https://ref.example", "UA", GeoInfo(country="NL", timezone="Europe/Amsterdam"))

        clicks = analytics.summary("url1").clicks
        assert clicks[0].geo is None
        assert clicks[0].referrer == ""
        assert clicks[1].geo.country == "NL"
        assert clicks[1].geo.city is None
        assert '"city"' not in store.get(ANALYTICS_KEY)

    def test_breakdown(self, analytics):
        analytics.record_click("u", "https://a.example", "UA", GeoInfo(country="US"))
        analytics.record_click("u", "https://a.example", "UA", GeoInfo(country="DE"))
        analytics.record_click("u", "", "UA", GeoInfo(country="US"))

        breakdown = analytics.breakdown("u")
        assert breakdown["referrers"] == {"https://a.example": 2, "direct": 1}
        assert breakdown["countries"] == {"US": 2, "DE": 1}

    def test_aggregate(self, analytics):
        analytics.record_click("1", "", "UA")
        analytics.record_click("1", "", "UA")
        analytics.record_click("2", "", "UA")
        analytics.record_click("orphan", "", "UA")

        totals = analytics.aggregate([make_url("1", True), make_url("2", False), make_url("3", True)])

        assert totals.total_clicks == 3
        assert totals.active_count == 2
        assert totals.expired_count == 1
        assert totals.to_dict() == {"total_clicks": 3, "active_count": 2, "expired_count": 1}

    def test_forget(self, analytics):
        analytics.record_click("u", "", "UA")

        assert analytics.forget("u")
        assert not analytics.forget("u")
        assert analytics.summary("u").click_count == 0

    def test_corrupt_collection(self, analytics, store, activity_log):
        store.set(ANALYTICS_KEY, "[[[")

        assert analytics.summary("u").click_count == 0
        analytics.record_click("u", "", "UA")
        assert analytics.summary("u").click_count == 1

        errors = activity_log.query(level="error")
        assert errors
        assert errors[-1].action == "storage_corrupt"
        assert errors[-1].details["key"] == ANALYTICS_KEY
