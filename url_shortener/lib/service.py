"""Business logic service for URL shortener."""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .activity_log import ActivityLog
from .analytics import AnalyticsAggregator
from .clock import Clock, SystemClock
from .context import ClickContextProvider
from .errors import (
    VALIDATION_KINDS,
    ErrorKind,
    InvalidInputError,
    LookupFailedError,
    URLShortenerError,
)
from .models import ClickEvent, GeoInfo, LogEntry, LogLevel, ShortenedURL
from .records import URLRecordManager
from .shortcode import ShortCodeGenerator
from .storage import KeyValueStore, StoreAdapter, create_store

T = TypeVar("T")


class URLShortenerService:
    """Service layer wiring records, analytics and the activity log.

    Every user facing operation is recorded in the activity log. Failures
    are recorded at a level that depends on their kind and then re-raised:
    validation problems as warnings, missing or expired codes as info,
    storage and generation failures as errors.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        context_provider: Optional[ClickContextProvider] = None,
        logger: Optional[logging.Logger] = None,
        enable_custom_codes: bool = True,
        default_ttl_minutes: int = 30,
        max_log_entries: int = 1000,
        auto_purge: bool = False,
    ):
        """Initialize URL shortener service.

        Args:
            store: Key-value store backend
            clock: Optional clock (system time by default)
            short_code_generator: Optional short code generator
            context_provider: Optional source of user agent and geo data for clicks
            logger: Optional logger
            enable_custom_codes: Whether to allow custom short codes
            default_ttl_minutes: Lifetime used when create is called without one
            max_log_entries: Activity log capacity
            auto_purge: Purge expired records before each create
        """
        self.store = store
        self.clock = clock or SystemClock()
        self.logger = logger or logging.getLogger(__name__)
        self.generator = short_code_generator or ShortCodeGenerator(logger=self.logger)
        self.context_provider = context_provider
        self.enable_custom_codes = enable_custom_codes
        self.default_ttl_minutes = default_ttl_minutes
        self.auto_purge = auto_purge

        self.adapter = StoreAdapter(store, logger=self.logger)
        self.activity_log = ActivityLog(
            self.adapter,
            clock=self.clock,
            max_entries=max_log_entries,
            logger=self.logger,
        )
        self.records = URLRecordManager(
            self.adapter,
            generator=self.generator,
            clock=self.clock,
            logger=self.logger,
        )
        self.analytics = AnalyticsAggregator(self.adapter, clock=self.clock, logger=self.logger)

    @classmethod
    def from_config(
        cls,
        config,
        store: Optional[KeyValueStore] = None,
        clock: Optional[Clock] = None,
        context_provider: Optional[ClickContextProvider] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "URLShortenerService":
        """Build a service from application configuration."""
        logger = logger or logging.getLogger(__name__)
        generator = ShortCodeGenerator(
            default_length=config.short_code_length,
            max_attempts=config.max_generation_retries,
            logger=logger,
        )
        return cls(
            store=store or create_store(config, logger=logger),
            clock=clock,
            short_code_generator=generator,
            context_provider=context_provider,
            logger=logger,
            default_ttl_minutes=config.default_ttl_minutes,
            max_log_entries=config.max_log_entries,
            auto_purge=config.auto_purge,
        )

    def create_short_url(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        ttl_minutes: Optional[int] = None,
    ) -> ShortenedURL:
        """Create a new short URL.

        Args:
            original_url: The original long URL
            custom_code: Optional custom short code
            ttl_minutes: Optional lifetime (service default if not specified)

        Returns:
            The stored ShortenedURL

        Raises:
            InvalidInputError: If validation fails or the custom code is taken
            GenerationExhaustedError: If no free code could be generated
            StorageError: If the store rejects the write
        """
        ttl_minutes = self.default_ttl_minutes if ttl_minutes is None else ttl_minutes
        details = {"original_url": original_url, "custom_code": custom_code, "ttl_minutes": ttl_minutes}

        with self._recorded("create_url", details):
            if custom_code is not None and not self.enable_custom_codes:
                raise InvalidInputError("Custom short codes are not enabled", ErrorKind.INVALID_FORMAT)
            if self.auto_purge:
                self.records.purge_expired()
            record = self.records.create(original_url, custom_code, ttl_minutes)

        self._log("create_url", {
            "id": record.id,
            "short_code": record.short_code,
            "original_url": record.original_url,
            "expires_at": record.expires_at,
        })
        return record

    def resolve(self, short_code: str) -> ShortenedURL:
        """Resolve a short code without recording a click.

        Raises:
            LookupFailedError: NOT_FOUND or EXPIRED
        """
        with self._recorded("resolve", {"short_code": short_code}):
            return self.records.resolve(short_code)

    def visit(
        self,
        short_code: str,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None,
        geo: Optional[GeoInfo] = None,
    ) -> ShortenedURL:
        """Resolve a short code and record a click on it.

        User agent and geo default to what the context provider supplies;
        a missing or failing provider leaves them empty.

        Returns:
            The resolved record

        Raises:
            LookupFailedError: NOT_FOUND or EXPIRED
            StorageError: If the click cannot be stored
        """
        details = {"short_code": short_code, "referrer": referrer}
        with self._recorded("redirect", details):
            record = self.records.resolve(short_code)
            if user_agent is None:
                user_agent = self._from_provider("user_agent", lambda p: p.user_agent())
            if geo is None:
                geo = self._from_provider("geo", lambda p: p.geo())
            self.analytics.record_click(record.id, referrer, user_agent, geo)

        self._log("redirect", {
            "id": record.id,
            "short_code": short_code,
            "original_url": record.original_url,
            "referrer": referrer or "",
        })
        return record

    def record_click(
        self,
        url_id: str,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None,
        geo: Optional[GeoInfo] = None,
    ) -> ClickEvent:
        """Record a click for a known url id."""
        with self._recorded("record_click", {"id": url_id}):
            return self.analytics.record_click(url_id, referrer, user_agent, geo)

    def get_url_info(self, short_code: str) -> Dict[str, Any]:
        """Get a record with its analytics, whatever its status.

        Raises:
            LookupFailedError: NOT_FOUND if no record holds short_code
        """
        record = self.records.find(short_code)
        if record is None:
            raise LookupFailedError(f"Short code '{short_code}' not found", ErrorKind.NOT_FOUND)

        summary = self.analytics.summary(record.id)
        return {
            "url": record,
            "analytics": summary,
            "breakdown": self.analytics.breakdown(record.id),
        }

    def list_urls(self, active_only: bool = False) -> List[ShortenedURL]:
        """List records newest first."""
        return self.records.list(active_only=active_only)

    def deactivate(self, short_code: str) -> ShortenedURL:
        """Revoke a short URL before it expires."""
        with self._recorded("deactivate_url", {"short_code": short_code}):
            record = self.records.deactivate(short_code)
        self._log("deactivate_url", {"id": record.id, "short_code": short_code})
        return record

    def purge_expired(self) -> int:
        """Delete expired records. Their analytics are kept."""
        with self._recorded("purge_expired", {}):
            removed = self.records.purge_expired()
        if removed:
            self._log("purge_expired", {"removed": removed})
        return removed

    def get_statistics(self) -> Dict[str, Any]:
        """Get dashboard totals.

        Returns:
            Dictionary with statistics
        """
        urls = self.records.list()
        totals = self.analytics.aggregate(urls)
        return {
            "total_urls": len(urls),
            **totals.to_dict(),
            "log_entries": len(self.activity_log.entries()),
            "custom_codes_enabled": self.enable_custom_codes,
        }

    def query_logs(self, level: Optional[str] = None, search_text: Optional[str] = None) -> List[LogEntry]:
        return self.activity_log.query(level=level, search_text=search_text)

    def export_logs(self) -> str:
        return self.activity_log.export_as_json()

    def clear_logs(self) -> None:
        with self._recorded("clear_logs", {}):
            self.activity_log.clear()

    def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        store_healthy = self.store.health_check()
        return {
            "store": store_healthy,
            "overall": store_healthy,
        }

    def close(self) -> None:
        """Close store connections."""
        self.store.close()

    @contextmanager
    def _recorded(self, action: str, details: Dict[str, Any]):
        """Record a failure of the wrapped block in the activity log and re-raise it."""
        try:
            yield
        except URLShortenerError as e:
            if e.kind in VALIDATION_KINDS:
                level = LogLevel.WARNING
            elif e.kind in (ErrorKind.NOT_FOUND, ErrorKind.EXPIRED):
                level = LogLevel.INFO
            else:
                level = LogLevel.ERROR
            self.logger.log(
                logging.ERROR if level == LogLevel.ERROR else logging.DEBUG,
                f"{action} failed: {e}",
            )
            self._log(f"{action}_failed", {
                **details,
                "error": e.kind.value if e.kind else None,
                "message": e.message,
            }, level)
            raise

    def _log(self, action: str, details: Dict[str, Any], level: LogLevel = LogLevel.INFO) -> None:
        try:
            self.activity_log.append(action, details, level)
        except URLShortenerError as e:
            self.logger.error(f"Unable to write activity log entry '{action}': {e}")

    def _from_provider(self, name: str, getter: Callable[[ClickContextProvider], T]) -> Optional[T]:
        if self.context_provider is None:
            return None
        try:
            return getter(self.context_provider)
        except Exception as e:
            self.logger.warning(f"Click context provider failed to supply {name}: {e}")
            return None
