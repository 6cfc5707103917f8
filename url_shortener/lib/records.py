"""Shortened URL record management."""

import logging
import math
import uuid
from typing import List, Optional, Set

from .clock import MS_PER_MINUTE, Clock, SystemClock
from .common.validators import is_valid_url
from .errors import ErrorKind, InvalidInputError, LookupFailedError
from .models import ShortenedURL
from .shortcode import ShortCodeGenerator
from .storage import URLS_KEY, StoreAdapter


class URLRecordManager:
    """Create, resolve, list, deactivate and purge shortened URL records.

    Expiry is lazy: a record's status is evaluated against the clock each
    time it is read. Every record handed to callers carries an is_active
    flag computed at read time.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        generator: Optional[ShortCodeGenerator] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
        key: str = URLS_KEY,
    ):
        self.adapter = adapter
        self.generator = generator or ShortCodeGenerator()
        self.clock = clock or SystemClock()
        self.logger = logger or logging.getLogger(__name__)
        self.key = key

    def create(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        ttl_minutes: int = 30,
    ) -> ShortenedURL:
        """Create and persist a new short URL record.

        Args:
            original_url: Absolute http(s) URL to shorten
            custom_code: Optional user chosen short code
            ttl_minutes: Minutes until the record expires

        Returns:
            The stored record

        Raises:
            InvalidInputError: INVALID_URL, INVALID_TTL, INVALID_FORMAT or CODE_TAKEN
            GenerationExhaustedError: If no free code could be drawn
            StorageError: If the store rejects the write
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise InvalidInputError(f"Invalid URL: {error}", ErrorKind.INVALID_URL)

        if (
            isinstance(ttl_minutes, bool)
            or not isinstance(ttl_minutes, (int, float))
            or not math.isfinite(ttl_minutes * MS_PER_MINUTE)
            or not ttl_minutes * MS_PER_MINUTE >= 1
        ):
            raise InvalidInputError(
                f"TTL must be a positive number of minutes, got {ttl_minutes!r}",
                ErrorKind.INVALID_TTL,
            )

        with self.adapter.locked(self.key):
            records = self._load()
            now = self.clock.now_ms()

            if custom_code is not None:
                live_codes = {r.short_code for r in records if r.is_live(now)}
                short_code = self.generator.validate_custom(custom_code, live_codes)
                # Expired or deactivated holders of the code give it up now
                stale = [r for r in records if r.short_code == short_code]
                if stale:
                    self.logger.info(f"Reusing short code {short_code} from {len(stale)} inactive record(s)")
                    records = [r for r in records if r.short_code != short_code]
            else:
                short_code = self.generator.generate({r.short_code for r in records})

            record = ShortenedURL(
                id=uuid.uuid4().hex,
                original_url=original_url,
                short_code=short_code,
                custom_code=custom_code,
                created_at=now,
                expires_at=now + int(ttl_minutes * MS_PER_MINUTE),
                is_active=True,
            )
            records.append(record)
            self._save(records)

        self.logger.info(f"Created short URL: {short_code} -> {original_url}")
        return record

    def resolve(self, short_code: str) -> ShortenedURL:
        """Look up a live record by short code. Never mutates state.

        Raises:
            LookupFailedError: NOT_FOUND or EXPIRED
        """
        record = self._find(self._load(), short_code)
        if record is None:
            raise LookupFailedError(f"Short code '{short_code}' not found", ErrorKind.NOT_FOUND)

        now = self.clock.now_ms()
        if record.deactivated_at is not None:
            raise LookupFailedError(f"Short code '{short_code}' has been deactivated", ErrorKind.EXPIRED)
        if record.is_expired(now):
            raise LookupFailedError(f"Short code '{short_code}' has expired", ErrorKind.EXPIRED)

        self.logger.debug(f"Resolved {short_code} -> {record.original_url}")
        return record.with_status(now)

    def find(self, short_code: str) -> Optional[ShortenedURL]:
        """Return the record holding short_code regardless of status."""
        record = self._find(self._load(), short_code)
        return record.with_status(self.clock.now_ms()) if record else None

    def get(self, url_id: str) -> Optional[ShortenedURL]:
        """Return the record with the given id, or None."""
        now = self.clock.now_ms()
        for record in self._load():
            if record.id == url_id:
                return record.with_status(now)
        return None

    def list(self, active_only: bool = False) -> List[ShortenedURL]:
        """List records newest first.

        Args:
            active_only: Exclude expired and deactivated records

        Returns:
            Records ordered by created_at descending
        """
        now = self.clock.now_ms()
        records = [r.with_status(now) for r in self._load()]
        if active_only:
            records = [r for r in records if r.is_active]
        # Ties: most recently inserted first
        return sorted(reversed(records), key=lambda r: r.created_at, reverse=True)

    def codes(self, live_only: bool = False) -> Set[str]:
        now = self.clock.now_ms()
        return {r.short_code for r in self._load() if not live_only or r.is_live(now)}

    def deactivate(self, short_code: str) -> ShortenedURL:
        """Revoke a record before its expiry.

        Raises:
            LookupFailedError: NOT_FOUND if no record holds short_code
        """
        with self.adapter.locked(self.key):
            records = self._load()
            record = self._find(records, short_code)
            if record is None:
                raise LookupFailedError(f"Short code '{short_code}' not found", ErrorKind.NOT_FOUND)

            now = self.clock.now_ms()
            if record.deactivated_at is None:
                updated = record.model_copy(update={"deactivated_at": now, "is_active": False})
                records = [updated if r.id == record.id else r for r in records]
                self._save(records)
                record = updated
                self.logger.info(f"Deactivated short URL: {short_code}")

        return record.with_status(now)

    def purge_expired(self) -> int:
        """Delete records whose expiry has passed.

        Returns:
            Number of records removed
        """
        with self.adapter.locked(self.key):
            records = self._load()
            now = self.clock.now_ms()
            kept = [r for r in records if not r.is_expired(now)]
            removed = len(records) - len(kept)
            if removed:
                self._save(kept)
                self.logger.info(f"Purged {removed} expired short URL(s)")
        return removed

    def sweep(self) -> int:
        """Refresh the stored is_active flag of every record.

        Housekeeping only; resolve evaluates expiry on its own.

        Returns:
            Number of records whose flag changed
        """
        with self.adapter.locked(self.key):
            records = self._load()
            now = self.clock.now_ms()
            changed = 0
            swept = []
            for record in records:
                if record.is_active != record.is_live(now):
                    record = record.with_status(now)
                    changed += 1
                swept.append(record)
            if changed:
                self._save(swept)
                self.logger.debug(f"Sweep marked {changed} record(s)")
        return changed

    def _load(self) -> List[ShortenedURL]:
        return self.adapter.read_list(self.key, ShortenedURL)

    def _save(self, records: List[ShortenedURL]) -> None:
        self.adapter.save_list(self.key, records)

    @staticmethod
    def _find(records: List[ShortenedURL], short_code: str) -> Optional[ShortenedURL]:
        for record in records:
            if record.short_code == short_code:
                return record
        return None
